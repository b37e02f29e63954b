from __future__ import annotations

from typing import Any, Optional


class ChainBuildError(Exception):
    """Base exception for all chainbuild errors."""

    def __init__(self, message: str, **kwargs: Any) -> None:
        """
        Initialize exception.

        Args:
            message: Error message
            **kwargs: Additional error information, merged into ``details``
        """
        details = dict(kwargs.pop("details", None) or {})
        details.update(kwargs)
        self.message = message
        self.details = details
        super().__init__(message)

    def __str__(self) -> str:
        """String representation."""
        return f"{self.message}"


class ConfigurationError(ChainBuildError):
    """Exception raised for configuration-related errors."""

    def __init__(
            self, message: str, *args: Any, config_key: Optional[str] = None, **kwargs: Any
    ) -> None:
        """Initialize a ConfigurationError.

        Args:
            message: A descriptive error message.
            *args: Unused, accepted for call-site compatibility.
            config_key: The configuration key that caused the error.
            **kwargs: Additional error information.
        """
        details = kwargs.pop("details", {})
        if config_key:
            details["config_key"] = config_key
        super().__init__(message, details=details, **kwargs)
        self.config_key = config_key


class DependencyError(ChainBuildError):
    """Exception raised when module dependencies cannot be tidied or verified."""

    def __init__(self, message: str, *, step: Optional[str] = None, **kwargs: Any) -> None:
        details = kwargs.pop("details", {})
        if step:
            details["step"] = step
        super().__init__(message, details=details, **kwargs)
        self.step = step


class EntryPointNotFoundError(ChainBuildError):
    """Exception raised when the source tree has no main package."""

    def __init__(self, message: str, *, source_root: Optional[str] = None, **kwargs: Any) -> None:
        super().__init__(message, source_root=source_root, **kwargs)
        self.source_root = source_root


class MultipleEntryPointsFoundError(ChainBuildError):
    """Exception raised when the source tree has more than one main package."""

    def __init__(
            self, message: str, *, candidates: Optional[list] = None, **kwargs: Any
    ) -> None:
        super().__init__(message, candidates=list(candidates or []), **kwargs)
        self.candidates = list(candidates or [])


class TargetParseError(ChainBuildError):
    """Exception raised for a malformed ``os:arch`` target token."""

    def __init__(self, message: str, *, target: Optional[str] = None, **kwargs: Any) -> None:
        super().__init__(message, target=target, **kwargs)
        self.target = target


class CommandError(ChainBuildError):
    """Exception raised when an external command exits with a non-zero status."""

    def __init__(
            self,
            message: str,
            *,
            command: Optional[list] = None,
            returncode: Optional[int] = None,
            output: str = "",
            **kwargs: Any,
    ) -> None:
        """Initialize a CommandError.

        Args:
            message: A descriptive error message.
            command: The argument vector that was executed.
            returncode: Exit status of the process.
            output: Captured stdout/stderr of the process.
            **kwargs: Additional error information.
        """
        super().__init__(message, command=command, returncode=returncode, **kwargs)
        self.command = list(command or [])
        self.returncode = returncode
        self.output = output

    def __str__(self) -> str:
        """String representation."""
        if self.output:
            return f"{self.message}\n{self.output.rstrip()}"
        return super().__str__()


class CompileError(CommandError):
    """Exception raised when the compiler fails."""

    pass


class CannotBuildAppError(ChainBuildError):
    """User-facing build failure wrapping a compile or entry point error."""

    def __init__(self, cause: BaseException, **kwargs: Any) -> None:
        super().__init__(f"cannot build app:\n\n\t{cause}", **kwargs)
        self.cause = cause
        self.__cause__ = cause


class ArchiveError(ChainBuildError):
    """Exception raised when a build output cannot be archived."""

    def __init__(self, message: str, *, path: Optional[str] = None, **kwargs: Any) -> None:
        super().__init__(message, path=path, **kwargs)
        self.path = path


class ChecksumError(ChainBuildError):
    """Exception raised when the checksum manifest cannot be written."""

    def __init__(self, message: str, *, path: Optional[str] = None, **kwargs: Any) -> None:
        super().__init__(message, path=path, **kwargs)
        self.path = path


class CancellationError(ChainBuildError):
    """Exception raised when an operation is aborted by its cancellation token."""

    def __init__(self, message: str = "operation cancelled", *, operation: Optional[str] = None,
                 **kwargs: Any) -> None:
        super().__init__(message, operation=operation, **kwargs)
        self.operation = operation
