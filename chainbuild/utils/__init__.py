"""Utility functions and classes for chainbuild."""

from chainbuild.utils.exceptions import (
    ArchiveError,
    CancellationError,
    CannotBuildAppError,
    ChainBuildError,
    ChecksumError,
    CommandError,
    CompileError,
    ConfigurationError,
    DependencyError,
    EntryPointNotFoundError,
    MultipleEntryPointsFoundError,
    TargetParseError,
)

__all__ = [
    "ArchiveError",
    "CancellationError",
    "CannotBuildAppError",
    "ChainBuildError",
    "ChecksumError",
    "CommandError",
    "CompileError",
    "ConfigurationError",
    "DependencyError",
    "EntryPointNotFoundError",
    "MultipleEntryPointsFoundError",
    "TargetParseError",
]
