"""Thin wrapper around the ``go`` command line used by the build pipeline."""

from __future__ import annotations

import pathlib
from typing import List, Mapping, Optional, Sequence, Union

import structlog

from chainbuild.utils import process
from chainbuild.utils.cancellation import CancellationToken
from chainbuild.utils.exceptions import CompileError

logger = structlog.get_logger(__name__)

FLAG_MOD = "-mod"
FLAG_MOD_VALUE_READ_ONLY = "readonly"
FLAG_LDFLAGS = "-ldflags"
FLAG_OUT = "-o"

ENV_GOOS = "GOOS"
ENV_GOARCH = "GOARCH"


def ldflags(*flags: str) -> str:
    """Join linker flags into the single value passed to ``-ldflags``."""
    return " ".join(flags)


def target_env(goos: str, goarch: str) -> dict:
    return {ENV_GOOS: goos, ENV_GOARCH: goarch}


class GoToolchain:
    """Runs ``go`` subcommands for a module.

    Attributes:
        go_binary: Name or path of the go executable
    """

    def __init__(self, go_binary: str = "go") -> None:
        self.go_binary = go_binary

    def mod_tidy(self, ctx: CancellationToken, path: Union[str, pathlib.Path]) -> None:
        """Run ``go mod tidy`` in ``path``."""
        process.run_command(ctx, [self.go_binary, "mod", "tidy"], cwd=path)

    def mod_verify(self, ctx: CancellationToken, path: Union[str, pathlib.Path]) -> None:
        """Run ``go mod verify`` in ``path``."""
        process.run_command(ctx, [self.go_binary, "mod", "verify"], cwd=path)

    def build_path(
            self,
            ctx: CancellationToken,
            output_dir: Union[str, pathlib.Path],
            binary: str,
            entry_point: Union[str, pathlib.Path],
            flags: Sequence[str],
            env: Optional[Mapping[str, str]] = None,
            cwd: Optional[Union[str, pathlib.Path]] = None,
    ) -> pathlib.Path:
        """Compile the package at ``entry_point`` into ``output_dir/binary``.

        Args:
            ctx: Cancellation token for the invocation.
            output_dir: Directory receiving the binary.
            binary: File name of the binary.
            entry_point: Path of the main package.
            flags: Build flags placed before the output and package arguments.
            env: Environment overrides, e.g. GOOS/GOARCH for cross-compilation.
            cwd: Working directory, the module root.

        Returns:
            Path of the produced binary.

        Raises:
            CompileError: If the compiler cannot be started or exits non-zero.
            CancellationError: If ``ctx`` fires while compiling.
        """
        out = pathlib.Path(output_dir) / binary
        command: List[str] = [self.go_binary, "build", *flags, FLAG_OUT, str(out), str(entry_point)]
        logger.debug("compiling", binary=binary, entry_point=str(entry_point), env=dict(env or {}))
        process.run_command(ctx, command, cwd=cwd, env=env, error_class=CompileError)
        return out
