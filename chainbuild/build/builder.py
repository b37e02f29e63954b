"""Builder for compiling a chain application and packaging releases.

This module contains the Builder class that drives the build: it assembles
linker flags, locates the main package, invokes the compiler and, for
releases, cross-compiles every target into its own archive before writing a
checksum manifest.
"""

from __future__ import annotations

import contextlib
import pathlib
import shutil
import tempfile
from typing import Iterator, List, Optional, Union

import structlog

from chainbuild.build import archive, checksum, gocmd
from chainbuild.build.entrypoint import Scanner, discover_one_main, resolve_entry_point
from chainbuild.build.flags import BuildFlags, assemble_build_flags
from chainbuild.build.target import TargetSpec, host_target, parse_target
from chainbuild.utils.cancellation import CancellationToken
from chainbuild.core.project import Project
from chainbuild.utils.exceptions import CannotBuildAppError, CompileError, MultipleEntryPointsFoundError

logger = structlog.get_logger(__name__)

RELEASE_DIR = "release"
ARCHIVE_EXT = "tar.gz"


@contextlib.contextmanager
def classify_build_errors() -> Iterator[None]:
    """Re-raise compile failures and ambiguous main packages as CannotBuildAppError.

    Any other exception passes through unchanged.
    """
    try:
        yield
    except (CompileError, MultipleEntryPointsFoundError) as e:
        raise CannotBuildAppError(e) from e


def archive_name(prefix: str, target: TargetSpec) -> str:
    """File name of the release archive for ``target``."""
    return f"{prefix}_{target.os}_{target.arch}.{ARCHIVE_EXT}"


class Builder:
    """Builder for a chain application.

    Attributes:
        project: The project being built
        toolchain: Go toolchain used for dependency checks and compilation
        scanner: Main package discovery used when ``build.main`` is unset
    """

    def __init__(
            self,
            project: Project,
            toolchain: Optional[gocmd.GoToolchain] = None,
            scanner: Scanner = discover_one_main,
    ) -> None:
        """Initialize the Builder for a project.

        Args:
            project: The project to build
            toolchain: Go toolchain, a default ``go`` when omitted
            scanner: Main package discovery function
        """
        self.project = project
        self.toolchain = toolchain or gocmd.GoToolchain()
        self.scanner = scanner

    def build(self, ctx: CancellationToken, output: Union[str, pathlib.Path]) -> pathlib.Path:
        """Generate code, compile the application and return the binary path.

        Args:
            ctx: Cancellation token for the invocation
            output: Directory receiving the binary

        Returns:
            Path to the built binary

        Raises:
            CannotBuildAppError: If compilation fails or the main package is ambiguous
        """
        output = pathlib.Path(output)
        with classify_build_errors():
            self.project.generate(ctx)
            flags = assemble_build_flags(ctx, self.project, self.toolchain)
            entry_point = resolve_entry_point(self.project, self.scanner)
            self._log_build_start(entry_point)
            output.mkdir(parents=True, exist_ok=True)
            binary = self._build_binary(ctx, output, entry_point, flags)

        logger.info("build completed", binary=str(binary))
        return binary

    def build_release(
            self,
            ctx: CancellationToken,
            output: Optional[Union[str, pathlib.Path]] = None,
            prefix: str = "",
            *targets: str,
    ) -> pathlib.Path:
        """Cross-compile the application and package one archive per target.

        Targets are ``os:arch`` tokens and default to the host. Each target is
        parsed right before it is built, so a bad token stops the release
        after the targets preceding it; their archives are left in place.

        Args:
            ctx: Cancellation token for the invocation
            output: Release directory; ``<source>/release`` (reset first) when omitted
            prefix: Archive name prefix, the project name when empty
            *targets: Targets to build

        Returns:
            Path to the release directory

        Raises:
            CannotBuildAppError: If compilation fails or the main package is ambiguous
        """
        prefix = prefix or self.project.name
        target_list: List[str] = list(targets) or [host_target()]

        with classify_build_errors():
            flags = assemble_build_flags(ctx, self.project, self.toolchain)
            entry_point = resolve_entry_point(self.project, self.scanner)
            release_path = self.prepare_release_dir(output)

            for token in target_list:
                ctx.raise_if_cancelled(operation="release")
                target = parse_target(token)
                self._release_target(ctx, release_path, prefix, target, entry_point, flags)

        ctx.raise_if_cancelled(operation="checksum")
        manifest = checksum.write_checksum(release_path, release_path / checksum.CHECKSUM_TXT)
        logger.info("release completed", release=str(release_path), manifest=str(manifest),
                    targets=target_list)
        return release_path

    def prepare_release_dir(self, output: Optional[Union[str, pathlib.Path]]) -> pathlib.Path:
        """Create the release directory.

        An explicit ``output`` is created if needed and kept as is; the default
        ``<source>/release`` is removed first.
        """
        if output:
            release_path = pathlib.Path(output)
        else:
            release_path = self.project.path / RELEASE_DIR
            if release_path.exists():
                logger.info("resetting release directory", path=str(release_path))
                shutil.rmtree(release_path)
        release_path.mkdir(parents=True, exist_ok=True)
        return release_path

    def _log_build_start(self, entry_point: pathlib.Path) -> None:
        source_version = self.project.source_version
        logger.info(
            "building",
            project=self.project.name,
            entry_point=str(entry_point),
            tag=source_version.tag,
            commit=source_version.hash,
        )

    def _release_target(
            self,
            ctx: CancellationToken,
            release_path: pathlib.Path,
            prefix: str,
            target: TargetSpec,
            entry_point: pathlib.Path,
            flags: BuildFlags,
    ) -> pathlib.Path:
        """Build one target in a temporary directory and archive it into the release."""
        with tempfile.TemporaryDirectory(prefix=f"{self.project.name}_{target.os}_{target.arch}_") as out:
            logger.info("building target", target=str(target), tmp=out)
            self._build_binary(ctx, pathlib.Path(out), entry_point, flags,
                               env=gocmd.target_env(target.os, target.arch))
            archive_path = archive.write_archive(ctx, out, release_path / archive_name(prefix, target))
        logger.info("archive written", target=str(target), archive=str(archive_path))
        return archive_path

    def _build_binary(
            self,
            ctx: CancellationToken,
            output: pathlib.Path,
            entry_point: pathlib.Path,
            flags: BuildFlags,
            env: Optional[dict] = None,
    ) -> pathlib.Path:
        return self.toolchain.build_path(
            ctx,
            output,
            self.project.binary(),
            entry_point,
            list(flags),
            env=env,
            cwd=self.project.path,
        )
