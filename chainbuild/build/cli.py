"""Command-line interface for the chainbuild build system.

This module provides commands to build the application binary, package a
cross-compiled release and verify a release's checksum manifest.
"""

from __future__ import annotations

import argparse
import pathlib
import signal
import sys
from typing import Any, Callable, Dict, List, Optional

import structlog

from chainbuild.build.builder import Builder
from chainbuild.build.checksum import CHECKSUM_TXT, verify_checksum
from chainbuild.core.logging_manager import LOG_FORMATS, LOG_LEVELS, configure_logging, shutdown_logging
from chainbuild.core.project import Project
from chainbuild.utils.cancellation import CancellationToken
from chainbuild.utils.exceptions import (
    CancellationError,
    ChainBuildError,
)

logger = structlog.get_logger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CANCELLED = 130


def build_command(args: argparse.Namespace, ctx: CancellationToken) -> int:
    """Handle the build command.

    Args:
        args: Command-line arguments
        ctx: Cancellation token for the invocation

    Returns:
        Exit code (0 for success, non-zero for failure)
    """
    project = Project.load(ctx, args.path, config_path=args.config)
    output = args.output or str(pathlib.Path(project.path) / "build")
    binary = Builder(project).build(ctx, output)
    print(f"🗃  Built binary: {binary}")
    return EXIT_OK


def release_command(args: argparse.Namespace, ctx: CancellationToken) -> int:
    """Handle the release command.

    Args:
        args: Command-line arguments
        ctx: Cancellation token for the invocation

    Returns:
        Exit code (0 for success, non-zero for failure)
    """
    project = Project.load(ctx, args.path, config_path=args.config)
    release = Builder(project).build_release(ctx, args.output, args.prefix, *args.target)
    print(f"🗃  Prepared release: {release}")
    return EXIT_OK


def verify_command(args: argparse.Namespace, ctx: CancellationToken) -> int:
    """Handle the verify command.

    Args:
        args: Command-line arguments
        ctx: Cancellation token for the invocation

    Returns:
        Exit code (0 when every archive matches the manifest)
    """
    release = pathlib.Path(args.release)
    if verify_checksum(release, release / CHECKSUM_TXT):
        print(f"Checksums OK: {release}")
        return EXIT_OK
    print(f"Checksum mismatch in {release}", file=sys.stderr)
    return EXIT_FAILURE


def create_parser() -> argparse.ArgumentParser:
    """Create the command-line argument parser.

    Returns:
        Argument parser
    """
    parser = argparse.ArgumentParser(
        prog="chainbuild",
        description="Build and release a chain application",
    )
    parser.add_argument("--log-level", choices=sorted(LOG_LEVELS), default="info",
                        help="Logging level")
    parser.add_argument("--log-format", choices=LOG_FORMATS, default="text",
                        help="Logging output format")

    subparsers = parser.add_subparsers(dest="command", help="Command to run")
    subparsers.required = True

    def add_project_args(sub: argparse.ArgumentParser) -> None:
        sub.add_argument("--path", default=".", help="Path of the application source")
        sub.add_argument("--config", default=None, help="Config file, config.yml in --path by default")
        sub.add_argument("-o", "--output", default=None, help="Output directory")

    build_parser = subparsers.add_parser("build", help="Build the application binary")
    add_project_args(build_parser)
    build_parser.set_defaults(func=build_command)

    release_parser = subparsers.add_parser("release", help="Build release archives for one or more targets")
    add_project_args(release_parser)
    release_parser.add_argument("--prefix", default="", help="Prefix of the archive names")
    release_parser.add_argument(
        "-t", "--target", action="append", default=[],
        help="Target as os:arch, e.g. linux:amd64; repeatable, defaults to the host",
    )
    release_parser.set_defaults(func=release_command)

    verify_parser = subparsers.add_parser("verify", help="Verify a release against its checksum.txt")
    verify_parser.add_argument("release", help="Release directory")
    verify_parser.set_defaults(func=verify_command)

    return parser


def _install_signal_handlers(ctx: CancellationToken) -> Dict[int, Any]:
    previous = {}

    def handler(signum: int, frame: Any) -> None:
        ctx.cancel(f"interrupted by signal {signum}")

    for signum in (signal.SIGINT, signal.SIGTERM):
        previous[signum] = signal.signal(signum, handler)
    return previous


def main(argv: Optional[List[str]] = None) -> int:
    """Run the command-line interface.

    Args:
        argv: Command-line arguments, ``sys.argv[1:]`` when omitted

    Returns:
        Exit code
    """
    parser = create_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level, args.log_format)

    ctx = CancellationToken()
    previous = _install_signal_handlers(ctx)
    command: Callable[[argparse.Namespace, CancellationToken], int] = args.func
    try:
        return command(args, ctx)
    except CancellationError as e:
        print(f"Cancelled: {e}", file=sys.stderr)
        return EXIT_CANCELLED
    except ChainBuildError as e:
        logger.debug("command failed", command=args.command, error_type=type(e).__name__, details=e.details)
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FAILURE
    finally:
        for signum, handler in previous.items():
            signal.signal(signum, handler)
        shutdown_logging()


if __name__ == "__main__":
    sys.exit(main())
