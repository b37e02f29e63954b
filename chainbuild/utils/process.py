"""Blocking subprocess execution governed by a cancellation token."""

from __future__ import annotations

import os
import pathlib
import subprocess
import tempfile
from typing import Dict, List, Mapping, Optional, Sequence, Type, Union

import structlog

from chainbuild.utils.cancellation import CancellationToken
from chainbuild.utils.exceptions import CancellationError, CommandError

logger = structlog.get_logger(__name__)

# Interval between cancellation checks while a child process runs
POLL_INTERVAL = 0.1

# Time given to a terminated child before it is killed
TERMINATE_GRACE = 5.0


def merge_env(overrides: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
    """Return a copy of the current environment with ``overrides`` applied."""
    env = dict(os.environ)
    if overrides:
        env.update(overrides)
    return env


def run_command(
        ctx: CancellationToken,
        command: Sequence[str],
        cwd: Optional[Union[str, pathlib.Path]] = None,
        env: Optional[Mapping[str, str]] = None,
        error_class: Type[CommandError] = CommandError,
) -> str:
    """Run ``command`` to completion and return its combined output.

    The call blocks until the process exits. While waiting, ``ctx`` is polled;
    when it fires the child is terminated, then killed if it does not exit
    within :data:`TERMINATE_GRACE` seconds.

    Args:
        ctx: Cancellation token for the invocation.
        command: Argument vector; the first item is the executable.
        cwd: Working directory of the child.
        env: Environment overrides layered on top of the current environment.
        error_class: CommandError subclass raised on a non-zero exit.

    Returns:
        The decoded stdout and stderr of the process.

    Raises:
        CancellationError: If ``ctx`` fires before or while the command runs.
        CommandError: If the process cannot be started or exits non-zero.
    """
    argv: List[str] = [str(part) for part in command]
    ctx.raise_if_cancelled(operation=argv[0] if argv else None)

    logger.debug("running command", command=argv, cwd=str(cwd) if cwd else None,
                 env_overrides=dict(env or {}))

    # Output goes to a file so a chatty child never blocks on a full pipe
    with tempfile.TemporaryFile() as output:
        try:
            process = subprocess.Popen(
                argv,
                cwd=str(cwd) if cwd else None,
                env=merge_env(env),
                stdout=output,
                stderr=subprocess.STDOUT,
                stdin=subprocess.DEVNULL,
            )
        except OSError as e:
            raise error_class(
                f"failed to start {argv[0]}: {e}", command=argv, returncode=None
            ) from e

        try:
            while True:
                try:
                    process.wait(timeout=POLL_INTERVAL)
                    break
                except subprocess.TimeoutExpired:
                    if ctx.cancelled:
                        _stop(process)
                        raise CancellationError(
                            ctx.reason or "operation cancelled", operation=argv[0]
                        )
        finally:
            if process.poll() is None:
                _stop(process)

        # A child sharing our process group may exit on the same interrupt
        ctx.raise_if_cancelled(operation=argv[0])

        output.seek(0)
        text = output.read().decode("utf-8", errors="replace")

    if process.returncode < 0:
        raise error_class(
            f"{' '.join(argv)} terminated by signal {-process.returncode}",
            command=argv,
            returncode=process.returncode,
            output=text,
        )
    if process.returncode != 0:
        raise error_class(
            f"{' '.join(argv)} exited with status {process.returncode}",
            command=argv,
            returncode=process.returncode,
            output=text,
        )
    return text


def _stop(process: subprocess.Popen) -> None:
    """Terminate ``process`` and kill it if it ignores the request."""
    process.terminate()
    try:
        process.wait(timeout=TERMINATE_GRACE)
    except subprocess.TimeoutExpired:
        process.kill()
        process.wait()
