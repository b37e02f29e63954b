"""Resolution of the tag and commit a build is made from."""

from __future__ import annotations

import pathlib
from dataclasses import dataclass
from typing import Union

import structlog

from chainbuild.utils import process
from chainbuild.utils.cancellation import CancellationToken
from chainbuild.utils.exceptions import CommandError

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class SourceVersion:
    """Version-control tag and commit hash of the source tree."""

    tag: str = ""
    hash: str = ""


def resolve_source_version(
        ctx: CancellationToken, source_root: Union[str, pathlib.Path], git_binary: str = "git"
) -> SourceVersion:
    """Read the latest tag and HEAD commit of the repository at ``source_root``.

    A tree that is not a git checkout, or has no tags, yields empty fields
    rather than an error; the build still proceeds with blank version values.
    """
    commit = _git(ctx, git_binary, source_root, "rev-parse", "HEAD")
    tag = _git(ctx, git_binary, source_root, "describe", "--tags", "--abbrev=0") if commit else ""
    version = SourceVersion(tag=tag, hash=commit)
    logger.debug("source version resolved", tag=version.tag, hash=version.hash)
    return version


def _git(ctx: CancellationToken, git_binary: str, cwd: Union[str, pathlib.Path], *args: str) -> str:
    try:
        return process.run_command(ctx, [git_binary, *args], cwd=cwd).strip()
    except CommandError as e:
        logger.debug("git query failed", args=list(args), returncode=e.returncode)
        return ""
