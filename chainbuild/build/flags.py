"""Assembly of compiler flags with version metadata injected at link time."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, List, Optional, Tuple

import structlog

from chainbuild.build import gocmd
from chainbuild.utils.cancellation import CancellationToken
from chainbuild.core.project import Project
from chainbuild.utils.exceptions import CommandError, DependencyError

logger = structlog.get_logger(__name__)

VERSION_PACKAGE = "github.com/cosmos/cosmos-sdk/version"


@dataclass(frozen=True)
class BuildFlags:
    """Ordered compiler arguments: dependency mode first, then linker flags."""

    tokens: Tuple[str, ...]

    @property
    def ldflags(self) -> str:
        """The aggregated value passed to ``-ldflags``."""
        index = self.tokens.index(gocmd.FLAG_LDFLAGS)
        return self.tokens[index + 1]

    def __iter__(self) -> Iterator[str]:
        return iter(self.tokens)

    def __len__(self) -> int:
        return len(self.tokens)


def _is_separator(ch: str) -> bool:
    """Whether ``ch`` ends a word for :func:`title`."""
    if ch < "\x80":
        return not (ch.isalnum() or ch == "_")
    if ch.isalpha() or ch.isdecimal():
        return False
    # Outside ASCII only white space separates words
    return ch.isspace()


def title(s: str) -> str:
    """Upper-case the first letter of every word, leaving the rest untouched.

    ASCII words are delimited by any character that is not a letter, digit or
    underscore, so ``my-chain`` becomes ``My-Chain`` and ``myChain`` becomes
    ``MyChain``. Other characters only split words when they are white space.
    """
    chars = []
    prev = " "
    for ch in s:
        chars.append(ch.upper() if _is_separator(prev) else ch)
        prev = ch
    return "".join(chars)


def injected_ldflags(project: Project, chain_id: str) -> List[str]:
    """Version metadata linker flags, in their fixed order."""
    return [
        f"-X {VERSION_PACKAGE}.Name={title(project.name)}",
        f"-X {VERSION_PACKAGE}.AppName={project.d()}",
        f"-X {VERSION_PACKAGE}.Version={project.source_version.tag}",
        f"-X {VERSION_PACKAGE}.Commit={project.source_version.hash}",
        f"-X {project.import_path}/cmd/{project.d()}/cmd.ChainID={chain_id}",
    ]


def build_flags(project: Project, chain_id: str) -> BuildFlags:
    """Combine config-supplied and injected linker flags into build arguments.

    Config flags come first; injected flags are appended so they take
    precedence on conflicting ``-X`` keys.
    """
    ld = list(project.config.build.ldflags) + injected_ldflags(project, chain_id)
    return BuildFlags(
        tokens=(
            gocmd.FLAG_MOD, gocmd.FLAG_MOD_VALUE_READ_ONLY,
            gocmd.FLAG_LDFLAGS, gocmd.ldflags(*ld),
        )
    )


def assemble_build_flags(
        ctx: CancellationToken, project: Project, toolchain: Optional[gocmd.GoToolchain] = None
) -> BuildFlags:
    """Build the flag set and make sure module dependencies are consistent.

    Args:
        ctx: Cancellation token for the invocation.
        project: Project being built.
        toolchain: Go toolchain, a default one when omitted.

    Returns:
        The complete flag set.

    Raises:
        ConfigurationError: If the chain identifier cannot be resolved.
        DependencyError: If ``go mod tidy`` or ``go mod verify`` fails.
    """
    toolchain = toolchain or gocmd.GoToolchain()

    flags = build_flags(project, project.chain_id())

    logger.info("📦 Installing dependencies...", project=project.name)
    for step, run in (("tidy", toolchain.mod_tidy), ("verify", toolchain.mod_verify)):
        try:
            run(ctx, project.path)
        except CommandError as e:
            raise DependencyError(f"go mod {step} failed: {e}", step=step) from e

    logger.info("🛠️  Building the blockchain...", project=project.name)
    return flags
