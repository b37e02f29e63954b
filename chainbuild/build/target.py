"""Cross-compilation targets in ``os:arch`` form."""

from __future__ import annotations

import platform
import sys
from dataclasses import dataclass

from chainbuild.utils.exceptions import TargetParseError

TARGET_SEPARATOR = ":"

# Python platform names mapped to Go's GOOS values
_GOOS = {
    "linux": "linux",
    "darwin": "darwin",
    "win32": "windows",
    "cygwin": "windows",
    "freebsd": "freebsd",
    "openbsd": "openbsd",
    "netbsd": "netbsd",
}

# platform.machine() values mapped to Go's GOARCH values
_GOARCH = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "i386": "386",
    "i686": "386",
    "x86": "386",
    "armv6l": "arm",
    "armv7l": "arm",
    "ppc64le": "ppc64le",
    "s390x": "s390x",
    "riscv64": "riscv64",
}


@dataclass(frozen=True)
class TargetSpec:
    """A validated operating-system/architecture pair."""

    os: str
    arch: str

    def __str__(self) -> str:
        return format_target(self.os, self.arch)


def parse_target(token: str) -> TargetSpec:
    """Parse an ``os:arch`` token.

    Raises:
        TargetParseError: If the token does not have exactly two non-empty parts.
    """
    parts = token.split(TARGET_SEPARATOR)
    if len(parts) != 2 or not all(part.strip() for part in parts):
        raise TargetParseError(
            f"invalid target {token!r}: expected format is os{TARGET_SEPARATOR}arch, e.g. linux:amd64",
            target=token,
        )
    return TargetSpec(os=parts[0].strip(), arch=parts[1].strip())


def format_target(goos: str, goarch: str) -> str:
    return f"{goos}{TARGET_SEPARATOR}{goarch}"


def host_target() -> str:
    """Return the host's own target token, named the way the Go toolchain names it."""
    plat = sys.platform
    goos = _GOOS.get(plat)
    if goos is None:
        goos = next((v for k, v in _GOOS.items() if plat.startswith(k)), plat)
    machine = platform.machine().lower()
    goarch = _GOARCH.get(machine, machine)
    return format_target(goos, goarch)
