"""Unit tests for target parsing."""

from __future__ import annotations

from unittest import mock

import pytest

from chainbuild.build.target import TargetSpec, format_target, host_target, parse_target
from chainbuild.utils.exceptions import TargetParseError


def test_parse_target() -> None:
    """Test parsing a well-formed token."""
    target = parse_target("linux:amd64")
    assert target == TargetSpec(os="linux", arch="amd64")
    assert str(target) == "linux:amd64"


@pytest.mark.parametrize("token", ["linux", "", ":", "linux:", ":amd64", "linux:amd64:v3", "linux/amd64"])
def test_parse_target_rejects_malformed(token: str) -> None:
    """Test that anything but exactly two non-empty parts is rejected."""
    with pytest.raises(TargetParseError) as exc_info:
        parse_target(token)
    assert exc_info.value.target == token
    assert exc_info.value.details["target"] == token


def test_target_spec_is_immutable() -> None:
    target = parse_target("darwin:arm64")
    with pytest.raises(AttributeError):
        target.os = "linux"  # type: ignore[misc]


def test_format_target() -> None:
    assert format_target("windows", "386") == "windows:386"


@pytest.mark.parametrize("plat,machine,expected", [
    ("linux", "x86_64", "linux:amd64"),
    ("darwin", "arm64", "darwin:arm64"),
    ("win32", "AMD64", "windows:amd64"),
    ("linux", "aarch64", "linux:arm64"),
    ("freebsd13", "i386", "freebsd:386"),
])
def test_host_target(plat: str, machine: str, expected: str) -> None:
    """Test mapping the interpreter's platform to Go target names."""
    with mock.patch("chainbuild.build.target.sys.platform", plat), \
            mock.patch("chainbuild.build.target.platform.machine", return_value=machine):
        assert host_target() == expected


def test_host_target_parses() -> None:
    """Test that the real host target is a valid token."""
    target = parse_target(host_target())
    assert target.os and target.arch
