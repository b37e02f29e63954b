"""Unit tests for build flag assembly."""

from __future__ import annotations

import pytest

from chainbuild.build.flags import (
    VERSION_PACKAGE,
    BuildFlags,
    assemble_build_flags,
    build_flags,
    injected_ldflags,
    title,
)
from chainbuild.core.project import Project
from chainbuild.utils.exceptions import ConfigurationError, DependencyError


@pytest.mark.parametrize("value,expected", [
    ("mars", "Mars"),
    ("myChain", "MyChain"),
    ("my-chain", "My-Chain"),
    ("hello world", "Hello World"),
    ("a1b", "A1b"),
    ("mars\u00b7chain", "Mars\u00b7chain"),
    ("mars\u3000chain", "Mars\u3000Chain"),
    ("\u00e9lan vital", "\u00c9lan Vital"),
    ("", ""),
])
def test_title(value: str, expected: str) -> None:
    """Test title casing that keeps the rest of each word untouched."""
    assert title(value) == expected


def test_injected_ldflags_order(project: Project) -> None:
    """Test the five injected flags and their fixed order."""
    assert injected_ldflags(project, "mars-1") == [
        f"-X {VERSION_PACKAGE}.Name=Mars",
        f"-X {VERSION_PACKAGE}.AppName=marsd",
        f"-X {VERSION_PACKAGE}.Version=v1.2.0",
        f"-X {VERSION_PACKAGE}.Commit=abc123",
        "-X github.com/example/mars/cmd/marsd/cmd.ChainID=mars-1",
    ]


def test_build_flags_tokens(project: Project) -> None:
    """Test the dependency mode flag followed by one aggregated ldflags token."""
    flags = build_flags(project, "mars")

    assert isinstance(flags, BuildFlags)
    assert len(flags) == 4
    assert list(flags)[:3] == ["-mod", "readonly", "-ldflags"]
    assert flags.ldflags == " ".join(injected_ldflags(project, "mars"))


def test_quoted_config_ldflags_keep_their_quoting(source_root, make_project) -> None:
    """Test that a quoted value from a string config reaches the linker unchanged."""
    project = make_project(source_root, ldflags="-s -X 'main.Greeting=hello world'")
    flags = build_flags(project, "mars")

    assert flags.ldflags.startswith("-s -X 'main.Greeting=hello world' -X ")


def test_config_ldflags_come_first(source_root, make_project) -> None:
    """Test that config-supplied flags precede the injected ones."""
    project = make_project(source_root, ldflags=["-s", "-w", f"-X {VERSION_PACKAGE}.Name=Other"])
    flags = build_flags(project, "mars")

    assert flags.ldflags.startswith(f"-s -w -X {VERSION_PACKAGE}.Name=Other -X {VERSION_PACKAGE}.Name=Mars")
    assert flags.ldflags.endswith("cmd.ChainID=mars")


def test_build_flags_are_deterministic(project: Project) -> None:
    assert build_flags(project, "mars") == build_flags(project, "mars")


def test_assemble_runs_tidy_then_verify(ctx, project, toolchain) -> None:
    """Test that dependencies are tidied and verified in the source root."""
    flags = assemble_build_flags(ctx, project, toolchain)

    assert toolchain.calls == [("tidy", str(project.path)), ("verify", str(project.path))]
    assert "cmd.ChainID=mars" in flags.ldflags


def test_assemble_uses_configured_chain_id(ctx, source_root, make_project, toolchain) -> None:
    project = make_project(source_root, chain_id="mars-testnet-1")
    flags = assemble_build_flags(ctx, project, toolchain)
    assert flags.ldflags.endswith("cmd.ChainID=mars-testnet-1")


def test_assemble_tidy_failure(ctx, project, toolchain) -> None:
    """Test that a tidy failure aborts before verify with DependencyError."""
    toolchain.fail_tidy = True

    with pytest.raises(DependencyError) as exc_info:
        assemble_build_flags(ctx, project, toolchain)

    assert exc_info.value.step == "tidy"
    assert toolchain.calls == [("tidy", str(project.path))]


def test_assemble_verify_failure(ctx, project, toolchain) -> None:
    toolchain.fail_verify = True

    with pytest.raises(DependencyError) as exc_info:
        assemble_build_flags(ctx, project, toolchain)
    assert exc_info.value.step == "verify"


def test_assemble_chain_id_failure(ctx, source_root, toolchain) -> None:
    """Test that a failing chain id resolver raises ConfigurationError before any command."""

    def broken(project):
        raise KeyError("genesis")

    project = Project("mars", "github.com/example/mars", source_root, chain_id_resolver=broken)

    with pytest.raises(ConfigurationError):
        assemble_build_flags(ctx, project, toolchain)
    assert toolchain.calls == []
