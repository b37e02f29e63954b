"""Pytest configuration and fixtures for chainbuild tests."""

from __future__ import annotations

import pathlib
from typing import Dict, List, Mapping, Optional, Sequence, Union

import pytest

from chainbuild.core.config_manager import BuildSection, ChainConfig, GenesisSection
from chainbuild.core.logging_manager import shutdown_logging
from chainbuild.core.project import Project
from chainbuild.core.source_version import SourceVersion
from chainbuild.utils.cancellation import CancellationToken
from chainbuild.utils.exceptions import CommandError, CompileError

MAIN_GO = """package main

import "fmt"

func main() {
\tfmt.Println("hello")
}
"""

LIB_GO = """package app

func Name() string { return "mars" }
"""


class FakeToolchain:
    """Stands in for the go command: records calls and writes a fake binary."""

    def __init__(self) -> None:
        self.calls: List[tuple] = []
        self.builds: List[Dict] = []
        self.fail_tidy = False
        self.fail_verify = False
        self.fail_build_for: Optional[str] = None

    def mod_tidy(self, ctx: CancellationToken, path: Union[str, pathlib.Path]) -> None:
        self.calls.append(("tidy", str(path)))
        if self.fail_tidy:
            raise CommandError("go mod tidy exited with status 1", command=["go", "mod", "tidy"], returncode=1)

    def mod_verify(self, ctx: CancellationToken, path: Union[str, pathlib.Path]) -> None:
        self.calls.append(("verify", str(path)))
        if self.fail_verify:
            raise CommandError("go mod verify exited with status 1", command=["go", "mod", "verify"], returncode=1)

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
        env = dict(env or {})
        self.calls.append(("build", str(output_dir)))
        self.builds.append({
            "output_dir": pathlib.Path(output_dir),
            "binary": binary,
            "entry_point": pathlib.Path(entry_point),
            "flags": list(flags),
            "env": env,
            "cwd": cwd,
        })
        target = f"{env.get('GOOS', '')}:{env.get('GOARCH', '')}"
        if self.fail_build_for is not None and target == self.fail_build_for:
            raise CompileError("go build exited with status 2", command=["go", "build"], returncode=2,
                               output="main.go:3: undefined: foo")
        out = pathlib.Path(output_dir) / binary
        out.write_bytes(f"binary for {target}".encode())
        return out


@pytest.fixture
def ctx() -> CancellationToken:
    return CancellationToken()


@pytest.fixture
def toolchain() -> FakeToolchain:
    return FakeToolchain()


@pytest.fixture
def source_root(tmp_path: pathlib.Path) -> pathlib.Path:
    """A minimal Go module with one main package under cmd/marsd."""
    root = tmp_path / "mars"
    (root / "cmd" / "marsd").mkdir(parents=True)
    (root / "x" / "app").mkdir(parents=True)
    (root / "go.mod").write_text("module github.com/example/mars\n\ngo 1.21\n")
    (root / "cmd" / "marsd" / "main.go").write_text(MAIN_GO)
    (root / "x" / "app" / "app.go").write_text(LIB_GO)
    return root


def _make_project(root: pathlib.Path, main: str = "", ldflags: Optional[Union[str, List[str]]] = None,
                  chain_id: str = "") -> Project:
    config = ChainConfig(
        build=BuildSection(main=main, ldflags=ldflags or []),
        genesis=GenesisSection(chain_id=chain_id),
    )
    return Project(
        name="mars",
        import_path="github.com/example/mars",
        path=root,
        config=config,
        source_version=SourceVersion(tag="v1.2.0", hash="abc123"),
    )


@pytest.fixture
def make_project():
    """Factory building a Project with explicit config values."""
    return _make_project


@pytest.fixture
def project(source_root: pathlib.Path) -> Project:
    return _make_project(source_root)


@pytest.fixture(autouse=True)
def detach_logging():
    """Drop handlers installed during a test so later tests never write to a closed stream."""
    yield
    shutdown_logging()
