"""Discovery of the main package to compile."""

from __future__ import annotations

import os
import pathlib
import re
from typing import Callable, List, Union

import structlog

from chainbuild.core.project import Project
from chainbuild.utils.exceptions import EntryPointNotFoundError, MultipleEntryPointsFoundError

logger = structlog.get_logger(__name__)

Scanner = Callable[[pathlib.Path], pathlib.Path]

SKIP_DIRS = {"vendor", "testdata", "node_modules"}

_PACKAGE_MAIN_RE = re.compile(r"^\s*package\s+main\s*(//.*)?$", re.MULTILINE)
_FUNC_MAIN_RE = re.compile(r"^\s*func\s+main\s*\(\s*\)", re.MULTILINE)
_BLOCK_COMMENT_RE = re.compile(r"/\*.*?\*/", re.DOTALL)

MAIN_HINT = "specify the path to your chain's main package in your config.yml>build.main"


def is_main_file(path: Union[str, pathlib.Path]) -> bool:
    """Return True if ``path`` is a non-test Go file of package main defining ``main()``."""
    path = pathlib.Path(path)
    if path.suffix != ".go" or path.name.endswith("_test.go"):
        return False
    try:
        source = path.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        logger.warning("cannot read source file", path=str(path), error=str(e))
        return False
    source = _BLOCK_COMMENT_RE.sub("", source)
    return bool(_PACKAGE_MAIN_RE.search(source) and _FUNC_MAIN_RE.search(source))


def find_main_packages(source_root: Union[str, pathlib.Path]) -> List[pathlib.Path]:
    """Return every directory under ``source_root`` holding a main package, sorted."""
    found = []
    for root, dirs, files in os.walk(source_root):
        dirs[:] = sorted(d for d in dirs if not d.startswith((".", "_")) and d not in SKIP_DIRS)
        if any(is_main_file(pathlib.Path(root) / name) for name in files):
            found.append(pathlib.Path(root))
    return sorted(found)


def discover_one_main(source_root: Union[str, pathlib.Path]) -> pathlib.Path:
    """Return the single main package directory under ``source_root``.

    Raises:
        EntryPointNotFoundError: If there is no main package.
        MultipleEntryPointsFoundError: If there is more than one.
    """
    found = find_main_packages(source_root)
    if not found:
        raise EntryPointNotFoundError(
            f"no main package found in {source_root}", source_root=str(source_root)
        )
    if len(found) > 1:
        raise MultipleEntryPointsFoundError(
            "multiple main packages found: " + ", ".join(str(p) for p in found),
            candidates=[str(p) for p in found],
        )
    return found[0]


def resolve_entry_point(project: Project, scanner: Scanner = discover_one_main) -> pathlib.Path:
    """Determine the path of the main package to compile.

    An explicit ``build.main`` wins without touching the filesystem, even if
    it does not exist; the compiler reports that later.

    Raises:
        EntryPointNotFoundError: If discovery finds nothing.
        MultipleEntryPointsFoundError: If discovery is ambiguous; the message
            tells the user to set ``build.main``.
    """
    main = project.config.build.main
    if main:
        return project.path / main

    try:
        path = scanner(project.path)
    except MultipleEntryPointsFoundError as e:
        raise MultipleEntryPointsFoundError(
            f"{MAIN_HINT}: {e.message}", candidates=e.candidates
        ) from e
    logger.debug("main package discovered", path=str(path))
    return path
