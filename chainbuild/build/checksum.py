"""SHA-256 checksum manifest of a release directory."""

from __future__ import annotations

import hashlib
import pathlib
from typing import Dict, Union

from chainbuild.utils.exceptions import ChecksumError

CHECKSUM_TXT = "checksum.txt"


def file_sha256(path: Union[str, pathlib.Path]) -> str:
    """Calculate a SHA-256 hash of a file.

    Args:
        path: Path to the file

    Returns:
        Hex digest of the file hash
    """
    hasher = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(4096), b""):
            hasher.update(chunk)
    return hasher.hexdigest()


def sum_directory(directory: Union[str, pathlib.Path], exclude: Union[str, None] = None) -> Dict[str, str]:
    """Hash every regular file directly under ``directory``.

    Args:
        directory: Directory to scan, not recursed into.
        exclude: File name to leave out, typically the manifest itself.

    Returns:
        Mapping of file name to hex digest, ordered by file name.
    """
    directory = pathlib.Path(directory)
    sums = {}
    for path in sorted(directory.iterdir(), key=lambda p: p.name):
        if not path.is_file() or path.name == exclude:
            continue
        sums[path.name] = file_sha256(path)
    return sums


def write_checksum(directory: Union[str, pathlib.Path], manifest_path: Union[str, pathlib.Path]) -> pathlib.Path:
    """Write a ``<sha256> <name>`` line for each file in ``directory`` to ``manifest_path``.

    Raises:
        ChecksumError: If a file cannot be hashed or the manifest cannot be written.
    """
    manifest_path = pathlib.Path(manifest_path)
    try:
        sums = sum_directory(directory, exclude=manifest_path.name)
        content = "".join(f"{digest} {name}\n" for name, digest in sums.items())
        manifest_path.write_text(content, encoding="utf-8")
    except OSError as e:
        raise ChecksumError(f"Failed to write checksum manifest {manifest_path}: {e}",
                            path=str(manifest_path)) from e
    return manifest_path


def read_checksum(manifest_path: Union[str, pathlib.Path]) -> Dict[str, str]:
    """Parse a manifest written by :func:`write_checksum` into ``{name: digest}``.

    Raises:
        ChecksumError: If the file cannot be read or a line is malformed.
    """
    manifest_path = pathlib.Path(manifest_path)
    try:
        lines = manifest_path.read_text(encoding="utf-8").splitlines()
    except OSError as e:
        raise ChecksumError(f"Failed to read checksum manifest {manifest_path}: {e}",
                            path=str(manifest_path)) from e
    sums = {}
    for number, line in enumerate(lines, start=1):
        if not line.strip():
            continue
        digest, sep, name = line.partition(" ")
        if not sep or not name:
            raise ChecksumError(f"Malformed line {number} in {manifest_path}", path=str(manifest_path))
        sums[name] = digest
    return sums


def verify_checksum(directory: Union[str, pathlib.Path], manifest_path: Union[str, pathlib.Path]) -> bool:
    """Return True if every file listed in the manifest matches its recorded digest."""
    directory = pathlib.Path(directory)
    for name, digest in read_checksum(manifest_path).items():
        path = directory / name
        if not path.is_file() or file_sha256(path) != digest:
            return False
    return True
