"""Gzip-compressed tar archives of build output directories."""

from __future__ import annotations

import os
import pathlib
import tarfile
import tempfile
from typing import BinaryIO, Union

from chainbuild.utils.cancellation import CancellationToken
from chainbuild.utils.exceptions import ArchiveError

COPY_CHUNK_SIZE = 64 * 1024

# Archives larger than this are spooled to disk instead of memory
SPOOL_MAX_SIZE = 8 * 1024 * 1024


def tar_directory(directory: Union[str, pathlib.Path]) -> BinaryIO:
    """Archive the contents of ``directory`` into a gzip-compressed tar stream.

    Entries are stored relative to ``directory`` so the archive unpacks the
    binary at its top level. The returned stream is positioned at the start
    and spills to a temporary file once it grows past :data:`SPOOL_MAX_SIZE`;
    the caller closes it.

    Raises:
        ArchiveError: If the directory cannot be read or archived.
    """
    directory = pathlib.Path(directory)
    if not directory.is_dir():
        raise ArchiveError(f"Cannot archive {directory}: not a directory", path=str(directory))
    stream = tempfile.SpooledTemporaryFile(max_size=SPOOL_MAX_SIZE)
    try:
        with tarfile.open(fileobj=stream, mode="w:gz") as tar:
            for root, dirs, files in os.walk(directory):
                dirs.sort()
                root_path = pathlib.Path(root)
                for name in sorted(dirs) + sorted(files):
                    path = root_path / name
                    tar.add(path, arcname=str(path.relative_to(directory)), recursive=False)
    except (OSError, tarfile.TarError) as e:
        stream.close()
        raise ArchiveError(f"Failed to archive {directory}: {e}", path=str(directory)) from e
    stream.seek(0)
    return stream


def copy_stream(ctx: CancellationToken, source: BinaryIO, destination: BinaryIO) -> int:
    """Copy ``source`` into ``destination`` chunk by chunk, honouring cancellation.

    Returns:
        Number of bytes copied.
    """
    copied = 0
    for chunk in iter(lambda: source.read(COPY_CHUNK_SIZE), b""):
        ctx.raise_if_cancelled(operation="copy")
        destination.write(chunk)
        copied += len(chunk)
    return copied


def write_archive(
        ctx: CancellationToken, directory: Union[str, pathlib.Path], archive_path: Union[str, pathlib.Path]
) -> pathlib.Path:
    """Archive ``directory`` and write the result to ``archive_path``.

    The destination is flushed and closed before returning.

    Raises:
        ArchiveError: If archiving or writing fails.
        CancellationError: If ``ctx`` fires during the copy.
    """
    archive_path = pathlib.Path(archive_path)
    stream = tar_directory(directory)
    try:
        with open(archive_path, "wb") as f:
            copy_stream(ctx, stream, f)
    except OSError as e:
        raise ArchiveError(f"Failed to write archive {archive_path}: {e}", path=str(archive_path)) from e
    finally:
        stream.close()
    return archive_path
