"""
Archive strategy used when no tar binary is available.

The directory is archived and compressed with ``tarfile`` into a uniquely
named temporary file, which is then streamed and removed once the stream
is closed or exhausted.
"""

import asyncio
import logging
import os
import tarfile
import tempfile
from pathlib import Path, PurePosixPath
from typing import BinaryIO, Optional

from ..config import EXCLUDED_DIRECTORIES, TEMPFILE_PREFIX
from ..exceptions import ArchiveError
from .base import ArchiveStrategy, ArchiveStream

log = logging.getLogger(__name__)


def _exclude_metadata(tarinfo: tarfile.TarInfo) -> Optional[tarfile.TarInfo]:
    if any(part in EXCLUDED_DIRECTORIES for part in PurePosixPath(tarinfo.name).parts):
        return None
    return tarinfo


def write_archive(source_dir: Path, archive_path: Path) -> None:
    """Write a gzip tar of ``source_dir`` rooted at ``.`` to ``archive_path``."""
    with tarfile.open(archive_path, mode="w:gz") as tf:
        tf.add(str(source_dir), arcname=".", filter=_exclude_metadata)


class TempFileStream(ArchiveStream):
    """Stream over a temporary archive file that is unlinked on close."""

    def __init__(self, path: Path, handle: BinaryIO):
        self.path = path
        self._handle = handle
        self._closed = False

    async def read(self, size: int = -1) -> bytes:
        if self._closed:
            return b""

        chunk = await asyncio.to_thread(self._handle.read, size)
        if not chunk:
            await self.aclose()
        return chunk

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True

        try:
            self._handle.close()
        finally:
            try:
                os.unlink(self.path)
            except FileNotFoundError:
                pass


class BuiltinTarStrategy(ArchiveStrategy):
    def __init__(self, tmp_dir: Optional[str] = None):
        self.tmp_dir = tmp_dir

    def _create_archive(self, path: Path) -> Path:
        try:
            fd, name = tempfile.mkstemp(prefix=TEMPFILE_PREFIX, dir=self.tmp_dir)
        except OSError as e:
            raise ArchiveError(f"creating tempfile failed: {e}") from e
        os.close(fd)

        archive_path = Path(name)
        try:
            write_archive(path, archive_path)
        except (OSError, tarfile.TarError) as e:
            archive_path.unlink(missing_ok=True)
            raise ArchiveError(f"creating archive failed: {e}") from e

        return archive_path

    async def open(self, path: Path) -> ArchiveStream:
        log.debug(f"Archiving {path} with tarfile")
        archive_path = await asyncio.to_thread(self._create_archive, path)

        try:
            handle = open(archive_path, "rb")
        except OSError as e:
            archive_path.unlink(missing_ok=True)
            raise ArchiveError(f"could not open archive: {e}") from e

        return TempFileStream(archive_path, handle)
