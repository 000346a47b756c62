"""
Archive strategy interface.

An archive strategy turns a local directory into a gzip-compressed tar byte
stream whose entries are relative to the directory, leaving out version
control metadata.

Strategy Pattern:
- TarCommandStrategy: streams the output of the host's ``tar`` binary
- BuiltinTarStrategy: writes a temporary archive with ``tarfile``, then streams it
"""

import shutil
from abc import ABC, abstractmethod
from pathlib import Path
from typing import AsyncIterator, Callable, Optional

from ..config import ARCHIVE_CHUNK_SIZE, TAR_EXECUTABLE


class ArchiveStream(ABC):
    """Readable, closable byte stream of one archive.

    Iterating yields chunks until the archive is exhausted; the stream
    releases its resources by itself once fully consumed, and ``aclose``
    releases them early.
    """

    chunk_size: int = ARCHIVE_CHUNK_SIZE

    @abstractmethod
    async def read(self, size: int = -1) -> bytes:
        """Read up to ``size`` bytes; an empty result means end of archive."""
        pass

    @abstractmethod
    async def aclose(self) -> None:
        """Release the stream's resources. Safe to call more than once."""
        pass

    async def __aiter__(self) -> AsyncIterator[bytes]:
        try:
            while True:
                chunk = await self.read(self.chunk_size)
                if not chunk:
                    break
                yield chunk
        finally:
            await self.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()


class ArchiveStrategy(ABC):
    """Abstract base class for archive strategies."""

    @abstractmethod
    async def open(self, path: Path) -> ArchiveStream:
        """
        Start archiving ``path``.

        Args:
            path: Directory to archive

        Returns:
            Stream of the gzip-compressed tar archive

        Raises:
            ArchiveError: If the archive cannot be produced
        """
        pass

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


def select_strategy(
    which: Callable[[str], Optional[str]] = shutil.which,
) -> ArchiveStrategy:
    """Pick the tar binary when it is on PATH, else the built-in archiver."""
    # Imported here to avoid an import cycle with the strategy modules
    from .builtin import BuiltinTarStrategy
    from .command import TarCommandStrategy

    tar_path = which(TAR_EXECUTABLE)
    if tar_path:
        return TarCommandStrategy(tar_path)
    return BuiltinTarStrategy()


async def produce_archive(
    path: Path, strategy: Optional[ArchiveStrategy] = None
) -> ArchiveStream:
    """Open an archive stream of ``path`` with the given or selected strategy."""
    if strategy is None:
        strategy = select_strategy()
    return await strategy.open(Path(path))
