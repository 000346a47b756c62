"""Archive strategy that streams the output of the host's tar binary."""

import asyncio
import logging
from pathlib import Path

from ..config import EXCLUDED_DIRECTORIES
from ..exceptions import ArchiveError
from .base import ArchiveStrategy, ArchiveStream

log = logging.getLogger(__name__)


class TarProcessStream(ArchiveStream):
    """Stdout of a running ``tar -czf -`` process.

    The archive is produced incrementally and never held in memory or on
    disk. tar's stderr goes straight to ours.
    """

    def __init__(self, process: asyncio.subprocess.Process):
        self._process = process
        self._closed = False

    async def read(self, size: int = -1) -> bytes:
        if self._closed:
            return b""

        chunk = await self._process.stdout.read(size)
        if chunk:
            return chunk

        returncode = await self._process.wait()
        self._closed = True
        if returncode != 0:
            raise ArchiveError(f"tar exited with status {returncode}")
        return b""

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True

        if self._process.returncode is None:
            try:
                self._process.kill()
            except ProcessLookupError:
                pass
        await self._process.wait()


class TarCommandStrategy(ArchiveStrategy):
    def __init__(self, tar_path: str):
        self.tar_path = tar_path

    def command(self) -> list:
        cmd = [self.tar_path]
        for excluded in EXCLUDED_DIRECTORIES:
            cmd.extend(["--exclude", excluded])
        cmd.extend(["-czf", "-", "."])
        return cmd

    async def open(self, path: Path) -> ArchiveStream:
        cmd = self.command()
        log.debug(f"Archiving {path} with {' '.join(cmd)}")

        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                cwd=str(path),
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=None,
            )
        except OSError as e:
            raise ArchiveError(f"could not run tar: {e}") from e

        return TarProcessStream(process)

    def __repr__(self) -> str:
        return f"TarCommandStrategy(tar_path={self.tar_path!r})"
