"""Streaming of input archives into their pipes."""

import asyncio
import logging
from typing import List, Optional, Sequence

from ..api.client import BuildServerClient
from ..archive import ArchiveStrategy, produce_archive
from ..models import Input

log = logging.getLogger(__name__)


async def upload(
    client: BuildServerClient,
    build_input: Input,
    strategy: Optional[ArchiveStrategy] = None,
) -> None:
    """Archive one input and stream it into its pipe's write endpoint.

    Raises:
        ArchiveError: If the input cannot be archived.
        UploadError: If the server does not accept the upload.
    """
    archive = await produce_archive(build_input.path, strategy)
    try:
        log.debug(f"Uploading input {build_input.name} into pipe {build_input.pipe.id}")
        await client.write_pipe(build_input.pipe, archive)
    finally:
        await archive.aclose()

    log.debug(f"Uploaded input {build_input.name}")


def start_uploads(
    client: BuildServerClient,
    inputs: Sequence[Input],
    strategy: Optional[ArchiveStrategy] = None,
) -> List[asyncio.Task]:
    """Start one upload task per input. Must run after the build exists."""
    return [
        asyncio.create_task(upload(client, i, strategy), name=f"upload-{i.name}")
        for i in inputs
    ]
