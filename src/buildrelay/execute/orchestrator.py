"""
Build execution orchestrator.

Sequence of one execution:
1. Allocate one pipe per input (sequential, before the build exists)
2. Create the build, whose inputs read from the pipes
3. Arm the abort-on-signal controller
4. Open the build's event stream with the session cookies
5. Upload every input concurrently while rendering events in the foreground
6. Return the exit code implied by the build's terminal status
"""

import asyncio
import contextlib
import logging
import os
from pathlib import Path
from typing import Awaitable, Callable, List, Mapping, Optional, Sequence

from ..api.client import BuildServerClient
from ..api.events import EventStream
from ..archive import ArchiveStrategy
from ..jobconfig import load_job_config
from ..models import Input, InputMapping, JobConfig, SessionTokens
from .cancellation import AbortOnSignal
from .inputs import parse_input_mappings
from .rendering import BuildLogRenderer, render
from .upload import start_uploads

log = logging.getLogger(__name__)

EventStreamConnector = Callable[[str, SessionTokens], Awaitable[EventStream]]


class BuildExecution:
    """Runs one build from input allocation to terminal status.

    The client, build and session tokens are handed explicitly to the
    collaborators that need them; nothing is kept in module state.
    """

    def __init__(
        self,
        client: BuildServerClient,
        connect_events: EventStreamConnector = EventStream.connect,
        renderer: Optional[BuildLogRenderer] = None,
        archive_strategy: Optional[ArchiveStrategy] = None,
        exit_func: Callable[[int], None] = os._exit,
        handle_signals: bool = True,
    ):
        """Initialize the execution.

        Args:
            client: Build server client used for every HTTP call.
            connect_events: Opens the event stream for a URL and tokens.
            renderer: Renderer for build events. Defaults to stdout/stderr.
            archive_strategy: Archive strategy for uploads. Defaults to
                tar when available, else the built-in archiver.
            exit_func: Called with the forced exit code on a second signal.
            handle_signals: Whether to install SIGINT/SIGTERM handlers.
        """
        self.client = client
        self.connect_events = connect_events
        self.renderer = renderer
        self.archive_strategy = archive_strategy
        self.exit_func = exit_func
        self.handle_signals = handle_signals

    async def allocate_inputs(self, mappings: Sequence[InputMapping]) -> List[Input]:
        """Allocate a pipe for every input mapping, in order."""
        inputs = []
        for mapping in mappings:
            pipe = await self.client.create_pipe()
            inputs.append(Input(name=mapping.name, path=mapping.path, pipe=pipe))
        return inputs

    async def run(self, mappings: Sequence[InputMapping], config: JobConfig) -> int:
        """Execute the build and return the process exit code."""
        inputs = await self.allocate_inputs(mappings)
        build, tokens = await self.client.create_build(inputs, config)

        loop = asyncio.get_running_loop()
        controller = AbortOnSignal(self.client, build, exit_func=self.exit_func)
        if self.handle_signals:
            controller.install(loop)
        controller_task = asyncio.create_task(controller.run(), name="abort-on-signal")

        try:
            stream = await self.connect_events(self.client.events_url(build), tokens)
            try:
                uploads = start_uploads(self.client, inputs, self.archive_strategy)
                return await self._render_while_uploading(stream, uploads)
            finally:
                await stream.close()
        finally:
            controller_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await controller_task
            await controller.close()
            if self.handle_signals:
                controller.uninstall(loop)

    async def _render_while_uploading(
        self, stream: EventStream, uploads: List[asyncio.Task]
    ) -> int:
        """Render events until the build concludes, failing fast on uploads.

        A failed upload invalidates the build, so its error is raised as
        soon as it happens. Uploads still running when the build concludes
        are cancelled.
        """
        render_task = asyncio.create_task(render(stream, self.renderer), name="render")
        tasks = [render_task, *uploads]
        pending = set(tasks)

        try:
            while True:
                done, pending = await asyncio.wait(
                    pending, return_when=asyncio.FIRST_COMPLETED
                )
                if render_task in done:
                    return render_task.result()
                for task in done:
                    task.result()
        finally:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)


async def execute(
    target_url: str,
    input_mappings: Sequence[str],
    config_path: Path,
    args: Sequence[str] = (),
    environ: Optional[Mapping[str, str]] = None,
) -> int:
    """Run a build end to end.

    Input mappings and the job config are validated before any network
    activity.

    Returns:
        Exit code implied by the build's terminal status.

    Raises:
        BuildRelayError: On any configuration, server, archive or stream failure.
    """
    mappings = parse_input_mappings(input_mappings)
    config = load_job_config(config_path, args, environ)

    async with BuildServerClient(target_url) as client:
        return await BuildExecution(client).run(mappings, config)
