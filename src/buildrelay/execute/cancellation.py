"""Abort-on-signal handling for a running build."""

import asyncio
import contextlib
import logging
import os
import signal
from enum import Enum
from typing import Callable, Iterable, Optional

import httpx
from rich.console import Console

from ..api.client import BuildServerClient
from ..config import EXIT_FORCED
from ..models import Build

log = logging.getLogger(__name__)

TERMINATION_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class CancellationState(str, Enum):
    ARMED = "armed"
    TERMINATING = "terminating"


class AbortOnSignal:
    """Two-step escalation on termination signals.

    The first signal asks the server to abort the build and keeps the
    process running so the final status can still be rendered. The second
    signal exits immediately with EXIT_FORCED, skipping all cleanup.
    Signals are delivered through a queue so the handler itself never
    blocks.
    """

    def __init__(
        self,
        client: BuildServerClient,
        build: Build,
        exit_func: Callable[[int], None] = os._exit,
        console: Optional[Console] = None,
    ):
        self.client = client
        self.build = build
        self.state = CancellationState.ARMED
        self._exit = exit_func
        self._console = console or Console(stderr=True)
        self._signals: asyncio.Queue = asyncio.Queue()
        self._abort_task: Optional[asyncio.Task] = None
        self._installed: list = []

    def notify(self, signum: int) -> None:
        """Deliver a signal to the controller."""
        self._signals.put_nowait(signum)

    def install(
        self,
        loop: Optional[asyncio.AbstractEventLoop] = None,
        signals: Iterable[int] = TERMINATION_SIGNALS,
    ) -> None:
        """Route termination signals into the controller."""
        loop = loop or asyncio.get_running_loop()
        for sig in signals:
            try:
                loop.add_signal_handler(sig, self.notify, sig)
            except NotImplementedError:
                # Windows event loops have no add_signal_handler
                signal.signal(
                    sig, lambda signum, frame: loop.call_soon_threadsafe(self.notify, signum)
                )
            self._installed.append(sig)

    def uninstall(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        loop = loop or asyncio.get_running_loop()
        for sig in self._installed:
            try:
                loop.remove_signal_handler(sig)
            except NotImplementedError:
                signal.signal(sig, signal.SIG_DFL)
        self._installed.clear()

    async def run(self) -> None:
        """Wait for signals and escalate. Returns only if exit_func returns."""
        await self._signals.get()
        self.state = CancellationState.TERMINATING
        self._console.print("\naborting...")
        self._abort_task = asyncio.create_task(self._abort(), name="abort-build")

        await self._signals.get()
        self._console.print("exiting immediately")
        self._exit(EXIT_FORCED)

    async def _abort(self) -> None:
        try:
            response = await self.client.abort_build(self.build)
        except httpx.HTTPError as e:
            log.warning(f"failed to abort build {self.build.id}: {e}")
            return

        if not response.is_success:
            log.warning(
                f"failed to abort build {self.build.id}: server responded {response.status_code}"
            )

    @property
    def abort_task(self) -> Optional[asyncio.Task]:
        return self._abort_task

    async def close(self) -> None:
        """Drop a still-pending abort request once the build has concluded."""
        if self._abort_task is not None and not self._abort_task.done():
            self._abort_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._abort_task
