"""Terminal rendering of a build's event stream."""

import sys
from typing import AsyncIterable, Optional, TextIO

from rich.console import Console

from ..api.events import (
    TERMINAL_EXIT_CODES,
    BuildEvent,
    BuildStatus,
    ErrorEvent,
    LogEvent,
    StatusEvent,
)
from ..exceptions import EventStreamError

STATUS_STYLES = {
    BuildStatus.SUCCEEDED: "bold green",
    BuildStatus.FAILED: "bold red",
    BuildStatus.ERRORED: "bold magenta",
    BuildStatus.ABORTED: "bold yellow",
}


class BuildLogRenderer:
    """Writes build output to stdout and status lines to stderr.

    Log payloads are written verbatim (they may carry their own ANSI
    colouring); status and error lines go through a Rich console.
    """

    def __init__(self, out: Optional[TextIO] = None, console: Optional[Console] = None):
        self.out = out or sys.stdout
        self.console = console or Console(stderr=True, highlight=False)

    async def render(self, events: AsyncIterable[BuildEvent]) -> int:
        """Consume events until the build reaches a terminal status.

        Returns:
            Exit code for the terminal status.

        Raises:
            EventStreamError: If the stream ends before a terminal status.
        """
        async for event in events:
            if isinstance(event, LogEvent):
                self.out.write(event.payload)
                self.out.flush()
            elif isinstance(event, ErrorEvent):
                self.console.print(event.message, style="bold red", markup=False)
            elif isinstance(event, StatusEvent) and event.status.is_terminal:
                self.console.print(
                    event.status.value, style=STATUS_STYLES[event.status], markup=False
                )
                return TERMINAL_EXIT_CODES[event.status]

        raise EventStreamError("event stream ended before the build finished")


async def render(
    events: AsyncIterable[BuildEvent], renderer: Optional[BuildLogRenderer] = None
) -> int:
    return await (renderer or BuildLogRenderer()).render(events)
