"""
Build event stream.

The server pushes JSON messages over a websocket bound to the node that
accepted the build. Each message is either wrapped as
``{"type": ..., "event": {...}}`` or is the bare event body with a
``type`` key.
"""

import json
import logging
from enum import Enum
from typing import Any, AsyncIterator, Dict, Optional, Union

import aiohttp
from pydantic import BaseModel, ConfigDict, ValidationError

from ..config import DEFAULT_CONNECT_TIMEOUT
from ..exceptions import EventStreamError
from ..models import SessionTokens

log = logging.getLogger(__name__)


class BuildStatus(str, Enum):
    PENDING = "pending"
    STARTED = "started"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    ERRORED = "errored"
    ABORTED = "aborted"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_EXIT_CODES


# Exit code of the local process for each terminal build status
TERMINAL_EXIT_CODES: Dict[BuildStatus, int] = {
    BuildStatus.SUCCEEDED: 0,
    BuildStatus.FAILED: 1,
    BuildStatus.ERRORED: 2,
    BuildStatus.ABORTED: 3,
}


class Origin(BaseModel):
    model_config = ConfigDict(extra="allow")

    type: Optional[str] = None
    name: Optional[str] = None


class LogEvent(BaseModel):
    model_config = ConfigDict(extra="allow")

    payload: str = ""
    origin: Optional[Origin] = None


class StatusEvent(BaseModel):
    model_config = ConfigDict(extra="allow")

    status: BuildStatus
    time: Optional[int] = None


class ErrorEvent(BaseModel):
    model_config = ConfigDict(extra="allow")

    message: str = ""


BuildEvent = Union[LogEvent, StatusEvent, ErrorEvent]

EVENT_TYPES = {
    "log": LogEvent,
    "status": StatusEvent,
    "error": ErrorEvent,
}


class EventEnvelope(BaseModel):
    model_config = ConfigDict(extra="allow")

    type: str
    version: Optional[str] = None
    event: Optional[Dict[str, Any]] = None


def parse_event(message: Union[str, bytes, Dict[str, Any]]) -> Optional[BuildEvent]:
    """Decode one event stream message.

    Returns:
        The decoded event, or None for event types this client does not know.

    Raises:
        EventStreamError: If the message is not a valid event.
    """
    try:
        data = json.loads(message) if isinstance(message, (str, bytes)) else message
        envelope = EventEnvelope.model_validate(data)
    except ValueError as e:
        raise EventStreamError(f"malformed event: {e}") from e

    event_cls = EVENT_TYPES.get(envelope.type)
    if event_cls is None:
        log.debug(f"Ignoring event of unknown type {envelope.type!r}")
        return None

    body = envelope.event if envelope.event is not None else data
    try:
        return event_cls.model_validate(body)
    except ValidationError as e:
        raise EventStreamError(f"malformed {envelope.type} event: {e}") from e


class EventStream:
    """Open websocket connection to a build's event endpoint.

    Iterating the stream yields decoded build events in order until the
    server closes the connection. There is no read timeout and no
    reconnection.
    """

    def __init__(
        self,
        session: aiohttp.ClientSession,
        ws: aiohttp.ClientWebSocketResponse,
        owns_session: bool = True,
    ):
        self._session = session
        self._ws = ws
        self._owns_session = owns_session

    @classmethod
    async def connect(
        cls,
        url: str,
        tokens: SessionTokens,
        session: Optional[aiohttp.ClientSession] = None,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
    ) -> "EventStream":
        """Open the event stream, presenting the session cookies.

        Args:
            url: Websocket URL of the build's event endpoint.
            tokens: Cookies from build creation, replayed verbatim.
            session: Optional aiohttp session to reuse.
            connect_timeout: Seconds allowed for the connection handshake.

        Raises:
            EventStreamError: If the handshake is rejected or the server is
                unreachable.
        """
        owns_session = session is None
        if session is None:
            session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=None, connect=connect_timeout)
            )

        headers = {}
        if tokens:
            headers["Cookie"] = tokens.header_value()

        try:
            ws = await session.ws_connect(url, headers=headers, autoclose=True)
        except aiohttp.WSServerHandshakeError as e:
            if owns_session:
                await session.close()
            raise EventStreamError(
                f"failed to stream output: {e.status} {e.message} "
                f"(headers: {dict(e.headers or {})})"
            ) from e
        except (aiohttp.ClientError, OSError) as e:
            if owns_session:
                await session.close()
            raise EventStreamError(f"failed to stream output: {e}") from e

        log.debug(f"Connected to event stream {url}")
        return cls(session, ws, owns_session=owns_session)

    async def __aiter__(self) -> AsyncIterator[BuildEvent]:
        async for msg in self._ws:
            if msg.type in (aiohttp.WSMsgType.TEXT, aiohttp.WSMsgType.BINARY):
                event = parse_event(msg.data)
                if event is not None:
                    yield event
            elif msg.type == aiohttp.WSMsgType.ERROR:
                raise EventStreamError(f"event stream failed: {self._ws.exception()}")

    async def close(self) -> None:
        if not self._ws.closed:
            await self._ws.close()
        if self._owns_session and not self._session.closed:
            await self._session.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
