"""HTTP client for the build server's pipe and build APIs."""

import logging
from http.cookies import CookieError, SimpleCookie
from typing import AsyncIterable, Optional, Sequence, Tuple

import httpx

from ..config import DEFAULT_CONNECT_TIMEOUT, DEFAULT_REQUEST_TIMEOUT
from ..exceptions import (
    BuildCreationError,
    PipeAllocationError,
    UploadError,
)
from ..models import (
    Build,
    BuildSpec,
    Input,
    InputSource,
    JobConfig,
    Pipe,
    SessionTokens,
)
from .routes import (
    ABORT_BUILD,
    BUILD_EVENTS,
    CREATE_BUILD,
    CREATE_PIPE,
    READ_PIPE,
    WRITE_PIPE,
    RequestGenerator,
    to_streaming_url,
    with_host,
)

log = logging.getLogger(__name__)


def dump_response(response: httpx.Response) -> str:
    """Render a response as status line, headers and body for diagnosis."""
    lines = [f"{response.http_version} {response.status_code} {response.reason_phrase}"]
    lines.extend(f"{name}: {value}" for name, value in response.headers.items())
    lines.append("")
    try:
        lines.append(response.text)
    except httpx.ResponseNotRead:
        lines.append("<body not read>")
    return "\n".join(lines)


def session_tokens(response: httpx.Response) -> SessionTokens:
    """Collect the name=value pair of every Set-Cookie header, in order.

    Cookie attributes (Domain, Path, Expires) are not applied: each cookie
    the server set is replayed as is.
    """
    pairs = []
    for header in response.headers.get_list("set-cookie"):
        cookie = SimpleCookie()
        try:
            cookie.load(header)
        except CookieError as e:
            log.debug(f"Skipping unparseable cookie {header!r}: {e}")
            continue
        pairs.extend((name, morsel.value) for name, morsel in cookie.items())
    return SessionTokens.from_pairs(pairs)


class BuildServerClient:
    """Client for allocating pipes, creating builds and feeding inputs.

    Every call is a single attempt: a build submission is not idempotent and
    an interrupted upload cannot be resumed, so failures are raised to the
    caller instead of retried.
    """

    def __init__(
        self,
        target_url: str,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the client.

        Args:
            target_url: Base URL of the build server. Embedded
                ``user:password@`` credentials are sent as basic auth.
            timeout: Timeout in seconds for plain API calls.
            connect_timeout: Connect timeout in seconds, also applied to
                uploads whose body transfer is otherwise unbounded.
            transport: Optional httpx transport, mainly for tests.
        """
        self.target_url = target_url
        self.routes = RequestGenerator(target_url)
        self.timeout = timeout
        self.connect_timeout = connect_timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client with proper configuration."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout, connect=self.connect_timeout),
                transport=self._transport,
            )
        return self._client

    async def create_pipe(self) -> Pipe:
        """Allocate a new pipe on the server.

        Raises:
            PipeAllocationError: On transport failure, a non-201 response
                or a body that does not describe a pipe.
        """
        client = await self._get_client()
        url = self.routes.url(CREATE_PIPE)

        try:
            response = await client.request(CREATE_PIPE.method, url)
        except httpx.HTTPError as e:
            raise PipeAllocationError(f"request failed: {e}") from e

        if response.status_code != httpx.codes.CREATED:
            raise PipeAllocationError(
                "bad response when creating pipe",
                status_code=response.status_code,
                response_dump=dump_response(response),
            )

        try:
            pipe = Pipe.model_validate(response.json())
        except ValueError as e:
            raise PipeAllocationError(
                f"malformed response when creating pipe: {e}",
                status_code=response.status_code,
            ) from e

        log.debug(f"Allocated pipe {pipe.id} on {pipe.peer_addr}")
        return pipe

    def read_pipe_url(self, pipe: Pipe) -> str:
        """URL the execution engine reads the pipe from.

        The pipe buffer lives on ``pipe.peer_addr``, so the gateway host is
        replaced by the peer's address.
        """
        return with_host(self.routes.url(READ_PIPE, pipe_id=pipe.id), pipe.peer_addr)

    def build_spec(self, inputs: Sequence[Input], config: JobConfig) -> BuildSpec:
        sources = [
            InputSource(
                name=i.name,
                type="archive",
                source={"uri": self.read_pipe_url(i.pipe)},
            )
            for i in inputs
        ]
        return BuildSpec(privileged=True, config=config, inputs=sources)

    async def create_build(
        self, inputs: Sequence[Input], config: JobConfig
    ) -> Tuple[Build, SessionTokens]:
        """Create the build record for the given inputs and config.

        Returns:
            The created Build and the session cookies set by the server.

        Raises:
            BuildCreationError: On transport failure, a non-201 response or
                an undecodable body.
        """
        spec = self.build_spec(inputs, config)
        client = await self._get_client()
        url = self.routes.url(CREATE_BUILD)

        try:
            response = await client.request(
                CREATE_BUILD.method,
                url,
                content=spec.model_dump_json(exclude_none=True),
                headers={"Content-Type": "application/json"},
            )
        except httpx.HTTPError as e:
            raise BuildCreationError(f"request failed: {e}") from e

        if response.status_code != httpx.codes.CREATED:
            raise BuildCreationError(
                "bad response when creating build",
                status_code=response.status_code,
                response_dump=dump_response(response),
            )

        try:
            build = Build.model_validate(response.json())
        except ValueError as e:
            raise BuildCreationError(
                f"response decoding failed: {e}",
                status_code=response.status_code,
            ) from e

        tokens = session_tokens(response)

        log.info(f"Created build {build.id}")
        return build, tokens

    async def write_pipe(self, pipe: Pipe, body: AsyncIterable[bytes]) -> None:
        """Stream ``body`` into the pipe's write endpoint.

        The body is sent chunked as it is produced; only the connect phase is
        bounded by a timeout.

        Raises:
            UploadError: On transport failure or a non-2xx response.
        """
        client = await self._get_client()
        url = self.routes.url(WRITE_PIPE, pipe_id=pipe.id)

        try:
            response = await client.request(
                WRITE_PIPE.method,
                url,
                content=body,
                timeout=httpx.Timeout(None, connect=self.connect_timeout),
            )
        except httpx.HTTPError as e:
            raise UploadError(f"request failed: {e}") from e

        if not response.is_success:
            raise UploadError(
                "bad response when uploading bits",
                status_code=response.status_code,
                response_dump=dump_response(response),
            )

        log.debug(f"Upload into pipe {pipe.id} complete")

    async def abort_build(self, build: Build) -> httpx.Response:
        """Ask the server to abort a build.

        Raises:
            httpx.HTTPError: If the request could not be delivered.
        """
        client = await self._get_client()
        url = self.routes.url(ABORT_BUILD, build_id=build.id)
        return await client.request(ABORT_BUILD.method, url)

    def events_url(self, build: Build) -> str:
        """Websocket URL of the build's event stream, without credentials."""
        return to_streaming_url(self.routes.url(BUILD_EVENTS, build_id=build.id))

    async def close(self) -> None:
        """Close HTTP session."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()
