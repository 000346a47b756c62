"""Route table of the build server API and URL helpers."""

from typing import Any, NamedTuple
from urllib.parse import quote, urlsplit, urlunsplit


class Route(NamedTuple):
    name: str
    method: str
    path: str


CREATE_PIPE = Route("CreatePipe", "POST", "/api/v1/pipes")
READ_PIPE = Route("ReadPipe", "GET", "/api/v1/pipes/{pipe_id}")
WRITE_PIPE = Route("WritePipe", "PUT", "/api/v1/pipes/{pipe_id}")
CREATE_BUILD = Route("CreateBuild", "POST", "/api/v1/builds")
BUILD_EVENTS = Route("BuildEvents", "GET", "/api/v1/builds/{build_id}/events")
ABORT_BUILD = Route("AbortBuild", "POST", "/api/v1/builds/{build_id}/abort")

STREAMING_SCHEMES = {"http": "ws", "https": "wss"}


class RequestGenerator:
    """Builds absolute URLs for routes against a base server URL.

    The base URL may carry a path prefix and ``user:password@`` credentials;
    both are kept on generated URLs.
    """

    def __init__(self, base_url: str):
        self.base_url = base_url.rstrip("/")

    def url(self, route: Route, **params: Any) -> str:
        path = route.path.format(
            **{key: quote(str(value), safe="") for key, value in params.items()}
        )
        return f"{self.base_url}{path}"


def with_host(url: str, host: str) -> str:
    """Replace the ``host[:port]`` of a URL, keeping any userinfo."""
    parts = urlsplit(url)
    userinfo, at, _ = parts.netloc.rpartition("@")
    return urlunsplit(parts._replace(netloc=f"{userinfo}{at}{host}"))


def to_streaming_url(url: str) -> str:
    """Switch a URL to the websocket scheme and drop embedded credentials."""
    parts = urlsplit(url)
    scheme = STREAMING_SCHEMES.get(parts.scheme, "ws")
    netloc = parts.netloc.rpartition("@")[2]
    return urlunsplit(parts._replace(scheme=scheme, netloc=netloc))
