"""
Test configuration and fixtures for buildrelay tests.

Provides shared fixtures for:
- Job configuration files
- Input directory trees
- A fake build server behind httpx.MockTransport
- Fake event streams
- Environment variable management
"""

import json
from pathlib import Path
from typing import Any, Callable, Dict, List

import httpx
import pytest

from buildrelay.api.client import BuildServerClient
from buildrelay.models import Pipe

TARGET_URL = "http://atc.example.com:8080"


class FakeBuildServer:
    """In-memory stand-in for the build server's HTTP API.

    Records every request and answers pipe, build, upload and abort calls
    with configurable responses.
    """

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.uploads: Dict[str, bytes] = {}
        self.created_builds: List[Dict[str, Any]] = []
        self.aborted: List[str] = []
        self.pipe_counter = 0
        self.build_id = 42
        self.build_status_code = 201
        self.pipe_status_code = 201
        self.upload_status_code = 200
        self.cookies = [("ATC-Session", "node-7"), ("lb", "abc123")]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)

        path = request.url.path
        if request.method == "POST" and path == "/api/v1/pipes":
            if self.pipe_status_code != 201:
                return httpx.Response(self.pipe_status_code, text="no pipes for you")
            self.pipe_counter += 1
            return httpx.Response(
                201,
                json={
                    "id": f"pipe-{self.pipe_counter}",
                    "peer_addr": f"10.0.0.{self.pipe_counter}:7777",
                },
            )

        if request.method == "POST" and path == "/api/v1/builds":
            self.created_builds.append(json.loads(request.content))
            if self.build_status_code != 201:
                return httpx.Response(self.build_status_code, text="build rejected")
            headers = [
                ("set-cookie", f"{name}={value}; Path=/") for name, value in self.cookies
            ]
            return httpx.Response(
                201,
                json={"id": self.build_id, "status": "pending"},
                headers=headers,
            )

        if request.method == "PUT" and path.startswith("/api/v1/pipes/"):
            pipe_id = path.rsplit("/", 1)[1]
            self.uploads[pipe_id] = request.content
            return httpx.Response(self.upload_status_code)

        if request.method == "POST" and path.endswith("/abort"):
            self.aborted.append(path.split("/")[-2])
            return httpx.Response(200)

        return httpx.Response(404, text=f"no route for {request.method} {path}")

    def requests_to(self, method: str, path_prefix: str) -> List[httpx.Request]:
        return [
            r
            for r in self.requests
            if r.method == method and r.url.path.startswith(path_prefix)
        ]


class FakeEventStream:
    """Event stream that replays a fixed list of events."""

    def __init__(self, events: List[Any]):
        self.events = list(events)
        self.closed = False

    async def __aiter__(self):
        for event in self.events:
            yield event

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_server() -> FakeBuildServer:
    return FakeBuildServer()


@pytest.fixture
def server_client(fake_server: FakeBuildServer) -> BuildServerClient:
    """BuildServerClient wired to the fake server."""
    return BuildServerClient(
        TARGET_URL, transport=httpx.MockTransport(fake_server.handler)
    )


@pytest.fixture
def sample_pipe() -> Pipe:
    return Pipe(id="pipe-1", peer_addr="10.0.0.1:7777")


@pytest.fixture
def input_dir(tmp_path: Path) -> Path:
    """Provide a directory tree to archive, including .git metadata.

    Layout:
    - README.md
    - src/main.sh
    - src/nested/data.txt
    - .git/HEAD (must never be archived)
    """
    root = tmp_path / "my-input"
    (root / "src" / "nested").mkdir(parents=True)
    (root / ".git").mkdir()
    (root / "README.md").write_text("# readme\n")
    (root / "src" / "main.sh").write_text("#!/bin/sh\necho hi\n")
    (root / "src" / "nested" / "data.txt").write_bytes(b"\x00\x01binary\xff")
    (root / ".git" / "HEAD").write_text("ref: refs/heads/main\n")
    return root


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    """Provide a job config YAML file."""
    path = tmp_path / "build.yml"
    path.write_text(
        "image: docker:///busybox\n"
        "params:\n"
        "  FOO: configured-foo\n"
        "  BAR: configured-bar\n"
        "run:\n"
        "  path: my-input/src/main.sh\n"
        "  args: [--verbose]\n"
    )
    return path


@pytest.fixture
def mock_env_vars(monkeypatch: pytest.MonkeyPatch) -> Dict[str, str]:
    """Provide patched environment variables for tests."""
    env_vars = {
        "BUILDRELAY_URL": TARGET_URL,
        "LOG_LEVEL": "ERROR",  # Suppress logs during tests
    }

    for key, value in env_vars.items():
        monkeypatch.setenv(key, value)

    return env_vars


@pytest.fixture
def event_stream() -> Callable[[List[Any]], FakeEventStream]:
    """Factory for event streams replaying the given events."""
    return FakeEventStream
