"""Pytest configuration and fixtures."""

import asyncio
import os
import tempfile
from pathlib import Path
from typing import Any, Callable, Optional
from urllib.parse import unquote

import httpx
import pytest

# Keep the default config file out of the working tree.
_CONFIG_DIR = Path(tempfile.mkdtemp(prefix="storage-client-tests-"))
os.environ.setdefault("STORAGE_CLIENT_CONFIG", str(_CONFIG_DIR / "storage_client.json"))

from storage_client.core.config import Settings  # noqa: E402
from storage_client.services.registry import ServiceRegistry  # noqa: E402

BACKEND_URL = "http://backend.test/upload/"


class FakeBackend:
    """Scripted storage backend served through ``httpx.MockTransport``.

    ``responses`` overrides the answer for a request key: ``("GET", "files")``,
    ``("GET", "stat")``, ``("POST", "files:create_dir")``,
    ``("POST", "files:upload_file")``, ``("POST", "download")``. A ``gates``
    entry holds the next request with that key until the event is set.
    An exception in ``responses`` is raised as a transport failure.
    """

    def __init__(self) -> None:
        self.listings: dict[str, Any] = {}
        self.free: Any = {"free": "10 GB"}
        self.stored: dict[str, bytes] = {}
        self.responses: dict[tuple[str, str], httpx.Response | Exception] = {}
        self.requests: list[tuple[tuple[str, str], httpx.Request]] = []
        self.hold_uploads = False
        self.upload_started = asyncio.Event()
        self.gates: dict[tuple[str, str], asyncio.Event] = {}

    def calls(self, method: str, endpoint: str) -> list[httpx.Request]:
        return [request for key, request in self.requests if key == (method, endpoint)]

    @staticmethod
    def _endpoint(request: httpx.Request) -> str:
        raw = request.url.raw_path.decode("ascii").split("?", 1)[0]
        return raw.split("/upload/", 1)[-1]

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        endpoint = self._endpoint(request)
        key = (request.method, endpoint)
        if key == ("POST", "files"):
            kind = "create_dir" if b'name="type"\r\n\r\ncreate_dir' in request.content else "upload_file"
            key = ("POST", f"files:{kind}")
        elif endpoint.startswith("download/"):
            key = ("GET", "download")
        self.requests.append((key, request))

        gate = self.gates.pop(key, None)
        if gate is not None:
            await gate.wait()

        if key == ("POST", "files:upload_file"):
            self.upload_started.set()
            if self.hold_uploads:
                await asyncio.Event().wait()

        override = self.responses.get(key)
        if isinstance(override, Exception):
            raise override
        if override is not None:
            return override
        if key == ("GET", "files"):
            return httpx.Response(200, json=self.listings.get(request.url.params.get("dir", ""), []))
        if key == ("GET", "stat"):
            return httpx.Response(200, json=self.free)
        if key == ("GET", "download"):
            name = unquote(endpoint[len("download/"):])
            if name not in self.stored:
                return httpx.Response(404, json={"message": f"{name} not found"})
            return httpx.Response(200, content=self.stored[name])
        return httpx.Response(200, json={})


class FakeConnection:
    """Push channel connection that yields ``frames`` and then stays open until closed."""

    def __init__(self, frames=(), *, stay_open: bool = True, fail: Optional[BaseException] = None) -> None:
        self.frames = list(frames)
        self.fail = fail
        self._closed = asyncio.Event()
        if not stay_open:
            self._closed.set()
        self.exited = False

    def close(self) -> None:
        self._closed.set()

    async def __aenter__(self) -> "FakeConnection":
        if self.fail is not None:
            raise self.fail
        return self

    async def __aexit__(self, *exc_info) -> bool:
        self.exited = True
        return False

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for frame in self.frames:
            yield frame
        await self._closed.wait()


class FakePushChannel:
    """Connector that hands out scripted connections, then ones that stay open."""

    def __init__(self) -> None:
        self.scripted: list[FakeConnection] = []
        self.opened: list[FakeConnection] = []
        self.attempt_times: list[float] = []

    def connector(self, url: str) -> FakeConnection:
        self.attempt_times.append(asyncio.get_running_loop().time())
        connection = self.scripted.pop(0) if self.scripted else FakeConnection()
        self.opened.append(connection)
        return connection


async def _wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.005)


@pytest.fixture
def wait_until():
    return _wait_until


@pytest.fixture
def settings() -> Settings:
    return Settings(
        backend_url=BACKEND_URL,
        reconnect_delay=0.05,
        toast_duration=0.2,
        request_timeout=5.0,
        max_upload_bytes=1024 * 1024,
    )


@pytest.fixture
def fake_backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def push_channel() -> FakePushChannel:
    return FakePushChannel()


@pytest.fixture
def transport(fake_backend) -> httpx.MockTransport:
    return httpx.MockTransport(fake_backend)


@pytest.fixture
async def registry(settings, transport, push_channel):
    registry = ServiceRegistry(settings, transport=transport, connector=push_channel.connector)
    yield registry
    await registry.shutdown()


@pytest.fixture
def sample_file(tmp_path) -> Path:
    path = tmp_path / "report.bin"
    path.write_bytes(os.urandom(300 * 1024))
    return path


@pytest.fixture
def fake_connection():
    return FakeConnection
