"""
Shared test fixtures and helpers for the Tether test suite.
"""

import pytest
from typing import List, Optional

import httpx

from tether.controller.metadata import MetadataStore
from tether.di.core import Container
from tether.request import Request
from tether.response import Response


# ============================================================================
# Request Helpers
# ============================================================================


def make_scope(
    method: str = "GET",
    path: str = "/",
    query_string: str = "",
    headers: Optional[List[tuple]] = None,
    client: Optional[tuple] = None,
) -> dict:
    """Build a minimal ASGI HTTP scope."""
    raw_headers = []
    if headers:
        for name, value in headers:
            raw_headers.append(
                (name.encode("latin-1") if isinstance(name, str) else name,
                 value.encode("latin-1") if isinstance(value, str) else value)
            )
    return {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": method,
        "path": path,
        "raw_path": path.encode("utf-8"),
        "query_string": query_string.encode("utf-8"),
        "headers": raw_headers,
        "scheme": "http",
        "server": ("127.0.0.1", 8000),
        "client": client or ("127.0.0.1", 12345),
        "root_path": "",
    }


def make_receive(body: bytes = b"", *, chunks: Optional[List[bytes]] = None):
    """Create an ASGI receive callable from body bytes or chunked list."""
    if chunks:
        messages = [
            {"type": "http.request", "body": chunk, "more_body": i < len(chunks) - 1}
            for i, chunk in enumerate(chunks)
        ]
    else:
        messages = [{"type": "http.request", "body": body, "more_body": False}]

    idx = 0

    async def receive():
        nonlocal idx
        if idx < len(messages):
            msg = messages[idx]
            idx += 1
            return msg
        return {"type": "http.disconnect"}

    return receive


def make_request(
    method: str = "GET",
    path: str = "/",
    query_string: str = "",
    headers: Optional[List[tuple]] = None,
    body: bytes = b"",
    chunks: Optional[List[bytes]] = None,
) -> Request:
    """Build a full Request object for testing."""
    scope = make_scope(method=method, path=path, query_string=query_string, headers=headers)
    return Request(scope, make_receive(body, chunks=chunks))


class Recorder:
    """Records calls to ``next`` made by a handler under test."""

    def __init__(self):
        self.calls = []

    async def __call__(self, error=None):
        self.calls.append(error)

    @property
    def called(self) -> bool:
        return bool(self.calls)

    @property
    def error(self):
        return self.calls[-1] if self.calls else None


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def request_factory():
    return make_request


@pytest.fixture
def scope_factory():
    return make_scope


@pytest.fixture
def receive_factory():
    return make_receive


@pytest.fixture
def response():
    return Response(path="/test")


@pytest.fixture
def next_recorder():
    return Recorder()


@pytest.fixture
def store():
    """A fresh metadata store, isolated from the module-level default."""
    return MetadataStore()


@pytest.fixture
def container():
    return Container(scope="app")


@pytest.fixture
def asgi_client():
    """Open an httpx client talking to an ASGI app in-process."""

    def _client(app) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://testserver")

    return _client
