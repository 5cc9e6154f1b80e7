"""
Shared test fixtures and helpers for the Harrier test suite.
"""

import pytest
from typing import Any, Dict, List, Optional

from harrier.config import ServerConfig
from harrier.di import Injector, verify_provider
from harrier.http import RawRequest, ResponseWriter
from harrier.logger import Logger
from harrier.request import Request
from harrier.router import RouteRule, Router
from harrier.signals import RequestSignal


# ============================================================================
# ASGI Helpers
# ============================================================================


def make_scope(
    method: str = "GET",
    path: str = "/",
    query_string: str = "",
    headers: Optional[List[tuple]] = None,
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
        "server": ("127.0.0.1", 9000),
        "client": ("127.0.0.1", 12345),
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


class SendRecorder:
    """ASGI send callable that records messages."""

    def __init__(self):
        self.messages: List[dict] = []

    async def __call__(self, message: dict) -> None:
        self.messages.append(message)

    @property
    def starts(self) -> List[dict]:
        return [m for m in self.messages if m["type"] == "http.response.start"]

    @property
    def status(self) -> Optional[int]:
        starts = self.starts
        return starts[0]["status"] if starts else None

    @property
    def headers(self) -> Dict[str, str]:
        starts = self.starts
        if not starts:
            return {}
        return {k.decode(): v.decode() for k, v in starts[0]["headers"]}

    @property
    def body(self) -> bytes:
        return b"".join(
            m["body"] for m in self.messages if m["type"] == "http.response.body"
        )


class StubRouter:
    """Router stand-in returning a canned result or raising a canned error."""

    def __init__(self, result: Any = None, error: Optional[BaseException] = None):
        self.result = result
        self.error = error
        self.calls: List[tuple] = []

    async def parse_request(self, path, method, headers):
        self.calls.append((path, method, headers))
        if self.error is not None:
            raise self.error
        return self.result


# ============================================================================
# Injector Helpers
# ============================================================================


def make_root(router: Any = None, config: Optional[ServerConfig] = None) -> Injector:
    """Root injector with the process-wide bindings."""
    config = config or ServerConfig(log_level="trace")
    root = Injector.create_and_resolve(Logger, [{"provide": ServerConfig, "use_value": config}])
    if router is None:
        root.resolve(verify_provider(Router))
    else:
        root.set(Router, router)
    return root


def make_handler(
    root: Injector,
    *,
    method: str = "GET",
    path: str = "/",
    query_string: str = "",
    chunks: Optional[List[bytes]] = None,
    receive=None,
    send: Optional[SendRecorder] = None,
    data: Optional[List[bytes]] = None,
    is_forwarded: bool = False,
) -> Request:
    """Build a Request through a child injector the way the server does."""
    send = send or SendRecorder()
    response = ResponseWriter(send)
    raw = RawRequest(
        make_scope(method=method, path=path, query_string=query_string),
        receive or make_receive(chunks=chunks),
        on_disconnect=response.close,
    )
    child = Injector.create_and_resolve_child(root, Request, [
        {"provide": "request", "use_value": raw},
        {"provide": "response", "use_value": response},
        {"provide": "status_code", "use_value": 200},
        {"provide": "data", "use_value": data if data is not None else []},
        {"provide": "is_custom_error", "use_value": False},
        {"provide": "is_forwarded", "use_value": is_forwarded},
        {"provide": "is_forwarder", "use_value": False},
        RequestSignal,
    ])
    child.get(RequestSignal).subscribe(child.destroy)
    return child.get(Request)


@pytest.fixture
def config():
    return ServerConfig(log_level="trace")


@pytest.fixture
def root(config):
    injector = make_root(config=config)
    yield injector
    injector.destroy()


@pytest.fixture
def router(root):
    router = root.get(Router)
    router.add_rules([
        RouteRule("/", "core/index", ("GET",)),
        RouteRule("/items", "items/save", ("POST", "PUT", "PATCH")),
    ])
    return router
