"""
Transport handles wrapping the ASGI ``receive`` and ``send`` callables.

``RawRequest`` is the raw inbound request, ``ResponseWriter`` the
response-writing capability. Neither knows about routing or injection.
"""

from __future__ import annotations

import logging
from http.cookies import SimpleCookie
from typing import (
    Any, AsyncIterator, Awaitable, Callable, Dict, List, Mapping, Optional, Union
)

from .faults import ClientDisconnect

logger = logging.getLogger("harrier.http")

Receive = Callable[[], Awaitable[dict]]
Send = Callable[[dict], Awaitable[None]]


class RawRequest:
    """
    Inbound ASGI HTTP request.

    Args:
        scope: ASGI scope dict
        receive: ASGI receive callable
        on_disconnect: Called once when the client disconnects
    """

    def __init__(
        self,
        scope: Mapping[str, Any],
        receive: Receive,
        on_disconnect: Optional[Callable[[], None]] = None,
    ):
        self.scope = scope
        self._receive = receive
        self._on_disconnect = on_disconnect
        self._headers: Optional[Dict[str, str]] = None
        self._cookies: Optional[Dict[str, str]] = None
        self._disconnected = False
        self._body_consumed = False

    # ========================================================================
    # Basic Properties
    # ========================================================================

    @property
    def method(self) -> str:
        return self.scope.get("method", "GET")

    @property
    def path(self) -> str:
        return self.scope.get("path", "/")

    @property
    def query_string(self) -> str:
        qs = self.scope.get("query_string", b"")
        return qs.decode("latin-1") if isinstance(qs, bytes) else qs

    @property
    def url(self) -> str:
        """Path plus query string, as sent on the request line."""
        qs = self.query_string
        return f"{self.path}?{qs}" if qs else self.path

    @property
    def headers(self) -> Dict[str, str]:
        """Headers with lower-cased names; repeated headers are comma-joined."""
        if self._headers is None:
            headers: Dict[str, str] = {}
            for name, value in self.scope.get("headers", []):
                name = name.decode("latin-1").lower()
                value = value.decode("latin-1")
                headers[name] = f"{headers[name]}, {value}" if name in headers else value
            self._headers = headers
        return self._headers

    def header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.headers.get(name.lower(), default)

    @property
    def cookies(self) -> Dict[str, str]:
        if self._cookies is None:
            cookie_header = self.header("cookie", "")
            if cookie_header:
                cookie = SimpleCookie()
                cookie.load(cookie_header)
                self._cookies = {key: morsel.value for key, morsel in cookie.items()}
            else:
                self._cookies = {}
        return self._cookies

    @property
    def disconnected(self) -> bool:
        return self._disconnected

    # ========================================================================
    # Body
    # ========================================================================

    async def stream(self) -> AsyncIterator[bytes]:
        """
        Yield body chunks in arrival order until the body ends.

        Raises:
            ClientDisconnect: If the client disconnects first
        """
        if self._body_consumed:
            return

        while True:
            message = await self._receive()

            if message["type"] == "http.disconnect":
                self._mark_disconnected()
                raise ClientDisconnect(path=self.path)

            if message["type"] == "http.request":
                chunk = message.get("body", b"")
                if chunk:
                    yield chunk
                if not message.get("more_body", False):
                    break

        self._body_consumed = True

    def _mark_disconnected(self) -> None:
        if self._disconnected:
            return
        self._disconnected = True
        logger.debug(f"Client disconnected: {self.method} {self.path}")
        if self._on_disconnect is not None:
            self._on_disconnect()


class ResponseWriter:
    """
    Writes one HTTP response over ASGI ``send``.

    Fires ``"finish"`` once the response has been ended and ``"close"`` when
    the connection is closed before that; each fires at most once.
    """

    EVENTS = ("finish", "close")

    def __init__(self, send: Send):
        self._send = send
        self.status: Optional[int] = None
        self.headers: Dict[str, str] = {}
        self.headers_sent = False
        self.finished = False
        self.closed = False
        self._listeners: Dict[str, List[Callable[[], None]]] = {e: [] for e in self.EVENTS}
        self._fired: set = set()

    def once(self, event: str, callback: Callable[[], None]) -> None:
        if event not in self._listeners:
            raise ValueError(f"Unknown response event: {event!r}")
        self._listeners[event].append(callback)

    async def write_head(self, status: int, headers: Optional[Mapping[str, str]] = None) -> None:
        """
        Set status and headers; they are sent with the first body write.

        Raises:
            RuntimeError: If the head has already been sent
        """
        if self.headers_sent:
            raise RuntimeError("Response head already sent")
        self.status = int(status)
        self.headers.update({k.lower(): str(v) for k, v in (headers or {}).items()})

    async def write(self, chunk: Union[str, bytes, bytearray]) -> None:
        await self._send_body(self._encode(chunk), more_body=True)

    async def end(self, chunk: Union[str, bytes, bytearray, None] = None) -> None:
        if self.finished or self.closed:
            return
        await self._send_body(self._encode(chunk) if chunk else b"", more_body=False)
        self.finished = True
        self._fire("finish")

    def close(self) -> None:
        """Mark the connection closed; later writes are dropped."""
        if self.closed or self.finished:
            return
        self.closed = True
        self._fire("close")

    async def _send_body(self, body: bytes, *, more_body: bool) -> None:
        if self.closed:
            return
        if self.finished:
            raise RuntimeError("Response already finished")
        if not self.headers_sent:
            await self._send({
                "type": "http.response.start",
                "status": self.status or 200,
                "headers": self._prepare_headers(),
            })
            self.headers_sent = True
        await self._send({
            "type": "http.response.body",
            "body": body,
            "more_body": more_body,
        })

    def _prepare_headers(self) -> List[tuple]:
        return [
            (name.encode("latin-1"), value.encode("latin-1"))
            for name, value in self.headers.items()
        ]

    def _encode(self, chunk: Union[str, bytes, bytearray]) -> bytes:
        if isinstance(chunk, str):
            return chunk.encode("utf-8")
        return bytes(chunk)

    def _fire(self, event: str) -> None:
        if event in self._fired:
            return
        self._fired.add(event)
        listeners, self._listeners[event] = self._listeners[event], []
        for callback in listeners:
            callback()
