"""
Request - per-request lifecycle orchestrator.

A ``Request`` is built by a child injector for every inbound request (or
internal forward). It resolves the route, collects the body for mutating
methods, renders the response and recovers from failures. It is used once
and then destroyed.
"""

from __future__ import annotations

import uuid
from enum import Enum
from typing import Any, List, Union
from urllib.parse import parse_qs, urlsplit

from .di import Inject, Injector, injectable
from .faults import HttpError
from .http import RawRequest, ResponseWriter
from .logger import Logger, clean
from .router import BODY_METHODS, ResolvedRoute, Router
from .signals import RequestSignal

CONTENT_TYPE = "text/html"


class RequestState(str, Enum):
    """Pipeline position of a ``Request``, for diagnostics."""

    CREATED = "created"
    ROUTE_RESOLVING = "route_resolving"
    BODY_COLLECTING = "body_collecting"
    RENDERING = "rendering"
    COMPLETED = "completed"
    ERROR_RENDERING_1 = "error_rendering_1"
    ERROR_RENDERING_2 = "error_rendering_2"
    SWALLOWED = "swallowed"


@injectable()
class Request:
    """
    Handles the router result and drives one request to a written response.

    All collaborators are property-injected by the child injector that
    creates it; ``status_code`` is the only mutable one.
    """

    request: RawRequest = Inject("request")
    response: ResponseWriter = Inject("response")
    is_custom_error: bool = Inject("is_custom_error")
    is_forwarded: bool = Inject("is_forwarded")
    is_forwarder: bool = Inject("is_forwarder")
    data: List[bytes] = Inject("data")
    status_code: int = Inject("status_code", mutable=True)
    injector: Injector = Inject(Injector)
    logger: Logger = Inject(Logger)
    router: Router = Inject(Router)
    signal: RequestSignal = Inject(RequestSignal)

    def __init__(self):
        self.id = str(uuid.uuid4())
        self.url = None
        self.query = {}
        self.state = RequestState.CREATED
        self._destroyed = False

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    def after_construct(self) -> None:
        """Called by the injector once every property has been injected."""
        self.url = urlsplit(self.request.url)
        self.query = parse_qs(self.url.query)
        self.logger.trace("Request.args", {
            "id": self.id,
            "url": self.request.url,
            "path": self.url.path,
            "query": self.query,
        })

    def destroy(self) -> None:
        """
        Signal end of life to subscribers, then drop them.

        Only the first call has any effect.
        """
        if self._destroyed:
            return
        self._destroyed = True
        self.logger.trace("Request.destroy", {"id": self.id, "state": self.state.value})
        self.signal.emit()
        self.signal.clear()

    async def render(self, response: Union[str, bytes, bytearray]) -> Union[str, bytes, bytearray]:
        """
        Send ``response`` to the client and end the response.

        Raises:
            HttpError: 500 if ``response`` is neither text nor bytes
        """
        self.logger.info("Request.render", {"id": self.id})
        if isinstance(response, (str, bytes, bytearray)):
            await self.response.write_head(self.status_code, {"Content-Type": CONTENT_TYPE})
            await self.response.write(response)
            await self.response.end()
            return response

        self.logger.error("Invalid response type", {
            "id": self.id,
            "response": response,
            "type": type(response).__name__,
        })
        raise HttpError(500, "ResponseType must be string or buffer", {
            "response": response,
        })

    async def process(self) -> Any:
        """
        Process the request; never raises.

        Failures are rendered as error responses: a failure while rendering
        an error is rendered once more, a failure after that is only logged.
        """
        # destroy on end, or when the connection closes before that
        if not self.is_forwarded:
            self.response.once("finish", self.destroy)
            self.response.once("close", self.destroy)

        try:
            return await self._handle()
        except Exception as error:
            try:
                return await self._render_error(error)
            except Exception as render_error:
                try:
                    return await self._render_fallback(render_error)
                except Exception as last_error:
                    self.state = RequestState.SWALLOWED
                    self._log_error(last_error)
                    return None

    async def _handle(self) -> Any:
        self.state = RequestState.ROUTE_RESOLVING
        resolved_route = await self.router.parse_request(
            self.url.path,
            self.request.method,
            self.request.headers,
        )
        if self._destroyed:
            return None

        self.logger.info("Route.parse_request", {
            "id": self.id,
            "is_custom_error": self.is_custom_error,
            "is_forwarded": self.is_forwarded,
            "method": self.request.method,
            "path": self.url.path,
            "route": resolved_route.route,
        })

        if resolved_route.method in BODY_METHODS and not self.is_forwarded:
            self.state = RequestState.BODY_COLLECTING
            resolved_route = await self._collect_body(resolved_route)
            if self._destroyed:
                return None

        self.state = RequestState.RENDERING
        result = await self.render(f"{resolved_route.route}{resolved_route.method}")
        self.state = RequestState.COMPLETED
        return result

    async def _collect_body(self, resolved_route: ResolvedRoute) -> ResolvedRoute:
        async for chunk in self.request.stream():
            self.data.append(chunk)
        return resolved_route

    async def _render_error(self, error: Exception) -> Any:
        if self._destroyed:
            # Connection already gone; nobody to render for
            self.logger.trace("Request.orphaned", {"id": self.id, "error": str(error)})
            return None
        self.state = RequestState.ERROR_RENDERING_1
        error = HttpError.from_exception(error)
        self._log_error(error)
        self.status_code = error.get_code()
        return await self.render(clean(str(error)))

    async def _render_fallback(self, error: Exception) -> Any:
        self.state = RequestState.ERROR_RENDERING_2
        error = HttpError.from_exception(error)
        self.status_code = error.get_code()
        return await self.render(clean(str(error)))

    def _log_error(self, error: BaseException) -> None:
        self.logger.error(str(getattr(error, "message", error)), {
            "id": self.id,
            "method": self.request.method,
            "request": self.url.geturl() if self.url else None,
            "url": self.request.url,
            "error": error,
        })
