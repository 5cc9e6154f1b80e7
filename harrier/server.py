"""
Server - application bootstrap and ASGI entry point.

The root injector is built once, explicitly, when the ``Server`` is created.
Every HTTP request then gets its own child injector holding the per-request
bindings, which builds the ``Request`` that drives the pipeline.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any, Callable, Iterable, List, Optional, Tuple, Type, TypeVar

from .config import ConfigLoader, ServerConfig
from .di import Injector, injectable, verify_provider
from .http import RawRequest, Receive, ResponseWriter, Send
from .logger import Logger, setup_logging
from .request import Request
from .router import RouteRule, Router
from .signals import RequestSignal

T = TypeVar("T")

ROUTES_ATTR = "__harrier_routes__"


def module(
    *,
    routes: Iterable[Any] = (),
    providers: Iterable[Any] = (),
) -> Callable[[Type[T]], Type[T]]:
    """
    Decorator declaring an application module.

    Args:
        routes: ``RouteRule``s (or mappings) registered on the router
        providers: Providers resolved in the root injector with the module

    Example:
        @module(
            routes=[RouteRule("/", "core/index", ("GET",))],
            providers=[{"provide": "greeting", "use_value": "hello"}],
        )
        class Application:
            pass
    """
    def decorator(cls: Type[T]) -> Type[T]:
        rules = tuple(r if isinstance(r, RouteRule) else RouteRule(**r) for r in routes)
        setattr(cls, ROUTES_ATTR, rules)
        return injectable(providers=providers)(cls)

    return decorator


def get_module_routes(cls: type) -> Tuple[RouteRule, ...]:
    return cls.__dict__.get(ROUTES_ATTR, ())


class Server:
    """
    ASGI application.

    Args:
        app_class: Class decorated with ``@module``
        config: Server configuration (defaults to ``ServerConfig()``)
    """

    def __init__(self, app_class: type, config: Optional[ServerConfig] = None):
        self.config = config or ServerConfig()
        self.app_class = app_class

        # Process-wide bindings first, so the module's providers can use them
        self.injector = Injector()
        for provider in (
            {"provide": ServerConfig, "use_value": self.config},
            Logger,
            Router,
        ):
            self.injector.resolve(verify_provider(provider))
        self.application = self.injector.resolve(verify_provider(app_class))

        self.logger: Logger = self.injector.get(Logger)
        self.router: Router = self.injector.get(Router)
        self.router.add_rules(get_module_routes(app_class))
        self.logger.info("Server.bootstrap", {
            "app": app_class.__name__,
            "injector": self.injector.id,
            "routes": len(self.router.get_rules()),
        })

    async def __call__(self, scope: dict, receive: Receive, send: Send) -> None:
        scope_type = scope["type"]
        if scope_type == "http":
            await self.handle_http(scope, receive, send)
        elif scope_type == "lifespan":
            await self.handle_lifespan(scope, receive, send)
        elif scope_type == "websocket":
            self.logger.warn("WebSocket connection attempt but sockets are not supported")
            await send({"type": "websocket.close", "code": 1003})

    async def handle_http(self, scope: dict, receive: Receive, send: Send) -> Request:
        response = ResponseWriter(send)
        request = RawRequest(scope, receive, on_disconnect=response.close)
        return await self.dispatch(request, response)

    async def dispatch(
        self,
        request: RawRequest,
        response: ResponseWriter,
        *,
        data: Optional[List[bytes]] = None,
        status_code: int = 200,
        is_custom_error: bool = False,
        is_forwarded: bool = False,
        is_forwarder: bool = False,
    ) -> Request:
        """
        Build the request scope and run the pipeline.

        Forwarded dispatches reuse the caller's ``data`` buffer and skip
        lifecycle wiring, so their injector is destroyed here instead.
        """
        injector = Injector.create_and_resolve_child(self.injector, Request, [
            {"provide": "request", "use_value": request},
            {"provide": "response", "use_value": response},
            {"provide": "status_code", "use_value": status_code},
            {"provide": "data", "use_value": data if data is not None else []},
            {"provide": "is_custom_error", "use_value": is_custom_error},
            {"provide": "is_forwarded", "use_value": is_forwarded},
            {"provide": "is_forwarder", "use_value": is_forwarder},
            RequestSignal,
        ])
        injector.get(RequestSignal).subscribe(injector.destroy)
        handler: Request = injector.get(Request)

        await handler.process()

        if is_forwarded:
            handler.destroy()
        elif not (response.finished or response.closed):
            # Application returned without ending the response
            response.close()
        return handler

    async def handle_lifespan(self, scope: dict, receive: Receive, send: Send) -> None:
        """Handle ASGI lifespan events."""
        while True:
            message = await receive()

            if message["type"] == "lifespan.startup":
                self.logger.debug("Server startup complete")
                await send({"type": "lifespan.startup.complete"})

            elif message["type"] == "lifespan.shutdown":
                self.shutdown()
                await send({"type": "lifespan.shutdown.complete"})
                break

    def shutdown(self) -> None:
        """Destroy the root injector and every request injector still alive."""
        if self.injector.destroyed:
            return
        self.logger.info("Server.shutdown", {
            "injector": self.injector.id,
            "open_requests": len(self.injector.children),
        })
        self.injector.destroy()


def bootstrap(
    app_class: type,
    port: Optional[int] = None,
    *,
    config: Optional[ServerConfig] = None,
    env_file: Optional[str] = ".env",
) -> Server:
    """
    Load configuration, set up logging and serve ``app_class`` with uvicorn.

    Blocks until the server stops.
    """
    import uvicorn

    if config is None:
        overrides = {"server": {"port": port}} if port is not None else None
        config = ConfigLoader.load(env_file=env_file, overrides=overrides).to_server_config()
    elif port is not None:
        config = replace(config, port=port)

    setup_logging(config.log_level, config.log_format)
    server = Server(app_class, config)

    uvicorn.run(
        server,
        host=config.host,
        port=config.port,
        log_level="warning" if config.log_level == "warn" else config.log_level,
        lifespan="on",
    )
    return server
