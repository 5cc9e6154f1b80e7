"""
Harrier - request-handling web framework core.

A hierarchical dependency injector and a per-request lifecycle orchestrator
served over ASGI.
"""

__version__ = "1.0.0"

from .di import (
    Injector,
    Inject,
    injectable,
    ProviderDescriptor,
    ClassKey,
    TokenKey,
    DIError,
    ProviderNotFoundError,
    InvalidProviderError,
    InjectorDestroyedError,
)

from .faults import (
    Fault,
    FaultDomain,
    Severity,
    HttpError,
    ClientDisconnect,
)

from .config import ConfigLoader, ConfigError, ServerConfig
from .logger import Logger, clean, setup_logging
from .router import Methods, ResolvedRoute, RouteRule, Router
from .signals import RequestSignal
from .http import RawRequest, ResponseWriter
from .request import Request, RequestState
from .server import Server, bootstrap, module

__all__ = [
    "__version__",

    # DI
    "Injector",
    "Inject",
    "injectable",
    "ProviderDescriptor",
    "ClassKey",
    "TokenKey",
    "DIError",
    "ProviderNotFoundError",
    "InvalidProviderError",
    "InjectorDestroyedError",

    # Faults
    "Fault",
    "FaultDomain",
    "Severity",
    "HttpError",
    "ClientDisconnect",

    # Config & logging
    "ConfigLoader",
    "ConfigError",
    "ServerConfig",
    "Logger",
    "clean",
    "setup_logging",

    # Routing
    "Methods",
    "ResolvedRoute",
    "RouteRule",
    "Router",

    # Request lifecycle
    "RequestSignal",
    "RawRequest",
    "ResponseWriter",
    "Request",
    "RequestState",

    # Server
    "Server",
    "bootstrap",
    "module",
]
