"""
Router - resolves (path, method, headers) into a route descriptor.

Matching is an exact path lookup; route pattern syntax is not supported.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from .di import Inject, injectable
from .faults import HttpError
from .logger import Logger


class Methods(str, Enum):
    """Normalized HTTP methods."""

    GET = "GET"
    HEAD = "HEAD"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"
    OPTIONS = "OPTIONS"
    TRACE = "TRACE"
    CONNECT = "CONNECT"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, value: str | "Methods") -> "Methods":
        """
        Normalize a method name.

        Raises:
            HttpError: 405 for unknown methods
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).upper())
        except ValueError:
            raise HttpError(405, f"Method not allowed: {value}", {"method": value}) from None


# Methods whose request body is collected before rendering
BODY_METHODS = frozenset((Methods.POST, Methods.PATCH, Methods.PUT))


@dataclass(frozen=True)
class RouteRule:
    """
    Static route declaration.

    Args:
        url: Exact request path
        route: Route identity handed to the renderer (e.g. "core/index")
        methods: Allowed methods (all methods when empty)
    """

    url: str
    route: str
    methods: Optional[Tuple[Methods, ...]] = ()

    def __post_init__(self):
        object.__setattr__(self, "methods", tuple(Methods.parse(m) for m in self.methods or ()))

    def allows(self, method: Methods) -> bool:
        return not self.methods or method in self.methods


@dataclass(frozen=True)
class ResolvedRoute:
    """Result of matching a request to a route."""

    method: Methods
    route: str
    url: str
    params: Dict[str, Any] = field(default_factory=dict)
    headers: Mapping[str, str] = field(default_factory=dict)


@injectable()
class Router:
    """
    Process-wide router bound in the root injector.

    Example:
        router.add_rules([RouteRule("/", "core/index", ("GET",))])
        resolved = await router.parse_request("/", "GET", {})
    """

    logger = Inject(Logger)

    def __init__(self):
        self._rules: Dict[str, List[RouteRule]] = {}

    def add_rules(self, rules: Iterable[RouteRule | Mapping[str, Any]]) -> None:
        for rule in rules:
            if isinstance(rule, Mapping):
                rule = RouteRule(**rule)
            self._rules.setdefault(rule.url, []).append(rule)
            self.logger.trace("Router.add_rule", {
                "url": rule.url,
                "route": rule.route,
                "methods": [m.value for m in rule.methods],
            })

    def get_rules(self) -> List[RouteRule]:
        return [rule for rules in self._rules.values() for rule in rules]

    async def parse_request(
        self,
        path: str,
        method: str | Methods,
        headers: Optional[Mapping[str, str]] = None,
    ) -> ResolvedRoute:
        """
        Resolve a request into a ``ResolvedRoute``.

        Raises:
            HttpError: 404 when no rule matches the path, 405 when the path
                exists but not for this method
        """
        method = Methods.parse(method)
        rules = self._rules.get(path)
        if not rules:
            raise HttpError(404, f"Router.parse_request: {path} no route found, method: {method}", {
                "path": path,
                "method": method.value,
            })

        for rule in rules:
            if rule.allows(method):
                return ResolvedRoute(
                    method=method,
                    route=rule.route,
                    url=path,
                    headers=dict(headers or {}),
                )

        raise HttpError(405, f"Router.parse_request: {path} does not allow {method}", {
            "path": path,
            "method": method.value,
            "allowed": [m.value for rule in rules for m in rule.methods],
        })
