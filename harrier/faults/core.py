"""
Harrier faults - core types and fault taxonomy.

Defines:
- Fault base class (structured fault objects)
- FaultDomain (explicit fault domains)
- Severity levels
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional


# ============================================================================
# Severity & Domain
# ============================================================================

class Severity(str, Enum):
    """
    Fault severity levels.

    Determines the log level a fault is reported with.
    """
    INFO = "info"
    WARN = "warn"
    ERROR = "error"
    FATAL = "fatal"


class FaultDomain:
    """
    Fault domains (taxonomy).

    Identifies the functional area where a fault occurred.
    """

    def __init__(self, name: str, description: str = ""):
        self.name = name
        self.value = name
        self.description = description

    def __str__(self) -> str:
        return self.name

    def __repr__(self) -> str:
        return f"FaultDomain(name='{self.name}')"

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, FaultDomain):
            return self.name == other.name
        return str(self) == str(other)

    def __hash__(self) -> int:
        return hash(self.name)


# Standard Domains
FaultDomain.CONFIG = FaultDomain("config", "Configuration errors")
FaultDomain.DI = FaultDomain("di", "Dependency injection errors")
FaultDomain.ROUTING = FaultDomain("routing", "Route matching errors")
FaultDomain.FLOW = FaultDomain("flow", "Request pipeline errors")
FaultDomain.IO = FaultDomain("io", "I/O operations")
FaultDomain.SYSTEM = FaultDomain("system", "System level faults")


DOMAIN_DEFAULTS = {
    FaultDomain.CONFIG: Severity.FATAL,
    FaultDomain.DI: Severity.FATAL,
    FaultDomain.ROUTING: Severity.ERROR,
    FaultDomain.FLOW: Severity.ERROR,
    FaultDomain.IO: Severity.WARN,
    FaultDomain.SYSTEM: Severity.FATAL,
}


# ============================================================================
# Fault - Base Class
# ============================================================================

class Fault(Exception):
    """
    Base fault class - structured, typed fault object.

    Attributes:
        code: Stable machine-readable identifier (e.g., "ROUTE_NOT_FOUND")
        message: Human-readable summary
        domain: Fault domain (CONFIG, ROUTING, FLOW, ...)
        severity: Fault severity (INFO, WARN, ERROR, FATAL)
        public: Whether the message is safe to expose to a client
        metadata: Additional context data

    Example:
        ```python
        raise Fault(
            code="USER_NOT_FOUND",
            message="User with ID 123 not found",
            domain=FaultDomain.FLOW,
            public=True,
        )
        ```
    """

    def __init__(
        self,
        code: str | None = None,
        message: str | None = None,
        *,
        domain: FaultDomain | None = None,
        severity: Optional[Severity] = None,
        public: bool = False,
        metadata: Optional[dict[str, Any]] = None,
    ):
        # Fall back to class attributes if not provided
        self.code = code if code is not None else getattr(self, "code", None)
        self.message = message if message is not None else getattr(self, "message", None)
        self.domain = domain if domain is not None else getattr(self, "domain", None)

        if self.code is None or self.message is None or self.domain is None:
            raise TypeError(f"{self.__class__.__name__} missing required code, message, or domain")

        super().__init__(self.message)

        self.severity = severity or DOMAIN_DEFAULTS.get(self.domain, Severity.ERROR)
        self.public = public
        self.metadata = metadata or {}

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"Fault(code={self.code!r}, domain={self.domain.value}, "
            f"severity={self.severity.value}, public={self.public})"
        )

    def to_dict(self) -> dict[str, Any]:
        """
        Serialize fault to dictionary.

        Returns:
            Dictionary representation suitable for logging
        """
        return {
            "code": self.code,
            "message": self.message,
            "domain": self.domain.value,
            "severity": self.severity.value,
            "public": self.public,
            "metadata": self.metadata,
        }
