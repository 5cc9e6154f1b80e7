"""
Harrier faults - structured error types.

Request failures are typed fault signals carrying an HTTP status, a message
and diagnostic metadata. Configuration errors raised while injectors are
built live in ``harrier.di.errors`` and are plain exceptions.

Core exports:
- Fault: Base fault class
- FaultDomain: Domain enumeration
- Severity: Severity levels
- HttpError: Fault with an HTTP status code
- ClientDisconnect: Client went away mid-request
"""

from .core import (
    Fault,
    FaultDomain,
    Severity,
)

from .http import (
    HttpError,
    ClientDisconnect,
)

__all__ = [
    "Fault",
    "FaultDomain",
    "Severity",
    "HttpError",
    "ClientDisconnect",
]
