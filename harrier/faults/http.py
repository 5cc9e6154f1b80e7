"""
HTTP faults raised and rendered by the request pipeline.
"""

from __future__ import annotations

from http import HTTPStatus
from typing import Any, Optional

from .core import Fault, FaultDomain, Severity


class HttpError(Fault):
    """
    Fault carrying an HTTP status code.

    Every failure inside the request pipeline is normalized to one of these
    before it is rendered.

    Example:
        ```python
        raise HttpError(404, "Route not found", {"path": "/missing"})
        ```
    """

    domain = FaultDomain.FLOW

    def __init__(
        self,
        status: int = 500,
        message: Optional[str] = None,
        data: Optional[dict[str, Any]] = None,
    ):
        self.status = int(status)
        self.reason = _reason(self.status)
        self.data = data or {}
        super().__init__(
            code=f"HTTP_{self.status}",
            message=message if message is not None else self.reason,
            domain=self.domain,
            severity=Severity.WARN if self.status < 500 else Severity.ERROR,
            public=self.status < 500,
            metadata=self.data,
        )

    def get_code(self) -> int:
        return self.status

    def __str__(self) -> str:
        return f"HttpError: {self.status} {self.reason}: {self.message}"

    def __repr__(self) -> str:
        return f"HttpError(status={self.status}, message={self.message!r})"

    @classmethod
    def from_exception(cls, error: BaseException, status: int = 500) -> "HttpError":
        """
        Normalize any exception into an ``HttpError``.

        Already-normalized errors are returned unchanged; anything else is
        wrapped with ``status`` while keeping the original as ``__cause__``
        and reusing its traceback.
        """
        if isinstance(error, HttpError):
            return error
        wrapped = cls(status, str(error) or type(error).__name__)
        wrapped.__cause__ = error
        return wrapped.with_traceback(error.__traceback__)


class ClientDisconnect(HttpError):
    """Client went away while the request body was being read."""

    domain = FaultDomain.IO

    def __init__(self, message: str = "Client disconnected", **data: Any):
        super().__init__(400, message, data)


def _reason(status: int) -> str:
    try:
        return HTTPStatus(status).phrase
    except ValueError:
        return "Unknown Status"
