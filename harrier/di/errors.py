"""
DI-specific error types with rich diagnostics.

All of these are configuration errors: they are raised while a container is
being built and are never recovered by the request pipeline.
"""

from typing import Any, Optional


class DIError(Exception):
    """Base exception for DI errors."""
    pass


class ProviderNotFoundError(DIError):
    """No binding for the requested key in the injector or its ancestors."""

    def __init__(
        self,
        key: Any,
        injector_id: str,
        requested_by: Optional[Any] = None,
    ):
        self.key = key
        self.injector_id = injector_id
        self.requested_by = requested_by

        msg = f"No provider for {key}"
        if requested_by is not None:
            msg += f" on class {requested_by}"
        msg += f", injector: {injector_id}"

        super().__init__(msg)


class InvalidProviderError(DIError):
    """Provider descriptor is malformed."""

    def __init__(self, provider: Any, reason: str):
        self.provider = provider
        self.reason = reason

        msg = (
            f"Invalid provider descriptor {provider!r}: {reason}"
            f"\n\nSuggested fixes:"
            f"\n  - Pass a class, or a mapping with 'provide' and 'use_class'/'use_value'"
            f"\n  - Use a class or a string as the 'provide' key"
        )

        super().__init__(msg)


class InjectorDestroyedError(DIError):
    """Injector was used after destroy()."""

    def __init__(self, injector_id: str, operation: str):
        self.injector_id = injector_id
        self.operation = operation
        super().__init__(
            f"Injector {injector_id} is destroyed; cannot {operation}"
        )
