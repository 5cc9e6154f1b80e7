"""
Decorators and injection helpers for declaring providers.
"""

from typing import Any, Callable, Iterable, Type, TypeVar

from .metadata import (
    METADATA_ATTR,
    InjectableMetadata,
    collect_property_injections,
    verify_providers,
)
from .providers import to_key


T = TypeVar("T")

_UNSET = object()


class Inject:
    """
    Property-injection marker.

    Declared on the class body; the injector binds the resolved value after
    ``__init__`` has run. Immutable properties reject assignment and deletion
    once bound.

    Usage:
        @injectable()
        class Handler:
            logger = Inject(Logger)
            status_code = Inject("status_code", mutable=True)
    """

    __slots__ = ("key", "mutable", "name")

    def __init__(self, key: Any, *, mutable: bool = False):
        self.key = to_key(key)
        self.mutable = mutable
        self.name = None

    def __set_name__(self, owner: type, name: str) -> None:
        self.name = name

    def __get__(self, instance: Any, owner: type = None) -> Any:
        if instance is None:
            return self
        value = instance.__dict__.get(self.name, _UNSET)
        if value is _UNSET:
            raise AttributeError(
                f"'{type(instance).__name__}.{self.name}' has not been injected ({self.key})"
            )
        return value

    def __set__(self, instance: Any, value: Any) -> None:
        if not self.mutable:
            raise AttributeError(
                f"'{type(instance).__name__}.{self.name}' is a read-only injected property"
            )
        instance.__dict__[self.name] = value

    def __delete__(self, instance: Any) -> None:
        raise AttributeError(
            f"'{type(instance).__name__}.{self.name}' is an injected property and cannot be deleted"
        )

    def bind(self, instance: Any, value: Any) -> None:
        """Bind the resolved value, bypassing the read-only guard."""
        instance.__dict__[self.name] = value

    def __repr__(self) -> str:
        return f"Inject({self.key}, mutable={self.mutable})"


def injectable(
    *,
    providers: Iterable[Any] = (),
    inject: Iterable[Any] = (),
) -> Callable[[Type[T]], Type[T]]:
    """
    Decorator that records a class's provider metadata.

    Args:
        providers: Sub-providers resolved in the same injector before the
            class itself (classes, mappings or descriptors)
        inject: Ordered keys passed positionally to ``__init__``

    Example:
        @injectable(providers=[Repository], inject=[Repository, "config"])
        class UserService:
            def __init__(self, repo, config):
                ...
    """
    def decorator(cls: Type[T]) -> Type[T]:
        meta = InjectableMetadata(
            providers=tuple(verify_providers(providers)),
            constructor_keys=tuple(to_key(key) for key in inject),
            properties=collect_property_injections(cls),
        )
        setattr(cls, METADATA_ATTR, meta)
        return cls

    return decorator
