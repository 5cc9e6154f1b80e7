"""
Lookup keys and provider descriptors.

A key is either the identity of a class or an opaque string token; both
variants are explicit so injector maps never hold a bare ``object`` key.
"""

from dataclasses import dataclass
from typing import Any, Optional, Union

from .errors import InvalidProviderError


class _Nothing:
    """Marker for an absent literal value (``None`` is a valid value)."""

    __slots__ = ()

    def __repr__(self) -> str:
        return "NOTHING"

    def __bool__(self) -> bool:
        return False


NOTHING: Any = _Nothing()


@dataclass(frozen=True, slots=True)
class ClassKey:
    """Key identified by a class (identity comparison)."""

    cls: type

    def __str__(self) -> str:
        return self.cls.__qualname__


@dataclass(frozen=True, slots=True)
class TokenKey:
    """Key identified by an opaque string token."""

    name: str

    def __str__(self) -> str:
        return self.name


Key = Union[ClassKey, TokenKey]


def to_key(token: Any) -> Key:
    """Normalize a class, string or existing key into a ``Key``."""
    if isinstance(token, (ClassKey, TokenKey)):
        return token
    if isinstance(token, str):
        return TokenKey(token)
    if isinstance(token, type):
        return ClassKey(token)
    raise InvalidProviderError(token, "key must be a class or a string")


@dataclass(frozen=True, slots=True)
class ProviderDescriptor:
    """
    Declarative recipe binding a key to a class or a literal value.

    Exactly one of ``use_class`` / ``use_value`` is meaningful.
    """

    provide: Key
    use_class: Optional[type] = None
    use_value: Any = NOTHING

    def __post_init__(self):
        object.__setattr__(self, "provide", to_key(self.provide))
        has_value = self.use_value is not NOTHING
        if self.use_class is None and not has_value:
            raise InvalidProviderError(self, "neither use_class nor use_value given")
        if self.use_class is not None and has_value:
            raise InvalidProviderError(self, "use_class and use_value are exclusive")
        if self.use_class is not None and not isinstance(self.use_class, type):
            raise InvalidProviderError(self, "use_class must be a class")

    @property
    def is_value(self) -> bool:
        return self.use_value is not NOTHING

    @classmethod
    def for_class(cls, target: type) -> "ProviderDescriptor":
        return cls(provide=ClassKey(target), use_class=target)

    @classmethod
    def for_value(cls, token: Any, value: Any) -> "ProviderDescriptor":
        return cls(provide=to_key(token), use_value=value)
