"""
Injector - hierarchical dependency injection container.

Each injector owns a ``Key -> instance`` map, an optional parent and an
ordered list of children. Lookups go local first, then up the parent chain,
so a child's binding always shadows an ancestor's binding for the same key.
"""

import logging
import uuid
from typing import Any, Iterable, List, Optional, Tuple

from .errors import InjectorDestroyedError, ProviderNotFoundError
from .metadata import (
    AFTER_CONSTRUCT,
    get_constructor_inject_keys,
    get_constructor_providers,
    get_property_inject_keys,
    has_after_construct,
    merge_providers,
    verify_provider,
    verify_providers,
)
from .providers import ClassKey, Key, ProviderDescriptor, to_key

logger = logging.getLogger("harrier.di")


class Injector:
    """
    Dependency injection container.

    Use the static constructors rather than instantiating directly:

        root = Injector.create_and_resolve(Application, [Logger, Router])
        child = Injector.create_and_resolve_child(
            root,
            Handler,
            [{"provide": "config", "use_value": {"debug": True}}],
        )
        handler = child.get(Handler)
    """

    __slots__ = ("_id", "_providers", "_parent", "_children", "_destroyed")

    @staticmethod
    def create_and_resolve(provider: Any, providers: Iterable[Any] = ()) -> "Injector":
        """Create a standalone injector and resolve ``provider``'s graph in it."""
        injector = Injector()
        injector.resolve(verify_provider(provider), verify_providers(providers))
        return injector

    @staticmethod
    def create_and_resolve_child(
        parent: "Injector",
        target: type,
        providers: Iterable[Any] = (),
    ) -> "Injector":
        """Create a child of ``parent``, resolve ``target`` in it and attach it."""
        parent._ensure_alive("create a child")
        child = Injector(parent)
        child.resolve(verify_provider(target), verify_providers(providers))
        parent._children.append(child)
        return child

    def __init__(self, parent: Optional["Injector"] = None):
        self._id = str(uuid.uuid4())
        self._providers: dict = {}
        self._parent = parent
        self._children: List["Injector"] = []
        self._destroyed = False
        # An injector always resolves to itself in its own scope
        self._providers[ClassKey(Injector)] = self

    @property
    def id(self) -> str:
        return self._id

    @property
    def parent(self) -> Optional["Injector"]:
        return self._parent

    @property
    def children(self) -> Tuple["Injector", ...]:
        return tuple(self._children)

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    def resolve(
        self,
        provider: ProviderDescriptor,
        providers: Iterable[ProviderDescriptor] = (),
    ) -> Any:
        """
        Build ``provider`` and its declared sub-providers in this injector.

        Used internally; prefer ``Injector.create_and_resolve`` or
        ``Injector.create_and_resolve_child``.

        Raises:
            ProviderNotFoundError: If any dependency in the graph is unbound
        """
        self._ensure_alive("resolve providers")

        target = provider.use_class
        # Sub-providers first, so everything the target asks for is bound
        merged = merge_providers(get_constructor_providers(target), providers)
        for item in merged:
            self.resolve(item)

        if provider.is_value:
            self.set(provider.provide, provider.use_value)
            return self.get(provider.provide)

        args = [
            self.get(key, provider.provide)
            for key in get_constructor_inject_keys(target)
        ]
        instance = target(*args)

        for entry in get_property_inject_keys(target):
            value = self.get(entry.key, provider.provide)
            # Class-level access returns the Inject descriptor itself
            getattr(target, entry.name).bind(instance, value)

        self.set(provider.provide, instance)

        if has_after_construct(target):
            getattr(instance, AFTER_CONSTRUCT)()

        self.set(Injector, self)
        logger.debug(f"Resolved {provider.provide} in injector {self._id}")
        return instance

    def get(self, key: Any, requested_by: Optional[Any] = None) -> Any:
        """
        Get the instance bound to ``key``.

        Args:
            key: Class, string token or ``Key``
            requested_by: Class (or key) asking for it, for error reporting

        Raises:
            ProviderNotFoundError: If neither this injector nor an ancestor
                has a binding
            InjectorDestroyedError: If this injector was destroyed
        """
        self._ensure_alive("get providers")
        key = to_key(key)
        if key in self._providers:
            return self._providers[key]
        if self._parent is not None:
            return self._parent.get(key, requested_by)
        raise ProviderNotFoundError(
            key=key,
            injector_id=self._id,
            requested_by=_describe(requested_by),
        )

    def has(self, key: Any) -> bool:
        """Local-only membership check (ancestors are not consulted)."""
        self._ensure_alive("check providers")
        return to_key(key) in self._providers

    def set(self, key: Any, value: Any) -> None:
        self._ensure_alive("set providers")
        self._providers[to_key(key)] = value

    def destroy(self) -> None:
        """
        Tear down this injector and every child, then detach from the parent.

        Safe to call more than once.
        """
        if self._destroyed:
            return
        self._destroyed = True

        if self._parent is not None:
            self._parent._remove_child(self)
        for child in list(self._children):
            child.destroy()
        self._children.clear()
        self._parent = None
        self._providers.clear()
        logger.debug(f"Destroyed injector {self._id}")

    def _remove_child(self, child: "Injector") -> None:
        try:
            self._children.remove(child)
        except ValueError:
            pass

    def _ensure_alive(self, operation: str) -> None:
        if self._destroyed:
            raise InjectorDestroyedError(self._id, operation)

    def __repr__(self) -> str:
        state = "destroyed" if self._destroyed else f"{len(self._providers)} bindings"
        return f"<Injector {self._id} ({state}, {len(self._children)} children)>"


def _describe(requested_by: Any) -> Optional[str]:
    if requested_by is None:
        return None
    if isinstance(requested_by, ClassKey):
        return requested_by.cls.__name__
    if isinstance(requested_by, type):
        return requested_by.__name__
    return str(requested_by)
