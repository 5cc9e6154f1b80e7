"""
Provider metadata.

Classes declare their injection requirements as plain data through
``@injectable`` and ``Inject``; this module reads that table back for the
injector. Nothing here is discovered from type annotations.
"""

from dataclasses import dataclass, field
from typing import Any, Iterable, List, Mapping, Tuple

from .errors import InvalidProviderError
from .providers import NOTHING, ClassKey, Key, ProviderDescriptor, to_key

METADATA_ATTR = "__harrier_injectable__"
AFTER_CONSTRUCT = "after_construct"


@dataclass(frozen=True, slots=True)
class PropertyInjection:
    """One property-injection entry: attribute ``name`` receives ``key``."""

    name: str
    key: Key
    mutable: bool = False


@dataclass(frozen=True)
class InjectableMetadata:
    """Descriptor table attached to an ``@injectable`` class."""

    providers: Tuple[ProviderDescriptor, ...] = ()
    constructor_keys: Tuple[Key, ...] = ()
    properties: Tuple[PropertyInjection, ...] = field(default_factory=tuple)


_EMPTY = InjectableMetadata()


def verify_provider(provider: Any) -> ProviderDescriptor:
    """
    Normalize a provider declaration into a ``ProviderDescriptor``.

    Accepts a class, a descriptor, or a mapping with ``provide`` and one of
    ``use_class`` / ``use_value`` (``useClass`` / ``useValue`` also work).
    """
    if isinstance(provider, ProviderDescriptor):
        return provider

    if isinstance(provider, type):
        return ProviderDescriptor.for_class(provider)

    if isinstance(provider, Mapping):
        if "provide" not in provider:
            raise InvalidProviderError(provider, "missing 'provide' key")
        key = to_key(provider["provide"])
        use_class = provider.get("use_class", provider.get("useClass"))
        if "use_value" in provider:
            use_value = provider["use_value"]
        else:
            use_value = provider.get("useValue", NOTHING)
        return ProviderDescriptor(provide=key, use_class=use_class, use_value=use_value)

    raise InvalidProviderError(provider, "expected a class, a mapping or a ProviderDescriptor")


def verify_providers(providers: Iterable[Any]) -> List[ProviderDescriptor]:
    return [verify_provider(item) for item in providers or ()]


def merge_providers(
    declared: Iterable[ProviderDescriptor],
    overrides: Iterable[ProviderDescriptor],
) -> List[ProviderDescriptor]:
    """Merge two provider lists; ``overrides`` win on key collision."""
    overrides = list(overrides)
    overridden = {item.provide for item in overrides}
    merged = [item for item in declared if item.provide not in overridden]
    merged.extend(overrides)
    return merged


def _metadata(target: Any) -> InjectableMetadata:
    if isinstance(target, ClassKey):
        target = target.cls
    if not isinstance(target, type):
        return _EMPTY
    # Only the class's own table counts; subclasses must be decorated themselves.
    return target.__dict__.get(METADATA_ATTR, _EMPTY)


def get_constructor_providers(target: Any) -> List[ProviderDescriptor]:
    return list(_metadata(target).providers)


def get_constructor_inject_keys(target: Any) -> List[Key]:
    return list(_metadata(target).constructor_keys)


def get_property_inject_keys(target: Any) -> List[PropertyInjection]:
    if isinstance(target, ClassKey):
        target = target.cls
    if not isinstance(target, type):
        return []
    meta = target.__dict__.get(METADATA_ATTR)
    if meta is not None:
        return list(meta.properties)
    return list(collect_property_injections(target))


def collect_property_injections(cls: type) -> Tuple[PropertyInjection, ...]:
    """Walk the MRO for ``Inject`` descriptors; subclasses shadow bases."""
    from .decorators import Inject

    found = {}
    for klass in reversed(cls.__mro__):
        for name, value in vars(klass).items():
            if isinstance(value, Inject):
                found[name] = PropertyInjection(name=name, key=value.key, mutable=value.mutable)
            elif name in found:
                # Plain attribute in a subclass hides the base declaration
                del found[name]
    return tuple(found.values())


def has_after_construct(cls: type) -> bool:
    hook = cls.__dict__.get(AFTER_CONSTRUCT)
    return callable(hook)
