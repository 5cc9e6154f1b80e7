"""
Harrier Dependency Injection

Hierarchical injectors built from declarative provider tables.

Key Features:
- Class or string keys, child injectors shadow their ancestors
- Constructor injection in declared order
- Property injection with read-only enforcement
- after_construct() hook fired once per resolution
- Depth-first teardown of injector trees
"""

from .core import Injector

from .providers import (
    NOTHING,
    ClassKey,
    TokenKey,
    Key,
    ProviderDescriptor,
    to_key,
)

from .metadata import (
    PropertyInjection,
    InjectableMetadata,
    verify_provider,
    verify_providers,
    merge_providers,
    get_constructor_providers,
    get_constructor_inject_keys,
    get_property_inject_keys,
    has_after_construct,
)

from .decorators import (
    Inject,
    injectable,
)

from .errors import (
    DIError,
    ProviderNotFoundError,
    InvalidProviderError,
    InjectorDestroyedError,
)

__all__ = [
    # Core
    "Injector",

    # Keys and descriptors
    "NOTHING",
    "ClassKey",
    "TokenKey",
    "Key",
    "ProviderDescriptor",
    "to_key",

    # Metadata
    "PropertyInjection",
    "InjectableMetadata",
    "verify_provider",
    "verify_providers",
    "merge_providers",
    "get_constructor_providers",
    "get_constructor_inject_keys",
    "get_property_inject_keys",
    "has_after_construct",

    # Decorators
    "Inject",
    "injectable",

    # Errors
    "DIError",
    "ProviderNotFoundError",
    "InvalidProviderError",
    "InjectorDestroyedError",
]
