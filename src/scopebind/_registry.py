from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Protocol


logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Sequence

    Factory = Callable[[Any, "ServiceGetter"], object]
    Disposer = Callable[[Any, Any], None]


class Lifetime(Enum):
    """How widely an instance is shared, ordered from least to most embracing."""

    ON_DEMAND = 1
    SINGLE_INSTANCE = 2
    TRANSIENT = 3

    @property
    def label(self) -> str:
        return "".join(part.capitalize() for part in self.name.split("_"))


class ServiceGetter(Protocol):
    """The only capability a factory may use: resolve another service by key."""

    def get_service(self, key: str) -> Any: ...


def _no_dispose(instance: object, context: object) -> None:
    return None


@dataclass(frozen=True, eq=False)
class ServiceDescriptor:
    """Lifetime, factory and disposer shared by every key registered together.

    Compared by identity: keys are aliases only when bound to the same descriptor.
    """

    lifetime: Lifetime
    factory: Factory
    on_dispose: Disposer = _no_dispose


Registry = Mapping[str, ServiceDescriptor]
"""Read-only mapping from service key to descriptor, produced by ``RegistryBuilder.build``."""


def alias_index(registry: Registry) -> dict[str, tuple[str, ...]]:
    """Map every key to all keys bound to the very same descriptor object.

    Order follows registry insertion order, so the first alias is the one
    used as the cache key.
    """
    by_descriptor: dict[int, list[str]] = {}
    for key, descriptor in registry.items():
        by_descriptor.setdefault(id(descriptor), []).append(key)

    return {key: tuple(by_descriptor[id(descriptor)]) for key, descriptor in registry.items()}


class RegistryBuilder:
    """Immutable fluent builder for a service registry.

    Every ``add*`` call returns a new builder; the receiver is left untouched.

    Example:
      registry = (
          RegistryBuilder()
          .add("config", lambda ctx, r: load_config(), Lifetime.SINGLE_INSTANCE)
          .add_type("repo", Repo, ["config"], Lifetime.TRANSIENT)
          .build()
      )

    """

    def __init__(self, _entries: Mapping[str, ServiceDescriptor] | None = None) -> None:
        self._entries: dict[str, ServiceDescriptor] = dict(_entries or {})

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def add(
        self,
        key: str,
        factory: Factory,
        lifetime: Lifetime = Lifetime.ON_DEMAND,
        on_dispose: Disposer | None = None,
    ) -> RegistryBuilder:
        """Register ``factory`` under a single key. An existing key is replaced."""
        return self._register((key,), factory, lifetime, on_dispose)

    def add_aliases(
        self,
        keys: Sequence[str],
        factory: Factory,
        lifetime: Lifetime = Lifetime.ON_DEMAND,
        on_dispose: Disposer | None = None,
    ) -> RegistryBuilder:
        """Register ``factory`` under several keys that resolve to one shared instance."""
        return self._register(_alias_keys(keys), factory, lifetime, on_dispose)

    def add_type(
        self,
        key: str,
        cls: Callable[..., object],
        dependencies: Iterable[str] = (),
        lifetime: Lifetime = Lifetime.ON_DEMAND,
        on_dispose: Disposer | None = None,
    ) -> RegistryBuilder:
        """Register ``cls`` constructed positionally from the services keyed by ``dependencies``."""
        return self._register((key,), _constructor_factory(cls, dependencies), lifetime, on_dispose)

    def add_type_aliases(
        self,
        keys: Sequence[str],
        cls: Callable[..., object],
        dependencies: Iterable[str] = (),
        lifetime: Lifetime = Lifetime.ON_DEMAND,
        on_dispose: Disposer | None = None,
    ) -> RegistryBuilder:
        return self._register(_alias_keys(keys), _constructor_factory(cls, dependencies), lifetime, on_dispose)

    def build(self) -> Registry:
        """Snapshot the registrations as a read-only registry."""
        return MappingProxyType(dict(self._entries))

    def _register(
        self,
        keys: tuple[str, ...],
        factory: Factory,
        lifetime: Lifetime,
        on_dispose: Disposer | None,
    ) -> RegistryBuilder:
        if not keys:
            msg = "At least one key must be provided."
            raise ValueError(msg)

        if not callable(factory):
            msg = f"factory must be callable, got {type(factory).__name__}"
            raise TypeError(msg)

        if on_dispose is not None and not callable(on_dispose):
            msg = f"on_dispose must be callable, got {type(on_dispose).__name__}"
            raise TypeError(msg)

        if not isinstance(lifetime, Lifetime):
            msg = f"lifetime must be a Lifetime, got {lifetime!r}"
            raise TypeError(msg)

        descriptor = ServiceDescriptor(
            lifetime=lifetime,
            factory=factory,
            on_dispose=on_dispose or _no_dispose,
        )

        entries = dict(self._entries)
        for key in keys:
            if key in entries:
                logger.debug("Replacing registration for key %r", key)
            entries[key] = descriptor

        return RegistryBuilder(entries)


def _alias_keys(keys: Sequence[str]) -> tuple[str, ...]:
    if isinstance(keys, str):
        msg = "Expected a sequence of keys; register a single key with add() or add_type()."
        raise TypeError(msg)

    return tuple(keys)


def _constructor_factory(cls: Callable[..., object], dependencies: Iterable[str]) -> Factory:
    dependency_keys = tuple(dependencies)

    def factory(_context: object, services: ServiceGetter) -> object:
        return cls(*(services.get_service(key) for key in dependency_keys))

    return factory
