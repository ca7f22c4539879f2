from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from ._registry import Lifetime, alias_index


logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    import types
    from collections.abc import Callable

    from ._registry import Registry, ServiceDescriptor

C = TypeVar("C")


class ResolutionError(RuntimeError):
    pass


class UnregisteredServiceError(ResolutionError):
    """Raised by ``Scope.get_service`` when no descriptor exists for a key."""

    def __init__(self, key: str) -> None:
        msg = f"No service registered for key {key!r}."
        super().__init__(msg)
        self.key = key


@dataclass(frozen=True)
class ServiceHandle:
    """A created instance paired with the disposer captured from its descriptor."""

    instance: Any
    on_dispose: Callable[[Any, Any], None]


class Scope(Generic[C]):
    """Resolves service keys to instances and owns their disposal.

    - OnDemand: created on every call, tracked for disposal only
    - SingleInstance: one per application, cached in a dict seeded from the parent
    - Transient: one per scope, cached locally

    A scope created with ``Scope(context, registry)`` is the root and also
    disposes SingleInstance services when it ends. Child scopes come from
    ``create_scope`` and only dispose what they created locally.
    """

    def __init__(
        self,
        context: C,
        registry: Registry,
        *,
        _single_instances: dict[str, ServiceHandle] | None = None,
        _aliases: dict[str, tuple[str, ...]] | None = None,
        _is_root: bool = True,
    ) -> None:
        self._context = context
        self._registry = registry
        self._aliases = _aliases if _aliases is not None else alias_index(registry)
        self._single_instances: dict[str, ServiceHandle] = _single_instances if _single_instances is not None else {}
        self._is_root = _is_root
        self._transients: dict[str, ServiceHandle] = {}
        self._on_demand: list[ServiceHandle] = []

    @property
    def context(self) -> C:
        return self._context

    @property
    def registry(self) -> Registry:
        return self._registry

    @property
    def is_root(self) -> bool:
        return self._is_root

    def get_service(self, key: str) -> Any:
        """Resolve ``key`` according to its lifetime.

        Factories receive ``(context, self)`` and may resolve further keys
        through this scope. Nothing guards against circular registrations;
        run ``validate_registry`` to catch them ahead of time.
        """
        descriptor = self._registry.get(key)
        if descriptor is None:
            raise UnregisteredServiceError(key)

        if descriptor.lifetime is Lifetime.SINGLE_INSTANCE:
            return self._get_or_create(key, descriptor, self._single_instances).instance

        if descriptor.lifetime is Lifetime.TRANSIENT:
            return self._get_or_create(key, descriptor, self._transients).instance

        handle = self._create(key, descriptor)
        self._on_demand.append(handle)
        return handle.instance

    def create_scope(self, context: Any) -> Scope[Any]:
        """Create a child scope bound to ``context``.

        The child starts from a copy of the current SingleInstance cache and
        has empty Transient/OnDemand state of its own.
        """
        logger.debug("Creating child scope with %d shared instance(s)", len(self._single_instances))
        return Scope(
            context,
            self._registry,
            _single_instances=dict(self._single_instances),
            _aliases=self._aliases,
            _is_root=False,
        )

    def end_scope(self) -> None:
        """Dispose every instance this scope owns, then reset it.

        Disposal order: OnDemand in creation order, Transient in insertion
        order, then SingleInstance in insertion order for the root scope only.
        A disposer that raises aborts the remaining disposals.
        """
        handles = [*self._on_demand, *self._transients.values()]
        if self._is_root:
            handles.extend(self._single_instances.values())

        logger.debug("Ending %s scope, disposing %d instance(s)", "root" if self._is_root else "child", len(handles))

        for handle in handles:
            handle.on_dispose(handle.instance, self._context)

        self._on_demand = []
        self._transients = {}
        if self._is_root:
            self._single_instances.clear()

    def __enter__(self) -> Scope[C]:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: types.TracebackType | None,
    ) -> None:
        self.end_scope()

    def _get_or_create(
        self,
        key: str,
        descriptor: ServiceDescriptor,
        cache: dict[str, ServiceHandle],
    ) -> ServiceHandle:
        keys = self._aliases.get(key, (key,))
        for alias in keys:
            handle = cache.get(alias)
            if handle is not None:
                logger.debug("Reusing cached instance for key %r", key)
                return handle

        handle = self._create(key, descriptor)
        cache[keys[0]] = handle
        return handle

    def _create(self, key: str, descriptor: ServiceDescriptor) -> ServiceHandle:
        logger.debug("Creating %s instance for key %r", descriptor.lifetime.label, key)
        instance = descriptor.factory(self._context, self)
        return ServiceHandle(instance=instance, on_dispose=descriptor.on_dispose)
