from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from ._registry import alias_index


logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from collections.abc import Iterator

    from ._registry import Registry, ServiceDescriptor


class _StandIn:
    """Inert value returned for every read during a dry run.

    Attribute access, item access and calls all yield the stand-in itself,
    so factories can read arbitrarily deep into a context or a dependency.
    Arithmetic yields the stand-in, ordering comparisons are false, numeric
    conversions give zero, and it is an empty but truthy container.
    """

    __slots__ = ()

    def __getattr__(self, name: str) -> _StandIn:
        if name.startswith("__") and name.endswith("__"):
            raise AttributeError(name)
        return self

    def __getitem__(self, key: object) -> _StandIn:
        return self

    def __call__(self, *args: Any, **kwargs: Any) -> _StandIn:
        return self

    def __iter__(self) -> Iterator[Any]:
        return iter(())

    def __len__(self) -> int:
        return 0

    def __bool__(self) -> bool:
        return True

    def __int__(self) -> int:
        return 0

    __index__ = __int__

    def __float__(self) -> float:
        return 0.0

    def __format__(self, format_spec: str) -> str:
        return repr(self)

    def __enter__(self) -> _StandIn:
        return self

    def __exit__(self, *exc_info: object) -> None:
        return None

    def _same(self, *args: object) -> _StandIn:
        return self

    __add__ = __radd__ = __sub__ = __rsub__ = __mul__ = __rmul__ = _same
    __truediv__ = __rtruediv__ = __floordiv__ = __rfloordiv__ = __mod__ = __rmod__ = _same
    __pow__ = __rpow__ = __neg__ = __pos__ = __abs__ = _same

    def _never(self, other: object) -> bool:
        return False

    __lt__ = __le__ = __gt__ = __ge__ = _never

    del _same, _never

    def __repr__(self) -> str:
        return "<stand-in>"


STAND_IN = _StandIn()


def validate_registry(registry: Registry) -> list[str]:
    """Walk the dependency graph of every entry without creating real services.

    Returns one line per missing dependency, circular dependency or scope
    violation, in registry order. An empty list means no defect was found.

    Meant for tests and offline checks:
      assert validate_registry(builder.build()) == []

    """
    aliases = alias_index(registry)
    errors: list[str] = []
    for key, descriptor in registry.items():
        errors.extend(_validate_entry(key, descriptor, registry, aliases))

    if errors:
        logger.warning("Registry validation found %d defect(s)", len(errors))

    return errors


class _DryRunResolver:
    def __init__(
        self,
        root_key: str,
        root: ServiceDescriptor,
        registry: Registry,
        aliases: dict[str, tuple[str, ...]],
    ) -> None:
        self._root_key = root_key
        self._root = root
        self._registry = registry
        self._aliases = aliases
        self._visited: set[str] = set()
        self.errors: list[str] = []

    def get_service(self, key: str) -> _StandIn:
        descriptor = self._registry.get(key)
        if descriptor is None:
            self.errors.append(
                f"Root Service with key {self._root_key} depends on a service keyed {key} which does not exist."
            )
            return STAND_IN

        if key in self._visited:
            self.errors.append(f"Root Service with key {self._root_key} has a circular dependency with {key}.")
            return STAND_IN

        if self._root.lifetime.value < descriptor.lifetime.value:
            self.errors.append(
                f"Root Service with key {self._root_key} has a scope of {self._root.lifetime.label} "
                f"which is less embracing than {key} scope of {descriptor.lifetime.label}."
            )
            return STAND_IN

        self._visited.update(self._aliases.get(key, (key,)))
        descriptor.factory(STAND_IN, self)
        return STAND_IN


def _validate_entry(
    key: str,
    descriptor: ServiceDescriptor,
    registry: Registry,
    aliases: dict[str, tuple[str, ...]],
) -> list[str]:
    logger.debug("Validating dependency graph rooted at %r", key)
    resolver = _DryRunResolver(key, descriptor, registry, aliases)
    descriptor.factory(STAND_IN, resolver)
    return resolver.errors
