"""Scoped service resolution with static registry validation.

This package resolves string-keyed services from an immutable registry of
factories, caching each instance according to its lifetime and disposing
of it when the owning scope ends.

Exports:
- `RegistryBuilder`: Immutable fluent builder producing a read-only `Registry`.
- `Lifetime`: OnDemand, SingleInstance or Transient instance sharing.
- `Scope`: Root or child resolution scope. Child scopes share SingleInstance
  services and keep their own Transient ones. Useful for per-request lifetimes.
- `validate_registry`: Dry-run walk of the registry that reports missing,
  circular and scope-incompatible dependencies without creating services.
"""

from ._injector import ResolutionError, Scope, ServiceHandle, UnregisteredServiceError
from ._registry import Lifetime, Registry, RegistryBuilder, ServiceDescriptor, ServiceGetter
from ._validation import validate_registry


__all__ = [
    "Lifetime",
    "Registry",
    "RegistryBuilder",
    "ResolutionError",
    "Scope",
    "ServiceDescriptor",
    "ServiceGetter",
    "ServiceHandle",
    "UnregisteredServiceError",
    "validate_registry",
]
