"""Provider factory: selects the nearby-points provider by name.

The factory maintains a registry of known providers.  Built-ins are
registered lazily on first use; custom providers (including test stubs)
are added with ``register_provider``.

Usage::

    from parcel_facts.providers.factory import get_provider

    provider = get_provider("demo")
    points = await provider.nearby(coordinate)

The provider name comes from ``PipelineConfig.nearby_provider``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from parcel_facts.providers.base import NearbyPointsProvider, ProviderError

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)

DEMO = "demo"

# Each entry maps a provider name to a zero-argument callable returning
# a provider instance.
_PROVIDER_REGISTRY: dict[str, Callable[[], NearbyPointsProvider]] = {}


def _register_builtin_providers() -> None:
    def _demo() -> NearbyPointsProvider:
        from parcel_facts.providers.demo import DemoNearbyPointsProvider

        return DemoNearbyPointsProvider()

    _PROVIDER_REGISTRY[DEMO] = _demo


def _ensure_registry() -> None:
    """Initialise the provider registry once (idempotent)."""
    if not _PROVIDER_REGISTRY:
        _register_builtin_providers()


def register_provider(name: str, loader: Callable[[], NearbyPointsProvider]) -> None:
    """Register a custom provider.

    Args:
        name: Provider name.
        loader: Zero-argument callable that returns a provider instance.

    Raises:
        ValueError: If the name is empty.
    """
    if not name:
        msg = "Provider name must be non-empty"
        raise ValueError(msg)
    _ensure_registry()
    _PROVIDER_REGISTRY[name] = loader
    logger.debug("Registered nearby-points provider: %s", name)


def get_provider(name: str) -> NearbyPointsProvider:
    """Create and return the provider registered under *name*.

    Raises:
        ProviderError: If the name is not registered.
    """
    _ensure_registry()

    loader = _PROVIDER_REGISTRY.get(name)
    if loader is None:
        available = ", ".join(sorted(_PROVIDER_REGISTRY))
        msg = f"Unknown nearby-points provider: {name!r}. Available: {available}"
        raise ProviderError(provider=name, message=msg)

    logger.info("Creating nearby-points provider: %s", name)
    return loader()


def list_providers() -> list[str]:
    """Return the names of all registered providers."""
    _ensure_registry()
    return sorted(_PROVIDER_REGISTRY)
