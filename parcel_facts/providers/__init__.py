"""Nearby-points providers.

- base: NearbyPointsProvider ABC, ProviderError
- demo: DemoNearbyPointsProvider (synthetic placeholder points)
- factory: get_provider / register_provider / list_providers
"""

from parcel_facts.providers.base import NearbyPointsProvider, ProviderError
from parcel_facts.providers.factory import get_provider, list_providers, register_provider

__all__ = [
    "NearbyPointsProvider",
    "ProviderError",
    "get_provider",
    "list_providers",
    "register_provider",
]
