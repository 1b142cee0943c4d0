"""NearbyPointsProvider abstract base class.

Defines the contract for anything that supplies reference points near
the subject property (schools, parks, transit...).  The pipeline only
ever talks to this interface; the built-in implementation is a
synthetic demo generator and tests inject deterministic stubs.
"""

from __future__ import annotations

import abc
from typing import TYPE_CHECKING

from parcel_facts.core.exceptions import PipelineError

if TYPE_CHECKING:
    from parcel_facts.models.geo import Coordinate
    from parcel_facts.models.report import NearbyPoint


class NearbyPointsProvider(abc.ABC):
    """Abstract base class for nearby-point sources."""

    #: Registry name of the provider.
    name: str = ""

    @abc.abstractmethod
    async def nearby(self, coordinate: Coordinate) -> list[NearbyPoint]:
        """Return reference points near *coordinate*.

        Implementations should return an empty list rather than raise
        when they have nothing to offer.
        """


class ProviderError(PipelineError):
    """Raised when a provider cannot be created or fails.

    Attributes:
        provider: Name of the provider that raised.
    """

    default_stage = "nearby"
    default_code = "PROVIDER_ERROR"

    def __init__(self, provider: str, message: str, **kwargs: object) -> None:
        self.provider = provider
        super().__init__(message, **kwargs)  # type: ignore[arg-type]
