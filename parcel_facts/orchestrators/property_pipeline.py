"""Property report pipeline.

Coordinates the phases for one address:

1. Geocode: one sequential call; ``no_match`` aborts with ``NoMatchError``
2. Parcel: attribute phase, envelope fallback, APN fetch
3. Thematic: concurrent fan-out joined before assembly
4. Nearby: points from the configured ``NearbyPointsProvider``
5. Assemble: pure conversion to the immutable ``Report``

The public contract has two outcomes: ``NoMatchError`` or a (possibly
partial) ``Report``.  A geocoder outage surfaces as ``TransportError``
since no coordinate exists to continue from.  Every downstream failure
degrades to an omitted fact plus a ``DegradationEvent``.

All state is request-scoped except the ``httpx.AsyncClient``, which is
shared across runs of one pipeline instance and closed by ``aclose``
(or ``async with``) when the pipeline created it.
"""

from __future__ import annotations

import logging
import time
import uuid
from typing import TYPE_CHECKING

import httpx

from parcel_facts.activities.aggregate_thematic import ThematicAggregator
from parcel_facts.activities.assemble_report import assemble_report
from parcel_facts.activities.resolve_parcel import ParcelResolver
from parcel_facts.clients.feature_query import FeatureQueryClient
from parcel_facts.clients.geocoder import GeoResolver
from parcel_facts.core import constants as c
from parcel_facts.core.config import PipelineConfig
from parcel_facts.core.exceptions import NoMatchError
from parcel_facts.models.provenance import DegradationEvent, DegradationReason
from parcel_facts.providers.factory import get_provider

if TYPE_CHECKING:
    from types import TracebackType

    from parcel_facts.models.geo import Coordinate
    from parcel_facts.models.report import NearbyPoint, Report
    from parcel_facts.providers.base import NearbyPointsProvider

logger = logging.getLogger("parcel_facts.orchestrators.property_pipeline")


class PropertyReportPipeline:
    """Address → ``Report`` pipeline.

    Args:
        config: Pipeline configuration; defaults to ``PipelineConfig()``.
        client: Optional ``httpx.AsyncClient`` (e.g. with a
            ``MockTransport``).  When omitted the pipeline creates and
            owns one.
        nearby_provider: Optional provider instance; defaults to the one
            named by ``config.nearby_provider``.

    Raises:
        ProviderError: If ``config.nearby_provider`` is not registered.
    """

    def __init__(
        self,
        config: PipelineConfig | None = None,
        *,
        client: httpx.AsyncClient | None = None,
        nearby_provider: NearbyPointsProvider | None = None,
    ) -> None:
        self.config = config or PipelineConfig()
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(follow_redirects=True)

        self.geocoder = GeoResolver(
            self._client,
            url=self.config.geocoder_url,
            benchmark=self.config.geocoder_benchmark,
            timeout_s=self.config.geocode_timeout_s,
        )
        self.features = FeatureQueryClient(self._client, timeout_s=self.config.request_timeout_s, stage="parcel")
        thematic_features = FeatureQueryClient(
            self._client,
            timeout_s=self.config.request_timeout_s,
            stage="thematic",
        )
        self.parcels = ParcelResolver(
            self.features,
            address_points=self.config.layer(c.ADDRESS_POINTS),
            parcels=self.config.layer(c.PARCELS),
            search_offset_deg=self.config.parcel_search_offset_deg,
            candidate_limit=self.config.address_candidate_limit,
        )
        self.aggregator = ThematicAggregator(thematic_features, self.config)
        self.nearby_provider = nearby_provider or get_provider(self.config.nearby_provider)

    async def __aenter__(self) -> PropertyReportPipeline:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the HTTP client if this pipeline created it."""
        if self._owns_client:
            await self._client.aclose()

    async def run(self, address_text: str) -> Report:
        """Build the report for *address_text*.

        Raises:
            NoMatchError: If the geocoder finds no match.
            TransportError: If the geocoder is unreachable.
        """
        request_id = str(uuid.uuid4())
        started = time.perf_counter()
        logger.info("Pipeline started | request_id=%s | address=%s", request_id, address_text)

        # Phase 1: geocode
        t0 = time.perf_counter()
        geocode = await self.geocoder.resolve(address_text)
        if not geocode.is_match:
            logger.info("Pipeline aborted | request_id=%s | reason=no_match", request_id)
            raise NoMatchError(address_text, correlation_id=request_id)
        coordinate = geocode.coordinate
        logger.info(
            "Geocoded | request_id=%s | lon=%.6f | lat=%.6f | duration_ms=%d",
            request_id,
            coordinate.lon,
            coordinate.lat,
            _ms(t0),
        )

        # Phase 2: parcel
        t0 = time.perf_counter()
        parcel_events: list[DegradationEvent] = []
        parcel = await self.parcels.resolve(coordinate, address_text, sink=parcel_events)
        logger.info(
            "Parcel phase done | request_id=%s | apn=%s | duration_ms=%d",
            request_id,
            parcel.apn if parcel else None,
            _ms(t0),
        )

        # Phase 3: thematic fan-out
        t0 = time.perf_counter()
        thematic = await self.aggregator.aggregate(coordinate, parcel)
        logger.info(
            "Thematic phase done | request_id=%s | degraded=%d | duration_ms=%d",
            request_id,
            len(thematic.diagnostics),
            _ms(t0),
        )

        # Phase 4: nearby points
        nearby_events: list[DegradationEvent] = []
        nearby = await self._nearby(coordinate, nearby_events)

        # Phase 5: assemble
        report = assemble_report(
            coordinate,
            parcel,
            thematic,
            config=self.config,
            input_address=address_text,
            standardized_address=geocode.standardized_address,
            match_quality=geocode.match_quality.value,
            nearby_points=nearby,
            request_id=request_id,
            diagnostics=[*parcel_events, *nearby_events],
        )
        logger.info(
            "Pipeline completed | request_id=%s | facts=%d | partial=%s | duration_ms=%d",
            request_id,
            len(report.facts),
            report.partial,
            _ms(started),
        )
        return report

    async def _nearby(self, coordinate: Coordinate, sink: list[DegradationEvent]) -> list[NearbyPoint]:
        try:
            return await self.nearby_provider.nearby(coordinate)
        except Exception as exc:
            logger.warning(
                "nearby points omitted | provider=%s | error=%s",
                self.nearby_provider.name,
                exc,
                exc_info=True,
            )
            sink.append(
                DegradationEvent(
                    stage="nearby",
                    source=self.nearby_provider.name or type(self.nearby_provider).__name__,
                    reason=DegradationReason.INTERNAL,
                    detail=str(exc),
                )
            )
            return []


async def build_property_report(address_text: str, config: PipelineConfig | None = None) -> Report:
    """One-shot convenience: build a report with a short-lived pipeline."""
    async with PropertyReportPipeline(config) as pipeline:
        return await pipeline.run(address_text)


def _ms(since: float) -> int:
    return int((time.perf_counter() - since) * 1000)
