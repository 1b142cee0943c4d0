"""Thematic aggregation activity.

Fans out the coordinate-keyed thematic queries concurrently and joins
them into one ``ThematicResult``:

    zoning, general plan, jurisdiction, flood, fire (SRA ∥ LRA),
    supervisorial district, school district

Every query writes into its own slot (``asyncio.gather`` returns results
positionally), so completion order never affects the output.  Each
query collects degradation events in a private sink; a non-empty sink
means "failed" and the fact is absent, while an empty result with no
events is a real "no features" answer.

Hazard classification is a pure function of the zone code.  Flood
codes default to ``low`` and fire codes default to ``moderate``.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from parcel_facts.activities.normalize import (
    CITY_FIELDS,
    FIRE_FIELDS,
    FLOOD_FIELDS,
    GENERAL_PLAN_FIELDS,
    SCHOOL_DISTRICT_FIELDS,
    SUPERVISORIAL_FIELDS,
    ZONING_FIELDS,
    FieldTable,
    normalize_attributes,
)
from parcel_facts.core import constants as c
from parcel_facts.models.provenance import DegradationEvent, DegradationReason
from parcel_facts.models.thematic import (
    DistrictData,
    DistrictType,
    GeneralPlanData,
    HazardData,
    HazardSeverity,
    HazardType,
    JurisdictionData,
    ThematicResult,
    ZoningData,
)

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from parcel_facts.clients.feature_query import FeatureQueryClient
    from parcel_facts.core.config import LayerConfig, PipelineConfig
    from parcel_facts.models.geo import Coordinate
    from parcel_facts.models.parcel import ParcelRecord

logger = logging.getLogger("parcel_facts.activities.aggregate_thematic")

STAGE = "thematic"

UNKNOWN = "Unknown"
UNKNOWN_CITY = "Unknown City"

#: Zone reported when the flood layer answers with no features.
MINIMAL_FLOOD_ZONE = "X"
NO_FIRE_ZONE = "None"
NO_FIRE_ZONE_DESCRIPTION = "Not in a designated fire hazard severity zone"

FLOOD_ZONE_DESCRIPTIONS: dict[str, str] = {
    "A": "1% Annual Chance Flood Hazard (100-year floodplain)",
    "AE": "1% Annual Chance Flood Hazard with Base Flood Elevation",
    "AH": "1% Annual Chance Shallow Flooding (ponding, 1-3 ft)",
    "AO": "1% Annual Chance Shallow Flooding (sheet flow, 1-3 ft)",
    "V": "Coastal High Hazard Area",
    "VE": "Coastal High Hazard Area with Base Flood Elevation",
    "X": "Area of minimal flood hazard",
    "B": "Moderate flood hazard (0.2% annual chance)",
    "C": "Area of minimal flood hazard",
}


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------


def classify_flood_zone(zone: str | None) -> HazardSeverity:
    """Map a FEMA flood zone code to a severity tier (case-insensitive).

    ``A*``/``V*`` → high, ``X``/``C`` → low, ``B``/``X500`` → moderate,
    anything else → low.
    """
    code = (zone or "").strip().upper()
    if code.startswith(("A", "V")):
        return HazardSeverity.HIGH
    if code in ("X", "C"):
        return HazardSeverity.LOW
    if code in ("B", "X500"):
        return HazardSeverity.MODERATE
    return HazardSeverity.LOW


def classify_fire_hazard(hazard_class: str | None) -> HazardSeverity:
    """Map a FHSZ class string or code to a severity tier (case-insensitive).

    Unrecognised codes default to ``moderate``.
    """
    text = (hazard_class or "").strip().lower()
    if "very high" in text or text in ("3", "vhfhsz"):
        return HazardSeverity.VERY_HIGH
    if "high" in text or text in ("2", "hfhsz"):
        return HazardSeverity.HIGH
    if "moderate" in text or text in ("1", "mfhsz"):
        return HazardSeverity.MODERATE
    return HazardSeverity.MODERATE


def flood_zone_description(zone: str, subtype: str | None = None) -> str:
    """Human-readable description; the upstream subtype wins when present."""
    if subtype:
        return subtype
    return FLOOD_ZONE_DESCRIPTIONS.get(zone.upper(), f"Flood Zone {zone}")


# ---------------------------------------------------------------------------
# Aggregator
# ---------------------------------------------------------------------------


class ThematicAggregator:
    """Run every thematic query for one coordinate.

    Args:
        features: Feature-query client shared by all queries.
        config: Pipeline configuration (layers and county name).
    """

    def __init__(self, features: FeatureQueryClient, config: PipelineConfig) -> None:
        self._features = features
        self._config = config

    async def aggregate(
        self,
        coordinate: Coordinate,
        parcel: ParcelRecord | None = None,
    ) -> ThematicResult:
        """Query all thematic layers concurrently and merge the results."""
        slots: tuple[tuple[str, Callable[[list[DegradationEvent]], Awaitable[Any]]], ...] = (
            ("zoning", lambda s: self.zoning(coordinate, s)),
            ("general_plan", lambda s: self.general_plan(coordinate, s)),
            ("jurisdiction", lambda s: self.jurisdiction(coordinate, s)),
            ("flood", lambda s: self.flood(coordinate, s)),
            ("fire", lambda s: self.fire(coordinate, s)),
            ("supervisorial", lambda s: self.supervisorial_district(coordinate, s)),
            ("school", lambda s: self.school_district(coordinate, s)),
        )
        sinks: list[list[DegradationEvent]] = [[] for _ in slots]

        outcomes = await asyncio.gather(
            *(run(sink) for (_, run), sink in zip(slots, sinks, strict=True)),
            return_exceptions=True,
        )

        values: dict[str, Any] = {}
        for (name, _), sink, outcome in zip(slots, sinks, outcomes, strict=True):
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                logger.error(
                    "thematic query crashed | slot=%s | error=%s",
                    name,
                    outcome,
                    exc_info=outcome,
                )
                sink.append(
                    DegradationEvent(
                        stage=STAGE,
                        source=name,
                        reason=DegradationReason.INTERNAL,
                        detail=f"{type(outcome).__name__}: {outcome}",
                    )
                )
                values[name] = None
            else:
                values[name] = outcome

        result = ThematicResult(
            zoning=values["zoning"],
            general_plan=values["general_plan"],
            jurisdiction=values["jurisdiction"],
            flood=values["flood"],
            fire=values["fire"],
            districts=merge_districts(
                parcel,
                values["supervisorial"],
                values["school"],
                self._config.layer(c.PARCELS),
            ),
            diagnostics=tuple(event for sink in sinks for event in sink),
        )
        logger.info(
            "thematic aggregated | lon=%.6f | lat=%.6f | hazards=%d | districts=%d | degraded=%d",
            coordinate.lon,
            coordinate.lat,
            len(result.hazards),
            len(result.districts),
            len(result.diagnostics),
        )
        return result

    # ------------------------------------------------------------------
    # Individual queries
    # ------------------------------------------------------------------

    async def zoning(self, coordinate: Coordinate, sink: list[DegradationEvent]) -> ZoningData | None:
        layer = self._config.layer(c.ZONING)
        attrs = await self._first(layer, coordinate, ZONING_FIELDS, sink)
        if attrs is None:
            return None
        return ZoningData(
            code=attrs.get("code", UNKNOWN),
            description=attrs.get("description", ""),
            source=layer.source,
        )

    async def general_plan(
        self,
        coordinate: Coordinate,
        sink: list[DegradationEvent],
    ) -> GeneralPlanData | None:
        layer = self._config.layer(c.GENERAL_PLAN)
        attrs = await self._first(layer, coordinate, GENERAL_PLAN_FIELDS, sink)
        if attrs is None:
            return None
        return GeneralPlanData(
            designation=attrs.get("designation", UNKNOWN),
            description=attrs.get("description", ""),
            source=layer.source,
        )

    async def jurisdiction(
        self,
        coordinate: Coordinate,
        sink: list[DegradationEvent],
    ) -> JurisdictionData | None:
        """Presence test: a city feature means incorporated."""
        layer = self._config.layer(c.CITIES)
        features = await self._features.query_point(layer, coordinate, return_geometry=False, sink=sink)
        if sink:
            return None
        if not features:
            return JurisdictionData(county=self._config.county_name, incorporated=False, source=layer.source)
        attrs = normalize_attributes(features[0].attributes, CITY_FIELDS, source=layer.name, stage=STAGE, sink=sink)
        return JurisdictionData(
            county=self._config.county_name,
            incorporated=True,
            city=attrs.get("name", UNKNOWN_CITY),
            source=layer.source,
        )

    async def flood(self, coordinate: Coordinate, sink: list[DegradationEvent]) -> HazardData | None:
        """Flood hazard.

        No feature means Zone X, which is still a fact.  A feature without
        a usable zone code is reported as ``Unknown``, never as Zone X.
        """
        layer = self._config.layer(c.FLOOD_HAZARD)
        features = await self._features.query_point(layer, coordinate, return_geometry=False, sink=sink)
        if sink:
            return None

        zone, subtype = MINIMAL_FLOOD_ZONE, None
        if features:
            attrs = normalize_attributes(
                features[0].attributes, FLOOD_FIELDS, source=layer.name, stage=STAGE, sink=sink
            )
            code = attrs.get("zone")
            zone = code.upper() if code else UNKNOWN
            subtype = attrs.get("subtype")

        return HazardData(
            type=HazardType.FLOOD,
            zone=zone,
            severity=classify_flood_zone(zone),
            description=flood_zone_description(zone, subtype),
            source=layer.source,
        )

    async def fire(self, coordinate: Coordinate, sink: list[DegradationEvent]) -> HazardData | None:
        """Fire hazard from the state and local responsibility-area layers.

        Both layers are queried in parallel; the state layer wins when both
        answer.  Outside both zones the result is severity ``none`` unless a
        layer failed, in which case the fact is absent.
        """
        sra = self._config.layer(c.FIRE_HAZARD_SRA)
        lra = self._config.layer(c.FIRE_HAZARD_LRA)
        sra_sink: list[DegradationEvent] = []
        lra_sink: list[DegradationEvent] = []

        sra_features, lra_features = await asyncio.gather(
            self._features.query_point(sra, coordinate, return_geometry=False, sink=sra_sink),
            self._features.query_point(lra, coordinate, return_geometry=False, sink=lra_sink),
        )
        sink.extend(sra_sink)
        sink.extend(lra_sink)

        for layer, features in ((sra, sra_features), (lra, lra_features)):
            if not features:
                continue
            attrs = normalize_attributes(
                features[0].attributes, FIRE_FIELDS, source=layer.name, stage=STAGE, sink=sink
            )
            hazard_class = attrs.get("hazard_class", "")
            severity = classify_fire_hazard(hazard_class)
            label = hazard_class or severity.value.replace("_", " ").title()
            return HazardData(
                type=HazardType.FIRE,
                zone=hazard_class or UNKNOWN,
                severity=severity,
                description=f"Fire Hazard Severity: {label}",
                source=layer.source,
            )

        if sra_sink or lra_sink:
            return None
        return HazardData(
            type=HazardType.FIRE,
            zone=NO_FIRE_ZONE,
            severity=HazardSeverity.NONE,
            description=NO_FIRE_ZONE_DESCRIPTION,
            source=sra.source,
        )

    async def supervisorial_district(
        self,
        coordinate: Coordinate,
        sink: list[DegradationEvent],
    ) -> DistrictData | None:
        layer = self._config.layer(c.SUPERVISORIAL_DISTRICTS)
        attrs = await self._first(layer, coordinate, SUPERVISORIAL_FIELDS, sink)
        if not attrs or "district" not in attrs:
            return None
        return DistrictData(
            type=DistrictType.SUPERVISORIAL,
            name=f"District {attrs['district']}",
            source=layer.source,
        )

    async def school_district(
        self,
        coordinate: Coordinate,
        sink: list[DegradationEvent],
    ) -> DistrictData | None:
        layer = self._config.layer(c.SCHOOL_DISTRICTS)
        attrs = await self._first(layer, coordinate, SCHOOL_DISTRICT_FIELDS, sink)
        if not attrs or "name" not in attrs:
            return None
        return DistrictData(type=DistrictType.SCHOOL, name=attrs["name"], source=layer.source)

    async def _first(
        self,
        layer: LayerConfig,
        coordinate: Coordinate,
        table: FieldTable,
        sink: list[DegradationEvent],
    ) -> dict[str, Any] | None:
        """Normalised attributes of the first feature at *coordinate*, or ``None``."""
        features = await self._features.query_point(layer, coordinate, return_geometry=False, sink=sink)
        if not features:
            return None
        return normalize_attributes(features[0].attributes, table, source=layer.name, stage=STAGE, sink=sink)


# ---------------------------------------------------------------------------
# District merge
# ---------------------------------------------------------------------------


def merge_districts(
    parcel: ParcelRecord | None,
    supervisorial: DistrictData | None,
    school: DistrictData | None,
    parcels_layer: LayerConfig,
) -> tuple[DistrictData, ...]:
    """Merge spatial and parcel-embedded districts.

    Order is fixed: supervisorial, school, fire, water.  Parcel-embedded
    school, fire and water names take precedence over spatial results.
    """
    embedded: dict[DistrictType, str | None] = {}
    if parcel is not None:
        embedded = {
            DistrictType.SCHOOL: parcel.school_district,
            DistrictType.FIRE: parcel.fire_district,
            DistrictType.WATER: parcel.water_district,
        }

    def from_parcel(district_type: DistrictType) -> DistrictData | None:
        name = (embedded.get(district_type) or "").strip()
        if not name:
            return None
        return DistrictData(type=district_type, name=name, source=parcels_layer.source)

    merged = (
        supervisorial,
        from_parcel(DistrictType.SCHOOL) or school,
        from_parcel(DistrictType.FIRE),
        from_parcel(DistrictType.WATER),
    )
    return tuple(d for d in merged if d is not None)
