"""Report assembly activity.

Pure conversion of the resolved parcel and the aggregated thematic data
into the immutable ``Report``:

- one ``Fact`` per available item, in fixed section order (parcel,
  jurisdiction, zoning, general plan, districts, hazards); absent data
  produces no fact
- parcel GeoJSON plus a fixed-radius buffer around the parcel centroid
  (omitted, with a diagnostic, when the geometry is degenerate)
- a fixed degree-offset map envelope around the canonical coordinate
- source titles deduplicated in first-seen fact order

Identical inputs produce an identical report, apart from
``generated_at`` when the caller does not supply one.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from shapely.errors import ShapelyError

from parcel_facts.core import constants as c
from parcel_facts.models.provenance import DegradationEvent, DegradationReason
from parcel_facts.models.report import Fact, FactKind, NearbyPoint, Report
from parcel_facts.models.thematic import DistrictType, HazardType
from parcel_facts.utils.geometry import (
    GeometryError,
    bbox_around,
    compute_buffer,
    compute_centroid,
    is_point,
)

if TYPE_CHECKING:
    from parcel_facts.core.config import PipelineConfig
    from parcel_facts.models.geo import Coordinate
    from parcel_facts.models.parcel import ParcelRecord
    from parcel_facts.models.provenance import DataSource
    from parcel_facts.models.thematic import ThematicResult

logger = logging.getLogger("parcel_facts.activities.assemble_report")

STAGE = "assemble"

DISTRICT_LABELS: dict[DistrictType, str] = {
    DistrictType.SUPERVISORIAL: "Supervisorial District",
    DistrictType.SCHOOL: "School District",
    DistrictType.FIRE: "Fire District",
    DistrictType.WATER: "Water District",
}

HAZARD_LABELS: dict[HazardType, str] = {
    HazardType.FLOOD: "Flood Zone",
    HazardType.FIRE: "Fire Hazard",
}


def assemble_report(
    coordinate: Coordinate,
    parcel: ParcelRecord | None,
    thematic: ThematicResult,
    *,
    config: PipelineConfig,
    input_address: str,
    standardized_address: str = "",
    match_quality: str = "",
    nearby_points: Sequence[NearbyPoint] = (),
    request_id: str = "",
    generated_at: str | None = None,
    diagnostics: Sequence[DegradationEvent] = (),
) -> Report:
    """Build the final ``Report``.

    Args:
        coordinate: Canonical geocoded coordinate.
        parcel: Resolved parcel, or ``None``.
        thematic: Aggregated thematic data.
        config: Supplies the parcel source, buffer radius and map offset.
        input_address: Address text as supplied by the caller.
        standardized_address: Geocoder-normalised address.
        match_quality: Geocoder match tier value.
        nearby_points: Reference points from a ``NearbyPointsProvider``.
        request_id: Correlation id of the pipeline run.
        generated_at: ISO 8601 timestamp; defaults to now (UTC).
        diagnostics: Events recorded before assembly (parcel phase).

    Returns:
        The immutable report.
    """
    parcel_source = config.layer(c.PARCELS).source
    events: list[DegradationEvent] = [*diagnostics, *thematic.diagnostics]

    facts: list[Fact] = []
    if parcel is not None:
        facts.extend(parcel_facts(parcel, parcel_source))
    facts.extend(thematic_facts(thematic))

    parcel_feature: dict[str, Any] | None = None
    buffer_feature: dict[str, Any] | None = None
    if parcel is not None and parcel.has_geometry:
        parcel_feature = {
            "type": "Feature",
            "properties": {"apn": parcel.apn},
            "geometry": parcel.geometry,
        }
        buffer_feature = _buffer_feature(parcel, config.buffer_ft, events)

    report = Report(
        request_id=request_id,
        generated_at=generated_at or datetime.now(UTC).isoformat(),
        input_address=input_address,
        standardized_address=standardized_address,
        match_quality=match_quality,
        canonical_coordinate=coordinate.as_tuple(),
        facts=tuple(facts),
        parcel_geometry=parcel_feature,
        buffer_geometry=buffer_feature,
        buffer_ft=config.buffer_ft,
        map_bounds=bbox_around(coordinate.lon, coordinate.lat, config.map_bounds_offset_deg),
        nearby_points=tuple(nearby_points),
        sources=dedupe_sources(facts),
        diagnostics=tuple(events),
    )
    logger.info(
        "report assembled | request_id=%s | facts=%d | sources=%d | buffer=%s | partial=%s",
        request_id,
        len(report.facts),
        len(report.sources),
        buffer_feature is not None,
        report.partial,
    )
    return report


# ---------------------------------------------------------------------------
# Facts
# ---------------------------------------------------------------------------


def parcel_facts(parcel: ParcelRecord, source: DataSource) -> list[Fact]:
    """APN, parcel area, land use, year built, site address."""
    facts = [Fact(id="apn", kind=FactKind.PARCEL, label="APN", value=parcel.apn, source=source)]

    area = format_parcel_area(parcel.acreage, parcel.sqft)
    if area:
        facts.append(Fact(id="parcel_area", kind=FactKind.PARCEL, label="Parcel Area", value=area, source=source))

    land_use = " - ".join(v for v in (parcel.use_code, parcel.use_description) if v)
    if land_use:
        facts.append(Fact(id="land_use", kind=FactKind.PARCEL, label="Land Use", value=land_use, source=source))

    if parcel.year_built:
        facts.append(
            Fact(
                id="year_built",
                kind=FactKind.PARCEL,
                label="Year Built",
                value=str(parcel.year_built),
                source=source,
            )
        )

    if parcel.address:
        facts.append(
            Fact(id="site_address", kind=FactKind.PARCEL, label="Site Address", value=parcel.address, source=source)
        )
    return facts


def thematic_facts(thematic: ThematicResult) -> list[Fact]:
    """Jurisdiction, zoning, general plan, districts, hazards, in that order."""
    facts: list[Fact] = []

    jurisdiction = thematic.jurisdiction
    if jurisdiction is not None:
        src = jurisdiction.source
        facts.append(Fact(id="county", kind=FactKind.JURISDICTION, label="County", value=jurisdiction.county, source=src))
        if jurisdiction.incorporated and jurisdiction.city:
            facts.append(Fact(id="city", kind=FactKind.JURISDICTION, label="City", value=jurisdiction.city, source=src))
        facts.append(
            Fact(
                id="incorporated",
                kind=FactKind.JURISDICTION,
                label="Incorporated",
                value="Yes" if jurisdiction.incorporated else "No (Unincorporated)",
                source=src,
            )
        )

    if thematic.zoning is not None:
        z = thematic.zoning
        facts.append(
            Fact(
                id="zoning",
                kind=FactKind.ZONING,
                label="Zoning",
                value=_with_description(z.code, z.description),
                source=z.source,
            )
        )

    if thematic.general_plan is not None:
        gp = thematic.general_plan
        facts.append(
            Fact(
                id="general_plan",
                kind=FactKind.GENERAL_PLAN,
                label="General Plan",
                value=_with_description(gp.designation, gp.description),
                source=gp.source,
            )
        )

    for district in thematic.districts:
        facts.append(
            Fact(
                id=f"district_{district.type.value}",
                kind=FactKind.DISTRICT,
                label=DISTRICT_LABELS[district.type],
                value=district.name,
                source=district.source,
            )
        )

    for hazard in thematic.hazards:
        facts.append(
            Fact(
                id=f"hazard_{hazard.type.value}",
                kind=FactKind.HAZARD,
                label=HAZARD_LABELS[hazard.type],
                value=hazard.description,
                severity=hazard.severity,
                source=hazard.source,
            )
        )
    return facts


def format_parcel_area(acreage: float | None, sqft: float | None) -> str | None:
    """``"0.25 acres (10,890 sq ft)"``; ``None`` when neither is known."""
    if acreage is None and sqft is None:
        return None
    if acreage is None:
        return f"{sqft:,.0f} sq ft"
    if sqft is None:
        return f"{acreage:.2f} acres"
    return f"{acreage:.2f} acres ({sqft:,.0f} sq ft)"


def dedupe_sources(facts: Sequence[Fact]) -> tuple[str, ...]:
    """Source titles of *facts*, first occurrence wins."""
    return tuple(dict.fromkeys(f.source.title for f in facts))


def _with_description(code: str, description: str) -> str:
    if description and description != code:
        return f"{code} ({description})"
    return code


# ---------------------------------------------------------------------------
# Geometry
# ---------------------------------------------------------------------------


def _buffer_feature(
    parcel: ParcelRecord,
    radius_ft: float,
    events: list[DegradationEvent],
) -> dict[str, Any] | None:
    if is_point(parcel.geometry):
        return None
    try:
        lon, lat = compute_centroid(parcel.geometry)
        geometry = compute_buffer(lon, lat, radius_ft=radius_ft)
    except (GeometryError, ShapelyError, ValueError) as exc:
        logger.warning("buffer omitted | apn=%s | error=%s", parcel.apn, exc)
        events.append(
            DegradationEvent(
                stage=STAGE,
                source="buffer",
                reason=DegradationReason.GEOMETRY,
                detail=str(exc),
            )
        )
        return None
    return {
        "type": "Feature",
        "properties": {"radius_ft": radius_ft, "centroid": [lon, lat]},
        "geometry": geometry,
    }
