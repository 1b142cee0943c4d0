"""Pydantic report model — the final property fact sheet.

The ``Report`` is the only artefact the pipeline hands to the
presentation layer.  It is frozen: every list is a tuple and no field
can be reassigned after ``assemble_report`` builds it.

Structure:
- **facts**: ordered user-facing facts, each with a ``DataSource``
- **geometry**: subject parcel, fixed-radius buffer, map bounds
- **nearby_points**: reference points from a ``NearbyPointsProvider``
- **copy**: title, disclaimer, deduplicated source titles
- **diagnostics**: one ``DegradationEvent`` per degraded field
"""

from __future__ import annotations

import enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from parcel_facts.models.provenance import DataSource, DegradationEvent
from parcel_facts.models.thematic import HazardSeverity

SCHEMA_VERSION = "property-report-v1"

REPORT_TITLE = "Address Snapshot"
REPORT_DISCLAIMER = (
    "This document is for informational purposes only. Verify all "
    "information with authoritative sources before making decisions."
)


class FactKind(str, enum.Enum):
    """Fact category; also the fixed section order of ``Report.facts``."""

    PARCEL = "parcel"
    JURISDICTION = "jurisdiction"
    ZONING = "zoning"
    GENERAL_PLAN = "general_plan"
    DISTRICT = "district"
    HAZARD = "hazard"


class Fact(BaseModel):
    """One user-facing fact.

    Attributes:
        id: Stable identifier (``"apn"``, ``"zoning"``, ``"hazard_flood"``...).
        kind: Category used for ordering.
        label: Display label.
        value: Authoritative display value.
        severity: Hazard severity, for hazard facts only.
        source: Provenance.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    kind: FactKind
    label: str
    value: str
    severity: HazardSeverity | None = None
    source: DataSource


class NearbyCategory(str, enum.Enum):
    SCHOOL = "school"
    PARK = "park"
    TRANSIT = "transit"
    FIRE_STATION = "fire_station"
    HOSPITAL = "hospital"
    OTHER = "other"


class NearbyPoint(BaseModel):
    """A reference point near the subject property.

    Attributes:
        label: Display label.
        category: Point category.
        distance_mi: Distance from the subject in miles.
        point: ``(lon, lat)`` position.
    """

    model_config = ConfigDict(frozen=True)

    label: str
    category: NearbyCategory
    distance_mi: float
    point: tuple[float, float]


class Report(BaseModel):
    """Immutable property fact sheet.

    Attributes:
        schema_version: Schema identifier for forward compatibility.
        request_id: Correlation identifier of the pipeline run.
        generated_at: Build timestamp (ISO 8601, UTC).
        input_address: Address text as supplied by the caller.
        standardized_address: Geocoder-normalised address.
        match_quality: Geocoder match tier.
        canonical_coordinate: Geocoded ``(lon, lat)``.
        facts: Ordered facts (parcel, jurisdiction, zoning, general plan,
            districts, hazards).
        parcel_geometry: GeoJSON Feature of the subject parcel.
        buffer_geometry: GeoJSON Feature of the fixed-radius buffer around
            the parcel centroid.
        buffer_ft: Buffer radius in feet.
        map_bounds: ``(min_lon, min_lat, max_lon, max_lat)`` around the
            canonical coordinate.
        nearby_points: Reference points.
        title: Document title.
        disclaimer: Standard disclaimer text.
        sources: Source titles, deduplicated, in first-seen fact order.
        diagnostics: Degradation events, in pipeline order.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    schema_version: str = Field(default=SCHEMA_VERSION, alias="$schema")
    request_id: str = ""
    generated_at: str
    input_address: str
    standardized_address: str = ""
    match_quality: str = ""
    canonical_coordinate: tuple[float, float]
    facts: tuple[Fact, ...] = ()
    parcel_geometry: dict[str, Any] | None = None
    buffer_geometry: dict[str, Any] | None = None
    buffer_ft: float = 0.0
    map_bounds: tuple[float, float, float, float]
    nearby_points: tuple[NearbyPoint, ...] = ()
    title: str = REPORT_TITLE
    disclaimer: str = REPORT_DISCLAIMER
    sources: tuple[str, ...] = ()
    diagnostics: tuple[DegradationEvent, ...] = ()

    @property
    def partial(self) -> bool:
        """Whether any field degraded while building this report."""
        return bool(self.diagnostics)

    @property
    def fact_ids(self) -> list[str]:
        return [f.id for f in self.facts]

    def fact(self, fact_id: str) -> Fact | None:
        """Return the fact with *fact_id*, if present."""
        for item in self.facts:
            if item.id == fact_id:
                return item
        return None

    def to_json(self, *, indent: int = 2) -> str:
        """Serialise to a JSON string using the ``$schema`` alias."""
        return self.model_dump_json(indent=indent, by_alias=True)

    def to_dict(self) -> dict[str, object]:
        """Serialise to a plain JSON-compatible dict."""
        return self.model_dump(mode="json", by_alias=True)  # type: ignore[return-value]
