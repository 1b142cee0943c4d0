"""Typed models for thematic (per-layer) query results.

Each thematic query produces at most one of these records; the
aggregator collects them into a ``ThematicResult``.  Absent records
(``None``) mean the source had no data or degraded.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from parcel_facts.models.provenance import DataSource, DegradationEvent


class HazardSeverity(str, enum.Enum):
    """Ordered hazard severity tier: ``none < low < moderate < high < very_high``."""

    NONE = "none"
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"
    VERY_HIGH = "very_high"

    @property
    def rank(self) -> int:
        """Zero-based position in the severity order."""
        return _SEVERITY_ORDER.index(self)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, HazardSeverity):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, HazardSeverity):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, HazardSeverity):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, HazardSeverity):
            return NotImplemented
        return self.rank >= other.rank


_SEVERITY_ORDER: tuple[HazardSeverity, ...] = (
    HazardSeverity.NONE,
    HazardSeverity.LOW,
    HazardSeverity.MODERATE,
    HazardSeverity.HIGH,
    HazardSeverity.VERY_HIGH,
)


class HazardType(str, enum.Enum):
    FLOOD = "flood"
    FIRE = "fire"


class DistrictType(str, enum.Enum):
    SUPERVISORIAL = "supervisorial"
    SCHOOL = "school"
    FIRE = "fire"
    WATER = "water"


@dataclass(frozen=True, slots=True)
class ZoningData:
    code: str
    description: str
    source: DataSource


@dataclass(frozen=True, slots=True)
class GeneralPlanData:
    designation: str
    description: str
    source: DataSource


@dataclass(frozen=True, slots=True)
class JurisdictionData:
    """Incorporation status derived from a city-boundary presence test.

    Attributes:
        county: Configured county name.
        city: City name when incorporated.
        incorporated: ``True`` when a city boundary contains the point.
        source: City-boundary layer provenance.
    """

    county: str
    incorporated: bool
    source: DataSource
    city: str | None = None


@dataclass(frozen=True, slots=True)
class HazardData:
    """Hazard exposure for one hazard type.

    Attributes:
        type: ``flood`` or ``fire``.
        zone: Raw zone / class code (``"X"`` for the implicit minimal
            flood zone, ``"None"`` when outside every fire zone).
        severity: Classified severity tier.
        description: Human-readable description of the zone.
        source: Layer provenance (for fire, the layer that answered).
    """

    type: HazardType
    zone: str
    severity: HazardSeverity
    description: str
    source: DataSource


@dataclass(frozen=True, slots=True)
class DistrictData:
    type: DistrictType
    name: str
    source: DataSource


@dataclass(frozen=True, slots=True)
class ThematicResult:
    """Joined output of every thematic query for one coordinate.

    Attributes:
        zoning: Zoning designation, if any.
        general_plan: General plan designation, if any.
        jurisdiction: Incorporation status, if the city layer answered.
        flood: Flood hazard, if the flood layer answered.
        fire: Fire hazard, if at least one responsibility-area layer answered.
        districts: Merged districts in fixed order (supervisorial, school,
            fire, water), parcel-embedded names taking precedence.
        diagnostics: Degradation events in fixed query order.
    """

    zoning: ZoningData | None = None
    general_plan: GeneralPlanData | None = None
    jurisdiction: JurisdictionData | None = None
    flood: HazardData | None = None
    fire: HazardData | None = None
    districts: tuple[DistrictData, ...] = ()
    diagnostics: tuple[DegradationEvent, ...] = field(default_factory=tuple)

    @property
    def hazards(self) -> tuple[HazardData, ...]:
        """Available hazards in fixed order (flood, fire)."""
        return tuple(h for h in (self.flood, self.fire) if h is not None)

    def district(self, district_type: DistrictType) -> DistrictData | None:
        """Return the district of *district_type*, if present."""
        for district in self.districts:
            if district.type is district_type:
                return district
        return None
