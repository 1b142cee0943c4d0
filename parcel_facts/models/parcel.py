"""Data models for parcel identity and parcel attributes.

``ParcelIdentity`` is what the address-point lookup yields: a stable APN
plus, optionally, the matched address string and the address-point
position.  ``ParcelRecord`` is the full parcel after the attribute fetch,
with acreage and square footage reconciled exactly once at construction
time by ``ParcelResolver``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from parcel_facts.models.geo import Coordinate


@dataclass(frozen=True, slots=True)
class ParcelIdentity:
    """Stable parcel key.

    Attributes:
        apn: Assessor's Parcel Number.
        source_address: Address string of the matched address point.
        centroid: Address-point position, when the record carried one.
    """

    apn: str
    source_address: str | None = None
    centroid: Coordinate | None = None


@dataclass(frozen=True, slots=True)
class ParcelRecord:
    """Parcel attributes and boundary.

    Attributes:
        identity: Parcel key (APN, matched address, centroid).
        acreage: Lot size in acres.
        sqft: Lot size in square feet.
        use_code: Assessor land-use code.
        use_description: Human-readable land-use description.
        year_built: Year the primary structure was built (positive only).
        zoning: Zoning code carried on the parcel record itself.
        school_district: Parcel-embedded school district name.
        fire_district: Parcel-embedded fire district name.
        water_district: Parcel-embedded water district name.
        tax_area_code: Tax rate area code.
        tax_area_city: City named by the tax rate area.
        geometry: GeoJSON ``Polygon`` or ``MultiPolygon``.  An empty
            ``coordinates`` list means the service returned no boundary.
    """

    identity: ParcelIdentity
    acreage: float | None = None
    sqft: float | None = None
    use_code: str | None = None
    use_description: str | None = None
    year_built: int | None = None
    zoning: str | None = None
    school_district: str | None = None
    fire_district: str | None = None
    water_district: str | None = None
    tax_area_code: str | None = None
    tax_area_city: str | None = None
    geometry: dict[str, Any] = field(
        default_factory=lambda: {"type": "Polygon", "coordinates": []}
    )

    @property
    def apn(self) -> str:
        """Shortcut for ``identity.apn``."""
        return self.identity.apn

    @property
    def address(self) -> str | None:
        """Shortcut for ``identity.source_address``."""
        return self.identity.source_address

    @property
    def has_geometry(self) -> bool:
        """Whether the parcel carries a non-empty boundary."""
        return bool(self.geometry.get("coordinates"))
