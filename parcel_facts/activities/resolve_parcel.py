"""Parcel resolution activity.

Resolves a geocoded address to an authoritative parcel in two steps.

Identity (address-point layer), string first:
    1. **Attribute phase** — parse the leading ``<number> <word>`` of the
       address text and query address points whose ``fulladdress``
       starts with that number and street, optionally with a ``W``/``E``/
       ``N``/``S`` directional prefix.  The first of up to ten candidates
       (ordered by address) is canonical.
    2. **Spatial fallback** — when the text does not parse or nothing
       matches, search a ±0.001° envelope around the geocoded coordinate
       and keep the candidate nearest to it in degree space (first one
       wins ties).

Record (parcel layer):
    3. Fetch the parcel by exact match on its identifier field.  If that
       returns nothing (stale APN, schema drift), fall back to a point
       query at the address-point position (or the geocoded coordinate)
       and take the first hit.

No parcel is a valid outcome (``None``), never an error.

Acreage and square footage are reconciled once here: explicit values
always win, and the missing one is derived from the other.
"""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Any

from parcel_facts.activities.normalize import (
    ADDRESS_POINT_FIELDS,
    PARCEL_FIELDS,
    normalize_attributes,
)
from parcel_facts.clients.feature_query import sql_quote
from parcel_facts.core.constants import (
    DEFAULT_ADDRESS_CANDIDATE_LIMIT,
    DEFAULT_PARCEL_SEARCH_OFFSET_DEG,
    SQ_FEET_PER_ACRE,
)
from parcel_facts.models.geo import Coordinate, ModelValidationError
from parcel_facts.models.parcel import ParcelIdentity, ParcelRecord

if TYPE_CHECKING:
    from parcel_facts.clients.feature_query import FeatureQueryClient
    from parcel_facts.core.config import LayerConfig
    from parcel_facts.models.feature import FeatureRecord
    from parcel_facts.models.provenance import DegradationEvent

logger = logging.getLogger("parcel_facts.activities.resolve_parcel")

STAGE = "parcel"

#: Leading house number and first street-name word.
ADDRESS_TOKEN_RE = re.compile(r"^(\d+)\s+([A-Za-z]+)")

DIRECTIONAL_PREFIXES: tuple[str, ...] = ("W", "E", "N", "S")

ADDRESS_POINT_OUT_FIELDS: tuple[str, ...] = ("apn", "fulladdress", "lat", "long")
ADDRESS_FIELD = "fulladdress"
PARCEL_ID_FIELD = "parcelid"

UNKNOWN_APN = "Unknown"


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------


def parse_address_tokens(address_text: str | None) -> tuple[str, str] | None:
    """Return ``(house_number, STREET)`` from the start of *address_text*.

    ``"675 Texas Street, Suite 4700, Fairfield"`` → ``("675", "TEXAS")``.
    Returns ``None`` when the text does not start with a number and a word.
    """
    if not address_text:
        return None
    match = ADDRESS_TOKEN_RE.match(address_text.strip())
    if match is None:
        return None
    return match.group(1), match.group(2).upper()


def build_address_predicate(house_number: str, street: str) -> str:
    """Build the ``where`` clause for the attribute phase.

    Matches ``<n> <STREET>%`` and ``<n> <D> <STREET>%`` for each
    directional prefix ``D``.
    """
    prefixes = [f"{house_number} {street}"]
    prefixes.extend(f"{house_number} {d} {street}" for d in DIRECTIONAL_PREFIXES)
    return " OR ".join(f"{ADDRESS_FIELD} LIKE {sql_quote(p + '%')}" for p in prefixes)


def nearest_candidate(
    candidates: list[tuple[ParcelIdentity, Coordinate]],
    target: Coordinate,
) -> ParcelIdentity | None:
    """Return the identity whose position is nearest *target*.

    Ties keep the earliest candidate.
    """
    best: ParcelIdentity | None = None
    best_dist = float("inf")
    for identity, position in candidates:
        dist = position.distance_deg(target)
        if dist < best_dist:
            best, best_dist = identity, dist
    return best


def build_parcel_record(
    feature: FeatureRecord,
    identity: ParcelIdentity | None,
    *,
    sink: list[DegradationEvent] | None = None,
    source: str = "parcels",
) -> ParcelRecord:
    """Normalise a parcel feature into a ``ParcelRecord``.

    The APN prefers the parcel's own identifier, then the address-point
    APN.  The address prefers the address-point string, then the parcel
    site address.
    """
    attrs = normalize_attributes(feature.attributes, PARCEL_FIELDS, source=source, stage=STAGE, sink=sink)

    apn = attrs.get("apn") or (identity.apn if identity else None) or UNKNOWN_APN
    address = (identity.source_address if identity else None) or attrs.get("site_address")
    acreage, sqft = reconcile_lot_size(attrs.get("acreage"), attrs.get("sqft"))

    return ParcelRecord(
        identity=ParcelIdentity(
            apn=apn,
            source_address=address,
            centroid=identity.centroid if identity else None,
        ),
        acreage=acreage,
        sqft=sqft,
        use_code=attrs.get("use_code"),
        use_description=attrs.get("use_description"),
        year_built=attrs.get("year_built"),
        zoning=attrs.get("zoning"),
        school_district=attrs.get("school_district"),
        fire_district=attrs.get("fire_district"),
        water_district=attrs.get("water_district"),
        tax_area_code=attrs.get("tax_area_code"),
        tax_area_city=attrs.get("tax_area_city"),
        geometry=_parcel_geometry(feature.geometry),
    )


def reconcile_lot_size(
    acreage: float | None,
    sqft: float | None,
) -> tuple[float | None, float | None]:
    """Fill whichever of acreage / square feet is missing from the other.

    Explicit values are never overwritten.
    """
    if acreage is None and sqft is not None:
        acreage = sqft / SQ_FEET_PER_ACRE
    if sqft is None and acreage:
        sqft = float(round(acreage * SQ_FEET_PER_ACRE))
    return acreage, sqft


def _parcel_geometry(geometry: dict[str, Any] | None) -> dict[str, Any]:
    if geometry and geometry.get("type") in ("Polygon", "MultiPolygon"):
        return geometry
    return {"type": "Polygon", "coordinates": []}


# ---------------------------------------------------------------------------
# Resolver
# ---------------------------------------------------------------------------


class ParcelResolver:
    """Resolve parcels through the address-point and parcel layers.

    Args:
        features: Feature-query client.
        address_points: Address-point layer (APN, full address, lat/long).
        parcels: Parcel layer (boundary and assessor attributes).
        search_offset_deg: Half-width of the spatial fallback envelope.
        candidate_limit: Max address points returned by the attribute phase.
    """

    def __init__(
        self,
        features: FeatureQueryClient,
        *,
        address_points: LayerConfig,
        parcels: LayerConfig,
        search_offset_deg: float = DEFAULT_PARCEL_SEARCH_OFFSET_DEG,
        candidate_limit: int = DEFAULT_ADDRESS_CANDIDATE_LIMIT,
    ) -> None:
        self._features = features
        self._address_points = address_points
        self._parcels = parcels
        self._search_offset_deg = search_offset_deg
        self._candidate_limit = candidate_limit

    async def resolve(
        self,
        coordinate: Coordinate,
        address_text: str | None = None,
        *,
        sink: list[DegradationEvent] | None = None,
    ) -> ParcelRecord | None:
        """Resolve the parcel at *coordinate* / *address_text*.

        Returns:
            The parcel record, or ``None`` if no path found one.
        """
        identity = await self.resolve_identity(coordinate, address_text, sink=sink)
        record = await self.fetch_record(identity, coordinate, sink=sink)

        if record is None:
            logger.info(
                "parcel unresolved | address=%s | lon=%.6f | lat=%.6f",
                address_text,
                coordinate.lon,
                coordinate.lat,
            )
        else:
            logger.info(
                "parcel resolved | apn=%s | address=%s | acreage=%s",
                record.apn,
                record.address,
                f"{record.acreage:.3f}" if record.acreage is not None else "n/a",
            )
        return record

    async def resolve_identity(
        self,
        coordinate: Coordinate,
        address_text: str | None = None,
        *,
        sink: list[DegradationEvent] | None = None,
    ) -> ParcelIdentity | None:
        """Find the parcel identity, attribute phase first."""
        identity = await self.match_by_address(address_text, sink=sink)
        if identity is not None:
            logger.debug("parcel identity via address | apn=%s", identity.apn)
            return identity

        identity = await self.match_by_location(coordinate, sink=sink)
        if identity is not None:
            logger.debug("parcel identity via envelope | apn=%s", identity.apn)
        return identity

    async def match_by_address(
        self,
        address_text: str | None,
        *,
        sink: list[DegradationEvent] | None = None,
    ) -> ParcelIdentity | None:
        """Attribute phase.  ``None`` when the text does not parse or nothing matches."""
        tokens = parse_address_tokens(address_text)
        if tokens is None:
            logger.debug("address tokens not parsed | address=%s", address_text)
            return None

        features = await self._features.query_by_attribute(
            self._address_points,
            build_address_predicate(*tokens),
            ADDRESS_POINT_OUT_FIELDS,
            order_by=ADDRESS_FIELD,
            limit=self._candidate_limit,
            sink=sink,
        )
        for feature in features[:1]:
            identity, _ = self._identity_from(feature, sink)
            if identity is not None:
                return identity
        return None

    async def match_by_location(
        self,
        coordinate: Coordinate,
        *,
        sink: list[DegradationEvent] | None = None,
    ) -> ParcelIdentity | None:
        """Spatial fallback: nearest address point inside the search envelope."""
        features = await self._features.query_envelope(
            self._address_points,
            coordinate.envelope(self._search_offset_deg),
            ADDRESS_POINT_OUT_FIELDS,
            sink=sink,
        )
        candidates: list[tuple[ParcelIdentity, Coordinate]] = []
        for feature in features:
            identity, position = self._identity_from(feature, sink)
            if identity is not None and position is not None:
                candidates.append((identity, position))
        return nearest_candidate(candidates, coordinate)

    async def fetch_record(
        self,
        identity: ParcelIdentity | None,
        coordinate: Coordinate,
        *,
        sink: list[DegradationEvent] | None = None,
    ) -> ParcelRecord | None:
        """Fetch the full parcel, by APN first, then by point."""
        feature: FeatureRecord | None = None

        if identity is not None and identity.apn:
            matches = await self._features.query_by_attribute(
                self._parcels,
                f"{PARCEL_ID_FIELD} = {sql_quote(identity.apn)}",
                return_geometry=True,
                sink=sink,
            )
            feature = matches[0] if matches else None
            if feature is None:
                logger.info("parcel APN lookup empty, falling back to point | apn=%s", identity.apn)

        if feature is None:
            at = identity.centroid if identity and identity.centroid else coordinate
            matches = await self._features.query_point(self._parcels, at, sink=sink)
            feature = matches[0] if matches else None

        if feature is None:
            return None
        return build_parcel_record(feature, identity, sink=sink, source=self._parcels.name)

    def _identity_from(
        self,
        feature: FeatureRecord,
        sink: list[DegradationEvent] | None,
    ) -> tuple[ParcelIdentity | None, Coordinate | None]:
        attrs = normalize_attributes(
            feature.attributes,
            ADDRESS_POINT_FIELDS,
            source=self._address_points.name,
            stage=STAGE,
            sink=sink,
        )
        apn = attrs.get("apn")
        if not apn:
            return None, None

        position: Coordinate | None = None
        if "lon" in attrs and "lat" in attrs:
            try:
                position = Coordinate(lon=attrs["lon"], lat=attrs["lat"])
            except ModelValidationError as exc:
                logger.warning("address point position invalid | apn=%s | error=%s", apn, exc)

        identity = ParcelIdentity(apn=apn, source_address=attrs.get("address"), centroid=position)
        return identity, position
