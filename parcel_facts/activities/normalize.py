"""Declarative attribute normalization.

Every upstream layer names the same concept differently (``zone_abbr``
vs ``ZONE_CODE``, ``acres`` vs ``lotsize`` in square feet...).  Each
normalised attribute is described by an ordered tuple of
``FieldCandidate(name, transform)``; the first candidate whose field is
present and whose transform yields a value wins.  Supporting a new
source means adding a table row, not a branch.

Transforms return ``None`` for "no usable value here, try the next
candidate" and raise ``MalformedUpstreamSchemaError`` when the field
exists but has the wrong shape.  ``normalize_attributes`` logs the
latter, records a ``DegradationEvent``, and moves on; it never raises.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from parcel_facts.core.constants import SQ_FEET_PER_ACRE
from parcel_facts.core.exceptions import MalformedUpstreamSchemaError
from parcel_facts.models.provenance import DegradationEvent, DegradationReason

logger = logging.getLogger("parcel_facts.activities.normalize")

Transform = Callable[[str, Any], Any]


# ---------------------------------------------------------------------------
# Transforms
# ---------------------------------------------------------------------------


def as_text(name: str, value: Any) -> str | None:
    """Non-empty, stripped string; scalars are stringified (``2.0`` → ``"2"``)."""
    if value is None:
        return None
    if isinstance(value, dict | list | tuple):
        raise MalformedUpstreamSchemaError(name, value, "expected a scalar")
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    text = str(value).strip()
    return text or None


def as_number(name: str, value: Any) -> float | None:
    """Finite float; numeric strings are rejected like the upstream typeof check."""
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int | float):
        raise MalformedUpstreamSchemaError(name, value, "expected a number")
    if math.isnan(value) or math.isinf(value):
        raise MalformedUpstreamSchemaError(name, value, "expected a finite number")
    return float(value)


def as_positive_int(name: str, value: Any) -> int | None:
    """Positive integer (``0`` is the upstream "unknown" sentinel)."""
    number = as_number(name, value)
    if number is None or number <= 0:
        return None
    return int(number)


def sqft_to_acres(name: str, value: Any) -> float | None:
    number = as_number(name, value)
    if number is None:
        return None
    return number / SQ_FEET_PER_ACRE


# ---------------------------------------------------------------------------
# Tables
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class FieldCandidate:
    """One upstream field that can supply a normalised attribute."""

    name: str
    transform: Transform = as_text


FieldTable = Mapping[str, tuple[FieldCandidate, ...]]


def _text(*names: str) -> tuple[FieldCandidate, ...]:
    return tuple(FieldCandidate(n) for n in names)


ADDRESS_POINT_FIELDS: FieldTable = {
    "apn": _text("apn", "APN"),
    "address": _text("fulladdress", "FULLADDRESS"),
    "lon": (FieldCandidate("long", as_number), FieldCandidate("LONG", as_number)),
    "lat": (FieldCandidate("lat", as_number), FieldCandidate("LAT", as_number)),
}

PARCEL_FIELDS: FieldTable = {
    "apn": _text("parcelid", "APN", "PARCEL_NUM"),
    "site_address": _text("p_address"),
    "acreage": (
        FieldCandidate("acres", as_number),
        FieldCandidate("lotsize", sqft_to_acres),
        FieldCandidate("gis_acre", as_number),
    ),
    "sqft": (FieldCandidate("lotsize", as_number),),
    "use_code": _text("usecode"),
    "use_description": _text("use_desc"),
    "year_built": (FieldCandidate("yrbuilt", as_positive_int),),
    "zoning": _text("zone1"),
    "school_district": _text("d_school"),
    "fire_district": _text("desc_fire"),
    "water_district": _text("desc_water"),
    "tax_area_code": _text("tac"),
    "tax_area_city": _text("tac_city"),
}

ZONING_FIELDS: FieldTable = {
    "code": _text("zone_abbr", "zoning", "ZONE_CODE"),
    "description": _text("zone_name", "zone_desc", "DESCRIPTION"),
}

GENERAL_PLAN_FIELDS: FieldTable = {
    "designation": _text("gplu", "GP_DESIG", "DESIGNATION"),
    "description": _text("gp_desc", "name", "DESCRIPTION"),
}

CITY_FIELDS: FieldTable = {
    "name": _text("name", "NAME"),
}

FLOOD_FIELDS: FieldTable = {
    "zone": _text("FLD_ZONE", "ZONE"),
    "subtype": _text("ZONE_SUBTY"),
}

FIRE_FIELDS: FieldTable = {
    "hazard_class": _text("HAZ_CLASS", "HAZ_CODE", "SRA22_2", "FHSZ"),
}

SUPERVISORIAL_FIELDS: FieldTable = {
    "district": _text("district", "DISTRICT", "id"),
}

SCHOOL_DISTRICT_FIELDS: FieldTable = {
    "name": _text("name", "NAME", "DISTRICT"),
}


# ---------------------------------------------------------------------------
# Evaluation
# ---------------------------------------------------------------------------


def normalize_attributes(
    attributes: Mapping[str, Any],
    table: FieldTable,
    *,
    source: str,
    stage: str = "normalize",
    sink: list[DegradationEvent] | None = None,
) -> dict[str, Any]:
    """Evaluate *table* against *attributes*.

    Args:
        attributes: Raw feature attributes.
        table: Normalised name → ordered candidates.
        source: Layer name used in logs and degradation events.
        stage: Stage stamped on degradation events.
        sink: Optional list receiving one event per malformed field.

    Returns:
        Normalised name → value for every attribute that resolved.
        Unresolved attributes are simply absent.
    """
    resolved: dict[str, Any] = {}
    for key, candidates in table.items():
        for candidate in candidates:
            if candidate.name not in attributes:
                continue
            try:
                value = candidate.transform(candidate.name, attributes[candidate.name])
            except MalformedUpstreamSchemaError as exc:
                logger.warning(
                    "malformed upstream field | source=%s | field=%s | error=%s",
                    source,
                    candidate.name,
                    exc.message,
                )
                if sink is not None:
                    sink.append(
                        DegradationEvent(
                            stage=stage,
                            source=source,
                            reason=DegradationReason.MALFORMED_FIELD,
                            detail=exc.message,
                        )
                    )
                continue
            if value is not None:
                resolved[key] = value
                break
    return resolved
