"""Typed models for coordinates and geocoder results.

- ``Coordinate``: A WGS 84 ``(lon, lat)`` pair with range validation.
- ``MatchQuality``: Geocoder match tier.
- ``AddressComponents``: Parsed parts of the matched address.
- ``GeocodeResult``: Canonical geocoder output.

Design notes:
- All models are frozen dataclasses; a geocode result is never mutated
  after construction.
- A ``no_match`` result carries ``lat == lon == 0`` and refuses to hand
  out a ``Coordinate`` so spatial queries cannot be issued from it.
"""

from __future__ import annotations

import enum
import math
from dataclasses import dataclass

from parcel_facts.core.exceptions import NoMatchError, ValidationError

# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class ModelValidationError(ValueError, ValidationError):
    """Raised when a domain model is constructed with invalid field values.

    Attributes:
        model: Name of the model class that failed validation.
        field_name: The field that violated the invariant.
        value: The invalid value.
    """

    default_stage = "model_validation"
    default_code = "MODEL_VALIDATION_FAILED"

    def __init__(self, model: str, field_name: str, value: object, message: str) -> None:
        self.model = model
        self.field_name = field_name
        self.value = value
        formatted = f"{model}.{field_name}={value!r}: {message}"
        ValidationError.__init__(self, formatted)


def _check_degrees(model: str, field_name: str, value: float, limit: float) -> None:
    if not isinstance(value, int | float) or isinstance(value, bool):
        raise ModelValidationError(model, field_name, value, "must be a number")
    if math.isnan(value) or math.isinf(value):
        raise ModelValidationError(model, field_name, value, "must be finite")
    if not -limit <= value <= limit:
        raise ModelValidationError(model, field_name, value, f"must be in [-{limit}, {limit}]")


# ---------------------------------------------------------------------------
# Coordinate
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Coordinate:
    """A WGS 84 position in decimal degrees.

    Attributes:
        lon: Longitude in ``[-180, 180]``.
        lat: Latitude in ``[-90, 90]``.
    """

    lon: float
    lat: float

    def __post_init__(self) -> None:
        _check_degrees("Coordinate", "lon", self.lon, 180.0)
        _check_degrees("Coordinate", "lat", self.lat, 90.0)

    def as_tuple(self) -> tuple[float, float]:
        """Return ``(lon, lat)``."""
        return (self.lon, self.lat)

    def distance_deg(self, other: Coordinate) -> float:
        """Euclidean distance in degree space (ranking only, not a real distance)."""
        return math.hypot(self.lon - other.lon, self.lat - other.lat)

    def envelope(self, offset_deg: float) -> tuple[float, float, float, float]:
        """Return ``(xmin, ymin, xmax, ymax)`` offset by *offset_deg* on each side."""
        return (
            self.lon - offset_deg,
            self.lat - offset_deg,
            self.lon + offset_deg,
            self.lat + offset_deg,
        )


# ---------------------------------------------------------------------------
# Geocoding
# ---------------------------------------------------------------------------


class MatchQuality(enum.Enum):
    """Geocoder match tier.

    Values:
        EXACT:        Rooftop / address-range exact match.
        INTERPOLATED: Position interpolated along a street segment.
        APPROXIMATE:  Centroid of a larger area (ZIP, place).
        NO_MATCH:     Nothing found; coordinates are meaningless.
    """

    EXACT = "exact"
    INTERPOLATED = "interpolated"
    APPROXIMATE = "approximate"
    NO_MATCH = "no_match"


@dataclass(frozen=True, slots=True)
class AddressComponents:
    """Parsed parts of a geocoder-matched address."""

    street: str = ""
    city: str = ""
    state: str = ""
    zip: str = ""


@dataclass(frozen=True, slots=True)
class GeocodeResult:
    """Canonical result of resolving a free-text address.

    Attributes:
        lat: Latitude in degrees (``0`` when unmatched).
        lon: Longitude in degrees (``0`` when unmatched).
        standardized_address: Geocoder-normalised address, or the input
            text when unmatched.
        match_quality: Match tier.
        components: Parsed address parts, when the geocoder supplies them.
    """

    lat: float
    lon: float
    standardized_address: str
    match_quality: MatchQuality
    components: AddressComponents | None = None

    def __post_init__(self) -> None:
        if self.match_quality is MatchQuality.NO_MATCH:
            if self.lat != 0 or self.lon != 0:
                raise ModelValidationError(
                    "GeocodeResult",
                    "match_quality",
                    self.match_quality.value,
                    "no_match requires lat == lon == 0",
                )
            return
        _check_degrees("GeocodeResult", "lon", self.lon, 180.0)
        _check_degrees("GeocodeResult", "lat", self.lat, 90.0)

    @classmethod
    def no_match(cls, address: str) -> GeocodeResult:
        """Build the sentinel result for an unresolved address."""
        return cls(
            lat=0.0,
            lon=0.0,
            standardized_address=address,
            match_quality=MatchQuality.NO_MATCH,
        )

    @property
    def is_match(self) -> bool:
        """Whether the geocoder returned a usable position."""
        return self.match_quality is not MatchQuality.NO_MATCH

    @property
    def coordinate(self) -> Coordinate:
        """Return the matched position.

        Raises:
            NoMatchError: If the result is ``no_match``.
        """
        if not self.is_match:
            raise NoMatchError(self.standardized_address)
        return Coordinate(lon=self.lon, lat=self.lat)
