"""Pipeline configuration.

``PipelineConfig`` is built once, validated, and injected into
``PropertyReportPipeline``; every endpoint the pipeline talks to is
resolved through its ``layers`` map, keyed by logical layer name, so
tests can substitute fixture services without touching module globals.

``from_env()`` is a convenience for the surrounding application; the
core never reads the environment on its own.

Fail-fast validation:
    ``PipelineConfig(...)`` and ``from_env()`` raise
    ``ConfigValidationError`` if any numeric value is out of range or a
    required layer is missing.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field

from parcel_facts.core import constants as c
from parcel_facts.core.exceptions import ValidationError
from parcel_facts.models.provenance import DataSource


class ConfigValidationError(ValidationError):
    """Raised when configuration values are out of valid range.

    Attributes:
        key: The configuration key that failed validation.
        value: The invalid value.
        message: Human-readable description of the valid range.
    """

    default_stage = "config"
    default_code = "CONFIG_VALIDATION_FAILED"

    def __init__(self, key: str, value: object, message: str) -> None:
        self.key = key
        self.value = value
        super().__init__(f"Invalid configuration {key}={value!r}: {message}")


@dataclass(frozen=True, slots=True)
class LayerConfig:
    """A single feature-service layer.

    Attributes:
        name: Logical layer name (e.g. ``"zoning"``).
        url: Layer endpoint; queries go to ``{url}/query``.
        title: Source title shown as provenance.
        layer: Upstream layer/service name, when meaningful.
    """

    name: str
    url: str
    title: str
    layer: str | None = None

    @property
    def source(self) -> DataSource:
        """Provenance record for facts derived from this layer."""
        return DataSource(title=self.title, layer=self.layer, url=self.url)


def default_layers() -> dict[str, LayerConfig]:
    """Return the built-in Solano County / FEMA / CAL FIRE layer map."""
    base = c.SOLANO_GIS_BASE
    layers = (
        LayerConfig(
            c.ADDRESS_POINTS,
            f"{base}/Address_Points/FeatureServer/0",
            "Solano County Address Points",
            "Address_Points",
        ),
        LayerConfig(
            c.PARCELS,
            f"{base}/Parcels_Public_Aumentum/FeatureServer/0",
            c.PARCELS_SOURCE_TITLE,
            "Parcels_Public_Aumentum",
        ),
        LayerConfig(
            c.ZONING,
            f"{base}/SolanoCountyZoning_092322/FeatureServer/4",
            "Solano County Zoning",
            "SolanoCountyZoning_092322",
        ),
        LayerConfig(
            c.GENERAL_PLAN,
            f"{base}/SolanoCountyUnincorporated_GeneralPlan2008_updated0923/FeatureServer/0",
            "Solano County General Plan",
            "SolanoCountyUnincorporated_GeneralPlan2008",
        ),
        LayerConfig(
            c.CITIES,
            f"{base}/CityBoundary/FeatureServer/2",
            "Solano County City Boundaries",
            "CityBoundary",
        ),
        LayerConfig(
            c.SUPERVISORIAL_DISTRICTS,
            f"{base}/BOS_District_Boundaries_2021/FeatureServer/0",
            "Solano County Board of Supervisors Districts",
            "BOS_District_Boundaries_2021",
        ),
        LayerConfig(
            c.SCHOOL_DISTRICTS,
            f"{base}/CommunityCollegeDistricts_2022/FeatureServer/0",
            "Community College Districts",
            "CommunityCollegeDistricts_2022",
        ),
        LayerConfig(
            c.FLOOD_HAZARD,
            c.FEMA_FLOOD_URL,
            "FEMA National Flood Hazard Layer",
        ),
        LayerConfig(
            c.FIRE_HAZARD_SRA,
            f"{c.CALFIRE_FHSZ_BASE}/0",
            c.FIRE_HAZARD_SOURCE_TITLE,
            "Fire_Severity_Zones/SRA",
        ),
        LayerConfig(
            c.FIRE_HAZARD_LRA,
            f"{c.CALFIRE_FHSZ_BASE}/1",
            c.FIRE_HAZARD_SOURCE_TITLE,
            "Fire_Severity_Zones/LRA",
        ),
    )
    return {layer.name: layer for layer in layers}


@dataclass(frozen=True, slots=True)
class PipelineConfig:
    """Immutable pipeline configuration.

    Attributes:
        geocoder_url: One-line address geocoder endpoint.
        geocoder_benchmark: Census geocoder benchmark name.
        geocode_timeout_s: Timeout for the geocode call, in seconds.
        request_timeout_s: Per-call timeout for feature-service queries.
        county_name: County reported on the jurisdiction fact.
        buffer_ft: Radius of the buffer around the parcel centroid, in feet.
        map_bounds_offset_deg: Half-width of the map bounding box, in degrees.
        parcel_search_offset_deg: Half-width of the spatial address-point
            search envelope, in degrees.
        address_candidate_limit: Max address points fetched by the
            attribute phase.
        nearby_provider: Registered ``NearbyPointsProvider`` name.
        layers: Feature-service layers keyed by logical name.
    """

    geocoder_url: str = c.DEFAULT_GEOCODER_URL
    geocoder_benchmark: str = c.DEFAULT_GEOCODER_BENCHMARK
    geocode_timeout_s: float = c.DEFAULT_REQUEST_TIMEOUT_S
    request_timeout_s: float = c.DEFAULT_REQUEST_TIMEOUT_S
    county_name: str = c.DEFAULT_COUNTY_NAME
    buffer_ft: float = c.DEFAULT_BUFFER_FT
    map_bounds_offset_deg: float = c.DEFAULT_MAP_BOUNDS_OFFSET_DEG
    parcel_search_offset_deg: float = c.DEFAULT_PARCEL_SEARCH_OFFSET_DEG
    address_candidate_limit: int = c.DEFAULT_ADDRESS_CANDIDATE_LIMIT
    nearby_provider: str = "demo"
    layers: Mapping[str, LayerConfig] = field(default_factory=default_layers)

    def __post_init__(self) -> None:
        _validate(self)

    def layer(self, name: str) -> LayerConfig:
        """Return the layer registered under *name*.

        Raises:
            ConfigValidationError: If the layer is not configured.
        """
        try:
            return self.layers[name]
        except KeyError:
            raise ConfigValidationError(f"layers[{name!r}]", None, "layer is not configured") from None

    @classmethod
    def from_env(cls, *, layers: Mapping[str, LayerConfig] | None = None) -> PipelineConfig:
        """Load and validate configuration from environment variables.

        Args:
            layers: Optional layer map; defaults to ``default_layers()``.

        Raises:
            ConfigValidationError: If a value is out of range or empty.
            ValueError: If a numeric environment variable cannot be
                parsed (e.g. ``BUFFER_FT=abc``).
        """
        return cls(
            geocoder_url=os.getenv("GEOCODER_URL", c.DEFAULT_GEOCODER_URL),
            geocoder_benchmark=os.getenv("GEOCODER_BENCHMARK", c.DEFAULT_GEOCODER_BENCHMARK),
            geocode_timeout_s=float(os.getenv("GEOCODE_TIMEOUT_S", "15")),
            request_timeout_s=float(os.getenv("REQUEST_TIMEOUT_S", "15")),
            county_name=os.getenv("COUNTY_NAME", c.DEFAULT_COUNTY_NAME),
            buffer_ft=float(os.getenv("BUFFER_FT", "500")),
            map_bounds_offset_deg=float(os.getenv("MAP_BOUNDS_OFFSET_DEG", "0.005")),
            parcel_search_offset_deg=float(os.getenv("PARCEL_SEARCH_OFFSET_DEG", "0.001")),
            address_candidate_limit=int(os.getenv("ADDRESS_CANDIDATE_LIMIT", "10")),
            nearby_provider=os.getenv("NEARBY_PROVIDER", "demo"),
            layers=layers if layers is not None else default_layers(),
        )


def _validate(config: PipelineConfig) -> None:
    """Validate configuration ranges.  Raises ``ConfigValidationError``."""
    for key, value in (
        ("GEOCODE_TIMEOUT_S", config.geocode_timeout_s),
        ("REQUEST_TIMEOUT_S", config.request_timeout_s),
        ("BUFFER_FT", config.buffer_ft),
        ("MAP_BOUNDS_OFFSET_DEG", config.map_bounds_offset_deg),
        ("PARCEL_SEARCH_OFFSET_DEG", config.parcel_search_offset_deg),
    ):
        if value <= 0:
            raise ConfigValidationError(key, value, "must be > 0")

    if config.address_candidate_limit < 1:
        raise ConfigValidationError(
            "ADDRESS_CANDIDATE_LIMIT",
            config.address_candidate_limit,
            "must be >= 1",
        )

    if not config.geocoder_url:
        raise ConfigValidationError("GEOCODER_URL", config.geocoder_url, "must not be empty")

    if not config.county_name:
        raise ConfigValidationError("COUNTY_NAME", config.county_name, "must not be empty")

    for name in c.REQUIRED_LAYERS:
        layer = config.layers.get(name)
        if layer is None:
            raise ConfigValidationError(f"layers[{name!r}]", None, "required layer is missing")
        if not layer.url:
            raise ConfigValidationError(f"layers[{name!r}].url", layer.url, "must not be empty")
