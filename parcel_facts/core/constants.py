"""Shared pipeline constants — single source of truth.

Default endpoint URLs, logical layer names, source titles, and unit
conversions used across the clients, activities, and orchestrator.
Endpoint URLs are only defaults: the pipeline resolves every layer
through ``PipelineConfig.layers`` so tests and deployments can
substitute their own services.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Geocoder
# ---------------------------------------------------------------------------

DEFAULT_GEOCODER_URL: str = (
    "https://geocoding.geo.census.gov/geocoder/locations/onelineaddress"
)
"""US Census one-line address geocoder."""

DEFAULT_GEOCODER_BENCHMARK: str = "Public_AR_Current"

# ---------------------------------------------------------------------------
# Feature services
# ---------------------------------------------------------------------------

SOLANO_GIS_BASE: str = "https://services2.arcgis.com/SCn6czzcqKAFwdGU/ArcGIS/rest/services"

FEMA_FLOOD_URL: str = "https://hazards.fema.gov/arcgis/rest/services/public/NFHL/MapServer/28"

CALFIRE_FHSZ_BASE: str = (
    "https://services.gis.ca.gov/arcgis/rest/services/Environment/Fire_Severity_Zones/MapServer"
)

DEFAULT_COUNTY_NAME: str = "Solano County"

# Logical layer names (keys of ``PipelineConfig.layers``)
ADDRESS_POINTS = "address_points"
PARCELS = "parcels"
ZONING = "zoning"
GENERAL_PLAN = "general_plan"
CITIES = "cities"
SUPERVISORIAL_DISTRICTS = "supervisorial_districts"
SCHOOL_DISTRICTS = "school_districts"
FLOOD_HAZARD = "flood_hazard"
FIRE_HAZARD_SRA = "fire_hazard_sra"
FIRE_HAZARD_LRA = "fire_hazard_lra"

REQUIRED_LAYERS: tuple[str, ...] = (
    ADDRESS_POINTS,
    PARCELS,
    ZONING,
    GENERAL_PLAN,
    CITIES,
    SUPERVISORIAL_DISTRICTS,
    SCHOOL_DISTRICTS,
    FLOOD_HAZARD,
    FIRE_HAZARD_SRA,
    FIRE_HAZARD_LRA,
)

PARCELS_SOURCE_TITLE: str = "Solano County Parcels"
FIRE_HAZARD_SOURCE_TITLE: str = "CAL FIRE Fire Hazard Severity Zones"

# ---------------------------------------------------------------------------
# Defaults and unit conversions
# ---------------------------------------------------------------------------

DEFAULT_REQUEST_TIMEOUT_S: float = 15.0
DEFAULT_BUFFER_FT: float = 500.0
DEFAULT_MAP_BOUNDS_OFFSET_DEG: float = 0.005  # roughly 500 m
DEFAULT_PARCEL_SEARCH_OFFSET_DEG: float = 0.001  # roughly 100 m
DEFAULT_ADDRESS_CANDIDATE_LIMIT: int = 10

SQ_FEET_PER_ACRE: float = 43_560.0
METRES_PER_FOOT: float = 0.3048

WGS84: str = "EPSG:4326"
