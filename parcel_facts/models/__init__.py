"""Domain models.

- geo: Coordinate, GeocodeResult, MatchQuality
- feature: FeatureRecord (raw feature-service record)
- parcel: ParcelIdentity, ParcelRecord
- thematic: HazardSeverity and per-layer thematic records
- provenance: DataSource, DegradationEvent
- report: Fact, NearbyPoint, Report
"""

from parcel_facts.models.feature import FeatureRecord
from parcel_facts.models.geo import (
    AddressComponents,
    Coordinate,
    GeocodeResult,
    MatchQuality,
    ModelValidationError,
)
from parcel_facts.models.parcel import ParcelIdentity, ParcelRecord
from parcel_facts.models.provenance import DataSource, DegradationEvent, DegradationReason
from parcel_facts.models.report import Fact, FactKind, NearbyCategory, NearbyPoint, Report
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

__all__ = [
    "AddressComponents",
    "Coordinate",
    "DataSource",
    "DegradationEvent",
    "DegradationReason",
    "DistrictData",
    "DistrictType",
    "Fact",
    "FactKind",
    "FeatureRecord",
    "GeneralPlanData",
    "GeocodeResult",
    "HazardData",
    "HazardSeverity",
    "HazardType",
    "JurisdictionData",
    "MatchQuality",
    "ModelValidationError",
    "NearbyCategory",
    "NearbyPoint",
    "ParcelIdentity",
    "ParcelRecord",
    "Report",
    "ThematicResult",
    "ZoningData",
]
