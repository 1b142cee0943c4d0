"""Tests for report assembly.

Covers:
- Fact order and values (parcel, jurisdiction, zoning, general plan,
  districts, hazards); absent data produces no fact
- Parcel GeoJSON and the metric buffer around the parcel centroid
- Degenerate geometry omits the buffer with a diagnostic
- Map bounds independent of parcel extent
- Source deduplication in first-seen order
- Determinism for identical inputs
"""

from __future__ import annotations

import pytest
from shapely.geometry import Point, shape

from parcel_facts.activities.assemble_report import (
    assemble_report,
    dedupe_sources,
    format_parcel_area,
)
from parcel_facts.core import constants as c
from parcel_facts.core.config import PipelineConfig
from parcel_facts.models.geo import Coordinate
from parcel_facts.models.parcel import ParcelIdentity, ParcelRecord
from parcel_facts.models.provenance import DataSource, DegradationEvent, DegradationReason
from parcel_facts.models.report import Fact, FactKind, NearbyCategory, NearbyPoint
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
from tests.fake_gis import SUBJECT_APN, SUBJECT_RING

GENERATED_AT = "2026-10-19T00:00:00+00:00"

CITY = DataSource(title="Solano County City Boundaries")
ZONING = DataSource(title="Solano County Zoning")
GP = DataSource(title="Solano County General Plan")
BOS = DataSource(title="Solano County Board of Supervisors Districts")
FEMA = DataSource(title="FEMA National Flood Hazard Layer")
FIRE = DataSource(title="CAL FIRE Fire Hazard Severity Zones", url="https://fire.test/0")


def _parcel(**overrides: object) -> ParcelRecord:
    fields: dict[str, object] = {
        "identity": ParcelIdentity(apn=SUBJECT_APN, source_address="675 TEXAS ST"),
        "acreage": 0.25,
        "sqft": 10890.0,
        "use_code": "7100",
        "use_description": "Government Office",
        "year_built": 1970,
        "geometry": {"type": "Polygon", "coordinates": [SUBJECT_RING]},
    }
    fields.update(overrides)
    return ParcelRecord(**fields)  # type: ignore[arg-type]


def _thematic(**overrides: object) -> ThematicResult:
    fields: dict[str, object] = {
        "zoning": ZoningData("DC", "Downtown Commercial", ZONING),
        "general_plan": GeneralPlanData("CC", "Community Commercial", GP),
        "jurisdiction": JurisdictionData(county="Solano County", incorporated=True, source=CITY, city="Fairfield"),
        "flood": HazardData(HazardType.FLOOD, "X", HazardSeverity.LOW, "Area of minimal flood hazard", FEMA),
        "fire": HazardData(HazardType.FIRE, "None", HazardSeverity.NONE, "Not in a zone", FIRE),
        "districts": (DistrictData(DistrictType.SUPERVISORIAL, "District 2", BOS),),
    }
    fields.update(overrides)
    return ThematicResult(**fields)  # type: ignore[arg-type]


def _assemble(subject: Coordinate, parcel: ParcelRecord | None, thematic: ThematicResult, **kwargs: object):
    kwargs.setdefault("config", PipelineConfig())
    kwargs.setdefault("input_address", "675 Texas St")
    kwargs.setdefault("generated_at", GENERATED_AT)
    return assemble_report(subject, parcel, thematic, **kwargs)  # type: ignore[arg-type]


class TestFacts:
    def test_fixed_order(self, subject: Coordinate) -> None:
        report = _assemble(subject, _parcel(), _thematic())

        assert report.fact_ids == [
            "apn",
            "parcel_area",
            "land_use",
            "year_built",
            "site_address",
            "county",
            "city",
            "incorporated",
            "zoning",
            "general_plan",
            "district_supervisorial",
            "hazard_flood",
            "hazard_fire",
        ]
        kinds = [f.kind for f in report.facts]
        assert kinds == sorted(kinds, key=list(FactKind).index)

    def test_values(self, subject: Coordinate) -> None:
        report = _assemble(subject, _parcel(), _thematic())

        values = {f.id: f.value for f in report.facts}
        assert values["apn"] == SUBJECT_APN
        assert values["parcel_area"] == "0.25 acres (10,890 sq ft)"
        assert values["land_use"] == "7100 - Government Office"
        assert values["year_built"] == "1970"
        assert values["site_address"] == "675 TEXAS ST"
        assert values["county"] == "Solano County"
        assert values["city"] == "Fairfield"
        assert values["incorporated"] == "Yes"
        assert values["zoning"] == "DC (Downtown Commercial)"
        assert values["general_plan"] == "CC (Community Commercial)"
        assert values["district_supervisorial"] == "District 2"
        assert values["hazard_flood"] == "Area of minimal flood hazard"

    def test_hazard_severity_and_source(self, subject: Coordinate) -> None:
        report = _assemble(subject, _parcel(), _thematic())

        fire = report.fact("hazard_fire")
        assert fire is not None
        assert fire.severity is HazardSeverity.NONE
        assert fire.source.url == "https://fire.test/0"
        assert fire.label == "Fire Hazard"

    def test_parcel_facts_use_parcel_source(self, subject: Coordinate) -> None:
        report = _assemble(subject, _parcel(), _thematic())
        apn = report.fact("apn")
        assert apn is not None
        assert apn.source.title == c.PARCELS_SOURCE_TITLE

    def test_unincorporated(self, subject: Coordinate) -> None:
        thematic = _thematic(jurisdiction=JurisdictionData(county="Solano County", incorporated=False, source=CITY))

        report = _assemble(subject, None, thematic)

        assert report.fact("city") is None
        incorporated = report.fact("incorporated")
        assert incorporated is not None
        assert incorporated.value == "No (Unincorporated)"

    def test_absent_data_has_no_placeholder(self, subject: Coordinate) -> None:
        report = _assemble(subject, None, ThematicResult())

        assert report.facts == ()
        assert report.sources == ()
        assert report.parcel_geometry is None
        assert report.buffer_geometry is None

    def test_optional_parcel_facts_omitted(self, subject: Coordinate) -> None:
        parcel = _parcel(acreage=None, sqft=None, use_code=None, use_description=None, year_built=None)
        parcel = ParcelRecord(identity=ParcelIdentity(apn="1"), geometry=parcel.geometry)

        report = _assemble(subject, parcel, ThematicResult())

        assert report.fact_ids == ["apn"]

    def test_description_equal_to_code_not_repeated(self, subject: Coordinate) -> None:
        report = _assemble(subject, None, _thematic(zoning=ZoningData("A-40", "", ZONING)))
        zoning = report.fact("zoning")
        assert zoning is not None
        assert zoning.value == "A-40"


class TestFormatParcelArea:
    def test_both(self) -> None:
        assert format_parcel_area(1.5, 65340.0) == "1.50 acres (65,340 sq ft)"

    def test_acreage_only(self) -> None:
        assert format_parcel_area(0.0, None) == "0.00 acres"

    def test_sqft_only(self) -> None:
        assert format_parcel_area(None, 5000.0) == "5,000 sq ft"

    def test_neither(self) -> None:
        assert format_parcel_area(None, None) is None


class TestGeometry:
    def test_parcel_feature(self, subject: Coordinate) -> None:
        report = _assemble(subject, _parcel(), _thematic())

        assert report.parcel_geometry == {
            "type": "Feature",
            "properties": {"apn": SUBJECT_APN},
            "geometry": {"type": "Polygon", "coordinates": [SUBJECT_RING]},
        }

    def test_buffer_around_centroid(self, subject: Coordinate) -> None:
        report = _assemble(subject, _parcel(), _thematic())

        assert report.buffer_geometry is not None
        assert report.buffer_ft == 500.0
        buffer = shape(report.buffer_geometry["geometry"])
        centroid = shape(_parcel().geometry).centroid
        assert buffer.contains(Point(centroid.x, centroid.y))
        assert buffer.contains(shape(_parcel().geometry))

    def test_buffer_radius_configurable(self, subject: Coordinate) -> None:
        small = _assemble(subject, _parcel(), _thematic(), config=PipelineConfig(buffer_ft=100.0))
        large = _assemble(subject, _parcel(), _thematic())

        assert small.buffer_ft == 100.0
        assert shape(small.buffer_geometry["geometry"]).area < shape(large.buffer_geometry["geometry"]).area  # type: ignore[index]

    def test_empty_geometry_has_no_buffer(self, subject: Coordinate) -> None:
        parcel = _parcel(geometry={"type": "Polygon", "coordinates": []})

        report = _assemble(subject, parcel, _thematic())

        assert report.parcel_geometry is None
        assert report.buffer_geometry is None
        assert not report.partial

    def test_point_geometry_has_no_buffer(self, subject: Coordinate) -> None:
        parcel = _parcel(geometry={"type": "Point", "coordinates": [subject.lon, subject.lat]})

        report = _assemble(subject, parcel, _thematic())

        assert report.buffer_geometry is None
        assert not report.partial

    def test_degenerate_geometry_omits_buffer(self, subject: Coordinate) -> None:
        parcel = _parcel(geometry={"type": "Polygon", "coordinates": [[[0.0, 0.0]]]})

        report = _assemble(subject, parcel, _thematic())

        assert report.buffer_geometry is None
        assert report.fact("apn") is not None
        (event,) = report.diagnostics
        assert event.reason is DegradationReason.GEOMETRY
        assert event.stage == "assemble"

    def test_map_bounds_independent_of_parcel(self, subject: Coordinate) -> None:
        with_parcel = _assemble(subject, _parcel(), _thematic())
        without = _assemble(subject, None, _thematic())

        assert with_parcel.map_bounds == without.map_bounds
        assert with_parcel.map_bounds == pytest.approx(
            (subject.lon - 0.005, subject.lat - 0.005, subject.lon + 0.005, subject.lat + 0.005)
        )


class TestSourcesAndCopy:
    def test_sources_deduplicated_in_order(self, subject: Coordinate) -> None:
        thematic = _thematic(
            districts=(
                DistrictData(DistrictType.SUPERVISORIAL, "District 2", BOS),
                DistrictData(DistrictType.SCHOOL, "Unified", DataSource(title=c.PARCELS_SOURCE_TITLE)),
            )
        )

        report = _assemble(subject, _parcel(), thematic)

        assert report.sources == (
            c.PARCELS_SOURCE_TITLE,
            CITY.title,
            ZONING.title,
            GP.title,
            BOS.title,
            FEMA.title,
            FIRE.title,
        )

    def test_dedupe_sources(self) -> None:
        a = DataSource(title="A")
        facts = [
            Fact(id="1", kind=FactKind.ZONING, label="x", value="v", source=a),
            Fact(id="2", kind=FactKind.ZONING, label="x", value="v", source=DataSource(title="B")),
            Fact(id="3", kind=FactKind.ZONING, label="x", value="v", source=a),
        ]
        assert dedupe_sources(facts) == ("A", "B")

    def test_copy_fields(self, subject: Coordinate) -> None:
        nearby = [NearbyPoint(label="Park", category=NearbyCategory.PARK, distance_mi=0.3, point=(0.0, 0.0))]
        report = _assemble(
            subject,
            None,
            _thematic(),
            standardized_address="675 TEXAS ST, FAIRFIELD, CA, 94533",
            match_quality="exact",
            nearby_points=nearby,
            request_id="req-1",
        )

        assert report.input_address == "675 Texas St"
        assert report.standardized_address == "675 TEXAS ST, FAIRFIELD, CA, 94533"
        assert report.match_quality == "exact"
        assert report.request_id == "req-1"
        assert report.canonical_coordinate == subject.as_tuple()
        assert report.nearby_points == tuple(nearby)
        assert report.title == "Address Snapshot"

    def test_diagnostics_carried(self, subject: Coordinate) -> None:
        parcel_event = DegradationEvent(stage="parcel", source="parcels", reason=DegradationReason.TRANSPORT)
        thematic_event = DegradationEvent(stage="thematic", source="zoning", reason=DegradationReason.TRANSPORT)

        report = _assemble(subject, None, _thematic(diagnostics=(thematic_event,)), diagnostics=[parcel_event])

        assert report.diagnostics == (parcel_event, thematic_event)
        assert report.partial


class TestDeterminism:
    def test_identical_inputs_identical_report(self, subject: Coordinate) -> None:
        first = _assemble(subject, _parcel(), _thematic())
        second = _assemble(subject, _parcel(), _thematic())
        assert first == second

    def test_generated_at_defaults_to_now(self, subject: Coordinate) -> None:
        report = assemble_report(subject, None, ThematicResult(), config=PipelineConfig(), input_address="x")
        assert report.generated_at.endswith("+00:00")
