"""Tests for thematic aggregation.

Covers:
- Flood / fire classification (deterministic, case-insensitive)
- Flood: zero features → Zone X / low; failure → absent
- Fire: state layer selected with its source URL; neither → none
- Jurisdiction presence test
- District merge order and parcel precedence
- One failing layer never affects the others
"""

from __future__ import annotations

import asyncio
import time

import pytest

from parcel_facts.activities.aggregate_thematic import (
    ThematicAggregator,
    classify_fire_hazard,
    classify_flood_zone,
    flood_zone_description,
    merge_districts,
)
from parcel_facts.clients.feature_query import FeatureQueryClient
from parcel_facts.core import constants as c
from parcel_facts.models.geo import Coordinate
from parcel_facts.models.parcel import ParcelIdentity, ParcelRecord
from parcel_facts.models.provenance import DataSource, DegradationReason
from parcel_facts.models.thematic import (
    DistrictData,
    DistrictType,
    HazardSeverity,
    ThematicResult,
)
from tests.fake_gis import FakeGISServer, feature, make_config


def _aggregate(server: FakeGISServer, coordinate: Coordinate, parcel: ParcelRecord | None = None) -> ThematicResult:
    async def go():
        async with server.client() as client:
            aggregator = ThematicAggregator(FeatureQueryClient(client, stage="thematic"), server.config)
            return await aggregator.aggregate(coordinate, parcel)

    return asyncio.run(go())


class TestClassifyFloodZone:
    @pytest.mark.parametrize(
        ("zone", "expected"),
        [
            ("A", HazardSeverity.HIGH),
            ("AE", HazardSeverity.HIGH),
            ("ao", HazardSeverity.HIGH),
            ("VE", HazardSeverity.HIGH),
            ("X", HazardSeverity.LOW),
            ("c", HazardSeverity.LOW),
            ("B", HazardSeverity.MODERATE),
            ("X500", HazardSeverity.MODERATE),
            ("D", HazardSeverity.LOW),
            ("", HazardSeverity.LOW),
            (None, HazardSeverity.LOW),
        ],
    )
    def test_classification(self, zone: str | None, expected: HazardSeverity) -> None:
        assert classify_flood_zone(zone) is expected

    @pytest.mark.parametrize("zone", ["AE", "x500", "open water", "V1", " X "])
    def test_deterministic(self, zone: str) -> None:
        results = {classify_flood_zone(zone) for _ in range(5)}
        assert len(results) == 1
        assert classify_flood_zone(zone.lower()) is classify_flood_zone(zone.upper())


class TestClassifyFireHazard:
    @pytest.mark.parametrize(
        ("code", "expected"),
        [
            ("Very High", HazardSeverity.VERY_HIGH),
            ("VERY HIGH", HazardSeverity.VERY_HIGH),
            ("3", HazardSeverity.VERY_HIGH),
            ("vhfhsz", HazardSeverity.VERY_HIGH),
            ("High", HazardSeverity.HIGH),
            ("2", HazardSeverity.HIGH),
            ("HFHSZ", HazardSeverity.HIGH),
            ("Moderate", HazardSeverity.MODERATE),
            ("1", HazardSeverity.MODERATE),
            ("MFHSZ", HazardSeverity.MODERATE),
        ],
    )
    def test_classification(self, code: str, expected: HazardSeverity) -> None:
        assert classify_fire_hazard(code) is expected

    @pytest.mark.parametrize("code", ["", "unzoned", "9", None])
    def test_unrecognised_defaults_to_moderate(self, code: str | None) -> None:
        assert classify_fire_hazard(code) is HazardSeverity.MODERATE

    @pytest.mark.parametrize("code", ["Very High", "high", "3", "something"])
    def test_deterministic(self, code: str) -> None:
        assert len({classify_fire_hazard(code) for _ in range(5)}) == 1
        assert classify_fire_hazard(code.upper()) is classify_fire_hazard(code.lower())


class TestFloodZoneDescription:
    def test_known(self) -> None:
        assert flood_zone_description("X") == "Area of minimal flood hazard"

    def test_subtype_wins(self) -> None:
        assert flood_zone_description("X", "0.2 PCT ANNUAL CHANCE FLOOD HAZARD") == "0.2 PCT ANNUAL CHANCE FLOOD HAZARD"

    def test_unknown_fallback(self) -> None:
        assert flood_zone_description("D") == "Flood Zone D"


class TestFlood:
    def test_zero_features_is_zone_x(self, fake_gis: FakeGISServer, subject: Coordinate) -> None:
        result = _aggregate(fake_gis, subject)

        assert result.flood is not None
        assert result.flood.zone == "X"
        assert result.flood.severity is HazardSeverity.LOW
        assert result.flood.source.title == "FEMA National Flood Hazard Layer"

    def test_zone_from_feature(self, populated_gis: FakeGISServer, subject: Coordinate) -> None:
        result = _aggregate(populated_gis, subject)

        assert result.flood is not None
        assert result.flood.zone == "AE"
        assert result.flood.severity is HazardSeverity.HIGH

    def test_failure_is_absent(self, fake_gis: FakeGISServer, subject: Coordinate) -> None:
        fake_gis.fail(c.FLOOD_HAZARD, "timeout")

        result = _aggregate(fake_gis, subject)

        assert result.flood is None
        assert [e.source for e in result.diagnostics] == [c.FLOOD_HAZARD]

    @pytest.mark.parametrize("attributes", [{"FLD_ZONE": None, "OBJECTID": 7}, {"OBJECTID": 7}, {"FLD_ZONE": "  "}])
    def test_feature_without_zone_is_unknown(
        self,
        fake_gis: FakeGISServer,
        subject: Coordinate,
        attributes: dict[str, object],
    ) -> None:
        fake_gis.set_features(c.FLOOD_HAZARD, [feature(attributes)])

        result = _aggregate(fake_gis, subject)

        assert result.flood is not None
        assert result.flood.zone == "Unknown"
        assert result.flood.severity is HazardSeverity.LOW
        assert result.flood.description == "Flood Zone Unknown"


class TestFire:
    def test_state_layer_selected(self, fake_gis: FakeGISServer, subject: Coordinate) -> None:
        fake_gis.set_features(c.FIRE_HAZARD_SRA, [feature({"HAZ_CLASS": "Very High"})])
        fake_gis.set_features(c.FIRE_HAZARD_LRA, [])

        result = _aggregate(fake_gis, subject)

        assert result.fire is not None
        assert result.fire.severity is HazardSeverity.VERY_HIGH
        assert result.fire.zone == "Very High"
        assert result.fire.description == "Fire Hazard Severity: Very High"
        assert result.fire.source.url == fake_gis.config.layer(c.FIRE_HAZARD_SRA).url

    def test_local_layer_selected(self, fake_gis: FakeGISServer, subject: Coordinate) -> None:
        fake_gis.set_features(c.FIRE_HAZARD_LRA, [feature({"HAZ_CLASS": "High"})])

        result = _aggregate(fake_gis, subject)

        assert result.fire is not None
        assert result.fire.severity is HazardSeverity.HIGH
        assert result.fire.source.url == fake_gis.config.layer(c.FIRE_HAZARD_LRA).url

    def test_both_layers_queried(self, fake_gis: FakeGISServer, subject: Coordinate) -> None:
        _aggregate(fake_gis, subject)
        assert len(fake_gis.requests_for(c.FIRE_HAZARD_SRA)) == 1
        assert len(fake_gis.requests_for(c.FIRE_HAZARD_LRA)) == 1

    def test_neither_is_none(self, fake_gis: FakeGISServer, subject: Coordinate) -> None:
        result = _aggregate(fake_gis, subject)

        assert result.fire is not None
        assert result.fire.zone == "None"
        assert result.fire.severity is HazardSeverity.NONE
        assert result.fire.description == "Not in a designated fire hazard severity zone"

    def test_one_layer_failed_other_empty_is_absent(self, fake_gis: FakeGISServer, subject: Coordinate) -> None:
        fake_gis.fail(c.FIRE_HAZARD_LRA, "connect")

        result = _aggregate(fake_gis, subject)

        assert result.fire is None
        assert [e.source for e in result.diagnostics] == [c.FIRE_HAZARD_LRA]

    def test_one_layer_failed_other_answered(self, fake_gis: FakeGISServer, subject: Coordinate) -> None:
        fake_gis.fail(c.FIRE_HAZARD_LRA, "connect")
        fake_gis.set_features(c.FIRE_HAZARD_SRA, [feature({"HAZ_CLASS": "Moderate"})])

        result = _aggregate(fake_gis, subject)

        assert result.fire is not None
        assert result.fire.severity is HazardSeverity.MODERATE


class TestJurisdiction:
    def test_incorporated(self, populated_gis: FakeGISServer, subject: Coordinate) -> None:
        result = _aggregate(populated_gis, subject)

        assert result.jurisdiction is not None
        assert result.jurisdiction.incorporated
        assert result.jurisdiction.city == "Fairfield"
        assert result.jurisdiction.county == "Solano County"

    def test_unincorporated(self, fake_gis: FakeGISServer, subject: Coordinate) -> None:
        result = _aggregate(fake_gis, subject)

        assert result.jurisdiction is not None
        assert not result.jurisdiction.incorporated
        assert result.jurisdiction.city is None

    def test_city_without_name(self, fake_gis: FakeGISServer, subject: Coordinate) -> None:
        fake_gis.set_features(c.CITIES, [feature({"OBJECTID": 4})])

        result = _aggregate(fake_gis, subject)

        assert result.jurisdiction is not None
        assert result.jurisdiction.city == "Unknown City"

    def test_failure_is_absent(self, fake_gis: FakeGISServer, subject: Coordinate) -> None:
        fake_gis.fail(c.CITIES, "http_500")
        assert _aggregate(fake_gis, subject).jurisdiction is None


class TestZoningAndGeneralPlan:
    def test_values(self, populated_gis: FakeGISServer, subject: Coordinate) -> None:
        result = _aggregate(populated_gis, subject)

        assert result.zoning is not None
        assert (result.zoning.code, result.zoning.description) == ("DC", "Downtown Commercial")
        assert result.general_plan is not None
        assert (result.general_plan.designation, result.general_plan.description) == ("CC", "Community Commercial")

    def test_missing_code_is_unknown(self, fake_gis: FakeGISServer, subject: Coordinate) -> None:
        fake_gis.set_features(c.ZONING, [feature({"OBJECTID": 1})])

        result = _aggregate(fake_gis, subject)

        assert result.zoning is not None
        assert result.zoning.code == "Unknown"

    def test_no_feature_is_absent(self, fake_gis: FakeGISServer, subject: Coordinate) -> None:
        result = _aggregate(fake_gis, subject)
        assert result.zoning is None
        assert result.general_plan is None


class TestDistricts:
    def test_order_and_precedence(self, populated_gis: FakeGISServer, subject: Coordinate) -> None:
        parcel = ParcelRecord(
            identity=ParcelIdentity(apn="1"),
            school_district="Fairfield-Suisun Unified",
            fire_district="Fairfield Fire Department",
            water_district="  ",
        )

        result = _aggregate(populated_gis, subject, parcel)

        assert [d.type for d in result.districts] == [
            DistrictType.SUPERVISORIAL,
            DistrictType.SCHOOL,
            DistrictType.FIRE,
        ]
        school = result.district(DistrictType.SCHOOL)
        assert school is not None
        assert school.name == "Fairfield-Suisun Unified"
        assert school.source.title == c.PARCELS_SOURCE_TITLE

    def test_spatial_school_when_parcel_has_none(self, populated_gis: FakeGISServer, subject: Coordinate) -> None:
        result = _aggregate(populated_gis, subject, ParcelRecord(identity=ParcelIdentity(apn="1")))

        school = result.district(DistrictType.SCHOOL)
        assert school is not None
        assert school.name == "Solano Community College"

    def test_supervisorial_label(self, populated_gis: FakeGISServer, subject: Coordinate) -> None:
        result = _aggregate(populated_gis, subject)

        supervisorial = result.district(DistrictType.SUPERVISORIAL)
        assert supervisorial is not None
        assert supervisorial.name == "District 2"

    def test_float_district_id_rendered_as_integer(self, fake_gis: FakeGISServer, subject: Coordinate) -> None:
        fake_gis.set_features(c.SUPERVISORIAL_DISTRICTS, [feature({"district": 2.0})])

        supervisorial = _aggregate(fake_gis, subject).district(DistrictType.SUPERVISORIAL)

        assert supervisorial is not None
        assert supervisorial.name == "District 2"

    def test_merge_without_parcel(self) -> None:
        school = DistrictData(DistrictType.SCHOOL, "Spatial", DataSource(title="S"))
        merged = merge_districts(None, None, school, make_config().layer(c.PARCELS))
        assert merged == (school,)


class TestIsolation:
    def test_one_failure_leaves_others_intact(self, populated_gis: FakeGISServer, subject: Coordinate) -> None:
        baseline = _aggregate(populated_gis, subject)
        populated_gis.fail(c.ZONING, "error_payload")

        degraded = _aggregate(populated_gis, subject)

        assert degraded.zoning is None
        assert degraded.general_plan == baseline.general_plan
        assert degraded.jurisdiction == baseline.jurisdiction
        assert degraded.flood == baseline.flood
        assert degraded.fire == baseline.fire
        assert degraded.districts == baseline.districts
        (event,) = degraded.diagnostics
        assert event.reason is DegradationReason.UPSTREAM_ERROR

    def test_diagnostics_in_fixed_order(self, fake_gis: FakeGISServer, subject: Coordinate) -> None:
        fake_gis.fail(c.SCHOOL_DISTRICTS, "timeout")
        fake_gis.fail(c.ZONING, "timeout")
        fake_gis.delay(c.ZONING, 0.05)

        result = _aggregate(fake_gis, subject)

        assert [e.source for e in result.diagnostics] == [c.ZONING, c.SCHOOL_DISTRICTS]

    def test_unexpected_exception_becomes_internal_event(
        self,
        fake_gis: FakeGISServer,
        subject: Coordinate,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        async def boom(self, coordinate, sink):
            raise RuntimeError("bug")

        monkeypatch.setattr(ThematicAggregator, "general_plan", boom)

        result = _aggregate(fake_gis, subject)

        assert result.general_plan is None
        assert result.flood is not None
        (event,) = result.diagnostics
        assert event.reason is DegradationReason.INTERNAL
        assert event.source == "general_plan"
        assert "RuntimeError" in event.detail


class TestConcurrency:
    """Thematic latency is bounded by the slowest query, not their sum."""

    LAYER_DELAY_S = 0.2

    def test_thematic_queries_overlap(self, populated_gis: FakeGISServer, subject: Coordinate) -> None:
        layers = (
            c.ZONING,
            c.GENERAL_PLAN,
            c.CITIES,
            c.FLOOD_HAZARD,
            c.FIRE_HAZARD_SRA,
            c.FIRE_HAZARD_LRA,
            c.SUPERVISORIAL_DISTRICTS,
            c.SCHOOL_DISTRICTS,
        )
        for layer in layers:
            populated_gis.delay(layer, self.LAYER_DELAY_S)

        started = time.perf_counter()
        result = _aggregate(populated_gis, subject)
        elapsed = time.perf_counter() - started

        assert result.diagnostics == ()
        assert elapsed < 3 * self.LAYER_DELAY_S

    def test_fire_layers_overlap(self, fake_gis: FakeGISServer, subject: Coordinate) -> None:
        fake_gis.delay(c.FIRE_HAZARD_SRA, self.LAYER_DELAY_S)
        fake_gis.delay(c.FIRE_HAZARD_LRA, self.LAYER_DELAY_S)

        async def go():
            async with fake_gis.client() as client:
                aggregator = ThematicAggregator(FeatureQueryClient(client, stage="thematic"), fake_gis.config)
                started = time.perf_counter()
                fire = await aggregator.fire(subject, [])
                return fire, time.perf_counter() - started

        fire, elapsed = asyncio.run(go())

        assert fire is not None
        assert elapsed < 2 * self.LAYER_DELAY_S
