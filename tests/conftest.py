"""Shared pytest fixtures for the Parcel Facts test suite."""

from __future__ import annotations

import pytest

from parcel_facts.core.config import PipelineConfig
from parcel_facts.models.geo import Coordinate
from tests.fake_gis import (
    SUBJECT_LAT,
    SUBJECT_LON,
    FakeGISServer,
    StubNearbyProvider,
    make_config,
    populate,
)


@pytest.fixture()
def gis_config() -> PipelineConfig:
    """Default configuration pointed at the fake server's URLs."""
    return make_config()


@pytest.fixture()
def fake_gis(gis_config: PipelineConfig) -> FakeGISServer:
    """Empty fake server: the geocoder matches, every layer returns no features."""
    return FakeGISServer(gis_config)


@pytest.fixture()
def populated_gis(fake_gis: FakeGISServer) -> FakeGISServer:
    """Fake server scripted with the full Fairfield scenario."""
    return populate(fake_gis)


@pytest.fixture()
def subject() -> Coordinate:
    """Geocoded position of 675 Texas St, Fairfield."""
    return Coordinate(lon=SUBJECT_LON, lat=SUBJECT_LAT)


@pytest.fixture()
def stub_nearby() -> StubNearbyProvider:
    return StubNearbyProvider()
