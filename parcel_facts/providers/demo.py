"""Synthetic nearby-points provider.

Places one point per category at a typical distance from the subject,
with a small random jitter.  Not real data: it stands in until a real
points-of-interest source is plugged in.  Pass ``seed`` for repeatable
output.
"""

from __future__ import annotations

import random
from typing import TYPE_CHECKING

from parcel_facts.models.report import NearbyCategory, NearbyPoint
from parcel_facts.providers.base import NearbyPointsProvider

if TYPE_CHECKING:
    from parcel_facts.models.geo import Coordinate

#: Maximum jitter applied to each coordinate, in degrees.
JITTER_DEG = 0.01

#: (label, category, typical distance in miles)
DEMO_POINTS: tuple[tuple[str, NearbyCategory, float], ...] = (
    ("Elementary School", NearbyCategory.SCHOOL, 0.4),
    ("Community Park", NearbyCategory.PARK, 0.3),
    ("Bus Stop", NearbyCategory.TRANSIT, 0.2),
    ("Fire Station", NearbyCategory.FIRE_STATION, 1.1),
    ("Hospital", NearbyCategory.HOSPITAL, 1.9),
)


class DemoNearbyPointsProvider(NearbyPointsProvider):
    """Jittered placeholder points around the subject."""

    name = "demo"

    def __init__(self, seed: int | None = None) -> None:
        self._random = random.Random(seed)

    async def nearby(self, coordinate: Coordinate) -> list[NearbyPoint]:
        points = []
        for label, category, distance_mi in DEMO_POINTS:
            lon = coordinate.lon + self._random.uniform(-JITTER_DEG, JITTER_DEG)
            lat = coordinate.lat + self._random.uniform(-JITTER_DEG, JITTER_DEG)
            points.append(
                NearbyPoint(
                    label=label,
                    category=category,
                    distance_mi=distance_mi,
                    point=(lon, lat),
                )
            )
        return points
