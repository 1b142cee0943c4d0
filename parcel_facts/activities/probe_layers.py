"""Endpoint probing.

Queries every configured layer at a test coordinate, concurrently, and
reports whether it answered, how many features came back and which
attribute names they carry.  Used to check a layer map against live
services before wiring new field-name candidates into the normalization
tables.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from parcel_facts.clients.feature_query import FeatureQueryClient
    from parcel_facts.core.config import LayerConfig
    from parcel_facts.models.geo import Coordinate
    from parcel_facts.models.provenance import DegradationEvent

logger = logging.getLogger("parcel_facts.activities.probe_layers")


@dataclass(frozen=True, slots=True)
class LayerProbe:
    """Probe outcome for one layer.

    Attributes:
        name: Logical layer name.
        url: Layer endpoint.
        reachable: ``False`` if the query degraded.
        feature_count: Features returned at the probe coordinate.
        fields: Sorted attribute names of the first feature.
        detail: Degradation detail when unreachable.
    """

    name: str
    url: str
    reachable: bool
    feature_count: int = 0
    fields: tuple[str, ...] = ()
    detail: str = ""


async def probe_layers(
    features: FeatureQueryClient,
    layers: Mapping[str, LayerConfig],
    coordinate: Coordinate,
) -> list[LayerProbe]:
    """Probe each layer of *layers* at *coordinate*.

    Returns:
        One ``LayerProbe`` per layer, in the mapping's order.
    """
    configs = list(layers.values())
    results = await asyncio.gather(*(_probe(features, layer, coordinate) for layer in configs))

    reachable = sum(1 for r in results if r.reachable)
    logger.info(
        "layers probed | lon=%.6f | lat=%.6f | reachable=%d/%d",
        coordinate.lon,
        coordinate.lat,
        reachable,
        len(results),
    )
    return list(results)


async def _probe(features: FeatureQueryClient, layer: LayerConfig, coordinate: Coordinate) -> LayerProbe:
    sink: list[DegradationEvent] = []
    records = await features.query_point(layer, coordinate, return_geometry=False, sink=sink)
    if sink:
        return LayerProbe(name=layer.name, url=layer.url, reachable=False, detail=sink[0].detail)
    return LayerProbe(
        name=layer.name,
        url=layer.url,
        reachable=True,
        feature_count=len(records),
        fields=tuple(records[0].field_names) if records else (),
    )
