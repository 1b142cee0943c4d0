"""Generic ArcGIS REST feature-query client.

One adapter for every thematic layer.  Three query shapes are
supported against a layer's ``/query`` endpoint:

- ``query_point``        — features intersecting a WGS 84 point.
- ``query_envelope``     — features intersecting a bounding box.
- ``query_by_attribute`` — features matching a SQL ``where`` predicate.

Failure contract:
    None of the three methods ever raises to its caller.  A timeout,
    connection failure, HTTP error status, undecodable body, or an
    upstream ``{"error": ...}`` payload all yield an empty list, a
    WARNING log line, and (when the caller supplies a ``sink``) one
    ``DegradationEvent``.  Callers that must distinguish "no features"
    from "query failed" inspect their own sink.

References:
    ArcGIS REST API — Query (Feature Service/Layer):
        https://developers.arcgis.com/rest/services-reference/enterprise/query-feature-service-layer/
"""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

import httpx

from parcel_facts.core.constants import DEFAULT_REQUEST_TIMEOUT_S
from parcel_facts.models.feature import FeatureRecord
from parcel_facts.models.provenance import DegradationEvent, DegradationReason
from parcel_facts.utils.geometry import arcgis_to_geojson

if TYPE_CHECKING:
    from parcel_facts.core.config import LayerConfig
    from parcel_facts.models.geo import Coordinate

logger = logging.getLogger(__name__)

#: Spatial reference of every geometry we send and request.
WGS84_WKID = "4326"

ALL_FIELDS: tuple[str, ...] = ("*",)


def sql_quote(value: str) -> str:
    """Quote *value* as a SQL string literal for a ``where`` clause."""
    return "'" + value.replace("'", "''") + "'"


class FeatureQueryClient:
    """Point / envelope / attribute queries against ArcGIS feature layers.

    The client wraps a caller-owned ``httpx.AsyncClient`` so that one
    connection pool serves every concurrent query of a pipeline run and
    tests can inject an ``httpx.MockTransport``.

    Args:
        client: Shared async HTTP client.
        timeout_s: Per-call timeout in seconds.
        stage: Stage name stamped on degradation events.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        timeout_s: float = DEFAULT_REQUEST_TIMEOUT_S,
        stage: str = "feature_query",
    ) -> None:
        self._client = client
        self._timeout_s = timeout_s
        self._stage = stage

    @property
    def timeout_s(self) -> float:
        return self._timeout_s

    # ------------------------------------------------------------------
    # Query shapes
    # ------------------------------------------------------------------

    async def query_point(
        self,
        service: LayerConfig,
        coordinate: Coordinate,
        fields: Sequence[str] = ALL_FIELDS,
        *,
        return_geometry: bool = True,
        sink: list[DegradationEvent] | None = None,
    ) -> list[FeatureRecord]:
        """Return features of *service* intersecting *coordinate*."""
        params = {
            "geometry": json.dumps({"x": coordinate.lon, "y": coordinate.lat}),
            "geometryType": "esriGeometryPoint",
            "inSR": WGS84_WKID,
            "spatialRel": "esriSpatialRelIntersects",
            "outFields": ",".join(fields),
            "returnGeometry": _flag(return_geometry),
            "outSR": WGS84_WKID,
        }
        return await self._query(service, params, sink)

    async def query_envelope(
        self,
        service: LayerConfig,
        bbox: tuple[float, float, float, float],
        fields: Sequence[str] = ALL_FIELDS,
        *,
        return_geometry: bool = False,
        sink: list[DegradationEvent] | None = None,
    ) -> list[FeatureRecord]:
        """Return features of *service* intersecting ``(xmin, ymin, xmax, ymax)``."""
        xmin, ymin, xmax, ymax = bbox
        params = {
            "geometry": json.dumps({"xmin": xmin, "ymin": ymin, "xmax": xmax, "ymax": ymax}),
            "geometryType": "esriGeometryEnvelope",
            "inSR": WGS84_WKID,
            "spatialRel": "esriSpatialRelIntersects",
            "outFields": ",".join(fields),
            "returnGeometry": _flag(return_geometry),
            "outSR": WGS84_WKID,
        }
        return await self._query(service, params, sink)

    async def query_by_attribute(
        self,
        service: LayerConfig,
        where: str,
        fields: Sequence[str] = ALL_FIELDS,
        *,
        return_geometry: bool = False,
        order_by: str | None = None,
        limit: int | None = None,
        sink: list[DegradationEvent] | None = None,
    ) -> list[FeatureRecord]:
        """Return features of *service* matching the SQL predicate *where*."""
        params = {
            "where": where,
            "outFields": ",".join(fields),
            "returnGeometry": _flag(return_geometry),
            "outSR": WGS84_WKID,
        }
        if order_by:
            params["orderByFields"] = order_by
        if limit is not None:
            params["resultRecordCount"] = str(limit)
        return await self._query(service, params, sink)

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def _query(
        self,
        service: LayerConfig,
        params: dict[str, str],
        sink: list[DegradationEvent] | None,
    ) -> list[FeatureRecord]:
        url = f"{service.url.rstrip('/')}/query"
        params = {**params, "f": "json"}
        logger.debug("feature query | layer=%s | params=%s", service.name, params)

        try:
            response = await self._client.get(url, params=params, timeout=self._timeout_s)
            response.raise_for_status()
            payload = response.json()
        except httpx.TimeoutException as exc:
            return self._degrade(service, DegradationReason.TRANSPORT, f"timeout: {exc}", sink)
        except httpx.HTTPStatusError as exc:
            detail = f"HTTP {exc.response.status_code}"
            return self._degrade(service, DegradationReason.HTTP_STATUS, detail, sink)
        except httpx.HTTPError as exc:
            return self._degrade(service, DegradationReason.TRANSPORT, str(exc) or repr(exc), sink)
        except ValueError as exc:
            return self._degrade(service, DegradationReason.MALFORMED_PAYLOAD, str(exc), sink)

        if not isinstance(payload, dict):
            detail = f"expected JSON object, got {type(payload).__name__}"
            return self._degrade(service, DegradationReason.MALFORMED_PAYLOAD, detail, sink)

        error = payload.get("error")
        if error:
            detail = error.get("message", str(error)) if isinstance(error, dict) else str(error)
            return self._degrade(service, DegradationReason.UPSTREAM_ERROR, str(detail), sink)

        raw_features = payload.get("features") or []
        if not isinstance(raw_features, list):
            detail = f"features must be a list, got {type(raw_features).__name__}"
            return self._degrade(service, DegradationReason.MALFORMED_PAYLOAD, detail, sink)

        records = [record for raw in raw_features if (record := _to_record(raw)) is not None]
        if len(records) != len(raw_features):
            logger.warning(
                "feature query skipped malformed features | layer=%s | skipped=%d",
                service.name,
                len(raw_features) - len(records),
            )
        logger.debug("feature query ok | layer=%s | features=%d", service.name, len(records))
        return records

    def _degrade(
        self,
        service: LayerConfig,
        reason: DegradationReason,
        detail: str,
        sink: list[DegradationEvent] | None,
    ) -> list[FeatureRecord]:
        logger.warning(
            "feature query degraded | layer=%s | reason=%s | detail=%s | url=%s",
            service.name,
            reason.value,
            detail,
            service.url,
        )
        if sink is not None:
            sink.append(
                DegradationEvent(
                    stage=self._stage,
                    source=service.name,
                    reason=reason,
                    detail=detail,
                )
            )
        return []


def _flag(value: bool) -> str:
    return "true" if value else "false"


def _to_record(raw: Any) -> FeatureRecord | None:
    if not isinstance(raw, dict):
        return None
    attributes = raw.get("attributes")
    if not isinstance(attributes, dict):
        return None
    return FeatureRecord(attributes=dict(attributes), geometry=arcgis_to_geojson(raw.get("geometry")))
