"""Provenance and degradation models.

- ``DataSource``: Where a fact came from; attached to every fact.
- ``DegradationReason`` / ``DegradationEvent``: Structured record of a
  field that was dropped because its upstream query failed or returned
  an unusable payload.  Events travel with the ``Report`` so callers
  (and tests) can inspect degradation without parsing logs.
"""

from __future__ import annotations

import enum
from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field


class DataSource(BaseModel):
    """Provenance of a fact.

    Attributes:
        title: Human-readable source title (deduplication key).
        layer: Service layer name, when applicable.
        url: Service endpoint URL, when applicable.
    """

    model_config = ConfigDict(frozen=True)

    title: str
    layer: str | None = None
    url: str | None = None


class DegradationReason(str, enum.Enum):
    """Why a field or fact was omitted."""

    TRANSPORT = "transport"
    HTTP_STATUS = "http_status"
    UPSTREAM_ERROR = "upstream_error"
    MALFORMED_PAYLOAD = "malformed_payload"
    MALFORMED_FIELD = "malformed_field"
    GEOMETRY = "geometry"
    INTERNAL = "internal"


def _utc_now() -> str:
    return datetime.now(UTC).isoformat()


class DegradationEvent(BaseModel):
    """One degraded field.

    Attributes:
        stage: Pipeline stage (``"parcel"``, ``"thematic"``, ``"assemble"``...).
        source: Logical layer or service name that degraded.
        reason: Failure classification.
        detail: Free-text detail (exception message, upstream error text).
        timestamp: When the degradation was observed (ISO 8601, UTC).
    """

    model_config = ConfigDict(frozen=True)

    stage: str
    source: str
    reason: DegradationReason
    detail: str = ""
    timestamp: str = Field(default_factory=_utc_now)
