"""Data model for a single record returned by a feature service.

A ``FeatureRecord`` is the normalised form of one entry of an
ArcGIS-style ``{"features": [...]}`` envelope: a flat attribute map plus
optional geometry already converted to GeoJSON.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True, slots=True)
class FeatureRecord:
    """One feature returned by a point, envelope, or attribute query.

    Attributes:
        attributes: Raw attribute map as returned by the service.
        geometry: GeoJSON geometry dict (``Polygon``, ``MultiPolygon``,
            ``Point`` or ``LineString``/``MultiLineString``), or ``None`` when
            geometry was not requested or not returned.
    """

    attributes: dict[str, Any] = field(default_factory=dict)
    geometry: dict[str, Any] | None = None

    def get(self, name: str, default: Any = None) -> Any:
        """Shortcut for ``attributes.get``."""
        return self.attributes.get(name, default)

    @property
    def field_names(self) -> list[str]:
        """Sorted attribute names (used by endpoint probing)."""
        return sorted(self.attributes)
