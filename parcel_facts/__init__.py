"""Parcel Facts — address-to-property fact sheet pipeline.

Resolves a free-text street address to a canonical coordinate, an
authoritative parcel identity, and a set of thematic facts (zoning,
general plan, jurisdiction, hazards, districts) drawn from independent
geospatial feature services, and assembles them into an immutable
``Report`` with full provenance.
"""

__version__ = "0.1.0"
