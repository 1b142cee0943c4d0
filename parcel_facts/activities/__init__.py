"""Pipeline activities.

- normalize: declarative attribute field tables
- resolve_parcel: ParcelResolver (address string first, envelope fallback)
- aggregate_thematic: ThematicAggregator (concurrent thematic fan-out)
- assemble_report: assemble_report (facts, buffer, bounds, sources)
- probe_layers: probe_layers (layer reachability and field discovery)
"""
