"""Network adapters.

- GeoResolver: US Census one-line address geocoder
- FeatureQueryClient: ArcGIS REST point / envelope / attribute queries
"""

from parcel_facts.clients.feature_query import FeatureQueryClient, sql_quote
from parcel_facts.clients.geocoder import GeoResolver, parse_census_response

__all__ = [
    "FeatureQueryClient",
    "GeoResolver",
    "parse_census_response",
    "sql_quote",
]
