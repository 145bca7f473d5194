"""
External service clients: Google Maps / Places and the HTML fetcher.
"""

from .maps import (
    GoogleMapsClient,
    MapsAPIError,
    LatLng,
    PlaceResult,
    PlaceDetails,
    SEARCH_RADIUS_METERS,
)
from .fetcher import (
    HtmlFetcher,
    FetchedPage,
    FetchError,
    USER_AGENT,
    normalize_url,
)

__all__ = [
    "GoogleMapsClient",
    "MapsAPIError",
    "LatLng",
    "PlaceResult",
    "PlaceDetails",
    "SEARCH_RADIUS_METERS",
    "HtmlFetcher",
    "FetchedPage",
    "FetchError",
    "USER_AGENT",
    "normalize_url",
]
