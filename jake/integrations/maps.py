"""
Google Maps / Places API Client

Async HTTP client with three modes, picked from settings:
1. proxy  - MAPS_PROXY_URL + MAPS_PROXY_KEY set; requests go to {proxy}/v1/maps/proxy/...
2. direct - GOOGLE_MAPS_API_KEY set; requests go to maps.googleapis.com
3. mock   - nothing configured; canned development data, no network

Transport failures are retried with backoff behind a per-client circuit
breaker and surface as MapsAPIError. A well-formed response with a non-OK
API status is "not found" (None / empty list), not an error.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

import httpx

from ..utils.config import Settings, get_settings
from ..utils.retry import (
    CircuitBreaker,
    RetryConfig,
    is_retryable_error,
    retry_with_backoff,
)

logger = logging.getLogger(__name__)


DIRECT_BASE_URL = "https://maps.googleapis.com"
SEARCH_RADIUS_METERS = 10000


class MapsAPIError(Exception):
    """Transport or HTTP failure talking to the Maps API."""
    def __init__(self, message: str, status_code: int = None, response: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.response = response


@dataclass
class LatLng:
    lat: float
    lng: float


@dataclass
class PlaceResult:
    """One place returned by text search or find-place."""
    place_id: str
    name: str
    address: Optional[str] = None
    rating: Optional[float] = None
    review_count: Optional[int] = None
    types: List[str] = field(default_factory=list)
    location: Optional[LatLng] = None
    photo_count: int = 0

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "PlaceResult":
        loc = (data.get("geometry") or {}).get("location")
        return cls(
            place_id=data.get("place_id", ""),
            name=data.get("name", ""),
            address=data.get("formatted_address"),
            rating=data.get("rating"),
            review_count=data.get("user_ratings_total"),
            types=list(data.get("types") or []),
            location=LatLng(loc["lat"], loc["lng"]) if loc else None,
            photo_count=len(data.get("photos") or []),
        )


@dataclass
class PlaceDetails:
    """Subset of the place details payload used by the pipeline."""
    phone: Optional[str] = None
    website: Optional[str] = None
    rating: Optional[float] = None
    review_count: Optional[int] = None
    opening_hours: Optional[List[str]] = None
    url: Optional[str] = None

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "PlaceDetails":
        hours = (data.get("opening_hours") or {}).get("weekday_text")
        return cls(
            phone=data.get("formatted_phone_number"),
            website=data.get("website"),
            rating=data.get("rating"),
            review_count=data.get("user_ratings_total"),
            opening_hours=list(hours) if hours else None,
            url=data.get("url"),
        )


class GoogleMapsClient:
    """
    Async client for the Google Maps geocoding and Places endpoints.

    Usage:
        async with GoogleMapsClient.from_settings() as maps:
            point = await maps.geocode("San Francisco, CA")
            places = await maps.search_places(point.lat, point.lng, "coffee")
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        proxy_url: Optional[str] = None,
        proxy_key: Optional[str] = None,
        retry_config: Optional[RetryConfig] = None,
        circuit_breaker: Optional[CircuitBreaker] = None,
        timeout: float = 10.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        if proxy_url and proxy_key:
            self.mode = "proxy"
            self.base_url = f"{proxy_url.rstrip('/')}/v1/maps/proxy"
            self.api_key = proxy_key
        elif api_key:
            self.mode = "direct"
            self.base_url = DIRECT_BASE_URL
            self.api_key = api_key
        else:
            self.mode = "mock"
            self.base_url = None
            self.api_key = None
            logger.warning(
                "No Maps credentials configured. Using mock mode. "
                "Set GOOGLE_MAPS_API_KEY or MAPS_PROXY_URL/MAPS_PROXY_KEY to enable real data."
            )

        self.retry_config = retry_config or RetryConfig()
        self.circuit_breaker = circuit_breaker or CircuitBreaker(
            "google-maps", failure_threshold=5, reset_timeout=30.0
        )

        self._owns_client = http_client is None
        self._client = http_client
        if self._client is None and self.mode != "mock":
            self._client = httpx.AsyncClient(
                headers={"Content-Type": "application/json"},
                timeout=httpx.Timeout(timeout),
            )

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "GoogleMapsClient":
        settings = settings or get_settings()
        return cls(
            api_key=settings.GOOGLE_MAPS_API_KEY,
            proxy_url=settings.MAPS_PROXY_URL,
            proxy_key=settings.MAPS_PROXY_KEY,
            timeout=settings.HTTP_TIMEOUT,
        )

    # ========================================================================
    # REQUEST HANDLING
    # ========================================================================

    async def _get(self, endpoint: str, params: Dict[str, Any]) -> Dict[str, Any]:
        """GET a Maps endpoint and return its JSON body."""
        if self.mode == "mock":
            return _mock_response(endpoint, params)

        query = {k: v for k, v in params.items() if v is not None}
        query["key"] = self.api_key

        async def attempt() -> Dict[str, Any]:
            return await self._make_request(endpoint, query)

        def should_retry(e: BaseException) -> bool:
            return is_retryable_error(e, self.retry_config)

        try:
            return await self.circuit_breaker.execute(
                lambda: retry_with_backoff(
                    attempt, self.retry_config, should_retry, operation=f"Maps {endpoint}"
                )
            )
        except httpx.HTTPError as e:
            raise MapsAPIError(f"HTTP error calling {endpoint}: {e}") from e
        except ValueError as e:
            raise MapsAPIError(f"Invalid JSON from {endpoint}: {e}") from e

    async def _make_request(self, endpoint: str, params: Dict[str, Any]) -> Dict[str, Any]:
        """Make a single HTTP request."""
        logger.debug(f"GET {endpoint}")

        response = await self._client.get(f"{self.base_url}{endpoint}", params=params)

        if response.status_code != 200:
            raise MapsAPIError(
                f"Maps API request failed ({response.status_code}): {response.text[:200]}",
                status_code=response.status_code,
                response=response.text,
            )

        return response.json()

    # ========================================================================
    # ENDPOINTS
    # ========================================================================

    async def geocode(self, address: str) -> Optional[LatLng]:
        """Resolve an address to coordinates. None when the API finds nothing."""
        data = await self._get("/maps/api/geocode/json", {"address": address})

        results = data.get("results") or []
        if data.get("status") == "OK" and results:
            loc = (results[0].get("geometry") or {}).get("location")
            if loc:
                return LatLng(loc["lat"], loc["lng"])

        logger.warning(f"Geocoding failed for '{address}': {data.get('status')}")
        return None

    async def search_places(
        self,
        lat: float,
        lng: float,
        query: str,
        radius: int = SEARCH_RADIUS_METERS,
    ) -> List[PlaceResult]:
        """Text search around a point, in the order the API returns."""
        data = await self._get(
            "/maps/api/place/textsearch/json",
            {"query": query, "location": f"{lat},{lng}", "radius": radius},
        )

        if data.get("status") != "OK" or not data.get("results"):
            logger.warning(f"Text search for '{query}' returned no results. Status: {data.get('status')}")
            return []

        return [PlaceResult.from_api(place) for place in data["results"]]

    async def find_place(
        self,
        text: str,
        fields: Sequence[str] = (
            "place_id", "name", "rating", "user_ratings_total",
            "formatted_address", "photos", "types",
        ),
    ) -> Optional[PlaceResult]:
        """Best match for a free-text query, or None."""
        data = await self._get(
            "/maps/api/place/findplacefromtext/json",
            {"input": text, "inputtype": "textquery", "fields": ",".join(fields)},
        )

        candidates = data.get("candidates") or []
        if data.get("status") == "OK" and candidates:
            return PlaceResult.from_api(candidates[0])
        return None

    async def place_details(
        self,
        place_id: str,
        fields: Sequence[str] = ("formatted_phone_number", "website"),
    ) -> Optional[PlaceDetails]:
        """Details for one place, limited to the requested fields."""
        data = await self._get(
            "/maps/api/place/details/json",
            {"place_id": place_id, "fields": ",".join(fields)},
        )

        if data.get("status") == "OK" and data.get("result"):
            return PlaceDetails.from_api(data["result"])
        return None

    async def close(self):
        """Close the HTTP client."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
        self._client = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()


# ============================================================================
# MOCK DATA FOR DEVELOPMENT
# ============================================================================

def _mock_response(endpoint: str, params: Dict[str, Any]) -> Dict[str, Any]:
    logger.info(f"[Maps API Mock] {endpoint} {params}")

    if "/geocode/json" in endpoint:
        return {
            "status": "OK",
            "results": [{
                "geometry": {"location": {"lat": 37.7749, "lng": -122.4194}},  # San Francisco
                "formatted_address": params.get("address") or "San Francisco, CA, USA",
            }],
        }

    if "/place/textsearch/json" in endpoint or "/place/findplacefromtext/json" in endpoint:
        return {
            "status": "OK",
            "candidates": [{
                "place_id": "mock-place-123",
                "name": "Sample Business",
                "rating": 4.5,
                "user_ratings_total": 150,
                "formatted_address": "123 Main St, City, State",
            }],
            "results": [
                {
                    "place_id": "mock-competitor-1",
                    "name": "Competitor A",
                    "rating": 4.2,
                    "user_ratings_total": 89,
                    "formatted_address": "456 Oak Ave",
                    "types": ["business"],
                    "geometry": {"location": {"lat": 37.7749, "lng": -122.4194}},
                },
                {
                    "place_id": "mock-competitor-2",
                    "name": "Competitor B",
                    "rating": 4.7,
                    "user_ratings_total": 210,
                    "formatted_address": "789 Pine St",
                    "types": ["business"],
                    "geometry": {"location": {"lat": 37.7849, "lng": -122.4094}},
                },
            ],
        }

    if "/place/details/json" in endpoint:
        return {
            "status": "OK",
            "result": {
                "name": "Mock Business",
                "formatted_phone_number": "(555) 123-4567",
                "website": "https://example.com",
                "rating": 4.5,
                "user_ratings_total": 123,
                "opening_hours": {
                    "weekday_text": [
                        "Monday: 9:00 AM - 5:00 PM",
                        "Tuesday: 9:00 AM - 5:00 PM",
                        "Wednesday: 9:00 AM - 5:00 PM",
                        "Thursday: 9:00 AM - 5:00 PM",
                        "Friday: 9:00 AM - 5:00 PM",
                        "Saturday: Closed",
                        "Sunday: Closed",
                    ],
                },
            },
        }

    return {"status": "MOCK", "results": []}
