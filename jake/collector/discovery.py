"""
Competitor Discovery

Finds nearby businesses in the same line of work:

1. Geocode the location (no coordinates = no competitors)
2. Text search around that point with the industry (or a keyword guessed
   from the business name)
3. Drop the target itself and directory/aggregator listings
4. Look up phone and website for each survivor, stopping at the cap

Results keep the order the place search returned them in.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from ..integrations.maps import GoogleMapsClient, LatLng
from ..utils.business_filter import (
    extract_industry_from_name,
    is_directory_listing,
    is_self_match,
)

logger = logging.getLogger(__name__)


MAX_COMPETITORS = 5
DETAIL_FIELDS = ("formatted_phone_number", "website")


@dataclass
class DiscoveredCompetitor:
    name: str
    place_id: str
    address: Optional[str] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    rating: Optional[float] = None
    review_count: Optional[int] = None
    types: List[str] = field(default_factory=list)
    location: Optional[LatLng] = None


async def discover_competitors(
    business_name: str,
    location: str,
    industry: Optional[str],
    maps: GoogleMapsClient,
    limit: int = MAX_COMPETITORS,
) -> List[DiscoveredCompetitor]:
    """
    Return up to `limit` (never more than 5) nearby competitors.

    Geocoding misses and search failures yield an empty list.
    """
    limit = min(limit, MAX_COMPETITORS)

    try:
        point = await maps.geocode(location)
    except Exception as e:
        logger.warning(f"Geocoding error for '{location}': {e}")
        point = None

    if point is None:
        logger.warning(f"Could not geocode location: {location}")
        return []

    query = industry or extract_industry_from_name(business_name)
    logger.info(f"Searching for '{query}' near {point.lat},{point.lng}")

    try:
        places = await maps.search_places(point.lat, point.lng, query)
    except Exception as e:
        logger.warning(f"Place search failed for '{query}': {e}")
        return []
    logger.info(f"Raw place results: {len(places)}")

    competitors: List[DiscoveredCompetitor] = []
    for place in places:
        if len(competitors) >= limit:
            break

        if is_self_match(place.name, business_name):
            logger.info(f"Skipping self-match: {place.name}")
            continue

        if is_directory_listing(place.name):
            logger.info(f"Skipping directory: {place.name}")
            continue

        details = None
        try:
            details = await maps.place_details(place.place_id, fields=DETAIL_FIELDS)
        except Exception as e:
            logger.warning(f"Place details failed for {place.name}: {e}")

        competitors.append(DiscoveredCompetitor(
            name=place.name,
            place_id=place.place_id,
            address=place.address,
            rating=place.rating,
            review_count=place.review_count,
            types=place.types,
            location=place.location,
            phone=details.phone if details else None,
            website=details.website if details else None,
        ))

    logger.info(f"Found {len(competitors)} qualified competitors")
    return competitors
