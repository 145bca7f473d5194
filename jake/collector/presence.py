"""
Online Presence Analyzer

Looks up a business on Google Places and scans its website for social links.
Everything is best effort: any failure leaves the result at "not found" or
partially filled, and analyze_presence() never raises.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ..integrations.fetcher import HtmlFetcher
from ..integrations.maps import GoogleMapsClient

logger = logging.getLogger(__name__)


SOCIAL_FETCH_TIMEOUT = 8.0

FIND_PLACE_FIELDS = (
    "place_id", "name", "rating", "user_ratings_total",
    "formatted_address", "photos", "types",
)
PRESENCE_DETAIL_FIELDS = ("website", "opening_hours", "url")

SOCIAL_PATTERNS = {
    "facebook": re.compile(r"https?://(?:www\.)?facebook\.com/[a-zA-Z0-9._-]+", re.IGNORECASE),
    "twitter": re.compile(r"https?://(?:www\.)?(?:twitter\.com|x\.com)/[a-zA-Z0-9_]+", re.IGNORECASE),
    "instagram": re.compile(r"https?://(?:www\.)?instagram\.com/[a-zA-Z0-9._]+", re.IGNORECASE),
    "linkedin": re.compile(r"https?://(?:www\.)?linkedin\.com/(?:company|in)/[a-zA-Z0-9-]+", re.IGNORECASE),
    "youtube": re.compile(r"https?://(?:www\.)?youtube\.com/(?:channel|c|user)/[a-zA-Z0-9_-]+", re.IGNORECASE),
}


@dataclass
class PresenceResult:
    has_listing: bool = False
    rating: Optional[float] = None
    review_count: Optional[int] = None
    social_profiles: Dict[str, str] = field(default_factory=dict)
    primary_category: Optional[str] = None
    types: List[str] = field(default_factory=list)
    business_hours: Optional[List[str]] = None
    photo_count: int = 0
    website: Optional[str] = None

    def to_fields(self) -> Dict:
        return {
            "has_google_business": self.has_listing,
            "google_rating": self.rating,
            "google_review_count": self.review_count,
            "social_profiles": self.social_profiles,
            "business_hours": self.business_hours,
        }


def find_social_links(html: str) -> Dict[str, str]:
    """First profile link per platform found in the page."""
    profiles = {}
    for platform, pattern in SOCIAL_PATTERNS.items():
        match = pattern.search(html)
        if match:
            profiles[platform] = match.group(0)
    return profiles


async def analyze_presence(
    business_name: str,
    location: str,
    maps: GoogleMapsClient,
    fetcher: HtmlFetcher,
    social_timeout: float = SOCIAL_FETCH_TIMEOUT,
) -> PresenceResult:
    """
    Resolve a business's map listing and social profiles.

    A missing listing is a valid answer (has_listing=False), not an error.
    """
    result = PresenceResult()

    try:
        place = await maps.find_place(f"{business_name} {location}", fields=FIND_PLACE_FIELDS)
    except Exception as e:
        logger.warning(f"Presence lookup failed for '{business_name}': {e}")
        return result

    if place is None:
        logger.info(f"No map listing found for '{business_name}' in {location}")
        return result

    result.has_listing = True
    result.rating = place.rating or None
    result.review_count = place.review_count or None
    result.types = place.types
    result.photo_count = place.photo_count
    if place.types:
        result.primary_category = place.types[0].replace("_", " ")

    if not place.place_id:
        return result

    try:
        details = await maps.place_details(place.place_id, fields=PRESENCE_DETAIL_FIELDS)
    except Exception as e:
        logger.warning(f"Place details failed for '{business_name}': {e}")
        return result

    if details is None:
        return result

    result.business_hours = details.opening_hours
    result.website = details.website

    if details.website:
        try:
            page = await fetcher.fetch(details.website, timeout=social_timeout)
            result.social_profiles = find_social_links(page.html)
        except Exception as e:
            # Social links are optional
            logger.debug(f"Social link scan failed for {details.website}: {e}")

    return result
