"""
Business Filtering Utilities

Shared name/category rules used by presence analysis, competitor discovery and
the pipeline's industry resolution:

- Directory and aggregator listings are NEVER treated as competitors
- The target business never shows up as its own competitor
- Generic Maps categories never become an industry label
"""

import logging
from typing import Optional

logger = logging.getLogger(__name__)


# =============================================================================
# DIRECTORY / AGGREGATOR NAMES
# =============================================================================

DIRECTORY_NAMES = (
    "yelp",
    "angi",
    "angie's list",
    "thumbtack",
    "homeadvisor",
    "yellowpages",
    "yellow pages",
    "bbb",
    "better business bureau",
    "google",
    "facebook",
    "linkedin",
    "instagram",
)


# =============================================================================
# GENERIC PLACE TYPES
# =============================================================================

# Maps place types that say nothing about what a business does. Known to be
# incomplete; anything not listed is treated as a real category.
GENERIC_PLACE_TYPES = frozenset({
    "point of interest",
    "establishment",
    "premise",
    "subpremise",
    "political",
    "locality",
    "route",
    "intersection",
    "finance",
})


# =============================================================================
# BUSINESS TYPE KEYWORDS (discovery query fallback)
# =============================================================================

BUSINESS_TYPE_KEYWORDS = (
    "restaurant", "cafe", "coffee", "bakery", "pizza", "sushi",
    "salon", "spa", "barber", "beauty",
    "gym", "fitness", "yoga", "crossfit",
    "dental", "dentist", "clinic", "medical", "doctor",
    "law", "attorney", "legal",
    "accounting", "tax", "financial",
    "auto", "car", "mechanic", "repair",
    "plumber", "plumbing", "hvac", "electrical",
    "real estate", "realty", "property",
    "marketing", "agency", "design",
    "tech", "software", "it services",
    "media", "production", "video",
)

DEFAULT_SEARCH_QUERY = "business"


def _normalize_category(category: str) -> str:
    return category.replace("_", " ").strip().lower()


def is_generic_category(category: Optional[str]) -> bool:
    """Check if a Maps category is too generic to describe an industry."""
    if not category:
        return True
    return _normalize_category(category) in GENERIC_PLACE_TYPES


def is_directory_listing(name: str) -> bool:
    """Check if a place name belongs to a directory or aggregator."""
    name_lower = (name or "").lower()
    return any(directory in name_lower for directory in DIRECTORY_NAMES)


def is_self_match(candidate_name: str, business_name: str) -> bool:
    """
    Check if a discovered place is the target business itself.

    Case-insensitive substring match in either direction, so
    "Joe's Coffee Downtown" matches "Joe's Coffee" and vice versa.
    """
    candidate = (candidate_name or "").lower()
    target = (business_name or "").lower()
    if not candidate or not target:
        return False
    return target in candidate or candidate in target


def extract_industry_from_name(business_name: str) -> str:
    """Guess a search query from keywords in the business name."""
    name_lower = (business_name or "").lower()
    for keyword in BUSINESS_TYPE_KEYWORDS:
        if keyword in name_lower:
            return keyword
    return DEFAULT_SEARCH_QUERY


def resolve_industry(explicit: Optional[str], detected: Optional[str]) -> Optional[str]:
    """
    Pick the industry label used for competitor discovery.

    An explicit (caller-supplied) industry always wins. Otherwise the detected
    Maps category is used unless it is generic, in which case the industry
    stays blank rather than being filled with noise.
    """
    if explicit and explicit.strip():
        return explicit.strip()

    if detected and not is_generic_category(detected):
        return detected.replace("_", " ").strip()

    if detected:
        logger.debug(f"Ignoring generic category '{detected}' as industry")
    return None
