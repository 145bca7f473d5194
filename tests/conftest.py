"""
Pytest Configuration and Shared Fixtures

In-memory SQLite repository, fake Maps/fetcher collaborators and HTML pages
shared by the test modules. Nothing here touches the network.
"""

from types import SimpleNamespace
from typing import Dict, Iterable, List, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

from jake.analyzer.client import LLMResponse, TokenUsage
from jake.database import (
    AnalysisRepository,
    create_db_engine,
    init_db,
    make_session_factory,
)
from jake.integrations.fetcher import FetchError, FetchedPage, normalize_url
from jake.integrations.maps import LatLng, PlaceDetails, PlaceResult


# ============================================================================
# HTML Fixtures
# ============================================================================

GOOD_TITLE = "Best Coffee Shop in Portland Oregon"  # 35 chars
GOOD_DESCRIPTION = ("Fresh espresso and pastries in Portland " * 4)[:140]

BODY_VOCABULARY = [
    "espresso", "roastery", "pastries", "brewing", "portland",
    "baristas", "organic", "breakfast", "neighborhood", "latte",
]


def make_page(
    title: Optional[str] = GOOD_TITLE,
    description: Optional[str] = GOOD_DESCRIPTION,
    h1: Iterable[str] = ("Welcome",),
    h2: Iterable[str] = ("Menu", "Visit"),
    words: int = 1200,
    extra_body: str = "",
) -> str:
    """Build a page; body text cycles through BODY_VOCABULARY."""
    head = ""
    if title is not None:
        head += f"<title>{title}</title>"
    if description is not None:
        head += f'<meta name="description" content="{description}">'

    body_words = " ".join(BODY_VOCABULARY[i % len(BODY_VOCABULARY)] for i in range(words))
    headings = "".join(f"<h1>{h}</h1>" for h in h1) + "".join(f"<h2>{h}</h2>" for h in h2)

    return (
        f"<html><head>{head}</head><body>{headings}"
        f"<p>{body_words}</p>{extra_body}</body></html>"
    )


# ============================================================================
# Database
# ============================================================================

@pytest.fixture
def engine():
    engine = create_db_engine("sqlite://")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def repository(engine) -> AnalysisRepository:
    return AnalysisRepository(make_session_factory(engine))


# ============================================================================
# Fake Collaborators
# ============================================================================

class FakeFetcher:
    """HtmlFetcher stand-in serving canned pages; unknown URLs fail."""

    def __init__(
        self,
        pages: Optional[Dict[str, str]] = None,
        headers: Optional[Dict[str, Dict[str, str]]] = None,
    ):
        self.pages = {normalize_url(url): html for url, html in (pages or {}).items()}
        self.headers = {normalize_url(url): h for url, h in (headers or {}).items()}
        self.calls: List[str] = []

    async def fetch(self, url: str, timeout: Optional[float] = None) -> FetchedPage:
        full_url = normalize_url(url)
        self.calls.append(full_url)
        if full_url not in self.pages:
            raise FetchError(f"Failed to fetch {full_url}: connection refused", url=full_url)
        return FetchedPage(
            url=full_url,
            html=self.pages[full_url],
            headers=self.headers.get(full_url, {}),
        )


def make_place(
    name: str,
    place_id: Optional[str] = None,
    rating: Optional[float] = None,
    review_count: Optional[int] = None,
    types: Optional[List[str]] = None,
) -> PlaceResult:
    return PlaceResult(
        place_id=place_id or name.lower().replace(" ", "-"),
        name=name,
        address=f"{name} Street",
        rating=rating,
        review_count=review_count,
        types=types or ["cafe"],
        location=LatLng(45.52, -122.68),
    )


def make_maps(
    places: Iterable[PlaceResult] = (),
    listing: Optional[PlaceResult] = None,
    details: Optional[Dict[str, PlaceDetails]] = None,
    point: Optional[LatLng] = LatLng(45.52, -122.68),
) -> MagicMock:
    """GoogleMapsClient stand-in; details are looked up by place id."""
    details = details or {}
    maps = MagicMock()
    maps.mode = "mock"
    maps.geocode = AsyncMock(return_value=point)
    maps.search_places = AsyncMock(return_value=list(places))
    maps.find_place = AsyncMock(return_value=listing)
    maps.place_details = AsyncMock(side_effect=lambda place_id, fields=(): details.get(place_id))
    return maps


def llm_response(
    content: str = "",
    structured: Optional[dict] = None,
    success: bool = True,
    error: Optional[str] = None,
) -> LLMResponse:
    return LLMResponse(
        content=content,
        usage=TokenUsage(input_tokens=100, output_tokens=50),
        model="claude-test",
        stop_reason="end_turn" if success else "error",
        structured=structured,
        success=success,
        error=error,
    )


VALID_INSIGHTS = {
    "overallAnalysis": "Strong local reputation, weak on-page SEO.",
    "detectedIndustry": "Specialty Coffee",
    "strengths": [{"title": "Reviews", "explanation": "Rating above the local average."}],
    "weaknesses": [{"title": "Thin content", "explanation": "Homepage has little text."}],
    "opportunities": [{"title": "Local pack", "explanation": "Competitors lack schema markup."}],
    "recommendations": [{
        "title": "Add LocalBusiness schema",
        "description": "Helps the listing qualify for rich results.",
        "impact": "High",
        "action_plan": "Add JSON-LD to the homepage.",
    }],
}

VALID_ADS = {
    "ads": [
        {"headline": "Fresh Espresso", "description": "Roasted daily.", "callToAction": "Visit", "platform": "google"},
        {"headline": "Morning Pastries", "description": "Baked at dawn.", "callToAction": "Order", "platform": "facebook"},
    ],
}


def make_llm(
    insights: Optional[dict] = None,
    ads: Optional[dict] = None,
    blog: str = "# Coffee in Portland\n\nA guide.",
) -> MagicMock:
    """ClaudeClient stand-in answering by schema name."""
    insights = VALID_INSIGHTS if insights is None else insights
    ads = VALID_ADS if ads is None else ads

    async def respond(messages, response_schema=None, schema_name="structured_response", **kwargs):
        if schema_name == "competitive_analysis":
            return llm_response(structured=insights)
        if schema_name == "ad_copy_variations":
            return llm_response(structured=ads)
        return llm_response(content=blog)

    llm = MagicMock()
    llm.invoke = AsyncMock(side_effect=respond)
    return llm


def make_analysis(**overrides) -> SimpleNamespace:
    """Attribute bag shaped like an Analysis row."""
    fields = {
        "id": 1,
        "business_name": "Joe's Coffee",
        "location": "Portland, OR",
        "industry": "cafe",
        "business_url": "https://joescoffee.com",
        "seo_score": None,
        "google_rating": None,
        "google_review_count": None,
        "has_google_business": False,
        "word_count": None,
    }
    fields.update(overrides)
    return SimpleNamespace(**fields)


def make_competitor(**overrides) -> SimpleNamespace:
    """Attribute bag shaped like a Competitor row."""
    fields = {
        "name": "Rival Roasters",
        "website": None,
        "seo_score": None,
        "google_rating": None,
        "google_review_count": None,
        "top_keywords": [],
        "threat_level": None,
        "employee_count": None,
        "funding_info": None,
        "competitive_score": None,
    }
    fields.update(overrides)
    return SimpleNamespace(**fields)
