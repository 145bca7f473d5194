"""
Competitor Enrichment

Cheap signals scraped from a competitor's own homepage:
- Technology stack from markup signatures and server headers
- Company size and funding guesses from careers/locations/investor wording

No paid data sources are used; recent news is always empty.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ..integrations.fetcher import HtmlFetcher

logger = logging.getLogger(__name__)


ENRICHMENT_FETCH_TIMEOUT = 8.0

TECH_SIGNATURES: Dict[str, List[str]] = {
    "WordPress": ["wp-content", "wp-includes", "wordpress"],
    "Shopify": ["shopify", "cdn.shopify.com"],
    "Wix": ["wix.com", "wixstatic.com"],
    "Squarespace": ["squarespace", "sqsp"],
    "React": ["react", "_next", "reactdom"],
    "Vue.js": ["vue.js", "vuejs", "__vue__"],
    "Angular": ["ng-", "angular"],
    "jQuery": ["jquery"],
    "Bootstrap": ["bootstrap"],
    "Tailwind CSS": ["tailwind"],
    "Google Analytics": ["google-analytics", "gtag", "ga.js"],
    "Google Tag Manager": ["googletagmanager"],
    "Facebook Pixel": ["fbevents", "facebook.com/tr"],
    "HubSpot": ["hubspot", "hs-scripts"],
    "Mailchimp": ["mailchimp", "mc.js"],
    "Stripe": ["stripe.com", "stripe.js"],
    "PayPal": ["paypal"],
    "Cloudflare": ["cloudflare"],
}

SERVER_SIGNATURES = {
    "nginx": "Nginx",
    "apache": "Apache",
    "cloudflare": "Cloudflare",
}

CAREERS_SIGNALS = ("careers", "jobs", "hiring")
LOCATIONS_SIGNALS = ("locations", "offices")
INVESTOR_SIGNALS = ("investors", "backed by", "funded")


@dataclass
class EnrichmentResult:
    employee_count: Optional[str] = None
    funding_info: Optional[str] = None
    tech_stack: List[str] = field(default_factory=list)
    recent_news: List[Dict] = field(default_factory=list)

    def to_fields(self) -> Dict:
        return {
            "employee_count": self.employee_count,
            "funding_info": self.funding_info,
            "tech_stack": self.tech_stack,
            "recent_news": self.recent_news,
        }


def detect_tech_stack(html: str, headers: Dict[str, str]) -> List[str]:
    """Technologies named by signatures in the markup or the server headers."""
    html = html.lower()
    stack = []

    for tech, signatures in TECH_SIGNATURES.items():
        if any(sig in html for sig in signatures):
            stack.append(tech)

    server = (headers.get("server") or headers.get("x-powered-by") or "").lower()
    for needle, tech in SERVER_SIGNATURES.items():
        if needle in server:
            stack.append(tech)

    # Dedupe, keep first-seen order
    return list(dict.fromkeys(stack))


def estimate_company_size(html: str) -> Dict[str, str]:
    """Employee range and funding guess from homepage wording."""
    html = html.lower()
    has_careers = any(s in html for s in CAREERS_SIGNALS)
    has_locations = any(s in html for s in LOCATIONS_SIGNALS)
    has_investors = any(s in html for s in INVESTOR_SIGNALS)

    if has_careers and has_locations:
        employee_range = "51-200"
    elif has_careers:
        employee_range = "11-50"
    else:
        employee_range = "1-10"

    funding = "Venture-backed (details unknown)" if has_investors else "Bootstrapped/Unknown"

    return {"employee_count": f"{employee_range} (estimated)", "funding_info": funding}


async def enrich_competitor(
    company_name: str,
    website: Optional[str],
    fetcher: HtmlFetcher,
    timeout: float = ENRICHMENT_FETCH_TIMEOUT,
) -> EnrichmentResult:
    """
    Enrich one competitor.

    Without a website the defaults are returned. Fetch errors propagate so the
    caller can record the enrichment as failed rather than empty.
    """
    if not website:
        return EnrichmentResult(employee_count="1-10 (estimated)", funding_info="Unknown")

    page = await fetcher.fetch(website, timeout=timeout)

    size = estimate_company_size(page.html)
    result = EnrichmentResult(
        employee_count=size["employee_count"],
        funding_info=size["funding_info"],
        tech_stack=detect_tech_stack(page.html, page.headers),
        recent_news=[],
    )
    logger.debug(f"Enriched {company_name}: {result.tech_stack}")
    return result
