"""
Data Collection Module

Collection stages of the analysis pipeline: on-page SEO, online presence,
competitor discovery and competitor enrichment.
"""

from .seo import (
    SEOResult,
    analyze_seo,
    parse_seo,
    calculate_seo_score,
    identify_seo_issues,
    extract_top_keywords,
)
from .presence import PresenceResult, analyze_presence, find_social_links
from .discovery import DiscoveredCompetitor, discover_competitors, MAX_COMPETITORS
from .enrichment import (
    EnrichmentResult,
    enrich_competitor,
    detect_tech_stack,
    estimate_company_size,
)

__all__ = [
    "SEOResult",
    "analyze_seo",
    "parse_seo",
    "calculate_seo_score",
    "identify_seo_issues",
    "extract_top_keywords",
    "PresenceResult",
    "analyze_presence",
    "find_social_links",
    "DiscoveredCompetitor",
    "discover_competitors",
    "MAX_COMPETITORS",
    "EnrichmentResult",
    "enrich_competitor",
    "detect_tech_stack",
    "estimate_company_size",
]
