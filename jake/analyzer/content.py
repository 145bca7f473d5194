"""
Marketing Content Generation

Blog post (free text) and ad copy variations (structured) for the target
business, seeded with the keywords its competitors rank on. Each piece falls
back to canned content on any LLM failure.

This module only produces content; persisting it is the caller's job.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from .client import ClaudeClient

logger = logging.getLogger(__name__)


CONTENT_TYPES = ("blog", "adCopy", "all")
MAX_SEED_KEYWORDS = 15

BLOG_FALLBACK = "Unable to generate blog post at this time. Please try again later."

AD_COPY_SCHEMA = {
    "type": "object",
    "properties": {
        "ads": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "headline": {"type": "string"},
                    "description": {"type": "string"},
                    "callToAction": {"type": "string"},
                    "platform": {"type": "string"},
                },
                "required": ["headline", "description", "callToAction", "platform"],
                "additionalProperties": False,
            },
        },
    },
    "required": ["ads"],
    "additionalProperties": False,
}

BLOG_SYSTEM_PROMPT = (
    "You are an expert SEO content writer who creates engaging, informative blog posts "
    "that rank well in search engines while providing genuine value to readers."
)
AD_SYSTEM_PROMPT = (
    "You are an expert digital marketing copywriter specializing in high-converting ad copy."
)


@dataclass
class GeneratedContent:
    blog_post: Optional[str] = None
    ad_copy: Optional[List[Dict[str, str]]] = None

    def to_fields(self) -> Dict[str, Any]:
        """Only the pieces that were generated."""
        fields = {}
        if self.blog_post is not None:
            fields["blog_post"] = self.blog_post
        if self.ad_copy is not None:
            fields["ad_copy"] = self.ad_copy
        return fields


def collect_competitor_keywords(competitors: Sequence[Any], limit: int = MAX_SEED_KEYWORDS) -> List[str]:
    """Unique competitor keywords in first-seen order."""
    seen = {}
    for c in competitors:
        for keyword in c.top_keywords or []:
            seen.setdefault(keyword, None)
    return list(seen)[:limit]


def fallback_ad_copy(analysis: Any) -> List[Dict[str, str]]:
    industry = analysis.industry or "business"
    return [
        {
            "headline": f"{analysis.business_name} - Local Expert",
            "description": (
                f"Trusted {industry} in {analysis.location}. "
                "Quality service you can count on."
            ),
            "callToAction": "Learn More",
            "platform": "google",
        },
        {
            "headline": f"Discover {analysis.business_name}",
            "description": f"Your local {industry} partner. See why customers choose us.",
            "callToAction": "Get Started",
            "platform": "facebook",
        },
    ]


# =============================================================================
# BLOG POST
# =============================================================================

def build_blog_prompt(analysis: Any, competitors: Sequence[Any], keywords: List[str]) -> str:
    competitor_context = "; ".join(
        f"{c.name}: {c.google_rating or 'N/A'} rating, {c.google_review_count or 0} reviews"
        for c in competitors[:3]
    ) or "none identified"

    return f"""Write a comprehensive, SEO-optimized blog post for {analysis.business_name}, a {analysis.industry or "business"} located in {analysis.location}.

TARGET KEYWORDS TO INCLUDE NATURALLY:
{", ".join(keywords) or "use the most natural terms for this business"}

COMPETITIVE CONTEXT:
- Main competitors: {competitor_context}
- Target business rating: {analysis.google_rating or "N/A"}
- Target business reviews: {analysis.google_review_count or 0}

REQUIREMENTS:
- Approximately 1,500 words (minimum 1,200)
- Markdown with at least 5 H2 sections and H3 subsections
- Practical tips, what sets this business apart, and a closing call-to-action

Write the complete blog post now:"""


async def generate_blog_post(
    analysis: Any,
    competitors: Sequence[Any],
    keywords: List[str],
    llm: Optional[ClaudeClient],
) -> str:
    if llm is None:
        return BLOG_FALLBACK

    response = await llm.invoke([
        {"role": "system", "content": BLOG_SYSTEM_PROMPT},
        {"role": "user", "content": build_blog_prompt(analysis, competitors, keywords)},
    ])

    if not response.success or not response.content.strip():
        logger.warning(f"Blog post generation failed: {response.error or 'empty response'}")
        return BLOG_FALLBACK

    return response.content


# =============================================================================
# AD COPY
# =============================================================================

def build_ad_copy_prompt(analysis: Any, competitors: Sequence[Any], keywords: List[str]) -> str:
    competitor_strengths = []
    for c in competitors[:3]:
        strengths = []
        if c.google_rating and float(c.google_rating) >= 4.5:
            strengths.append("high ratings")
        if c.google_review_count and c.google_review_count > 100:
            strengths.append("many reviews")
        competitor_strengths.append(f"{c.name}: {', '.join(strengths) or 'standard presence'}")

    return f"""Create ad copy variations for {analysis.business_name}, a {analysis.industry or "business"} in {analysis.location}.

BUSINESS CONTEXT:
- Rating: {analysis.google_rating or "N/A"} stars
- Reviews: {analysis.google_review_count or 0}
- Competitors: {"; ".join(competitor_strengths) or "none identified"}

TARGET KEYWORDS:
{", ".join(keywords[:8])}

Create 6 variations:
- 2 Google Ads (headline max 30 chars, description max 90, keyword-focused)
- 2 Facebook Ads (headline max 40 chars, description max 125, benefit-focused)
- 2 Instagram Ads (visual, trendy)

Each needs headline, description, callToAction and platform (google|facebook|instagram).
Differentiate from the competitors and create urgency."""


def _valid_ads(ads: Any) -> bool:
    required = ("headline", "description", "callToAction", "platform")
    return isinstance(ads, list) and all(
        isinstance(ad, dict) and all(isinstance(ad.get(k), str) for k in required)
        for ad in ads
    )


async def generate_ad_copy(
    analysis: Any,
    competitors: Sequence[Any],
    keywords: List[str],
    llm: Optional[ClaudeClient],
) -> List[Dict[str, str]]:
    if llm is None:
        return fallback_ad_copy(analysis)

    response = await llm.invoke(
        [
            {"role": "system", "content": AD_SYSTEM_PROMPT},
            {"role": "user", "content": build_ad_copy_prompt(analysis, competitors, keywords)},
        ],
        response_schema=AD_COPY_SCHEMA,
        schema_name="ad_copy_variations",
    )

    ads = (response.structured or {}).get("ads") if response.success else None
    if not _valid_ads(ads):
        logger.warning(f"Ad copy generation failed: {response.error or 'invalid response'}")
        return fallback_ad_copy(analysis)

    return ads


# =============================================================================
# ENTRY POINT
# =============================================================================

async def generate_content(
    analysis: Any,
    competitors: Sequence[Any],
    llm: Optional[ClaudeClient],
    content_type: str = "all",
) -> GeneratedContent:
    """
    Generate the requested content.

    Args:
        content_type: "blog", "adCopy" or "all"
    """
    if content_type not in CONTENT_TYPES:
        raise ValueError(f"Unknown content type '{content_type}', expected one of {CONTENT_TYPES}")

    keywords = collect_competitor_keywords(competitors)
    result = GeneratedContent()

    if content_type in ("blog", "all"):
        result.blog_post = await generate_blog_post(analysis, competitors, keywords, llm)

    if content_type in ("adCopy", "all"):
        result.ad_copy = await generate_ad_copy(analysis, competitors, keywords, llm)

    return result
