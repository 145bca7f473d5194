"""
AI Competitive Insights

Builds a SWOT-style analysis of the target against its competitors with one
structured Claude call. Any failure (no client, API error, malformed output)
returns fallback_insights() so the pipeline never fails because of the LLM.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from .client import ClaudeClient

logger = logging.getLogger(__name__)


IMPACT_LEVELS = ("High", "Medium", "Low")

_POINT_SCHEMA = {
    "type": "object",
    "properties": {
        "title": {"type": "string"},
        "explanation": {"type": "string"},
    },
    "required": ["title", "explanation"],
    "additionalProperties": False,
}

INSIGHTS_SCHEMA = {
    "type": "object",
    "properties": {
        "overallAnalysis": {"type": "string", "description": "Executive summary of competitive landscape"},
        "detectedIndustry": {"type": "string", "description": "Detected industry category"},
        "strengths": {"type": "array", "items": _POINT_SCHEMA, "description": "Business strengths"},
        "weaknesses": {"type": "array", "items": _POINT_SCHEMA, "description": "Business weaknesses"},
        "opportunities": {"type": "array", "items": _POINT_SCHEMA, "description": "Market opportunities"},
        "recommendations": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "title": {"type": "string"},
                    "description": {"type": "string"},
                    "impact": {"type": "string", "enum": list(IMPACT_LEVELS)},
                    "action_plan": {"type": "string"},
                },
                "required": ["title", "description", "impact", "action_plan"],
                "additionalProperties": False,
            },
            "description": "Actionable recommendations with context",
        },
    },
    "required": [
        "overallAnalysis", "detectedIndustry", "strengths",
        "weaknesses", "opportunities", "recommendations",
    ],
    "additionalProperties": False,
}

SYSTEM_PROMPT = (
    "You are an expert local-business strategist with deep Local SEO knowledge. "
    "Be specific: tie every recommendation to a concrete technical or marketing action."
)


@dataclass
class AIInsights:
    overall_analysis: str
    strengths: List[Dict[str, str]] = field(default_factory=list)
    weaknesses: List[Dict[str, str]] = field(default_factory=list)
    opportunities: List[Dict[str, str]] = field(default_factory=list)
    recommendations: List[Dict[str, str]] = field(default_factory=list)
    detected_industry: Optional[str] = None
    is_fallback: bool = False

    def to_fields(self) -> Dict[str, Any]:
        return {
            "overall_analysis": self.overall_analysis,
            "strengths": self.strengths,
            "weaknesses": self.weaknesses,
            "opportunities": self.opportunities,
            "recommendations": self.recommendations,
        }


def fallback_insights() -> AIInsights:
    return AIInsights(
        overall_analysis=(
            "Unable to generate AI analysis at this time. "
            "Please review the competitor data manually."
        ),
        strengths=[{
            "title": "Data collected successfully",
            "explanation": "Data was gathered but AI analysis failed.",
        }],
        weaknesses=[{
            "title": "AI analysis unavailable",
            "explanation": "The AI service could not process the request.",
        }],
        opportunities=[{
            "title": "Review competitor data manually",
            "explanation": "Please check the competitor table for insights.",
        }],
        recommendations=[{
            "title": "Retry Analysis",
            "description": "The AI service is temporarily unavailable. Please try again later.",
            "impact": "High",
            "action_plan": "Wait a few moments and restart the analysis.",
        }],
        is_fallback=True,
    )


# =============================================================================
# PROMPT
# =============================================================================

def _summarize_competitor(index: int, c: Any) -> str:
    keywords = ", ".join((c.top_keywords or [])[:5]) or "N/A"
    threat = c.threat_level.value if c.threat_level else "unknown"
    lines = [
        f"Competitor {index}: {c.name}",
        f"- Google Rating: {c.google_rating or 'N/A'} ({c.google_review_count or 0} reviews)",
        f"- SEO Score: {c.seo_score if c.seo_score is not None else 'N/A'}/100",
        f"- Website: {c.website or 'No website'}",
        f"- Threat Level: {threat}",
        f"- Top Keywords: {keywords}",
    ]
    if c.employee_count:
        lines.append(f"- Employee Count: {c.employee_count}")
    if c.funding_info:
        lines.append(f"- Funding: {c.funding_info}")
    return "\n".join(lines)


def build_insights_prompt(analysis: Any, competitors: Sequence[Any]) -> str:
    target = "\n".join([
        f"Target Business: {analysis.business_name}",
        f"Location: {analysis.location}",
        f"Industry: {analysis.industry or 'Not specified'}",
        f"Website: {analysis.business_url or 'No website provided'}",
        f"Google Rating: {analysis.google_rating or 'N/A'} ({analysis.google_review_count or 0} reviews)",
        f"SEO Score: {analysis.seo_score if analysis.seo_score is not None else 'N/A'}/100",
        f"Content Word Count: {analysis.word_count or 0}",
        f"Has Google Business: {'Yes' if analysis.has_google_business else 'No'}",
    ])

    competitor_block = "\n\n".join(
        _summarize_competitor(i, c) for i, c in enumerate(competitors, start=1)
    ) or "No direct local competitors identified via Maps (analyze against general market standards)."

    return f"""Conduct a competitive analysis for this local business.

{target}

COMPETITORS:
{competitor_block}

Point out exactly what you see, then recommend how to scale what works and fix what does not.
Cover Local Pack ranking factors, structured data (e.g. LocalBusiness schema), review strategy,
and content structured for AI answer engines.

Provide:
- overallAnalysis: a blunt executive summary
- detectedIndustry: the specific industry niche
- strengths, weaknesses, opportunities: 2-4 items each with title and explanation
- recommendations: 3-5 items with title, description (why), impact (High/Medium/Low), action_plan (how)"""


# =============================================================================
# PARSING
# =============================================================================

def _valid_points(items: Any) -> bool:
    return isinstance(items, list) and all(
        isinstance(i, dict) and isinstance(i.get("title"), str) and isinstance(i.get("explanation"), str)
        for i in items
    )


def _valid_recommendations(items: Any) -> bool:
    required = ("title", "description", "impact", "action_plan")
    return isinstance(items, list) and all(
        isinstance(i, dict) and all(isinstance(i.get(k), str) for k in required)
        for i in items
    )


def parse_insights(data: Any) -> Optional[AIInsights]:
    """Validate a structured response. None when it doesn't match the schema."""
    if not isinstance(data, dict) or not isinstance(data.get("overallAnalysis"), str):
        return None

    for key in ("strengths", "weaknesses", "opportunities"):
        if not _valid_points(data.get(key)):
            return None
    if not _valid_recommendations(data.get("recommendations")):
        return None

    detected = data.get("detectedIndustry")
    return AIInsights(
        overall_analysis=data["overallAnalysis"],
        strengths=data["strengths"],
        weaknesses=data["weaknesses"],
        opportunities=data["opportunities"],
        recommendations=data["recommendations"],
        detected_industry=detected.strip() if isinstance(detected, str) and detected.strip() else None,
    )


async def generate_ai_insights(
    analysis: Any,
    competitors: Sequence[Any],
    llm: Optional[ClaudeClient],
) -> AIInsights:
    """Generate insights, or the fallback payload on any failure."""
    if llm is None:
        logger.warning("No LLM client configured, using fallback insights")
        return fallback_insights()

    response = await llm.invoke(
        [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": build_insights_prompt(analysis, competitors)},
        ],
        response_schema=INSIGHTS_SCHEMA,
        schema_name="competitive_analysis",
    )

    if not response.success:
        logger.warning(f"AI insights generation failed: {response.error}")
        return fallback_insights()

    insights = parse_insights(response.structured)
    if insights is None:
        logger.warning("AI insights response did not match the expected schema")
        return fallback_insights()

    return insights
