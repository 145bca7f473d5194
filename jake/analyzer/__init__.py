"""
Analyzer Module

Claude-backed insight and content generation. Every entry point falls back
to canned output instead of raising.
"""

from .client import ClaudeClient, LLMResponse, TokenUsage
from .insights import (
    AIInsights,
    INSIGHTS_SCHEMA,
    generate_ai_insights,
    parse_insights,
    fallback_insights,
)
from .content import (
    GeneratedContent,
    CONTENT_TYPES,
    BLOG_FALLBACK,
    generate_content,
    fallback_ad_copy,
    collect_competitor_keywords,
)

__all__ = [
    "ClaudeClient",
    "LLMResponse",
    "TokenUsage",
    "AIInsights",
    "INSIGHTS_SCHEMA",
    "generate_ai_insights",
    "parse_insights",
    "fallback_insights",
    "GeneratedContent",
    "CONTENT_TYPES",
    "BLOG_FALLBACK",
    "generate_content",
    "fallback_ad_copy",
    "collect_competitor_keywords",
]
