"""Shared utilities: configuration, retries, rate limiting, business filters."""

from .config import Settings, get_settings
from .retry import (
    RetryConfig,
    CircuitBreaker,
    CircuitOpenError,
    retry_with_backoff,
    is_retryable_error,
)
from .rate_limiter import FixedWindowRateLimiter, RateLimitDecision
from .business_filter import (
    GENERIC_PLACE_TYPES,
    DIRECTORY_NAMES,
    is_generic_category,
    is_directory_listing,
    is_self_match,
    extract_industry_from_name,
    resolve_industry,
)

__all__ = [
    "Settings",
    "get_settings",
    "RetryConfig",
    "CircuitBreaker",
    "CircuitOpenError",
    "retry_with_backoff",
    "is_retryable_error",
    "FixedWindowRateLimiter",
    "RateLimitDecision",
    "GENERIC_PLACE_TYPES",
    "DIRECTORY_NAMES",
    "is_generic_category",
    "is_directory_listing",
    "is_self_match",
    "extract_industry_from_name",
    "resolve_industry",
]
