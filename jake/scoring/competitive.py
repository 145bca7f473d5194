"""
Competitive Scoring

Two deterministic heuristics:

1. Competitor score (0-100): how strong a single competitor looks

    score = 50
          + min(seo_score / 2, 25)       if seo_score
          + (google_rating - 3) * 10     if google_rating
          + min(review_count / 10, 15)   if review_count
          + 5                            if it has a website

   Threat level: >= 75 high, >= 50 medium, otherwise low.

2. Positioning score (0-100): how the target stacks up against the
   averages of its competitors, plus a percentile of competitors beaten.

Rounding is half-up (2.5 -> 3, -2.5 -> -2) before clamping.
"""

import math
from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence

from ..database.models import ThreatLevel


HIGH_THREAT_THRESHOLD = 75
MEDIUM_THREAT_THRESHOLD = 50


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _clamp(value: int, low: int = 0, high: int = 100) -> int:
    return max(low, min(high, value))


def calculate_competitive_score(
    seo_score: Optional[float],
    google_rating: Optional[float],
    review_count: Optional[int],
    has_website: bool,
) -> int:
    """Competitor strength score. Absent (or zero) inputs contribute nothing."""
    score = 50.0

    if seo_score:
        score += min(seo_score / 2, 25)

    if google_rating:
        score += (float(google_rating) - 3) * 10  # +/- 20 points

    if review_count:
        score += min(review_count / 10, 15)

    if has_website:
        score += 5

    return _clamp(_round_half_up(score))


def get_threat_level(score: int) -> ThreatLevel:
    if score >= HIGH_THREAT_THRESHOLD:
        return ThreatLevel.HIGH
    if score >= MEDIUM_THREAT_THRESHOLD:
        return ThreatLevel.MEDIUM
    return ThreatLevel.LOW


# =============================================================================
# POSITIONING
# =============================================================================

@dataclass
class PositioningScore:
    score: int
    percentile: int
    summary: str

    def to_dict(self) -> Dict[str, Any]:
        return {"score": self.score, "percentile": self.percentile, "summary": self.summary}


def _average(values: Sequence[float], count: int) -> float:
    return sum(values) / (count or 1)


def calculate_positioning_score(analysis: Any, competitors: Sequence[Any]) -> PositioningScore:
    """
    Score the target against its competitors.

    `analysis` and `competitors` only need the attribute names used by the
    ORM models (seo_score, google_rating, google_review_count,
    has_google_business, business_url, competitive_score).
    """
    count = len(competitors)
    score = 50.0

    avg_seo = _average([c.seo_score or 0 for c in competitors], count)
    if analysis.seo_score:
        score += min(15, max(-15, (analysis.seo_score - avg_seo) / 3))

    avg_rating = _average([float(c.google_rating or 0) for c in competitors], count)
    if analysis.google_rating:
        score += (float(analysis.google_rating) - avg_rating) * 10

    avg_reviews = _average([c.google_review_count or 0 for c in competitors], count)
    if analysis.google_review_count:
        ratio = analysis.google_review_count / (avg_reviews or 1)
        score += min(10, (ratio - 1) * 5)

    if analysis.has_google_business:
        score += 5
    if analysis.business_url:
        score += 5

    final = _clamp(_round_half_up(score))

    competitor_scores = [
        c.competitive_score if c.competitive_score is not None else 50
        for c in competitors
    ]
    beaten = sum(1 for s in competitor_scores if final > s)
    percentile = _round_half_up(beaten / (count or 1) * 100)

    if final >= 75:
        summary = "Strong competitive position - leading in most metrics"
    elif final >= 60:
        summary = "Good competitive position - above average performance"
    elif final >= 40:
        summary = "Average competitive position - room for improvement"
    else:
        summary = "Weak competitive position - significant improvements needed"

    return PositioningScore(score=final, percentile=percentile, summary=summary)
