"""
Scoring Module

Deterministic competitor and positioning heuristics.
"""

from .competitive import (
    calculate_competitive_score,
    get_threat_level,
    calculate_positioning_score,
    PositioningScore,
    HIGH_THREAT_THRESHOLD,
    MEDIUM_THREAT_THRESHOLD,
)

__all__ = [
    "calculate_competitive_score",
    "get_threat_level",
    "calculate_positioning_score",
    "PositioningScore",
    "HIGH_THREAT_THRESHOLD",
    "MEDIUM_THREAT_THRESHOLD",
]
