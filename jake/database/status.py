"""
Analysis status state machine.

    pending -> collecting -> analyzing -> completed
                   |             |
                   +--> failed <-+

Transitions only move forward. completed and failed are terminal.
"""

from typing import Dict, FrozenSet

from .models import AnalysisStatus


ALLOWED_TRANSITIONS: Dict[AnalysisStatus, FrozenSet[AnalysisStatus]] = {
    AnalysisStatus.PENDING: frozenset({AnalysisStatus.COLLECTING}),
    AnalysisStatus.COLLECTING: frozenset({AnalysisStatus.ANALYZING, AnalysisStatus.FAILED}),
    AnalysisStatus.ANALYZING: frozenset({AnalysisStatus.COMPLETED, AnalysisStatus.FAILED}),
    AnalysisStatus.COMPLETED: frozenset(),
    AnalysisStatus.FAILED: frozenset(),
}


class InvalidStatusTransition(Exception):
    """Raised when a status change would break the forward-only state machine."""

    def __init__(self, current: AnalysisStatus, target: AnalysisStatus):
        self.current = current
        self.target = target
        super().__init__(f"Cannot move analysis from '{current.value}' to '{target.value}'")


def can_transition(current: AnalysisStatus, target: AnalysisStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


def ensure_transition(current: AnalysisStatus, target: AnalysisStatus) -> None:
    """Raise InvalidStatusTransition unless current -> target is allowed."""
    if not can_transition(current, target):
        raise InvalidStatusTransition(current, target)
