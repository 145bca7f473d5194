"""
Repository Layer - Clean Interface for Data Operations

Wraps all SQLAlchemy work behind one object so the pipeline and the API never
touch sessions directly. Every write is scoped to a single analysis id.

Rows come back detached (sessions are created with expire_on_commit=False),
so callers can read attributes after the session closes.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import text
from sqlalchemy.orm import sessionmaker

from .models import Analysis, AnalysisStatus, Competitor, IndustryBenchmark, ThreatLevel
from .session import get_session_factory, session_scope
from .status import ensure_transition

logger = logging.getLogger(__name__)


class AnalysisNotFoundError(Exception):
    """Raised when an analysis id does not exist."""

    def __init__(self, analysis_id: int):
        self.analysis_id = analysis_id
        super().__init__(f"Analysis {analysis_id} not found")


class TerminalAnalysisError(Exception):
    """Raised when derived fields of a completed/failed analysis would change."""


# Only generated content may be rewritten once an analysis is terminal
CONTENT_FIELDS = frozenset({"blog_post", "ad_copy"})

# Owned by transition_status or fixed at creation
PROTECTED_FIELDS = frozenset({
    "id", "user_id", "business_name", "business_url", "location",
    "status", "completed_at", "created_at",
})

BENCHMARK_DEFAULTS = {
    "avg_seo_score": 65,
    "avg_google_rating": 4.2,
    "avg_review_count": 50,
    "avg_word_count": 800,
}


class AnalysisRepository:
    """Record store for analyses, competitors and industry benchmarks."""

    def __init__(self, session_factory: Optional[sessionmaker] = None):
        self._session_factory = session_factory

    def _session(self):
        return session_scope(self._session_factory or get_session_factory())

    def check_connection(self) -> bool:
        """Round-trip a trivial query (used by the health endpoint)."""
        try:
            with self._session() as db:
                db.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.error(f"Database connection check failed: {e}")
            return False

    # =========================================================================
    # ANALYSES
    # =========================================================================

    def create_analysis(
        self,
        business_name: str,
        location: str,
        business_url: Optional[str] = None,
        industry: Optional[str] = None,
        user_id: int = 0,
    ) -> Analysis:
        """Create a new analysis in the pending state."""
        with self._session() as db:
            analysis = Analysis(
                user_id=user_id,
                business_name=business_name,
                business_url=business_url,
                location=location,
                industry=industry,
                status=AnalysisStatus.PENDING,
            )
            db.add(analysis)
            db.flush()
            logger.info(f"Created analysis {analysis.id} for '{business_name}'")
            return analysis

    def get_analysis(self, analysis_id: int) -> Optional[Analysis]:
        with self._session() as db:
            return db.get(Analysis, analysis_id)

    def update_analysis(self, analysis_id: int, **fields: Any) -> Analysis:
        """
        Overwrite derived fields of one analysis.

        Raises:
            AnalysisNotFoundError: unknown id
            TerminalAnalysisError: non-content fields on a completed/failed analysis
            ValueError: status, timestamps or input fields (use transition_status)
        """
        protected = PROTECTED_FIELDS.intersection(fields)
        if protected:
            raise ValueError(f"Fields cannot be set through update_analysis: {sorted(protected)}")

        unknown = [name for name in fields if not hasattr(Analysis, name)]
        if unknown:
            raise ValueError(f"Unknown analysis fields: {unknown}")

        with self._session() as db:
            analysis = db.get(Analysis, analysis_id)
            if analysis is None:
                raise AnalysisNotFoundError(analysis_id)

            if analysis.status.is_terminal and not CONTENT_FIELDS.issuperset(fields):
                raise TerminalAnalysisError(
                    f"Analysis {analysis_id} is {analysis.status.value}; "
                    f"only {sorted(CONTENT_FIELDS)} may change"
                )

            for name, value in fields.items():
                setattr(analysis, name, value)
            analysis.updated_at = datetime.utcnow()
            return analysis

    def transition_status(
        self,
        analysis_id: int,
        target: AnalysisStatus,
        error_message: Optional[str] = None,
    ) -> Analysis:
        """
        Move an analysis to its next status.

        completed_at is stamped only on the move to completed; error_message
        is only kept on the move to failed.
        """
        with self._session() as db:
            analysis = db.get(Analysis, analysis_id)
            if analysis is None:
                raise AnalysisNotFoundError(analysis_id)

            ensure_transition(analysis.status, target)

            now = datetime.utcnow()
            analysis.status = target
            analysis.updated_at = now
            if target == AnalysisStatus.COMPLETED:
                analysis.completed_at = now
            if target == AnalysisStatus.FAILED:
                analysis.error_message = error_message

            logger.info(f"[Analysis {analysis_id}] Status -> {target.value}")
            return analysis

    def list_analyses(self, user_id: int) -> List[Analysis]:
        """All analyses owned by a user, newest first."""
        with self._session() as db:
            return (
                db.query(Analysis)
                .filter(Analysis.user_id == user_id)
                .order_by(Analysis.created_at.desc(), Analysis.id.desc())
                .all()
            )

    def delete_analysis(self, analysis_id: int, user_id: int) -> None:
        """
        Delete an analysis and its competitors.

        Raises:
            AnalysisNotFoundError: unknown id
            PermissionError: the analysis belongs to another user
        """
        with self._session() as db:
            analysis = db.get(Analysis, analysis_id)
            if analysis is None:
                raise AnalysisNotFoundError(analysis_id)
            if analysis.user_id != user_id:
                raise PermissionError(f"Analysis {analysis_id} is not owned by user {user_id}")

            deleted = (
                db.query(Competitor)
                .filter(Competitor.analysis_id == analysis_id)
                .delete(synchronize_session=False)
            )
            db.flush()
            db.delete(analysis)

        logger.info(f"Deleted analysis {analysis_id} and {deleted} competitors")

    # =========================================================================
    # COMPETITORS
    # =========================================================================

    def create_competitors(
        self,
        analysis_id: int,
        competitors: Iterable[Dict[str, Any]],
    ) -> List[Competitor]:
        """Insert all competitors of one analysis in a single transaction."""
        rows = []
        for data in competitors:
            data = dict(data)
            threat = data.get("threat_level")
            if isinstance(threat, str):
                data["threat_level"] = ThreatLevel(threat)
            rows.append(Competitor(analysis_id=analysis_id, **data))

        if not rows:
            return []

        with self._session() as db:
            db.add_all(rows)
            db.flush()

        logger.info(f"[Analysis {analysis_id}] Stored {len(rows)} competitors")
        return rows

    def get_competitors_by_analysis(self, analysis_id: int) -> List[Competitor]:
        """Competitors of one analysis, strongest first."""
        with self._session() as db:
            return (
                db.query(Competitor)
                .filter(Competitor.analysis_id == analysis_id)
                .order_by(Competitor.competitive_score.desc(), Competitor.id)
                .all()
            )

    # =========================================================================
    # BENCHMARKS
    # =========================================================================

    def get_or_create_benchmark(self, industry: str) -> IndustryBenchmark:
        """Return the benchmark row for an industry, seeding defaults on first use."""
        key = industry.strip().lower()
        with self._session() as db:
            benchmark = (
                db.query(IndustryBenchmark)
                .filter(IndustryBenchmark.industry == key)
                .first()
            )
            if benchmark is None:
                benchmark = IndustryBenchmark(
                    industry=key,
                    common_keywords=[],
                    best_practices=[],
                    **BENCHMARK_DEFAULTS,
                )
                db.add(benchmark)
                db.flush()
                logger.info(f"Created default benchmark for industry '{key}'")
            return benchmark


# =============================================================================
# SERIALIZATION HELPERS
# =============================================================================

def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def analysis_to_dict(a: Analysis) -> Dict[str, Any]:
    return {
        "id": a.id,
        "user_id": a.user_id,
        "business_name": a.business_name,
        "business_url": a.business_url,
        "location": a.location,
        "industry": a.industry,
        "status": a.status.value,
        "error_message": a.error_message,
        "seo_score": a.seo_score,
        "meta_title": a.meta_title,
        "meta_description": a.meta_description,
        "headings": a.headings,
        "word_count": a.word_count,
        "top_keywords": a.top_keywords,
        "seo_issues": a.seo_issues,
        "has_google_business": a.has_google_business,
        "google_rating": a.google_rating,
        "google_review_count": a.google_review_count,
        "social_profiles": a.social_profiles,
        "business_hours": a.business_hours,
        "overall_analysis": a.overall_analysis,
        "strengths": a.strengths,
        "weaknesses": a.weaknesses,
        "opportunities": a.opportunities,
        "recommendations": a.recommendations,
        "blog_post": a.blog_post,
        "ad_copy": a.ad_copy,
        "created_at": _iso(a.created_at),
        "updated_at": _iso(a.updated_at),
        "completed_at": _iso(a.completed_at),
    }


def competitor_to_dict(c: Competitor) -> Dict[str, Any]:
    return {
        "id": c.id,
        "analysis_id": c.analysis_id,
        "place_id": c.place_id,
        "name": c.name,
        "address": c.address,
        "phone": c.phone,
        "website": c.website,
        "google_rating": c.google_rating,
        "google_review_count": c.google_review_count,
        "seo_score": c.seo_score,
        "meta_title": c.meta_title,
        "meta_description": c.meta_description,
        "headings": c.headings,
        "word_count": c.word_count,
        "top_keywords": c.top_keywords,
        "employee_count": c.employee_count,
        "funding_info": c.funding_info,
        "tech_stack": c.tech_stack,
        "recent_news": c.recent_news,
        "competitive_score": c.competitive_score,
        "threat_level": c.threat_level.value if c.threat_level else None,
    }


def benchmark_to_dict(b: IndustryBenchmark) -> Dict[str, Any]:
    return {
        "industry": b.industry,
        "avg_seo_score": b.avg_seo_score,
        "avg_google_rating": b.avg_google_rating,
        "avg_review_count": b.avg_review_count,
        "avg_word_count": b.avg_word_count,
        "common_keywords": b.common_keywords or [],
        "best_practices": b.best_practices or [],
    }
