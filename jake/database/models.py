"""
SQLAlchemy Models for JAKE

Three tables:
1. analyses - one row per submitted business, carries pipeline status and results
2. competitors - up to five discovered competitors per analysis
3. industry_benchmarks - reference numbers used for positioning

Competitors reference their analysis by foreign key without a database-level
cascade; the repository deletes competitors before their analysis.
"""

import enum
from datetime import datetime

from sqlalchemy import (
    Column, String, Integer, Float, Boolean, DateTime, Text,
    ForeignKey, Enum, Index, JSON,
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()


# =============================================================================
# ENUMS
# =============================================================================

class AnalysisStatus(enum.Enum):
    """Status of an analysis pipeline run"""
    PENDING = "pending"
    COLLECTING = "collecting"
    ANALYZING = "analyzing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (AnalysisStatus.COMPLETED, AnalysisStatus.FAILED)


class ThreatLevel(enum.Enum):
    """Coarse competitor threat bucket derived from competitive score"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


# =============================================================================
# CORE TABLES
# =============================================================================

class Analysis(Base):
    """A user-submitted business and everything derived from it"""
    __tablename__ = "analyses"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, nullable=False, default=0)

    # Input (immutable once created)
    business_name = Column(String(255), nullable=False)
    business_url = Column(String(500))
    location = Column(String(255), nullable=False)
    industry = Column(String(100))

    # Pipeline state
    status = Column(Enum(AnalysisStatus), default=AnalysisStatus.PENDING, nullable=False)
    error_message = Column(Text)

    # Target SEO
    seo_score = Column(Integer)
    meta_title = Column(Text)
    meta_description = Column(Text)
    headings = Column(JSON)  # {"h1": [...], "h2": [...], "h3": [...]}
    word_count = Column(Integer)
    top_keywords = Column(JSON)
    seo_issues = Column(JSON)

    # Presence
    has_google_business = Column(Boolean)
    google_rating = Column(Float)
    google_review_count = Column(Integer)
    social_profiles = Column(JSON)  # {"facebook": url, ...}
    business_hours = Column(JSON)

    # AI insights
    overall_analysis = Column(Text)
    strengths = Column(JSON)       # [{"title", "explanation"}]
    weaknesses = Column(JSON)
    opportunities = Column(JSON)
    recommendations = Column(JSON)  # [{"title", "description", "impact", "action_plan"}]

    # Generated content
    blog_post = Column(Text)
    ad_copy = Column(JSON)  # [{"headline", "description", "callToAction", "platform"}]

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    completed_at = Column(DateTime)

    __table_args__ = (
        Index("idx_analyses_user", "user_id"),
        Index("idx_analyses_status", "status"),
    )


class Competitor(Base):
    """A nearby business compared against an analysis"""
    __tablename__ = "competitors"

    id = Column(Integer, primary_key=True, autoincrement=True)
    analysis_id = Column(Integer, ForeignKey("analyses.id"), nullable=False)

    # Place lookup
    place_id = Column(String(255))
    name = Column(String(255), nullable=False)
    address = Column(String(500))
    phone = Column(String(50))
    website = Column(String(500))
    google_rating = Column(Float)
    google_review_count = Column(Integer)

    # SEO (same shape as the analysis)
    seo_score = Column(Integer)
    meta_title = Column(Text)
    meta_description = Column(Text)
    headings = Column(JSON)
    word_count = Column(Integer)
    top_keywords = Column(JSON)

    # Enrichment (best effort)
    employee_count = Column(String(50))
    funding_info = Column(String(255))
    tech_stack = Column(JSON)
    recent_news = Column(JSON)

    # Derived
    competitive_score = Column(Integer)
    threat_level = Column(Enum(ThreatLevel))

    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        Index("idx_competitors_analysis", "analysis_id"),
    )


class IndustryBenchmark(Base):
    """Reference averages per industry"""
    __tablename__ = "industry_benchmarks"

    id = Column(Integer, primary_key=True, autoincrement=True)
    industry = Column(String(100), unique=True, nullable=False)

    avg_seo_score = Column(Integer)
    avg_google_rating = Column(Float)
    avg_review_count = Column(Integer)
    avg_word_count = Column(Integer)
    common_keywords = Column(JSON)
    best_practices = Column(JSON)

    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
