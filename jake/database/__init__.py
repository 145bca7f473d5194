"""
Database Module

SQLAlchemy models, session management and the analysis repository.
"""

from .models import (
    Base,
    Analysis,
    Competitor,
    IndustryBenchmark,
    AnalysisStatus,
    ThreatLevel,
)
from .session import (
    get_database_url,
    create_db_engine,
    get_engine,
    get_session_factory,
    make_session_factory,
    reset_engine,
    session_scope,
    init_db,
    check_db_connection,
)
from .status import (
    ALLOWED_TRANSITIONS,
    InvalidStatusTransition,
    can_transition,
    ensure_transition,
)
from .repository import (
    AnalysisRepository,
    AnalysisNotFoundError,
    TerminalAnalysisError,
    CONTENT_FIELDS,
    analysis_to_dict,
    competitor_to_dict,
    benchmark_to_dict,
)

__all__ = [
    # Models
    "Base",
    "Analysis",
    "Competitor",
    "IndustryBenchmark",
    "AnalysisStatus",
    "ThreatLevel",
    # Session
    "get_database_url",
    "create_db_engine",
    "get_engine",
    "get_session_factory",
    "make_session_factory",
    "reset_engine",
    "session_scope",
    "init_db",
    "check_db_connection",
    # Status
    "ALLOWED_TRANSITIONS",
    "InvalidStatusTransition",
    "can_transition",
    "ensure_transition",
    # Repository
    "AnalysisRepository",
    "AnalysisNotFoundError",
    "TerminalAnalysisError",
    "CONTENT_FIELDS",
    "analysis_to_dict",
    "competitor_to_dict",
    "benchmark_to_dict",
]
