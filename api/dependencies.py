"""
FastAPI dependencies shared by the JAKE routes.

Singletons are built lazily so importing the app never touches the network
or the database. Tests swap them out with app.dependency_overrides.
"""

import logging
from typing import Optional

from fastapi import Depends, Header, HTTPException, Request, Response

from jake.database import Analysis, AnalysisRepository
from jake.pipeline import AnalysisPipeline, build_pipeline
from jake.utils import FixedWindowRateLimiter, get_settings

logger = logging.getLogger(__name__)


_repository: Optional[AnalysisRepository] = None
_pipeline: Optional[AnalysisPipeline] = None
_rate_limiter: Optional[FixedWindowRateLimiter] = None


def get_repository() -> AnalysisRepository:
    global _repository
    if _repository is None:
        _repository = AnalysisRepository()
    return _repository


def get_pipeline(repository: AnalysisRepository = Depends(get_repository)) -> AnalysisPipeline:
    global _pipeline
    if _pipeline is None:
        _pipeline = build_pipeline(repository=repository)
    return _pipeline


async def close_pipeline() -> None:
    """Close the shared pipeline's HTTP clients, if it was ever built."""
    global _pipeline
    if _pipeline is None:
        return
    await _pipeline.close()
    _pipeline = None
    logger.info("Pipeline HTTP clients closed")


def get_rate_limiter() -> FixedWindowRateLimiter:
    global _rate_limiter
    if _rate_limiter is None:
        settings = get_settings()
        _rate_limiter = FixedWindowRateLimiter(
            max_requests=settings.ANALYSIS_RATE_LIMIT,
            window_seconds=settings.ANALYSIS_RATE_WINDOW,
        )
    return _rate_limiter


def get_user_id(x_user_id: int = Header(default=0, alias="X-User-Id")) -> int:
    """Caller's user id; requests without the header act as guest (0)."""
    return x_user_id


def rate_limit_key(request: Request, user_id: int) -> str:
    """Bucket for one caller: signed-in users by id, guests by client IP."""
    if user_id:
        return f"analysis:user:{user_id}"
    if request.client and request.client.host:
        return f"analysis:ip:{request.client.host}"
    return "analysis:guest"


def enforce_analysis_rate_limit(
    request: Request,
    response: Response,
    user_id: int = Depends(get_user_id),
    limiter: FixedWindowRateLimiter = Depends(get_rate_limiter),
) -> None:
    """
    Count one analysis creation against the caller's window.

    Raises HTTPException 429 (with Retry-After) when the limit is exceeded.
    """
    decision = limiter.hit(rate_limit_key(request, user_id))
    if not decision.allowed:
        raise HTTPException(
            status_code=429,
            detail=f"Rate limit exceeded. Try again in {decision.reset_in} seconds.",
            headers=decision.headers(),
        )
    for name, value in decision.headers().items():
        response.headers[name] = value


def get_owned_analysis(
    analysis_id: int,
    user_id: int = Depends(get_user_id),
    repository: AnalysisRepository = Depends(get_repository),
) -> Analysis:
    """
    Load an analysis the caller owns.

    Raises HTTPException 404 if it doesn't exist, 403 if someone else owns it.
    """
    analysis = repository.get_analysis(analysis_id)
    if analysis is None:
        raise HTTPException(status_code=404, detail="Analysis not found")
    if analysis.user_id != user_id:
        raise HTTPException(status_code=403, detail="Access denied to this analysis")
    return analysis
