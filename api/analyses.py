"""
Analysis API

Endpoints for submitting a business and reading back the results:
- POST   /api/analyses                    start an analysis (202, runs in background)
- GET    /api/analyses                    caller's analyses, newest first
- GET    /api/analyses/{id}               full result with competitors and positioning
- DELETE /api/analyses/{id}               delete with its competitors
- POST   /api/analyses/{id}/content       regenerate blog post / ad copy
- GET    /api/analyses/{id}/competitors   competitors, strongest first
- GET    /api/benchmarks/{industry}       industry reference numbers

Progress is observed by polling GET /api/analyses/{id}.
"""

import logging
from typing import Any, Dict, List, Literal, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from pydantic import BaseModel, Field

from jake.database import (
    Analysis,
    AnalysisNotFoundError,
    AnalysisRepository,
    AnalysisStatus,
    analysis_to_dict,
    benchmark_to_dict,
    competitor_to_dict,
)
from jake.pipeline import AnalysisPipeline
from jake.scoring import calculate_positioning_score

from .dependencies import (
    enforce_analysis_rate_limit,
    get_owned_analysis,
    get_pipeline,
    get_repository,
    get_user_id,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Analyses"])


# =============================================================================
# REQUEST/RESPONSE MODELS
# =============================================================================

class AnalysisRequest(BaseModel):
    """Business to analyze."""
    business_name: str = Field(..., min_length=1, max_length=255)
    location: str = Field(..., min_length=1, max_length=255, description="City, address or region")
    business_url: Optional[str] = Field(default=None, max_length=500)
    industry: Optional[str] = Field(
        default=None,
        max_length=100,
        description="Industry hint; detected from the map listing when omitted",
    )


class AnalysisCreated(BaseModel):
    id: int
    status: str
    message: str


class AnalysisSummary(BaseModel):
    id: int
    business_name: str
    location: str
    industry: Optional[str] = None
    status: str
    seo_score: Optional[int] = None
    created_at: Optional[str] = None
    completed_at: Optional[str] = None


class ContentRequest(BaseModel):
    type: Literal["blog", "adCopy", "all"] = "all"


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.post(
    "/analyses",
    response_model=AnalysisCreated,
    status_code=202,
    dependencies=[Depends(enforce_analysis_rate_limit)],
)
async def create_analysis(
    request: AnalysisRequest,
    background_tasks: BackgroundTasks,
    user_id: int = Depends(get_user_id),
    pipeline: AnalysisPipeline = Depends(get_pipeline),
):
    """
    Start a competitive analysis.

    Returns immediately with the pending record; the pipeline runs after the
    response is sent.
    """
    try:
        analysis = pipeline.start_analysis(
            business_name=request.business_name,
            location=request.location,
            business_url=request.business_url,
            industry=request.industry,
            user_id=user_id,
            schedule=background_tasks.add_task,
        )
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

    logger.info(f"Queued analysis {analysis.id} for '{analysis.business_name}' (user {user_id})")

    return AnalysisCreated(
        id=analysis.id,
        status=analysis.status.value,
        message="Analysis started. Poll GET /api/analyses/{id} for progress.",
    )


@router.get("/analyses", response_model=List[AnalysisSummary])
async def list_analyses(
    user_id: int = Depends(get_user_id),
    repository: AnalysisRepository = Depends(get_repository),
):
    """The caller's analyses, newest first."""
    return [
        AnalysisSummary(
            id=a.id,
            business_name=a.business_name,
            location=a.location,
            industry=a.industry,
            status=a.status.value,
            seo_score=a.seo_score,
            created_at=a.created_at.isoformat() if a.created_at else None,
            completed_at=a.completed_at.isoformat() if a.completed_at else None,
        )
        for a in repository.list_analyses(user_id)
    ]


@router.get("/analyses/{analysis_id}")
async def get_analysis(
    analysis: Analysis = Depends(get_owned_analysis),
    repository: AnalysisRepository = Depends(get_repository),
) -> Dict[str, Any]:
    """Full analysis; positioning is included once the analysis is completed."""
    competitors = repository.get_competitors_by_analysis(analysis.id)

    result = analysis_to_dict(analysis)
    result["competitors"] = [competitor_to_dict(c) for c in competitors]
    result["positioning"] = (
        calculate_positioning_score(analysis, competitors).to_dict()
        if analysis.status == AnalysisStatus.COMPLETED else None
    )
    return result


@router.delete("/analyses/{analysis_id}")
async def delete_analysis(
    analysis: Analysis = Depends(get_owned_analysis),
    user_id: int = Depends(get_user_id),
    repository: AnalysisRepository = Depends(get_repository),
):
    try:
        repository.delete_analysis(analysis.id, user_id)
    except AnalysisNotFoundError:
        raise HTTPException(status_code=404, detail="Analysis not found")
    except PermissionError:
        raise HTTPException(status_code=403, detail="Access denied to this analysis")

    return {"status": "deleted", "id": analysis.id}


@router.post("/analyses/{analysis_id}/content")
async def regenerate_content(
    request: ContentRequest,
    analysis: Analysis = Depends(get_owned_analysis),
    pipeline: AnalysisPipeline = Depends(get_pipeline),
):
    """Regenerate the blog post, ad copy, or both for a completed analysis."""
    if analysis.status != AnalysisStatus.COMPLETED:
        raise HTTPException(
            status_code=409,
            detail=f"Analysis is {analysis.status.value}; content can be regenerated once it is completed",
        )

    try:
        content = await pipeline.regenerate_content(analysis.id, request.type)
    except AnalysisNotFoundError:
        raise HTTPException(status_code=404, detail="Analysis not found")
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e))

    return {"id": analysis.id, "type": request.type, **content.to_fields()}


@router.get("/analyses/{analysis_id}/competitors")
async def get_competitors(
    analysis: Analysis = Depends(get_owned_analysis),
    repository: AnalysisRepository = Depends(get_repository),
) -> List[Dict[str, Any]]:
    return [competitor_to_dict(c) for c in repository.get_competitors_by_analysis(analysis.id)]


@router.get("/benchmarks/{industry}")
async def get_benchmark(
    industry: str,
    repository: AnalysisRepository = Depends(get_repository),
) -> Dict[str, Any]:
    if not industry.strip():
        raise HTTPException(status_code=422, detail="Industry is required")
    return benchmark_to_dict(repository.get_or_create_benchmark(industry))
