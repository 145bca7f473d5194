"""
Analysis Orchestration Pipeline

Takes one pending analysis through its stages, persisting progress as it goes
so a poller sees monotonic status changes:

    1.  pending -> collecting
    2.  Target SEO (only with a URL)
    3.  Online presence
    4.  Effective industry (caller's, else a non-generic detected category)
    5.  Competitor discovery (at most 5)
    6.  Per-competitor SEO + enrichment, all competitors in parallel
    7.  Competitive score and threat level per competitor
    8.  Bulk insert of competitors
    9.  collecting -> analyzing
    10. AI insights
    11. Blog post and ad copy
    12. analyzing -> completed

Collaborator failures are soft: they are absorbed by run_stage() and leave
fields empty or at fallback values. Anything else (database errors, broken
invariants) is hard and moves the analysis to failed with the reason.

A pipeline only runs on a pending analysis; there is no resume. Re-running
an id that has left pending is refused.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Set

from ..analyzer.client import ClaudeClient
from ..analyzer.content import (
    BLOG_FALLBACK,
    GeneratedContent,
    fallback_ad_copy,
    generate_content,
)
from ..analyzer.insights import fallback_insights, generate_ai_insights
from ..collector.discovery import DiscoveredCompetitor, discover_competitors
from ..collector.enrichment import ENRICHMENT_FETCH_TIMEOUT, enrich_competitor
from ..collector.presence import PresenceResult, analyze_presence
from ..collector.seo import SEO_FETCH_TIMEOUT, analyze_seo
from ..database.models import Analysis, AnalysisStatus
from ..database.repository import AnalysisNotFoundError, AnalysisRepository
from ..integrations.fetcher import HtmlFetcher
from ..integrations.maps import GoogleMapsClient
from ..scoring.competitive import calculate_competitive_score, get_threat_level
from ..utils.business_filter import is_generic_category, resolve_industry
from ..utils.config import Settings, get_settings
from .stages import run_stage

logger = logging.getLogger(__name__)


MAX_COMPETITORS = 5


@dataclass
class PipelineConfig:
    """Configuration for pipeline runs."""
    max_competitors: int = MAX_COMPETITORS

    # Per-stage timeouts in seconds (None = unbounded)
    stage_timeout: Optional[float] = 60.0
    llm_timeout: Optional[float] = 120.0

    # Fetch timeouts handed to the collectors
    seo_fetch_timeout: float = SEO_FETCH_TIMEOUT
    enrichment_fetch_timeout: float = ENRICHMENT_FETCH_TIMEOUT

    # Cap on pipelines running at once in this process (None = no cap)
    max_concurrent_runs: Optional[int] = None

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "PipelineConfig":
        settings = settings or get_settings()
        return cls(
            max_competitors=min(settings.MAX_COMPETITORS, MAX_COMPETITORS),
            stage_timeout=settings.STAGE_TIMEOUT,
            llm_timeout=settings.LLM_TIMEOUT,
            seo_fetch_timeout=settings.HTTP_TIMEOUT,
            max_concurrent_runs=settings.MAX_CONCURRENT_PIPELINES,
        )


class AnalysisPipeline:
    """
    Runs competitive analyses.

    Usage:
        pipeline = AnalysisPipeline(repository, maps, fetcher, llm)
        analysis = pipeline.start_analysis("Joe's Coffee", "Portland, OR")
        # ... later, poll repository.get_analysis(analysis.id).status
    """

    def __init__(
        self,
        repository: AnalysisRepository,
        maps: GoogleMapsClient,
        fetcher: HtmlFetcher,
        llm: Optional[ClaudeClient] = None,
        config: Optional[PipelineConfig] = None,
    ):
        self.repository = repository
        self.maps = maps
        self.fetcher = fetcher
        self.llm = llm
        self.config = config or PipelineConfig()

        self._semaphore = (
            asyncio.Semaphore(self.config.max_concurrent_runs)
            if self.config.max_concurrent_runs else None
        )
        self._running: Set[int] = set()
        self._tasks: Set[asyncio.Task] = set()

    # ========================================================================
    # ENTRY POINTS
    # ========================================================================

    def start_analysis(
        self,
        business_name: str,
        location: str,
        business_url: Optional[str] = None,
        industry: Optional[str] = None,
        user_id: int = 0,
        schedule: Optional[Callable[..., Any]] = None,
    ) -> Analysis:
        """
        Create a pending analysis and launch its pipeline in the background.

        Args:
            schedule: Scheduler such as BackgroundTasks.add_task, called as
                schedule(self.run, analysis_id). Without one, the run is
                started as an asyncio task on the current loop.

        Returns:
            The created analysis (status pending)

        Raises:
            ValueError: blank business name or location
        """
        business_name = (business_name or "").strip()
        location = (location or "").strip()
        if not business_name:
            raise ValueError("Business name is required")
        if not location:
            raise ValueError("Location is required")

        analysis = self.repository.create_analysis(
            business_name=business_name,
            location=location,
            business_url=(business_url or "").strip() or None,
            industry=(industry or "").strip() or None,
            user_id=user_id,
        )

        if schedule is not None:
            schedule(self.run, analysis.id)
        else:
            task = asyncio.create_task(self.run(analysis.id))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

        return analysis

    async def close(self) -> None:
        """Close the HTTP clients of the maps client and fetcher."""
        await self.maps.close()
        await self.fetcher.close()

    async def wait_for_background_runs(self) -> None:
        """Wait for pipelines started without an external scheduler."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def run(self, analysis_id: int) -> None:
        """
        Run the pipeline for one analysis. Never raises.

        Completion is observed through the stored status.
        """
        if self._semaphore is None:
            await self._run_guarded(analysis_id)
            return

        async with self._semaphore:
            await self._run_guarded(analysis_id)

    async def regenerate_content(self, analysis_id: int, content_type: str = "all") -> GeneratedContent:
        """
        Regenerate blog post and/or ad copy for a completed analysis.

        Only the targeted content field(s) change; status and competitors
        are left alone.

        Raises:
            AnalysisNotFoundError: unknown id
            ValueError: analysis not completed, or unknown content type
        """
        analysis = self.repository.get_analysis(analysis_id)
        if analysis is None:
            raise AnalysisNotFoundError(analysis_id)
        if analysis.status != AnalysisStatus.COMPLETED:
            raise ValueError(
                f"Analysis {analysis_id} is {analysis.status.value}; "
                "content can only be regenerated once it is completed"
            )

        competitors = self.repository.get_competitors_by_analysis(analysis_id)
        content = await generate_content(analysis, competitors, self.llm, content_type)
        self.repository.update_analysis(analysis_id, **content.to_fields())

        logger.info(f"[Analysis {analysis_id}] Regenerated content ({content_type})")
        return content

    # ========================================================================
    # RUN LIFECYCLE
    # ========================================================================

    async def _run_guarded(self, analysis_id: int) -> None:
        if analysis_id in self._running:
            logger.warning(f"[Analysis {analysis_id}] Pipeline already running, refusing re-entry")
            return

        try:
            analysis = self.repository.get_analysis(analysis_id)
        except Exception:
            logger.exception(f"[Analysis {analysis_id}] Could not load analysis")
            return

        if analysis is None:
            logger.error(f"[Analysis {analysis_id}] Not found, nothing to run")
            return

        if analysis.status != AnalysisStatus.PENDING:
            logger.warning(
                f"[Analysis {analysis_id}] Status is {analysis.status.value}, "
                "pipeline only runs on pending analyses"
            )
            return

        self._running.add(analysis_id)
        try:
            try:
                self.repository.transition_status(analysis_id, AnalysisStatus.COLLECTING)
            except Exception:
                # Still pending, and pending cannot move to failed
                logger.exception(f"[Analysis {analysis_id}] Could not start pipeline")
                return

            try:
                await self._execute(analysis)
            except Exception as e:
                logger.exception(f"[Analysis {analysis_id}] Pipeline failed: {e}")
                self._mark_failed(analysis_id, e)
        finally:
            self._running.discard(analysis_id)

    def _mark_failed(self, analysis_id: int, error: Exception) -> None:
        try:
            current = self.repository.get_analysis(analysis_id)
            if current is None or current.status.is_terminal:
                return
            self.repository.transition_status(
                analysis_id,
                AnalysisStatus.FAILED,
                error_message=f"{type(error).__name__}: {error}",
            )
        except Exception:
            logger.exception(f"[Analysis {analysis_id}] Could not record failure")

    # ========================================================================
    # STAGES
    # ========================================================================

    async def _execute(self, analysis: Analysis) -> None:
        analysis_id = analysis.id
        cfg = self.config
        repo = self.repository

        logger.info(f"[Analysis {analysis_id}] Starting competitive analysis for {analysis.business_name}")

        # Target SEO
        if analysis.business_url:
            logger.info(f"[Analysis {analysis_id}] Analyzing target business SEO...")
            seo_stage = await run_stage(
                "target_seo",
                analyze_seo(analysis.business_url, self.fetcher, timeout=cfg.seo_fetch_timeout),
                cfg.stage_timeout,
            )
            seo = seo_stage.value
            if seo is not None and seo.fetched:
                repo.update_analysis(analysis_id, seo_issues=seo.issues, **seo.to_fields())
            elif seo is not None:
                repo.update_analysis(analysis_id, seo_issues=seo.issues)

        # Online presence
        logger.info(f"[Analysis {analysis_id}] Analyzing online presence...")
        presence_stage = await run_stage(
            "presence",
            analyze_presence(analysis.business_name, analysis.location, self.maps, self.fetcher),
            cfg.stage_timeout,
        )
        presence = presence_stage.value_or(PresenceResult())
        repo.update_analysis(analysis_id, **presence.to_fields())

        # Effective industry
        industry = resolve_industry(analysis.industry, presence.primary_category)
        if industry and not analysis.industry:
            repo.update_analysis(analysis_id, industry=industry)

        # Competitor discovery
        logger.info(f"[Analysis {analysis_id}] Discovering competitors...")
        limit = min(cfg.max_competitors, MAX_COMPETITORS)
        discovery_stage = await run_stage(
            "discovery",
            discover_competitors(
                analysis.business_name, analysis.location, industry, self.maps, limit=limit,
            ),
            cfg.stage_timeout,
        )
        discovered = discovery_stage.value_or([])[:limit]

        # Per-competitor fan-out
        logger.info(f"[Analysis {analysis_id}] Analyzing {len(discovered)} competitors in parallel...")
        outcomes = await asyncio.gather(
            *(self._analyze_competitor(analysis_id, comp) for comp in discovered),
            return_exceptions=True,
        )
        records = []
        for comp, outcome in zip(discovered, outcomes):
            if isinstance(outcome, Exception):
                logger.warning(f"[Analysis {analysis_id}] Competitor {comp.name} failed: {outcome}")
                outcome = self._score(self._base_record(comp))
            records.append(outcome)

        if records:
            repo.create_competitors(analysis_id, records)

        repo.transition_status(analysis_id, AnalysisStatus.ANALYZING)

        # AI insights
        logger.info(f"[Analysis {analysis_id}] Generating AI insights...")
        current = repo.get_analysis(analysis_id)
        competitors = repo.get_competitors_by_analysis(analysis_id)

        insights_stage = await run_stage(
            "ai_insights",
            generate_ai_insights(current, competitors, self.llm),
            cfg.llm_timeout,
        )
        insights = insights_stage.value_or(fallback_insights())
        insight_fields = insights.to_fields()
        detected = insights.detected_industry
        if detected and not analysis.industry and not is_generic_category(detected):
            insight_fields["industry"] = detected
        current = repo.update_analysis(analysis_id, **insight_fields)

        # Content
        logger.info(f"[Analysis {analysis_id}] Generating content...")
        content_stage = await run_stage(
            "content",
            generate_content(current, competitors, self.llm, "all"),
            cfg.llm_timeout,
        )
        content = content_stage.value_or(
            GeneratedContent(blog_post=BLOG_FALLBACK, ad_copy=fallback_ad_copy(current))
        )
        repo.update_analysis(analysis_id, **content.to_fields())

        repo.transition_status(analysis_id, AnalysisStatus.COMPLETED)
        logger.info(f"[Analysis {analysis_id}] Competitive analysis completed successfully")

    async def _analyze_competitor(self, analysis_id: int, comp: DiscoveredCompetitor) -> Dict[str, Any]:
        """SEO and enrichment for one competitor, each failing independently."""
        cfg = self.config
        record = self._base_record(comp)

        async def no_seo():
            return None

        seo_coro = (
            analyze_seo(comp.website, self.fetcher, timeout=cfg.seo_fetch_timeout)
            if comp.website else no_seo()
        )
        seo_stage, enrichment_stage = await asyncio.gather(
            run_stage(f"competitor_seo[{comp.name}]", seo_coro, cfg.stage_timeout),
            run_stage(
                f"enrichment[{comp.name}]",
                enrich_competitor(comp.name, comp.website, self.fetcher, timeout=cfg.enrichment_fetch_timeout),
                cfg.stage_timeout,
            ),
        )

        seo = seo_stage.value
        if seo is not None and seo.fetched:
            record.update(seo.to_fields())
        elif seo is not None:
            logger.warning(f"[Analysis {analysis_id}] SEO analysis failed for {comp.name}: {seo.fetch_error}")

        if enrichment_stage.ok:
            record.update(enrichment_stage.value.to_fields())
        else:
            logger.warning(f"[Analysis {analysis_id}] Enrichment failed for {comp.name}: {enrichment_stage.error}")

        return self._score(record)

    @staticmethod
    def _base_record(comp: DiscoveredCompetitor) -> Dict[str, Any]:
        return {
            "place_id": comp.place_id or None,
            "name": comp.name,
            "address": comp.address,
            "phone": comp.phone,
            "website": comp.website,
            "google_rating": comp.rating,
            "google_review_count": comp.review_count,
        }

    @staticmethod
    def _score(record: Dict[str, Any]) -> Dict[str, Any]:
        score = calculate_competitive_score(
            record.get("seo_score"),
            record.get("google_rating"),
            record.get("google_review_count"),
            bool(record.get("website")),
        )
        record["competitive_score"] = score
        record["threat_level"] = get_threat_level(score)
        return record


def build_pipeline(
    repository: Optional[AnalysisRepository] = None,
    settings: Optional[Settings] = None,
) -> AnalysisPipeline:
    """Wire a pipeline from settings (maps mode, LLM key, timeouts)."""
    settings = settings or get_settings()
    return AnalysisPipeline(
        repository=repository or AnalysisRepository(),
        maps=GoogleMapsClient.from_settings(settings),
        fetcher=HtmlFetcher(default_timeout=settings.HTTP_TIMEOUT),
        llm=ClaudeClient.from_settings(settings),
        config=PipelineConfig.from_settings(settings),
    )
