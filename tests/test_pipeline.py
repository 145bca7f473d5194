"""
Tests for the analysis pipeline.

These tests verify:
- Status only moves forward: pending -> collecting -> analyzing -> completed
- Collaborator failures are soft (fields empty / fallbacks), DB failures are hard
- Competitor fan-out isolates failures per competitor
- Industry resolution never stores generic categories
- Content regeneration leaves status and competitors alone
"""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from jake.analyzer.content import BLOG_FALLBACK
from jake.collector.enrichment import enrich_competitor as real_enrich_competitor
from jake.database import AnalysisNotFoundError, AnalysisStatus, ThreatLevel
from jake.integrations.fetcher import FetchError
from jake.integrations.maps import MapsAPIError, PlaceDetails
from jake.pipeline import AnalysisPipeline, PipelineConfig

from conftest import (
    FakeFetcher,
    VALID_ADS,
    make_llm,
    make_maps,
    make_page,
    make_place,
)


RIVALS = ["Rival Roasters", "Bean There", "Daily Grind"]


def _maps_with_rivals(count=3, listing_types=("cafe",)):
    places = [make_place(name, place_id=f"p{i}", rating=4.5, review_count=200) for i, name in enumerate(RIVALS[:count])]
    details = {
        f"p{i}": PlaceDetails(phone="(503) 555-0100", website=f"https://rival{i}.example")
        for i in range(count)
    }
    details["target"] = PlaceDetails(website="https://joescoffee.com")
    listing = make_place(
        "Joe's Coffee", place_id="target", rating=4.4, review_count=88, types=list(listing_types),
    )
    return make_maps(places=places, listing=listing, details=details)


def _fetcher_for_rivals(count=3):
    pages = {"https://joescoffee.com": make_page()}
    for i in range(count):
        pages[f"https://rival{i}.example"] = make_page(words=400)
    return FakeFetcher(pages)


@pytest.fixture
def pipeline(repository):
    return AnalysisPipeline(
        repository=repository,
        maps=_maps_with_rivals(),
        fetcher=_fetcher_for_rivals(),
        llm=make_llm(),
    )


async def _run_new(pipeline, **kwargs):
    fields = {"business_name": "Joe's Coffee", "location": "Portland, OR"}
    fields.update(kwargs)
    analysis = pipeline.repository.create_analysis(**fields)
    await pipeline.run(analysis.id)
    return pipeline.repository.get_analysis(analysis.id)


# =============================================================================
# START
# =============================================================================

class TestStartAnalysis:

    def test_returns_pending_and_schedules(self, pipeline):
        scheduled = []

        analysis = pipeline.start_analysis(
            "Joe's Coffee", "Portland, OR",
            schedule=lambda fn, *args: scheduled.append((fn, args)),
        )

        assert analysis.status == AnalysisStatus.PENDING
        assert scheduled == [(pipeline.run, (analysis.id,))]

    def test_strips_optional_inputs(self, pipeline):
        analysis = pipeline.start_analysis(
            "  Joe's Coffee ", "Portland, OR", business_url="  ", industry=" ",
            schedule=lambda *a: None,
        )
        assert analysis.business_name == "Joe's Coffee"
        assert analysis.business_url is None
        assert analysis.industry is None

    @pytest.mark.parametrize("name,location", [("", "Portland, OR"), ("Joe's Coffee", "   ")])
    def test_rejects_missing_input(self, pipeline, repository, name, location):
        with pytest.raises(ValueError):
            pipeline.start_analysis(name, location, schedule=lambda *a: None)
        assert repository.list_analyses(0) == []

    @pytest.mark.asyncio
    async def test_without_scheduler_runs_as_task(self, pipeline, repository):
        analysis = pipeline.start_analysis("Joe's Coffee", "Portland, OR")
        assert analysis.status == AnalysisStatus.PENDING

        await pipeline.wait_for_background_runs()

        assert repository.get_analysis(analysis.id).status == AnalysisStatus.COMPLETED


# =============================================================================
# HAPPY PATH
# =============================================================================

class TestPipelineRun:

    @pytest.mark.asyncio
    async def test_status_progression(self, pipeline, repository):
        with patch.object(repository, "transition_status", wraps=repository.transition_status) as spy:
            analysis = await _run_new(pipeline, business_url="https://joescoffee.com")

        targets = [call.args[1] for call in spy.call_args_list]
        assert targets == [
            AnalysisStatus.COLLECTING,
            AnalysisStatus.ANALYZING,
            AnalysisStatus.COMPLETED,
        ]
        assert analysis.status == AnalysisStatus.COMPLETED
        assert analysis.completed_at is not None

    @pytest.mark.asyncio
    async def test_persists_everything(self, pipeline, repository):
        analysis = await _run_new(pipeline, business_url="https://joescoffee.com")

        assert analysis.seo_score == 100
        assert analysis.meta_title is not None
        assert analysis.seo_issues == []
        assert analysis.has_google_business is True
        assert analysis.google_rating == 4.4
        # Discovery searched with the listing category, then the AI label filled the blank industry
        assert pipeline.maps.search_places.await_args.args[2] == "cafe"
        assert analysis.industry == "Specialty Coffee"
        assert analysis.overall_analysis.startswith("Strong local reputation")
        assert analysis.blog_post.startswith("# Coffee in Portland")
        assert analysis.ad_copy == VALID_ADS["ads"]

        competitors = repository.get_competitors_by_analysis(analysis.id)
        assert sorted(c.name for c in competitors) == sorted(RIVALS)
        for c in competitors:
            assert c.website.startswith("https://rival")
            assert c.seo_score is not None
            assert c.employee_count == "1-10 (estimated)"
            # 50 + seo/2 + 15 (rating 4.5) + 15 (200 reviews) + 5 (website)
            assert c.competitive_score == 100
            assert c.threat_level == ThreatLevel.HIGH

    @pytest.mark.asyncio
    async def test_without_url_skips_target_seo(self, pipeline):
        analysis = await _run_new(pipeline)

        assert analysis.status == AnalysisStatus.COMPLETED
        assert analysis.seo_score is None
        assert analysis.seo_issues is None

    @pytest.mark.asyncio
    async def test_target_fetch_failure_keeps_issue(self, repository):
        pipeline = AnalysisPipeline(repository, _maps_with_rivals(), FakeFetcher(), llm=None)

        analysis = await _run_new(pipeline, business_url="https://down.example")

        assert analysis.status == AnalysisStatus.COMPLETED
        assert analysis.seo_score is None
        assert analysis.seo_issues[0].startswith("Could not fetch website:")

    @pytest.mark.asyncio
    async def test_caller_industry_wins(self, pipeline):
        analysis = await _run_new(pipeline, industry="Espresso Bar")

        assert analysis.industry == "Espresso Bar"
        query = pipeline.maps.search_places.await_args.args[2]
        assert query == "Espresso Bar"

    @pytest.mark.asyncio
    async def test_generic_category_is_not_stored(self, repository):
        maps = _maps_with_rivals(listing_types=("point_of_interest", "establishment"))
        pipeline = AnalysisPipeline(repository, maps, _fetcher_for_rivals(), llm=None)

        analysis = await _run_new(pipeline)

        assert analysis.industry is None
        # Discovery falls back to a keyword from the name
        assert maps.search_places.await_args.args[2] == "coffee"

    @pytest.mark.asyncio
    async def test_detected_industry_from_ai_fills_blank(self, repository):
        maps = _maps_with_rivals(listing_types=("establishment",))
        pipeline = AnalysisPipeline(repository, maps, _fetcher_for_rivals(), llm=make_llm())

        analysis = await _run_new(pipeline)

        assert analysis.industry == "Specialty Coffee"

    @pytest.mark.asyncio
    async def test_no_competitors_still_completes(self, repository):
        maps = make_maps(places=[], listing=None)
        pipeline = AnalysisPipeline(repository, maps, FakeFetcher(), llm=None)

        analysis = await _run_new(pipeline)

        assert analysis.status == AnalysisStatus.COMPLETED
        assert analysis.has_google_business is False
        assert repository.get_competitors_by_analysis(analysis.id) == []
        assert analysis.blog_post == BLOG_FALLBACK

    @pytest.mark.asyncio
    async def test_at_most_five_competitors(self, repository):
        places = [make_place(f"Cafe Number {i}", place_id=f"c{i}") for i in range(9)]
        pipeline = AnalysisPipeline(repository, make_maps(places=places), FakeFetcher(), llm=None)

        analysis = await _run_new(pipeline)

        assert len(repository.get_competitors_by_analysis(analysis.id)) == 5

    @pytest.mark.asyncio
    async def test_config_limit(self, repository):
        places = [make_place(f"Cafe Number {i}", place_id=f"c{i}") for i in range(9)]
        pipeline = AnalysisPipeline(
            repository, make_maps(places=places), FakeFetcher(), llm=None,
            config=PipelineConfig(max_competitors=2),
        )

        analysis = await _run_new(pipeline)

        assert len(repository.get_competitors_by_analysis(analysis.id)) == 2


# =============================================================================
# FAILURES
# =============================================================================

class TestPipelineFailures:

    @pytest.mark.asyncio
    async def test_maps_outage_is_soft(self, repository):
        maps = make_maps()
        maps.find_place = AsyncMock(side_effect=MapsAPIError("down"))
        maps.geocode = AsyncMock(side_effect=MapsAPIError("down"))
        pipeline = AnalysisPipeline(repository, maps, FakeFetcher(), llm=None)

        analysis = await _run_new(pipeline)

        assert analysis.status == AnalysisStatus.COMPLETED
        assert analysis.has_google_business is False
        assert repository.get_competitors_by_analysis(analysis.id) == []

    @pytest.mark.asyncio
    async def test_isolated_enrichment_failure(self, pipeline, repository):
        async def flaky_enrich(name, website, fetcher, timeout=None):
            if name == "Bean There":
                raise FetchError("connection reset", url=website)
            return await real_enrich_competitor(name, website, fetcher, timeout=timeout)

        with patch("jake.pipeline.orchestrator.enrich_competitor", side_effect=flaky_enrich):
            analysis = await _run_new(pipeline)

        assert analysis.status == AnalysisStatus.COMPLETED
        competitors = {c.name: c for c in repository.get_competitors_by_analysis(analysis.id)}
        assert set(competitors) == set(RIVALS)

        failed = competitors["Bean There"]
        assert failed.employee_count is None
        assert failed.tech_stack is None
        assert failed.seo_score is not None
        assert failed.competitive_score is not None

        assert competitors["Rival Roasters"].employee_count == "1-10 (estimated)"
        assert competitors["Daily Grind"].employee_count == "1-10 (estimated)"

    @pytest.mark.asyncio
    async def test_unreachable_competitor_site_still_scored(self, repository):
        maps = _maps_with_rivals(count=1)
        pipeline = AnalysisPipeline(repository, maps, FakeFetcher(), llm=None)

        analysis = await _run_new(pipeline)

        [competitor] = repository.get_competitors_by_analysis(analysis.id)
        assert competitor.seo_score is None
        # 50 + 15 (rating 4.5) + 15 (200 reviews) + 5 (website)
        assert competitor.competitive_score == 85

    @pytest.mark.asyncio
    async def test_llm_timeout_uses_fallbacks(self, repository):
        async def hang(*args, **kwargs):
            await asyncio.sleep(5)

        llm = make_llm()
        llm.invoke = AsyncMock(side_effect=hang)
        pipeline = AnalysisPipeline(
            repository, _maps_with_rivals(), _fetcher_for_rivals(), llm=llm,
            config=PipelineConfig(llm_timeout=0.01),
        )

        analysis = await _run_new(pipeline)

        assert analysis.status == AnalysisStatus.COMPLETED
        assert analysis.overall_analysis.startswith("Unable to generate AI analysis")
        assert analysis.blog_post == BLOG_FALLBACK
        assert [ad["platform"] for ad in analysis.ad_copy] == ["google", "facebook"]

    @pytest.mark.asyncio
    async def test_database_failure_marks_failed(self, pipeline, repository):
        with patch.object(repository, "create_competitors", side_effect=RuntimeError("disk full")):
            analysis = await _run_new(pipeline)

        assert analysis.status == AnalysisStatus.FAILED
        assert analysis.error_message == "RuntimeError: disk full"
        assert analysis.completed_at is None

    @pytest.mark.asyncio
    async def test_failure_while_analyzing(self, pipeline, repository):
        original = repository.update_analysis

        def fail_on_insights(analysis_id, **fields):
            if "overall_analysis" in fields:
                raise RuntimeError("write failed")
            return original(analysis_id, **fields)

        with patch.object(repository, "update_analysis", side_effect=fail_on_insights):
            analysis = await _run_new(pipeline)

        assert analysis.status == AnalysisStatus.FAILED
        assert "write failed" in analysis.error_message


# =============================================================================
# RE-ENTRY
# =============================================================================

class TestPipelineReentry:

    @pytest.mark.asyncio
    async def test_completed_analysis_is_not_rerun(self, pipeline, repository):
        analysis = await _run_new(pipeline)
        count = len(repository.get_competitors_by_analysis(analysis.id))

        await pipeline.run(analysis.id)

        assert repository.get_analysis(analysis.id).status == AnalysisStatus.COMPLETED
        assert len(repository.get_competitors_by_analysis(analysis.id)) == count

    @pytest.mark.asyncio
    async def test_concurrent_runs_of_same_id(self, pipeline, repository):
        analysis = repository.create_analysis("Joe's Coffee", "Portland, OR")

        await asyncio.gather(pipeline.run(analysis.id), pipeline.run(analysis.id))

        assert repository.get_analysis(analysis.id).status == AnalysisStatus.COMPLETED
        assert len(repository.get_competitors_by_analysis(analysis.id)) == len(RIVALS)

    @pytest.mark.asyncio
    async def test_unknown_id_is_ignored(self, pipeline):
        await pipeline.run(12345)


# =============================================================================
# REGENERATION
# =============================================================================

class TestRegenerateContent:

    @pytest.mark.asyncio
    async def test_blog_only_leaves_everything_else(self, pipeline, repository):
        analysis = await _run_new(pipeline)
        before_competitors = [(c.id, c.competitive_score) for c in repository.get_competitors_by_analysis(analysis.id)]
        before_ads = analysis.ad_copy

        pipeline.llm = make_llm(blog="# A fresh take")
        content = await pipeline.regenerate_content(analysis.id, "blog")

        after = repository.get_analysis(analysis.id)
        assert content.blog_post == "# A fresh take"
        assert after.blog_post == "# A fresh take"
        assert after.ad_copy == before_ads
        assert after.status == AnalysisStatus.COMPLETED
        assert after.completed_at == analysis.completed_at
        assert [(c.id, c.competitive_score) for c in repository.get_competitors_by_analysis(analysis.id)] == before_competitors

    @pytest.mark.asyncio
    async def test_requires_completed(self, pipeline, repository):
        analysis = repository.create_analysis("Joe's Coffee", "Portland, OR")
        with pytest.raises(ValueError):
            await pipeline.regenerate_content(analysis.id, "all")

    @pytest.mark.asyncio
    async def test_unknown_analysis(self, pipeline):
        with pytest.raises(AnalysisNotFoundError):
            await pipeline.regenerate_content(999, "all")
