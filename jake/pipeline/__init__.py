"""
Pipeline Module

Analysis orchestration and the stage-result helpers it is built on.
"""

from .stages import SoftError, StageResult, run_stage
from .orchestrator import AnalysisPipeline, PipelineConfig, build_pipeline, MAX_COMPETITORS

__all__ = [
    "SoftError",
    "StageResult",
    "run_stage",
    "AnalysisPipeline",
    "PipelineConfig",
    "build_pipeline",
    "MAX_COMPETITORS",
]
