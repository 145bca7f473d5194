"""
Stage Results

Every collaborator call in the pipeline goes through run_stage(), which turns
exceptions and timeouts into a SoftError value instead of raising. Callers
can then tell "ran and found nothing" (ok, value empty) from "threw"
(not ok, error set).
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class SoftError:
    """An absorbed stage failure."""
    stage: str
    message: str
    exception_type: str
    timed_out: bool = False

    def __str__(self) -> str:
        return f"{self.stage}: {self.message}"


@dataclass
class StageResult(Generic[T]):
    stage: str
    value: Optional[T] = None
    error: Optional[SoftError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def value_or(self, default: T) -> T:
        return self.value if self.ok else default


async def run_stage(
    stage: str,
    awaitable: Awaitable[T],
    timeout: Optional[float] = None,
) -> StageResult[T]:
    """
    Await a stage, absorbing any exception or timeout as a SoftError.

    Cancellation of the surrounding task still propagates.
    """
    try:
        if timeout is not None:
            value = await asyncio.wait_for(awaitable, timeout=timeout)
        else:
            value = await awaitable
        return StageResult(stage=stage, value=value)

    except asyncio.TimeoutError:
        logger.warning(f"Stage '{stage}' timed out after {timeout}s")
        return StageResult(
            stage=stage,
            error=SoftError(
                stage=stage,
                message=f"timed out after {timeout}s",
                exception_type="TimeoutError",
                timed_out=True,
            ),
        )

    except Exception as e:
        logger.warning(f"Stage '{stage}' failed: {e}")
        return StageResult(
            stage=stage,
            error=SoftError(stage=stage, message=str(e), exception_type=type(e).__name__),
        )
