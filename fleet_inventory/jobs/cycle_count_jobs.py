"""
Cycle Count Batch Jobs.

"Recalculate ABC" and "Generate Schedule" touch every part, so they never
run at the same time: both go through one asyncio lock, and each run is
bounded by a timeout. Both jobs are idempotent, so a run cut short by the
timeout is finished by simply running it again.
"""
import asyncio
import logging
from datetime import date, datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from fleet_inventory.config import settings
from fleet_inventory.core.exceptions import BatchTimeoutError
from fleet_inventory.database import async_session_factory
from fleet_inventory.services.abc_classification_service import ABCClassificationService
from fleet_inventory.services.cycle_count_schedule_service import CycleCountScheduleService

logger = logging.getLogger(__name__)

T = TypeVar("T")

_batch_lock = asyncio.Lock()


async def run_batch_exclusive(
    job_name: str,
    job: Callable[[], Awaitable[T]],
    timeout: Optional[float] = None,
) -> T:
    """
    Run a batch job while holding the batch lock, bounded by ``timeout`` seconds.

    Raises:
        BatchTimeoutError: the job did not finish in time
    """
    timeout = timeout if timeout is not None else settings.CYCLE_COUNT_JOB_TIMEOUT_SECONDS

    async with _batch_lock:
        logger.info(f"Starting batch job '{job_name}'")
        try:
            result = await asyncio.wait_for(job(), timeout=timeout)
        except asyncio.TimeoutError:
            logger.error(f"Batch job '{job_name}' timed out after {timeout}s")
            raise BatchTimeoutError(
                f"{job_name} did not finish within {timeout} seconds; it is safe to run it again"
            )
        logger.info(f"Batch job '{job_name}' finished")
        return result


async def recalculate_abc(db: AsyncSession) -> Dict[str, Any]:
    """Recalculate ABC classes under the batch lock."""
    service = ABCClassificationService(db)
    result = await run_batch_exclusive("Recalculate ABC", service.recalculate)
    return result.as_dict()


async def generate_schedule(db: AsyncSession, as_of: Optional[date] = None) -> Dict[str, Any]:
    """Generate due cycle counts under the batch lock."""
    service = CycleCountScheduleService(db)
    result = await run_batch_exclusive(
        "Generate Schedule", lambda: service.generate_schedule(as_of)
    )
    return result.as_dict()


async def run_nightly_cycle_count_jobs(
    session_factory: async_sessionmaker = async_session_factory,
    as_of: Optional[date] = None,
) -> Dict[str, Any]:
    """
    Scheduled entry point: classify first, then schedule against fresh classes.

    Returns a summary; a failure of one step is logged and reported, and the
    schedule step is skipped when classification failed.
    """
    results: Dict[str, Any] = {
        "started_at": datetime.now(timezone.utc).isoformat(),
        "abc": None,
        "schedule": None,
        "errors": [],
    }

    try:
        async with session_factory() as session:
            results["abc"] = await recalculate_abc(session)
    except Exception as e:
        error_msg = f"ABC recalculation failed: {e}"
        logger.error(error_msg)
        results["errors"].append(error_msg)

    if not results["errors"]:
        try:
            async with session_factory() as session:
                results["schedule"] = await generate_schedule(session, as_of)
        except Exception as e:
            error_msg = f"Schedule generation failed: {e}"
            logger.error(error_msg)
            results["errors"].append(error_msg)

    results["completed_at"] = datetime.now(timezone.utc).isoformat()
    return results
