"""
APScheduler setup for the nightly cycle count run.

ABC classification and schedule generation are registered as one job,
so the scheduler can never start them side by side.
"""

import logging
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.jobstores.memory import MemoryJobStore
from apscheduler.executors.asyncio import AsyncIOExecutor

from fleet_inventory.config import settings

logger = logging.getLogger(__name__)

NIGHTLY_JOB_ID = 'nightly_cycle_counts'

scheduler = AsyncIOScheduler(
    jobstores={'default': MemoryJobStore()},
    executors={'default': AsyncIOExecutor()},
    job_defaults={
        'coalesce': True,  # A missed night runs once, not once per missed night
        'max_instances': 1,
        'misfire_grace_time': 3600,
    },
    timezone=settings.SCHEDULER_TIMEZONE
)


async def run_cycle_count_jobs():
    """APScheduler entry point for the nightly run."""
    from fleet_inventory.jobs.cycle_count_jobs import run_nightly_cycle_count_jobs

    result = await run_nightly_cycle_count_jobs()
    if result["errors"]:
        logger.error(f"Nightly cycle count run finished with errors: {result['errors']}")
    else:
        logger.info(
            f"Nightly cycle count run completed: "
            f"abc={result['abc']}, schedule={result['schedule']}"
        )


def start_scheduler():
    """Register the nightly job and start the scheduler."""
    if scheduler.running:
        return

    scheduler.add_job(
        run_cycle_count_jobs,
        'cron',
        hour=settings.CYCLE_COUNT_JOB_HOUR,
        minute=0,
        id=NIGHTLY_JOB_ID,
        name='Recalculate ABC and Generate Cycle Count Schedule',
        replace_existing=True,
    )
    scheduler.start()

    job = scheduler.get_job(NIGHTLY_JOB_ID)
    logger.info(f"Cycle count scheduler started; next run {job.next_run_time}")


def shutdown_scheduler():
    if scheduler.running:
        scheduler.shutdown(wait=True)
        logger.info("Cycle count scheduler stopped")


def get_job_status():
    """Scheduled jobs and their next run, for the health endpoint."""
    return [
        {
            'id': job.id,
            'name': job.name,
            'next_run_time': job.next_run_time.isoformat() if job.next_run_time else None,
        }
        for job in scheduler.get_jobs()
    ]
