"""
Background Jobs Module

Handles the scheduled cycle count batch jobs:
- ABC recalculation
- Cycle count schedule generation
"""

from fleet_inventory.jobs.scheduler import scheduler, start_scheduler, shutdown_scheduler
from fleet_inventory.jobs.cycle_count_jobs import (
    run_batch_exclusive, recalculate_abc, generate_schedule, run_nightly_cycle_count_jobs,
)

__all__ = [
    "scheduler",
    "start_scheduler",
    "shutdown_scheduler",
    "run_batch_exclusive",
    "recalculate_abc",
    "generate_schedule",
    "run_nightly_cycle_count_jobs",
]
