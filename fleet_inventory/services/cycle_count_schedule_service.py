"""
Cycle Count Schedule Service.

Creates due cycle counts from each part's ABC class and count history.
"""
import logging
import time
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Dict, Optional
from uuid import UUID

from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from fleet_inventory.config import settings
from fleet_inventory.models.cycle_count import CycleCount, CycleCountStatus
from fleet_inventory.models.part import Part, ABCClass
from fleet_inventory.services.count_sequence_service import CountSequenceService
from fleet_inventory.services.cycle_count_state import find_open_count, get_open_count_part_ids, utc_today

logger = logging.getLogger(__name__)


@dataclass
class ScheduleResult:
    """Outcome of a schedule generation run."""
    scheduled: int = 0
    skipped_open: int = 0
    not_due: int = 0
    complete: bool = True

    def as_dict(self) -> Dict:
        return {
            "scheduled": self.scheduled,
            "skipped_open": self.skipped_open,
            "not_due": self.not_due,
            "complete": self.complete,
        }


class CycleCountScheduleService:
    """Generates scheduled cycle counts for parts that are due."""

    def __init__(
        self,
        db: AsyncSession,
        intervals: Optional[Dict[str, int]] = None,
        batch_size: Optional[int] = None,
        time_budget_seconds: Optional[float] = None,
    ):
        self.db = db
        self.intervals = {
            ABCClass(key): timedelta(days=days)
            for key, days in (intervals or settings.cycle_count_intervals).items()
        }
        missing = set(ABCClass) - set(self.intervals)
        if missing:
            raise ValueError(f"Missing count interval for class(es): {sorted(c.value for c in missing)}")
        self.batch_size = batch_size or settings.CYCLE_COUNT_BATCH_SIZE
        self.time_budget_seconds = (
            time_budget_seconds if time_budget_seconds is not None
            else settings.CYCLE_COUNT_SCHEDULE_TIME_BUDGET_SECONDS
        )
        self.sequence = CountSequenceService(db)

    def interval_for(self, abc_class: Optional[ABCClass]) -> timedelta:
        """Count interval for a class; unclassified parts use the C interval."""
        return self.intervals[ABCClass(abc_class) if abc_class else ABCClass.C]

    async def _last_completed_dates(self) -> Dict[UUID, date]:
        """Most recent completion date per part."""
        result = await self.db.execute(
            select(CycleCount.part_id, func.max(CycleCount.completed_at))
            .where(CycleCount.status == CycleCountStatus.COMPLETED)
            .group_by(CycleCount.part_id)
        )
        return {
            part_id: completed_at.date()
            for part_id, completed_at in result.all()
            if completed_at is not None
        }

    def next_due_date(self, part: Part, last_completed: Optional[date]) -> Optional[date]:
        """Date the part next needs counting; None when it has no history at all."""
        base = last_completed
        if base is None and part.created_at is not None:
            base = part.created_at.date()
        if base is None:
            return None
        return base + self.interval_for(part.abc_class)

    async def generate_schedule(self, as_of: Optional[date] = None) -> ScheduleResult:
        """
        Create a scheduled count for every active part that is due on ``as_of``.

        Idempotent: parts with an open count are skipped, and the open-count
        check is repeated right before each insert, and an insert that still
        collides with a concurrently opened count is rolled back to its
        savepoint and counted as skipped. Parts are processed in
        batches, each committed on its own; once the time budget is spent the
        run stops between batches with ``complete=False`` and a re-run
        picks up the remaining parts.
        """
        as_of = as_of or utc_today()
        started = time.monotonic()
        outcome = ScheduleResult()

        open_part_ids = await get_open_count_part_ids(self.db)
        last_completed = await self._last_completed_dates()

        result = await self.db.execute(
            select(Part)
            .where(Part.is_active == True)
            .order_by(Part.part_number)
            .execution_options(populate_existing=True)
        )
        parts = list(result.scalars().all())

        for offset in range(0, len(parts), self.batch_size):
            if offset and time.monotonic() - started > self.time_budget_seconds:
                outcome.complete = False
                logger.warning(
                    f"Schedule generation for {as_of} stopped after {offset} of {len(parts)} parts "
                    f"(time budget {self.time_budget_seconds}s); run again to continue"
                )
                break

            for part in parts[offset:offset + self.batch_size]:
                if part.id in open_part_ids:
                    outcome.skipped_open += 1
                    continue

                due = self.next_due_date(part, last_completed.get(part.id))
                if due is not None and due > as_of:
                    outcome.not_due += 1
                    continue

                if await find_open_count(self.db, part.id) is not None:
                    open_part_ids.add(part.id)
                    outcome.skipped_open += 1
                    continue

                part_number = part.part_number
                try:
                    async with self.db.begin_nested():
                        count = CycleCount(
                            count_number=await self.sequence.get_next_number(),
                            part=part,
                            scheduled_date=as_of,
                            status=CycleCountStatus.SCHEDULED,
                            expected_quantity=part.quantity_on_hand,
                            is_reconciled=False,
                        )
                        self.db.add(count)
                except IntegrityError:
                    # An ad-hoc count was opened after the check above
                    if await find_open_count(self.db, part.id) is None:
                        raise
                    open_part_ids.add(part.id)
                    outcome.skipped_open += 1
                    logger.info(f"Part {part_number} got an open count concurrently; skipped")
                    continue

                open_part_ids.add(part.id)
                outcome.scheduled += 1
                logger.debug(f"Scheduled {count.count_number} for part {part_number} (due {due})")

            await self.db.commit()

        logger.info(
            f"Schedule generation for {as_of}: {outcome.scheduled} scheduled, "
            f"{outcome.skipped_open} already open, {outcome.not_due} not due"
        )
        return outcome
