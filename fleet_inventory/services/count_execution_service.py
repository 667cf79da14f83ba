"""
Count Execution Service.

Records what a technician physically counted. Execution never touches
``Part.quantity_on_hand``: the variance is applied later, and only after
review, by the reconciliation service.
"""
import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional, Union
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from fleet_inventory.core.exceptions import ValidationError
from fleet_inventory.models.cycle_count import CycleCount, CycleCountStatus
from fleet_inventory.services.cycle_count_state import ensure_transition, lock_count, to_quantity

logger = logging.getLogger(__name__)


class CountExecutionService:
    """Start, execute and cancel cycle counts. Each call locks only the count row."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def start(self, count_id: UUID) -> CycleCount:
        """Mark a scheduled count as being counted."""
        count = await lock_count(self.db, count_id)
        ensure_transition(count, CycleCountStatus.IN_PROGRESS)

        count.status = CycleCountStatus.IN_PROGRESS
        count.started_at = datetime.now(timezone.utc)

        await self.db.commit()
        await self.db.refresh(count)
        logger.info(f"Cycle count {count.count_number} started")
        return count

    async def execute(
        self,
        count_id: UUID,
        actual_quantity: Union[Decimal, int, float, str],
        notes: Optional[str] = None,
        counted_by_id: Optional[UUID] = None,
        counted_by_name: Optional[str] = None,
    ) -> CycleCount:
        """
        Record the physical count and compute the variance.

        Variance is measured against the expected quantity captured when the
        count was generated and is never recomputed afterwards.

        Raises:
            NotFoundError: count does not exist
            InvalidStateError: count is already completed or cancelled
            ValidationError: actual quantity is negative or not a number
        """
        actual = to_quantity(actual_quantity)
        if actual < 0:
            raise ValidationError("Actual quantity cannot be negative")

        count = await lock_count(self.db, count_id)
        ensure_transition(count, CycleCountStatus.COMPLETED)

        count.actual_quantity = actual
        count.variance = actual - Decimal(count.expected_quantity)
        count.status = CycleCountStatus.COMPLETED
        count.completed_at = datetime.now(timezone.utc)
        count.counted_by_id = counted_by_id
        count.counted_by_name = counted_by_name
        if notes:
            count.notes = notes

        await self.db.commit()
        await self.db.refresh(count)
        logger.info(
            f"Cycle count {count.count_number} executed: expected={count.expected_quantity}, "
            f"actual={count.actual_quantity}, variance={count.variance}"
        )
        return count

    async def cancel(self, count_id: UUID, reason: Optional[str] = None) -> CycleCount:
        """Cancel a scheduled or in-progress count. Completed counts cannot be cancelled."""
        count = await lock_count(self.db, count_id)
        ensure_transition(count, CycleCountStatus.CANCELLED)

        count.status = CycleCountStatus.CANCELLED
        count.cancelled_at = datetime.now(timezone.utc)
        count.cancel_reason = reason

        await self.db.commit()
        await self.db.refresh(count)
        logger.info(f"Cycle count {count.count_number} cancelled")
        return count
