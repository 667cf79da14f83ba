"""
Reconciliation Service.

Applies a completed count's variance to the part's on-hand quantity as a
signed delta against the *current* committed quantity, never as an absolute
overwrite, so stock movements between generation and reconciliation
(receipts, issues, other counts) are preserved.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from fleet_inventory.core.exceptions import ValidationError
from fleet_inventory.models.cycle_count import CycleCount
from fleet_inventory.models.inventory_adjustment import InventoryAdjustmentTransaction, AdjustmentType
from fleet_inventory.models.part import Part
from fleet_inventory.services.count_sequence_service import CountSequenceService, ADJUSTMENT_PREFIX
from fleet_inventory.services.cycle_count_state import ensure_reconcilable, lock_count, lock_part

logger = logging.getLogger(__name__)


@dataclass
class ReconciliationResult:
    part: Part
    adjustment: InventoryAdjustmentTransaction
    cycle_count: CycleCount


class ReconciliationService:
    """Applies cycle count variances to stock."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.sequence = CountSequenceService(db)

    async def reconcile(self, count_id) -> ReconciliationResult:
        """
        Apply a completed count's variance to stock.

        Locks the count row, then the part row, so the read-then-write of
        ``quantity_on_hand`` is serialized against every other writer of
        the same part. The update itself is an SQL expression
        (``quantity_on_hand + variance``).

        Raises:
            NotFoundError: count or part does not exist
            InvalidStateError: count is not completed
            AlreadyReconciledError: variance was already applied
            ValidationError: applying the variance would make stock negative
        """
        count = await lock_count(self.db, count_id)
        ensure_reconcilable(count)

        part = await lock_part(self.db, count.part_id)
        variance = Decimal(count.variance or 0)

        if Decimal(part.quantity_on_hand) + variance < 0:
            raise ValidationError(
                f"Reconciling {count.count_number} would reduce part {part.part_number} below zero "
                f"(on hand {part.quantity_on_hand}, variance {variance}); recount required"
            )

        now = datetime.now(timezone.utc)
        await self.db.execute(
            update(Part)
            .where(Part.id == part.id)
            .values(quantity_on_hand=Part.quantity_on_hand + variance, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        part = await lock_part(self.db, part.id)
        quantity_after = Decimal(part.quantity_on_hand)

        adjustment = InventoryAdjustmentTransaction(
            transaction_number=await self.sequence.get_next_number(ADJUSTMENT_PREFIX),
            part_id=part.id,
            cycle_count_id=count.id,
            transaction_type=AdjustmentType.CYCLE_COUNT,
            quantity_delta=variance,
            quantity_before=quantity_after - variance,
            quantity_after=quantity_after,
            reason=f"Cycle count {count.count_number} reconciliation",
        )
        self.db.add(adjustment)

        count.is_reconciled = True
        count.reconciled_at = now

        await self.db.commit()
        await self.db.refresh(count)

        logger.info(
            f"Reconciled {count.count_number}: part {part.part_number} "
            f"{adjustment.quantity_before} -> {adjustment.quantity_after} ({variance:+})"
        )
        return ReconciliationResult(part=part, adjustment=adjustment, cycle_count=count)
