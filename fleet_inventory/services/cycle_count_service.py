"""
Cycle Count Service.

Queries over cycle counts and adjustments, plus ad-hoc count creation.
"""
import logging
from datetime import date
from typing import Optional, List, Tuple, Dict, Any
from uuid import UUID

from sqlalchemy import select, func, and_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from fleet_inventory.core.exceptions import InvalidStateError, NotFoundError
from fleet_inventory.models.cycle_count import CycleCount, CycleCountStatus
from fleet_inventory.models.inventory_adjustment import InventoryAdjustmentTransaction
from fleet_inventory.models.part import Part
from fleet_inventory.services.count_sequence_service import CountSequenceService
from fleet_inventory.services.cycle_count_state import find_open_count, utc_today

logger = logging.getLogger(__name__)


class CycleCountService:
    """Service for cycle count lookups and manual scheduling."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_count(self, count_id: UUID) -> CycleCount:
        """Get a cycle count by ID."""
        result = await self.db.execute(
            select(CycleCount)
            .where(CycleCount.id == count_id)
            .execution_options(populate_existing=True)
        )
        count = result.scalar_one_or_none()
        if count is None:
            raise NotFoundError(f"Cycle count {count_id} not found")
        return count

    async def list_counts(
        self,
        status: Optional[CycleCountStatus] = None,
        part_id: Optional[UUID] = None,
        is_reconciled: Optional[bool] = None,
        skip: int = 0,
        limit: int = 100
    ) -> Tuple[List[CycleCount], int]:
        """List cycle counts with filters, newest schedule first."""
        query = select(CycleCount)

        if status:
            query = query.where(CycleCount.status == status)
        if part_id:
            query = query.where(CycleCount.part_id == part_id)
        if is_reconciled is not None:
            query = query.where(CycleCount.is_reconciled == is_reconciled)

        # Count
        count_query = select(func.count()).select_from(query.subquery())
        total = await self.db.scalar(count_query)

        # Paginate
        query = query.order_by(CycleCount.scheduled_date.desc(), CycleCount.count_number.desc())
        query = query.offset(skip).limit(limit).execution_options(populate_existing=True)

        result = await self.db.execute(query)
        counts = result.scalars().all()

        return list(counts), total or 0

    async def create_count(
        self,
        part_id: UUID,
        scheduled_date: Optional[date] = None,
        notes: Optional[str] = None
    ) -> CycleCount:
        """
        Create an ad-hoc count for one part, outside the ABC schedule.

        The same one-open-count-per-part rule applies as for generated counts,
        including when another writer opens one between the check and the commit.
        """
        part = await self.db.get(Part, part_id, populate_existing=True)
        if part is None:
            raise NotFoundError(f"Part {part_id} not found")

        existing = await find_open_count(self.db, part.id)
        if existing is not None:
            raise InvalidStateError(
                f"Part {part.part_number} already has an open cycle count ({existing.count_number})"
            )

        count = CycleCount(
            count_number=await CountSequenceService(self.db).get_next_number(),
            part=part,
            scheduled_date=scheduled_date or utc_today(),
            status=CycleCountStatus.SCHEDULED,
            expected_quantity=part.quantity_on_hand,
            notes=notes,
            is_reconciled=False,
        )
        part_number = part.part_number
        self.db.add(count)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            existing = await find_open_count(self.db, part_id)
            if existing is None:
                raise
            raise InvalidStateError(
                f"Part {part_number} already has an open cycle count ({existing.count_number})"
            )
        await self.db.refresh(count)

        logger.info(f"Created ad-hoc cycle count {count.count_number} for part {part_number}")
        return count

    async def get_summary(self) -> Dict[str, Any]:
        """Counts per status and the number waiting for reconciliation."""
        result = await self.db.execute(
            select(
                func.count().filter(CycleCount.status == CycleCountStatus.SCHEDULED).label('scheduled'),
                func.count().filter(CycleCount.status == CycleCountStatus.IN_PROGRESS).label('in_progress'),
                func.count().filter(CycleCount.status == CycleCountStatus.COMPLETED).label('completed'),
                func.count().filter(CycleCount.status == CycleCountStatus.CANCELLED).label('cancelled'),
                func.count().filter(
                    and_(
                        CycleCount.status == CycleCountStatus.COMPLETED,
                        CycleCount.is_reconciled == False
                    )
                ).label('needs_reconcile'),
                func.count().label('total')
            )
        )
        stats = result.one()

        return {
            "scheduled": stats.scheduled or 0,
            "in_progress": stats.in_progress or 0,
            "completed": stats.completed or 0,
            "cancelled": stats.cancelled or 0,
            "needs_reconcile": stats.needs_reconcile or 0,
            "total": stats.total or 0,
        }

    async def list_adjustments(
        self,
        part_id: Optional[UUID] = None,
        skip: int = 0,
        limit: int = 100
    ) -> Tuple[List[InventoryAdjustmentTransaction], int]:
        """List inventory adjustment transactions, newest first."""
        query = select(InventoryAdjustmentTransaction)
        if part_id:
            query = query.where(InventoryAdjustmentTransaction.part_id == part_id)

        total = await self.db.scalar(select(func.count()).select_from(query.subquery()))

        query = query.order_by(
            InventoryAdjustmentTransaction.created_at.desc(),
            InventoryAdjustmentTransaction.transaction_number.desc()
        ).offset(skip).limit(limit)
        result = await self.db.execute(query)
        return list(result.scalars().all()), total or 0
