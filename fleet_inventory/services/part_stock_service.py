"""
Part stock movements.

Receipts and issues from the receiving/work-order side. Both are signed
deltas on the locked part row, the same way reconciliation writes, so
they compose with counts in any order.
"""
import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Union
from uuid import UUID

from sqlalchemy import update, func
from sqlalchemy.ext.asyncio import AsyncSession

from fleet_inventory.core.exceptions import NotFoundError, ValidationError
from fleet_inventory.models.part import Part
from fleet_inventory.services.cycle_count_state import lock_part, to_quantity

logger = logging.getLogger(__name__)


class PartStockService:
    """Writes to ``Part.quantity_on_hand`` outside of reconciliation."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_part(self, part_id: UUID) -> Part:
        part = await self.db.get(Part, part_id, populate_existing=True)
        if part is None:
            raise NotFoundError(f"Part {part_id} not found")
        return part

    async def record_receipt(self, part_id: UUID, quantity: Union[Decimal, int, str]) -> Part:
        """Add received stock."""
        qty = to_quantity(quantity)
        if qty <= 0:
            raise ValidationError("Received quantity must be positive")

        part = await lock_part(self.db, part_id)
        await self.db.execute(
            update(Part)
            .where(Part.id == part.id)
            .values(
                quantity_on_hand=Part.quantity_on_hand + qty,
                updated_at=datetime.now(timezone.utc)
            )
            .execution_options(synchronize_session=False)
        )
        part = await lock_part(self.db, part_id)
        await self.db.commit()

        logger.info(f"Received {qty} of part {part.part_number}; on hand {part.quantity_on_hand}")
        return part

    async def record_issue(self, part_id: UUID, quantity: Union[Decimal, int, str]) -> Part:
        """Issue stock to a work order; also feeds the rolling usage used by ABC."""
        qty = to_quantity(quantity)
        if qty <= 0:
            raise ValidationError("Issued quantity must be positive")

        part = await lock_part(self.db, part_id)
        if Decimal(part.quantity_on_hand) < qty:
            raise ValidationError(
                f"Cannot issue {qty} of part {part.part_number}: only {part.quantity_on_hand} on hand"
            )

        await self.db.execute(
            update(Part)
            .where(Part.id == part.id)
            .values(
                quantity_on_hand=Part.quantity_on_hand - qty,
                usage_quantity=func.coalesce(Part.usage_quantity, 0) + qty,
                updated_at=datetime.now(timezone.utc)
            )
            .execution_options(synchronize_session=False)
        )
        part = await lock_part(self.db, part_id)
        await self.db.commit()

        logger.info(f"Issued {qty} of part {part.part_number}; on hand {part.quantity_on_hand}")
        return part
