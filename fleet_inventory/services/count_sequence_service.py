"""
Sequence service for count and adjustment numbers.

Numbers are continuous per prefix and handed out under a row lock
(SELECT FOR UPDATE), so concurrent callers never receive the same one:

    CC-00001, CC-00002, ...   cycle counts
    ADJ-00001, ...            inventory adjustment transactions
"""
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fleet_inventory.config import settings
from fleet_inventory.models.cycle_count import CountSequence


ADJUSTMENT_PREFIX = "ADJ"


class CountSequenceService:
    """Atomic number generation backed by the count_sequences table."""

    def __init__(self, db: AsyncSession, padding: Optional[int] = None):
        self.db = db
        self.padding = padding or settings.COUNT_NUMBER_PADDING

    async def get_next_number(self, prefix: Optional[str] = None) -> str:
        """
        Get next number with atomic increment.

        The increment is flushed but not committed; the lock is held until
        the caller's transaction ends.
        """
        prefix = (prefix or settings.COUNT_NUMBER_PREFIX).upper()
        sequence = await self._get_or_create_sequence(prefix)
        number = sequence.get_next_number()
        await self.db.flush()
        return number

    async def _get_or_create_sequence(self, prefix: str) -> CountSequence:
        """Get existing sequence with row lock, or create a new one."""
        result = await self.db.execute(
            select(CountSequence)
            .where(CountSequence.prefix == prefix)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        sequence = result.scalar_one_or_none()
        if sequence:
            return sequence

        sequence = CountSequence(
            prefix=prefix,
            current_number=0,
            padding_length=self.padding,
        )
        self.db.add(sequence)
        await self.db.flush()

        # Re-fetch with lock to ensure atomicity
        result = await self.db.execute(
            select(CountSequence)
            .where(CountSequence.id == sequence.id)
            .with_for_update()
        )
        return result.scalar_one()
