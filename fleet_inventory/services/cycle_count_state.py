"""
Cycle count state machine and shared guards.

    scheduled -> in_progress -> completed
    scheduled | in_progress -> cancelled

``is_reconciled`` is a separate one-way flag, settable only on a
completed count. Also holds the row-lock and quantity helpers shared by
every writer of counts and stock.
"""
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Dict, FrozenSet, Optional, Set, Union
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fleet_inventory.core.exceptions import (
    AlreadyReconciledError, InvalidStateError, NotFoundError, ValidationError,
)
from fleet_inventory.models.cycle_count import CycleCount, CycleCountStatus, OPEN_STATUSES
from fleet_inventory.models.part import Part

# Matches the scale of QuantityType
QUANTITY_STEP = Decimal("0.01")


ALLOWED_TRANSITIONS: Dict[CycleCountStatus, FrozenSet[CycleCountStatus]] = {
    CycleCountStatus.SCHEDULED: frozenset({
        CycleCountStatus.IN_PROGRESS,
        CycleCountStatus.COMPLETED,
        CycleCountStatus.CANCELLED,
    }),
    CycleCountStatus.IN_PROGRESS: frozenset({
        CycleCountStatus.COMPLETED,
        CycleCountStatus.CANCELLED,
    }),
    CycleCountStatus.COMPLETED: frozenset(),
    CycleCountStatus.CANCELLED: frozenset(),
}

STATUS_LABELS: Dict[CycleCountStatus, str] = {
    CycleCountStatus.SCHEDULED: "Scheduled",
    CycleCountStatus.IN_PROGRESS: "In Progress",
    CycleCountStatus.COMPLETED: "Completed",
    CycleCountStatus.CANCELLED: "Cancelled",
}


def can_transition(current: CycleCountStatus, target: CycleCountStatus) -> bool:
    return CycleCountStatus(target) in ALLOWED_TRANSITIONS[CycleCountStatus(current)]


def ensure_transition(count: CycleCount, target: CycleCountStatus) -> None:
    """Raise InvalidStateError unless ``count`` may move to ``target``."""
    if not can_transition(count.status, target):
        current = STATUS_LABELS[CycleCountStatus(count.status)]
        raise InvalidStateError(
            f"Cycle count {count.count_number} is {current.lower()} "
            f"and cannot be moved to {STATUS_LABELS[target].lower()}"
        )


def ensure_reconcilable(count: CycleCount) -> None:
    """Reconciliation needs a completed, not yet reconciled count."""
    if count.is_reconciled:
        raise AlreadyReconciledError(
            f"Cycle count {count.count_number} has already been reconciled"
        )
    if CycleCountStatus(count.status) != CycleCountStatus.COMPLETED:
        raise InvalidStateError(
            f"Cycle count {count.count_number} must be completed before it can be reconciled "
            f"(current status: {STATUS_LABELS[CycleCountStatus(count.status)].lower()})"
        )


async def lock_count(db: AsyncSession, count_id: UUID) -> CycleCount:
    """
    Load a cycle count with a row lock (SELECT FOR UPDATE).

    ``populate_existing`` overwrites any stale copy already held in the
    session's identity map with the committed row.
    """
    result = await db.execute(
        select(CycleCount)
        .where(CycleCount.id == count_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    count = result.scalar_one_or_none()
    if count is None:
        raise NotFoundError(f"Cycle count {count_id} not found")
    return count


async def find_open_count(db: AsyncSession, part_id: UUID) -> Optional[CycleCount]:
    """Return the open (scheduled/in progress) count for a part, if any."""
    result = await db.execute(
        select(CycleCount).where(
            CycleCount.part_id == part_id,
            CycleCount.status.in_(OPEN_STATUSES)
        ).limit(1)
    )
    return result.scalar_one_or_none()


async def get_open_count_part_ids(db: AsyncSession) -> Set[UUID]:
    """Part ids that currently have an open count."""
    result = await db.execute(
        select(CycleCount.part_id).where(CycleCount.status.in_(OPEN_STATUSES))
    )
    return set(result.scalars().all())


async def lock_part(db: AsyncSession, part_id: UUID) -> Part:
    """Load a part with a row lock, refreshing any cached copy."""
    result = await db.execute(
        select(Part)
        .where(Part.id == part_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    part = result.scalar_one_or_none()
    if part is None:
        raise NotFoundError(f"Part {part_id} not found")
    return part


def to_quantity(value: Union[Decimal, int, float, str]) -> Decimal:
    """
    Coerce a quantity to Decimal at storage scale (two places, half up).

    Rounding happens before any arithmetic so a variance computed from the
    result is exactly what the database stores.
    """
    try:
        quantity = Decimal(str(value))
        if quantity.is_finite():
            return quantity.quantize(QUANTITY_STEP, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError, TypeError):
        pass
    raise ValidationError(f"Invalid quantity: {value!r}")


def utc_today() -> date:
    """Current date in UTC, the same calendar as stored completion times."""
    return datetime.now(timezone.utc).date()
