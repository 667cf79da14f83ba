from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import select

from fleet_inventory.core.exceptions import InvalidStateError, NotFoundError, ValidationError
from fleet_inventory.models.cycle_count import CycleCount, CycleCountStatus
from fleet_inventory.models.part import Part
from fleet_inventory.services.count_execution_service import CountExecutionService
from fleet_inventory.services.cycle_count_state import to_quantity
from fleet_inventory.services.cycle_count_service import CycleCountService


@pytest.fixture
def scheduled_count(db, make_part):
    async def _make(quantity_on_hand="100"):
        part = await make_part("P-100", quantity_on_hand=quantity_on_hand)
        return await CycleCountService(db).create_count(part.id)

    return _make


async def test_execute_records_variance(db, scheduled_count):
    count = await scheduled_count("100")

    executed = await CountExecutionService(db).execute(
        count.id, Decimal("97"), notes="Two on the floor, one missing", counted_by_name="R. Diaz"
    )

    assert executed.status == CycleCountStatus.COMPLETED
    assert executed.actual_quantity == Decimal("97")
    assert executed.variance == Decimal("-3")
    assert executed.completed_at is not None
    assert executed.counted_by_name == "R. Diaz"
    assert executed.is_reconciled is False


async def test_execute_does_not_touch_stock(db, session_factory, scheduled_count):
    count = await scheduled_count("100")

    await CountExecutionService(db).execute(count.id, 140)

    async with session_factory() as session:
        part = await session.scalar(select(Part).where(Part.id == count.part_id))
    assert part.quantity_on_hand == Decimal("100")


async def test_negative_count_is_rejected(db, session_factory, scheduled_count):
    count = await scheduled_count()

    with pytest.raises(ValidationError):
        await CountExecutionService(db).execute(count.id, -1)

    async with session_factory() as session:
        stored = await session.get(CycleCount, count.id)
    assert stored.status == CycleCountStatus.SCHEDULED
    assert stored.variance is None


async def test_non_numeric_quantity_is_rejected():
    with pytest.raises(ValidationError):
        to_quantity("a dozen")
    with pytest.raises(ValidationError):
        to_quantity("NaN")
    assert to_quantity(3) == Decimal("3")


async def test_completed_count_cannot_be_executed_again(db, scheduled_count):
    count = await scheduled_count()
    service = CountExecutionService(db)
    await service.execute(count.id, 99)

    with pytest.raises(InvalidStateError):
        await service.execute(count.id, 98)

    stored = await CycleCountService(db).get_count(count.id)
    assert stored.variance == Decimal("-1")


async def test_start_then_execute(db, scheduled_count):
    count = await scheduled_count("10")
    service = CountExecutionService(db)

    started = await service.start(count.id)
    assert started.status == CycleCountStatus.IN_PROGRESS
    assert started.started_at is not None

    with pytest.raises(InvalidStateError):
        await service.start(count.id)

    executed = await service.execute(count.id, 12)
    assert executed.status == CycleCountStatus.COMPLETED
    assert executed.variance == Decimal("2")


async def test_cancel_open_count(db, scheduled_count):
    count = await scheduled_count()
    service = CountExecutionService(db)
    await service.start(count.id)

    cancelled = await service.cancel(count.id, reason="Bin relocated")

    assert cancelled.status == CycleCountStatus.CANCELLED
    assert cancelled.cancel_reason == "Bin relocated"
    with pytest.raises(InvalidStateError):
        await service.execute(count.id, 5)


async def test_completed_count_cannot_be_cancelled(db, scheduled_count):
    count = await scheduled_count()
    service = CountExecutionService(db)
    await service.execute(count.id, 100)

    with pytest.raises(InvalidStateError):
        await service.cancel(count.id)


async def test_unknown_count(db):
    with pytest.raises(NotFoundError):
        await CountExecutionService(db).execute(uuid4(), 1)
    with pytest.raises(NotFoundError):
        await CycleCountService(db).get_count(uuid4())


async def test_fractional_count_keeps_variance_consistent(db, session_factory, scheduled_count):
    count = await scheduled_count("10.37")

    await CountExecutionService(db).execute(count.id, "5.455")

    async with session_factory() as session:
        stored = await session.get(CycleCount, count.id)
    assert stored.actual_quantity == Decimal("5.46")
    assert stored.variance == Decimal("-4.91")
    assert stored.variance == stored.actual_quantity - stored.expected_quantity


async def test_quantities_round_half_up_to_two_places():
    assert to_quantity("5.455") == Decimal("5.46")
    assert to_quantity("0.004") == Decimal("0.00")
    assert to_quantity(2.675) == Decimal("2.68")
    with pytest.raises(ValidationError):
        to_quantity("1e30")
