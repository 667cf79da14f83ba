from decimal import Decimal

import pytest
from sqlalchemy import select, func

from fleet_inventory.core.exceptions import (
    AlreadyReconciledError, InvalidStateError, ValidationError,
)
from fleet_inventory.models.cycle_count import CycleCount, CycleCountStatus
from fleet_inventory.models.inventory_adjustment import InventoryAdjustmentTransaction, AdjustmentType
from fleet_inventory.models.part import Part, ABCClass
from fleet_inventory.services.count_execution_service import CountExecutionService
from fleet_inventory.services.cycle_count_schedule_service import CycleCountScheduleService
from fleet_inventory.services.cycle_count_service import CycleCountService
from fleet_inventory.services.part_stock_service import PartStockService
from fleet_inventory.services.reconciliation_service import ReconciliationService


async def _on_hand(session_factory, part_id):
    async with session_factory() as session:
        return await session.scalar(select(Part.quantity_on_hand).where(Part.id == part_id))


async def _adjustment_count(session_factory):
    async with session_factory() as session:
        return await session.scalar(select(func.count()).select_from(InventoryAdjustmentTransaction))


async def test_variance_applied_on_top_of_concurrent_receipt(
    db, session_factory, make_part, make_completed_count, today
):
    part = await make_part("P-100", quantity_on_hand="100", abc_class=ABCClass.A)
    await make_completed_count(part, days_ago=31)

    await CycleCountScheduleService(db).generate_schedule(today)
    counts, _ = await CycleCountService(db).list_counts(status=CycleCountStatus.SCHEDULED)
    count = counts[0]
    assert count.expected_quantity == Decimal("100")

    executed = await CountExecutionService(db).execute(count.id, 97)
    assert executed.variance == Decimal("-3")

    # Receiving dock books +10 from its own session while the count awaits review
    async with session_factory() as receiving:
        received = await PartStockService(receiving).record_receipt(part.id, 10)
    assert received.quantity_on_hand == Decimal("110")

    result = await ReconciliationService(db).reconcile(count.id)

    assert result.part.quantity_on_hand == Decimal("107")
    assert result.cycle_count.is_reconciled is True
    assert result.cycle_count.reconciled_at is not None
    assert result.adjustment.transaction_type == AdjustmentType.CYCLE_COUNT
    assert result.adjustment.transaction_number == "ADJ-00001"
    assert result.adjustment.quantity_delta == Decimal("-3")
    assert result.adjustment.quantity_before == Decimal("110")
    assert result.adjustment.quantity_after == Decimal("107")
    assert result.adjustment.cycle_count_id == count.id
    assert await _on_hand(session_factory, part.id) == Decimal("107")


async def test_second_reconcile_writes_nothing(db, session_factory, make_part):
    part = await make_part("P-1", quantity_on_hand="20")
    count = await CycleCountService(db).create_count(part.id)
    await CountExecutionService(db).execute(count.id, 25)
    service = ReconciliationService(db)
    await service.reconcile(count.id)

    with pytest.raises(AlreadyReconciledError):
        await service.reconcile(count.id)

    assert await _on_hand(session_factory, part.id) == Decimal("25")
    assert await _adjustment_count(session_factory) == 1


async def test_open_count_cannot_be_reconciled(db, session_factory, make_part):
    part = await make_part("P-1", quantity_on_hand="20")
    count = await CycleCountService(db).create_count(part.id)

    with pytest.raises(InvalidStateError):
        await ReconciliationService(db).reconcile(count.id)

    assert await _on_hand(session_factory, part.id) == Decimal("20")
    assert await _adjustment_count(session_factory) == 0


async def test_cancelled_count_cannot_be_reconciled(db, make_part):
    part = await make_part("P-1", quantity_on_hand="20")
    count = await CycleCountService(db).create_count(part.id)
    await CountExecutionService(db).cancel(count.id)

    with pytest.raises(InvalidStateError):
        await ReconciliationService(db).reconcile(count.id)


async def test_reconcile_that_would_go_negative_is_rejected(db, session_factory, make_part):
    part = await make_part("P-1", quantity_on_hand="5")
    count = await CycleCountService(db).create_count(part.id)
    await CountExecutionService(db).execute(count.id, 0)

    async with session_factory() as workshop:
        await PartStockService(workshop).record_issue(part.id, 3)

    with pytest.raises(ValidationError):
        await ReconciliationService(db).reconcile(count.id)
    await db.rollback()

    assert await _on_hand(session_factory, part.id) == Decimal("2")
    async with session_factory() as session:
        stored = await session.get(CycleCount, count.id)
    assert stored.is_reconciled is False


async def test_zero_variance_still_leaves_an_audit_record(db, session_factory, make_part):
    part = await make_part("P-1", quantity_on_hand="8")
    count = await CycleCountService(db).create_count(part.id)
    await CountExecutionService(db).execute(count.id, 8)

    result = await ReconciliationService(db).reconcile(count.id)

    assert result.adjustment.quantity_delta == Decimal("0")
    assert await _on_hand(session_factory, part.id) == Decimal("8")
    adjustments, total = await CycleCountService(db).list_adjustments(part_id=part.id)
    assert total == 1
    assert adjustments[0].id == result.adjustment.id


async def test_issue_feeds_usage_and_guards_stock(db, make_part):
    part = await make_part("P-1", quantity_on_hand="4", usage_quantity="10")
    service = PartStockService(db)

    issued = await service.record_issue(part.id, 3)
    assert issued.quantity_on_hand == Decimal("1")
    assert issued.usage_quantity == Decimal("13")

    with pytest.raises(ValidationError):
        await service.record_issue(part.id, 2)
    with pytest.raises(ValidationError):
        await service.record_receipt(part.id, 0)


async def test_fractional_count_reconciles_to_the_stored_actual(db, session_factory, make_part):
    part = await make_part("P-1", quantity_on_hand="10.37")
    count = await CycleCountService(db).create_count(part.id)
    await CountExecutionService(db).execute(count.id, "5.455")

    result = await ReconciliationService(db).reconcile(count.id)

    assert result.adjustment.quantity_delta == Decimal("-4.91")
    assert await _on_hand(session_factory, part.id) == Decimal("5.46")


async def test_receipt_quantity_is_rounded_like_counts(db, session_factory, make_part):
    part = await make_part("P-1", quantity_on_hand="1")

    await PartStockService(db).record_receipt(part.id, "0.005")

    assert await _on_hand(session_factory, part.id) == Decimal("1.01")
