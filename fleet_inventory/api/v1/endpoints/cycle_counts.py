"""
Cycle Count API Endpoints.

- Schedule generation (batch)
- Ad-hoc counts, listing and summary
- Start / execute / cancel a count
- Reconcile a completed count into stock
"""
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Query, status

from fleet_inventory.api.deps import DB
from fleet_inventory.jobs.cycle_count_jobs import generate_schedule
from fleet_inventory.models.cycle_count import CycleCountStatus
from fleet_inventory.schemas.cycle_count import (
    CycleCountCreate, CycleCountExecute, CycleCountCancel,
    CycleCountResponse, CycleCountListResponse, CycleCountSummary,
    GenerateScheduleRequest, GenerateScheduleResponse, ReconcileResponse,
)
from fleet_inventory.schemas.inventory_adjustment import InventoryAdjustmentResponse
from fleet_inventory.schemas.part import PartResponse
from fleet_inventory.services.count_execution_service import CountExecutionService
from fleet_inventory.services.cycle_count_service import CycleCountService
from fleet_inventory.services.reconciliation_service import ReconciliationService

router = APIRouter()


@router.get(
    "",
    response_model=CycleCountListResponse,
    summary="List Cycle Counts"
)
async def list_cycle_counts(
    db: DB,
    status: Optional[CycleCountStatus] = None,
    part_id: Optional[UUID] = None,
    is_reconciled: Optional[bool] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
):
    """List cycle counts, optionally filtered by status or part."""
    service = CycleCountService(db)
    counts, total = await service.list_counts(
        status=status,
        part_id=part_id,
        is_reconciled=is_reconciled,
        skip=skip,
        limit=limit
    )
    return CycleCountListResponse(
        items=[CycleCountResponse.model_validate(c) for c in counts],
        total=total,
        skip=skip,
        limit=limit,
    )


@router.get(
    "/summary",
    response_model=CycleCountSummary,
    summary="Cycle Count Summary"
)
async def get_cycle_count_summary(db: DB):
    """Totals per status, and how many completed counts still need reconciling."""
    service = CycleCountService(db)
    return await service.get_summary()


@router.post(
    "/generate-schedule",
    response_model=GenerateScheduleResponse,
    summary="Generate Cycle Count Schedule"
)
async def generate_cycle_count_schedule(
    db: DB,
    data: Optional[GenerateScheduleRequest] = None,
):
    """Create scheduled counts for every part that is due. Safe to run repeatedly."""
    return await generate_schedule(db, data.as_of if data else None)


@router.post(
    "",
    response_model=CycleCountResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create Cycle Count"
)
async def create_cycle_count(data: CycleCountCreate, db: DB):
    """Create an ad-hoc count for one part."""
    service = CycleCountService(db)
    return await service.create_count(
        part_id=data.part_id,
        scheduled_date=data.scheduled_date,
        notes=data.notes
    )


@router.get(
    "/{count_id}",
    response_model=CycleCountResponse,
    summary="Get Cycle Count"
)
async def get_cycle_count(count_id: UUID, db: DB):
    """Get cycle count details."""
    service = CycleCountService(db)
    return await service.get_count(count_id)


@router.post(
    "/{count_id}/start",
    response_model=CycleCountResponse,
    summary="Start Cycle Count"
)
async def start_cycle_count(count_id: UUID, db: DB):
    """Mark a scheduled count as in progress."""
    service = CountExecutionService(db)
    return await service.start(count_id)


@router.post(
    "/{count_id}/execute",
    response_model=CycleCountResponse,
    summary="Execute Cycle Count"
)
async def execute_cycle_count(count_id: UUID, data: CycleCountExecute, db: DB):
    """Record the counted quantity. Stock is not changed until the count is reconciled."""
    service = CountExecutionService(db)
    return await service.execute(
        count_id,
        data.actual_quantity,
        notes=data.notes,
        counted_by_id=data.counted_by_id,
        counted_by_name=data.counted_by_name,
    )


@router.post(
    "/{count_id}/cancel",
    response_model=CycleCountResponse,
    summary="Cancel Cycle Count"
)
async def cancel_cycle_count(
    count_id: UUID,
    db: DB,
    data: Optional[CycleCountCancel] = None,
):
    """Cancel a scheduled or in-progress count."""
    service = CountExecutionService(db)
    return await service.cancel(count_id, reason=data.reason if data else None)


@router.post(
    "/{count_id}/reconcile",
    response_model=ReconcileResponse,
    summary="Reconcile Cycle Count"
)
async def reconcile_cycle_count(count_id: UUID, db: DB):
    """Apply the count's variance to the part's on-hand quantity."""
    service = ReconciliationService(db)
    result = await service.reconcile(count_id)
    return ReconcileResponse(
        cycle_count=CycleCountResponse.model_validate(result.cycle_count),
        part=PartResponse.model_validate(result.part),
        adjustment=InventoryAdjustmentResponse.model_validate(result.adjustment),
    )
