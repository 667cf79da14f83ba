"""Inventory Adjustment API Endpoints (audit trail)."""
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Query

from fleet_inventory.api.deps import DB
from fleet_inventory.schemas.inventory_adjustment import (
    InventoryAdjustmentResponse, InventoryAdjustmentListResponse,
)
from fleet_inventory.services.cycle_count_service import CycleCountService

router = APIRouter()


@router.get(
    "",
    response_model=InventoryAdjustmentListResponse,
    summary="List Inventory Adjustments"
)
async def list_inventory_adjustments(
    db: DB,
    part_id: Optional[UUID] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
):
    """List adjustment transactions written by reconciliation."""
    service = CycleCountService(db)
    adjustments, total = await service.list_adjustments(part_id=part_id, skip=skip, limit=limit)
    return InventoryAdjustmentListResponse(
        items=[InventoryAdjustmentResponse.model_validate(a) for a in adjustments],
        total=total,
        skip=skip,
        limit=limit,
    )
