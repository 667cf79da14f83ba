"""
Part Stock API Endpoints.

ABC recalculation and the stock movements that run alongside cycle counts.
"""
from uuid import UUID

from fastapi import APIRouter

from fleet_inventory.api.deps import DB
from fleet_inventory.jobs.cycle_count_jobs import recalculate_abc
from fleet_inventory.schemas.part import PartResponse, StockMovementRequest, ABCRecalculateResponse
from fleet_inventory.services.part_stock_service import PartStockService

router = APIRouter()


@router.post(
    "/recalculate-abc",
    response_model=ABCRecalculateResponse,
    summary="Recalculate ABC Classification"
)
async def recalculate_abc_classification(db: DB):
    """Reclassify all parts by usage value. Returns how many parts changed class."""
    return await recalculate_abc(db)


@router.get(
    "/{part_id}",
    response_model=PartResponse,
    summary="Get Part Stock"
)
async def get_part(part_id: UUID, db: DB):
    """Get the current stock record of a part."""
    service = PartStockService(db)
    return await service.get_part(part_id)


@router.post(
    "/{part_id}/receipts",
    response_model=PartResponse,
    summary="Receive Stock"
)
async def receive_stock(part_id: UUID, data: StockMovementRequest, db: DB):
    """Add received quantity to on-hand stock."""
    service = PartStockService(db)
    return await service.record_receipt(part_id, data.quantity)


@router.post(
    "/{part_id}/issues",
    response_model=PartResponse,
    summary="Issue Stock"
)
async def issue_stock(part_id: UUID, data: StockMovementRequest, db: DB):
    """Issue stock to a work order and record it as usage."""
    service = PartStockService(db)
    return await service.record_issue(part_id, data.quantity)
