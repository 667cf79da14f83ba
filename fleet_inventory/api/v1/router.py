from fastapi import APIRouter

from fleet_inventory.api.v1.endpoints import (
    cycle_counts,
    parts,
    inventory_adjustments,
)

api_router = APIRouter(prefix="/api/v1")

api_router.include_router(cycle_counts.router, prefix="/cycle-counts", tags=["Cycle Counts"])
api_router.include_router(parts.router, prefix="/parts", tags=["Parts"])
api_router.include_router(
    inventory_adjustments.router, prefix="/inventory-adjustments", tags=["Inventory Adjustments"]
)
