"""Inventory adjustment transaction schemas."""
from datetime import datetime
from decimal import Decimal
from typing import Optional, List
from uuid import UUID

from pydantic import BaseModel

from fleet_inventory.models.inventory_adjustment import AdjustmentType
from fleet_inventory.schemas.base import BaseResponseSchema


class InventoryAdjustmentResponse(BaseResponseSchema):
    """Schema for inventory adjustment transaction response."""
    id: UUID
    transaction_number: str
    part_id: UUID
    cycle_count_id: Optional[UUID] = None
    transaction_type: AdjustmentType
    quantity_delta: Decimal
    quantity_before: Decimal
    quantity_after: Decimal
    reason: Optional[str] = None
    created_at: datetime


class InventoryAdjustmentListResponse(BaseModel):
    """Paginated list of adjustments."""
    items: List[InventoryAdjustmentResponse]
    total: int
    skip: int
    limit: int
