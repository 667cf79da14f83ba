"""Part stock schemas."""
from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from fleet_inventory.models.part import ABCClass
from fleet_inventory.schemas.base import BaseResponseSchema, BaseCreateSchema


class PartBrief(BaseResponseSchema):
    """Part summary shown alongside a cycle count."""
    id: UUID
    part_number: str
    name: str
    abc_class: Optional[ABCClass] = None
    quantity_on_hand: Decimal


class PartResponse(PartBrief):
    """Schema for part stock response."""
    unit_cost: Optional[Decimal] = None
    usage_quantity: Optional[Decimal] = None
    is_active: bool
    updated_at: datetime


class StockMovementRequest(BaseCreateSchema):
    """Quantity received into or issued from stock."""
    quantity: Decimal = Field(..., description="Positive quantity moved")


class ABCRecalculateResponse(BaseModel):
    """Result of an ABC recalculation run."""
    updated: int
    classified: int
    flagged: list[str] = []
    class_counts: dict[str, int] = {}
