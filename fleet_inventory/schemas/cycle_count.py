"""
Cycle Count Schemas.

Pydantic schemas for cycle count scheduling, execution and reconciliation.
"""
from datetime import datetime, date
from decimal import Decimal
from typing import Optional, List
from uuid import UUID

from pydantic import BaseModel, Field

from fleet_inventory.models.cycle_count import CycleCountStatus
from fleet_inventory.schemas.base import BaseResponseSchema, BaseCreateSchema
from fleet_inventory.schemas.inventory_adjustment import InventoryAdjustmentResponse
from fleet_inventory.schemas.part import PartBrief, PartResponse


class CycleCountCreate(BaseCreateSchema):
    """Schema for creating an ad-hoc cycle count."""
    part_id: UUID
    scheduled_date: Optional[date] = None
    notes: Optional[str] = None


class CycleCountExecute(BaseCreateSchema):
    """Physical count entered by the technician."""
    actual_quantity: Decimal
    notes: Optional[str] = None
    counted_by_id: Optional[UUID] = None
    counted_by_name: Optional[str] = Field(None, max_length=200)


class CycleCountCancel(BaseCreateSchema):
    """Schema for cancelling a cycle count."""
    reason: Optional[str] = None


class GenerateScheduleRequest(BaseCreateSchema):
    """Schema for generating the cycle count schedule."""
    as_of: Optional[date] = None


class CycleCountResponse(BaseResponseSchema):
    """Schema for cycle count response."""
    id: UUID
    count_number: str
    part_id: UUID
    part: Optional[PartBrief] = None
    scheduled_date: date
    status: CycleCountStatus

    expected_quantity: Decimal
    actual_quantity: Optional[Decimal] = None
    variance: Optional[Decimal] = None
    notes: Optional[str] = None

    counted_by_id: Optional[UUID] = None
    counted_by_name: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancel_reason: Optional[str] = None

    is_reconciled: bool
    reconciled_at: Optional[datetime] = None

    created_at: datetime
    updated_at: datetime


class CycleCountListResponse(BaseModel):
    """Paginated list of cycle counts."""
    items: List[CycleCountResponse]
    total: int
    skip: int
    limit: int


class CycleCountSummary(BaseModel):
    """Cycle count totals by status."""
    scheduled: int = 0
    in_progress: int = 0
    completed: int = 0
    cancelled: int = 0
    needs_reconcile: int = 0
    total: int = 0


class GenerateScheduleResponse(BaseModel):
    """Result of a schedule generation run."""
    scheduled: int
    skipped_open: int
    not_due: int
    complete: bool


class ReconcileResponse(BaseModel):
    """Result of reconciling a cycle count."""
    cycle_count: CycleCountResponse
    part: PartResponse
    adjustment: InventoryAdjustmentResponse
