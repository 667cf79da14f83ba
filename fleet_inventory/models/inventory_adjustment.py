"""Inventory adjustment transactions written when a cycle count is reconciled."""
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import String, DateTime, Text, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fleet_inventory.database import Base
from fleet_inventory.db_types import UUIDType, QuantityType, StrEnumType


class AdjustmentType(str, Enum):
    """Adjustment type enum."""
    CYCLE_COUNT = "cycle_count_adjustment"  # Physical count variance


class InventoryAdjustmentTransaction(Base):
    """Signed stock delta applied to a part, for the audit trail."""
    __tablename__ = "inventory_adjustment_transactions"
    __table_args__ = (
        Index("idx_iat_part_created", "part_id", "created_at"),
    )

    id: Mapped[UUID] = mapped_column(UUIDType, primary_key=True, default=uuid4)
    transaction_number: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)

    part_id: Mapped[UUID] = mapped_column(UUIDType, ForeignKey("parts.id"), nullable=False)
    # One adjustment per count
    cycle_count_id: Mapped[Optional[UUID]] = mapped_column(
        UUIDType, ForeignKey("cycle_counts.id"), unique=True
    )

    transaction_type: Mapped[AdjustmentType] = mapped_column(
        StrEnumType(AdjustmentType, length=30), nullable=False, default=AdjustmentType.CYCLE_COUNT
    )

    quantity_delta: Mapped[Decimal] = mapped_column(QuantityType, nullable=False)  # Signed
    quantity_before: Mapped[Decimal] = mapped_column(QuantityType, nullable=False)
    quantity_after: Mapped[Decimal] = mapped_column(QuantityType, nullable=False)

    reason: Mapped[Optional[str]] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False
    )

    # Relationships
    part: Mapped["Part"] = relationship()
    cycle_count: Mapped[Optional["CycleCount"]] = relationship()

    def __repr__(self):
        return f"<InventoryAdjustmentTransaction {self.transaction_number} {self.quantity_delta}>"
