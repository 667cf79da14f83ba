"""Part stock model: the inventory fields the cycle-count engine reads and writes."""
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import String, DateTime, Boolean, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column

from fleet_inventory.database import Base
from fleet_inventory.db_types import UUIDType, QuantityType, CostType, StrEnumType


class ABCClass(str, Enum):
    """ABC classification for parts."""
    A = "A"  # Highest usage value, counted most often
    B = "B"  # Medium usage value
    C = "C"  # Low or no usage value, counted least often


class Part(Base):
    """
    Part stock record.

    Only ``quantity_on_hand`` and ``abc_class`` are written by the
    cycle-count engine; everything else belongs to the parts catalog.
    """
    __tablename__ = "parts"
    __table_args__ = (
        CheckConstraint("quantity_on_hand >= 0", name="ck_parts_quantity_on_hand_non_negative"),
    )

    id: Mapped[UUID] = mapped_column(UUIDType, primary_key=True, default=uuid4)
    part_number: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)

    # Stock
    quantity_on_hand: Mapped[Decimal] = mapped_column(
        QuantityType, nullable=False, default=Decimal("0")
    )
    unit_cost: Mapped[Optional[Decimal]] = mapped_column(CostType)
    usage_quantity: Mapped[Optional[Decimal]] = mapped_column(QuantityType)  # Rolling consumption

    # Classification
    abc_class: Mapped[Optional[ABCClass]] = mapped_column(StrEnumType(ABCClass, length=1), index=True)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    def __repr__(self):
        return f"<Part {self.part_number}>"
