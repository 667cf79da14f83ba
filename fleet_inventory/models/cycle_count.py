"""
Cycle Count Models.

A cycle count is a scheduled physical count of a single part. Status moves
scheduled -> in_progress -> completed (or cancelled); reconciliation of the
counted variance into stock is tracked separately by ``is_reconciled``.
"""
from datetime import datetime, date, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import String, DateTime, Date, Boolean, Text, Integer, ForeignKey, Index, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fleet_inventory.database import Base
from fleet_inventory.db_types import UUIDType, QuantityType, StrEnumType


class CycleCountStatus(str, Enum):
    """Status of a cycle count."""
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


OPEN_STATUSES = (CycleCountStatus.SCHEDULED, CycleCountStatus.IN_PROGRESS)

_OPEN_STATUS_SQL = text("status IN ('scheduled', 'in_progress')")


class CycleCount(Base):
    """Cycle count for one part."""
    __tablename__ = "cycle_counts"
    __table_args__ = (
        # At most one open count per part
        Index(
            "uq_cycle_counts_open_part",
            "part_id",
            unique=True,
            postgresql_where=_OPEN_STATUS_SQL,
            sqlite_where=_OPEN_STATUS_SQL,
        ),
        Index("idx_cycle_counts_status", "status"),
        Index("idx_cycle_counts_part_completed", "part_id", "completed_at"),
    )

    id: Mapped[UUID] = mapped_column(UUIDType, primary_key=True, default=uuid4)
    count_number: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    part_id: Mapped[UUID] = mapped_column(UUIDType, ForeignKey("parts.id"), nullable=False)

    scheduled_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[CycleCountStatus] = mapped_column(
        StrEnumType(CycleCountStatus), nullable=False, default=CycleCountStatus.SCHEDULED
    )

    # Quantities
    expected_quantity: Mapped[Decimal] = mapped_column(QuantityType, nullable=False)  # Snapshot at creation
    actual_quantity: Mapped[Optional[Decimal]] = mapped_column(QuantityType)
    variance: Mapped[Optional[Decimal]] = mapped_column(QuantityType)  # actual - expected

    notes: Mapped[Optional[str]] = mapped_column(Text)

    # Counter
    counted_by_id: Mapped[Optional[UUID]] = mapped_column(UUIDType)
    counted_by_name: Mapped[Optional[str]] = mapped_column(String(200))

    started_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    cancelled_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    cancel_reason: Mapped[Optional[str]] = mapped_column(Text)

    # Reconciliation
    is_reconciled: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    reconciled_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    # Relationships
    part: Mapped["Part"] = relationship(lazy="selectin")

    def __repr__(self):
        return f"<CycleCount {self.count_number} {self.status}>"


class CountSequence(Base):
    """
    Sequence counter for count numbers.

    One row per prefix, read with SELECT FOR UPDATE so concurrent
    schedulers never hand out the same number.
    """
    __tablename__ = "count_sequences"

    id: Mapped[UUID] = mapped_column(UUIDType, primary_key=True, default=uuid4)
    prefix: Mapped[str] = mapped_column(String(10), unique=True, nullable=False)
    current_number: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    padding_length: Mapped[int] = mapped_column(Integer, default=5, nullable=False)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    def get_next_number(self) -> str:
        """Advance the counter and format the number; the caller commits."""
        self.current_number += 1
        return f"{self.prefix}-{str(self.current_number).zfill(self.padding_length)}"

