"""
Shared fixtures: a throwaway SQLite database per test, session factories
bound to it, a part factory, and an HTTP client with ``get_db`` overridden.
"""
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Optional

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from fleet_inventory import models  # noqa: F401
from fleet_inventory.database import Base, get_db
from fleet_inventory.main import app
from fleet_inventory.models.cycle_count import CycleCount, CycleCountStatus
from fleet_inventory.models.part import Part, ABCClass


@pytest.fixture
def today():
    return datetime.now(timezone.utc).date()


@pytest_asyncio.fixture
async def engine(tmp_path):
    # File-backed so every session gets its own connection
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'cycle_counts.db'}",
        poolclass=NullPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def make_part(db):
    async def _make(
        part_number: str,
        quantity_on_hand="0",
        unit_cost: Optional[str] = None,
        usage_quantity: Optional[str] = None,
        abc_class: Optional[ABCClass] = None,
        is_active: bool = True,
        created_days_ago: int = 365,
    ) -> Part:
        part = Part(
            part_number=part_number,
            name=f"Part {part_number}",
            quantity_on_hand=Decimal(str(quantity_on_hand)),
            unit_cost=Decimal(unit_cost) if unit_cost is not None else None,
            usage_quantity=Decimal(usage_quantity) if usage_quantity is not None else None,
            abc_class=abc_class,
            is_active=is_active,
            created_at=datetime.now(timezone.utc) - timedelta(days=created_days_ago),
        )
        db.add(part)
        await db.commit()
        return part

    return _make


@pytest.fixture
def make_completed_count(db):
    """Historical completed (and reconciled) count for a part."""
    async def _make(part: Part, days_ago: int, number: str = "HIST-00001") -> CycleCount:
        completed_at = datetime.now(timezone.utc) - timedelta(days=days_ago)
        count = CycleCount(
            count_number=number,
            part_id=part.id,
            scheduled_date=completed_at.date(),
            status=CycleCountStatus.COMPLETED,
            expected_quantity=part.quantity_on_hand,
            actual_quantity=part.quantity_on_hand,
            variance=Decimal("0"),
            completed_at=completed_at,
            is_reconciled=True,
            reconciled_at=completed_at,
        )
        db.add(count)
        await db.commit()
        return count

    return _make


@pytest_asyncio.fixture
async def client(session_factory):
    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
