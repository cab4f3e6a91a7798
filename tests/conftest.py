"""Shared fixtures: an in-memory SQLite store and seeding helpers."""

import os
import tempfile

os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="mall_settlement_logs_"))

from datetime import datetime  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy.ext.asyncio import create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from mall_settlement.db.base import get_session_factory, init_db  # noqa: E402
from mall_settlement.db.models import Mall, OrderRow, Product  # noqa: E402

COMPANY_ID = 1
OTHER_COMPANY_ID = 2


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return get_session_factory(engine)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def seed(session_factory):
    """Persist objects in their own committed transaction."""

    async def _seed(*objects):
        async with session_factory() as session:
            session.add_all(objects)
            await session.commit()
        return objects

    return _seed


def make_mall(name: str, code: str = None) -> Mall:
    return Mall(name=name, code=code)


def make_row(
    mall: Mall,
    row_data: dict,
    created_at: datetime = datetime(2024, 1, 1, 12, 0),
    company_id: int = COMPANY_ID,
    supply_price=None,
    shop_name: str = None,
) -> OrderRow:
    return OrderRow(
        company_id=company_id,
        mall_id=mall.id,
        shop_name=shop_name or mall.name,
        supply_price=supply_price,
        row_data=row_data,
        created_at=created_at,
    )


def make_product(code: str, sale_price=None, price=None, company_id: int = COMPANY_ID, **extra) -> Product:
    return Product(company_id=company_id, code=code, sale_price=sale_price, price=price, **extra)
