import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")

from decimal import Decimal

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from debt_ledger.db.session import Base, get_db
from debt_ledger.models.debt_edge import DebtEdge


@pytest.fixture
async def engine():
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory):
    from debt_ledger.main import app

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


def entries(*pairs):
    return [{"user_id": uid, "amount": str(amount)} for uid, amount in pairs]


async def edge_map(session_factory, group_id):
    """Committed edges of a group, read through a fresh session."""
    async with session_factory() as session:
        res = await session.execute(select(DebtEdge).where(DebtEdge.group_id == group_id))
        return {(e.from_user, e.to_user): Decimal(e.amount) for e in res.scalars()}
