import os

os.environ.setdefault("ENVIRONMENT", "test")

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

import p2p.models  # noqa: F401
from p2p.clients.goods_received import GoodsReceivedClient
from p2p.clients.invoices import InvoiceClient
from p2p.clients.purchase_orders import PurchaseOrderClient
from p2p.clients.safe_limits import SafeLimitClient
from p2p.database import Base, configure_sqlite, get_db
from p2p.dependencies import (
    get_goods_received_client,
    get_invoice_client,
    get_purchase_order_client,
    get_safe_limit_client,
)
from p2p.main import app

API_BASE = "http://test/api/v1"


@pytest.fixture
async def db_engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'p2p_test.db'}")
    configure_sqlite(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(session_factory):
    """
    HTTP client against the app. The orchestrator and draft generator reach the
    stores through this same client, so every hop stays in-process.
    """

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        app.dependency_overrides[get_db] = override_get_db
        app.dependency_overrides[get_invoice_client] = lambda: InvoiceClient(API_BASE, client=c)
        app.dependency_overrides[get_purchase_order_client] = lambda: PurchaseOrderClient(API_BASE, client=c)
        app.dependency_overrides[get_goods_received_client] = lambda: GoodsReceivedClient(API_BASE, client=c)
        app.dependency_overrides[get_safe_limit_client] = lambda: SafeLimitClient(API_BASE, client=c)
        yield c
    app.dependency_overrides.clear()
