import os

os.environ["INTERNAL_API_KEY"] = "test-internal-key"
os.environ["OTEL_ENABLED"] = "false"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["ORDER_SEQUENCE_STRATEGY"] = "counter"
os.environ["ORDER_TIMEZONE"] = "UTC"
os.environ["ORDER_STRICT_TRANSITIONS"] = "false"

from dataclasses import replace
from datetime import datetime, timezone

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker

from shared.config import settings as config
from shared.config.database import Base, build_engine
from services.order_service import models  # noqa: F401  registers tables with Base
from services.order_service import repository  # noqa: F401  registers the flush hook
from services.order_service.schemas import LineItemCreate, OrderCreate, ShippingAddress

NOW = datetime(2026, 10, 19, 9, 30, tzinfo=timezone.utc)


def make_order_data(**overrides) -> OrderCreate:
    data = {
        "user_id": 1,
        "items": [
            LineItemCreate(product_id=10, name="Clay Vase", unit_price=100, unit_cost=50, quantity=2),
            LineItemCreate(product_id=11, name="Jute Mat", unit_price=80, unit_cost=30, quantity=1),
        ],
        "shipping_address": ShippingAddress(
            full_name="Asha Rao",
            phone="9999999999",
            address="12 Temple Road",
            city="Mysuru",
            state="Karnataka",
            pincode="570001",
        ),
        "subtotal": 280,
        "shipping_cost": 20,
        "tax": 0,
        "discount": 0,
        "total_amount": 300,
        "payment_method": "cod",
    }
    data.update(overrides)
    return OrderCreate(**data)


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'orders.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def order_settings(monkeypatch):
    """Override order settings for one test, e.g. ``order_settings(sequence_strategy="count")``."""
    def apply(**overrides):
        monkeypatch.setattr(config, "settings", replace(config.settings, **overrides))
        return config.settings
    return apply
