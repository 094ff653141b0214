from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from . import hooks  # noqa: F401  registers the before_flush lifecycle hook
from .errors import DuplicateOrderNumber, OrderError
from .models import Order, OrderDaySequence

_UPSERT_INSERTS = {"postgresql": pg_insert, "sqlite": sqlite_insert}


def _is_order_number_violation(exc: IntegrityError) -> bool:
    message = str(exc.orig)
    return "uq_orders_order_number" in message or "orders.order_number" in message


def _created_between(start: datetime | None, end: datetime | None):
    clauses = []
    if start is not None:
        clauses.append(Order.created_at >= start)
    if end is not None:
        clauses.append(Order.created_at < end)
    return clauses


class OrderRepository:
    @staticmethod
    async def create_order(db: AsyncSession, order: Order):
        order_number = order.order_number
        db.add(order)
        try:
            await db.commit()
        except IntegrityError as exc:
            await db.rollback()
            if _is_order_number_violation(exc):
                raise DuplicateOrderNumber(order_number) from exc
            raise
        await db.refresh(order)
        return order

    @staticmethod
    async def save(db: AsyncSession, order: Order):
        try:
            await db.commit()
        except OrderError:
            await db.rollback()
            raise
        await db.refresh(order)
        return order

    @staticmethod
    async def get_order(db: AsyncSession, order_id: int):
        result = await db.execute(select(Order).where(Order.id == order_id))
        return result.scalars().first()

    @staticmethod
    async def get_by_number(db: AsyncSession, order_number: str):
        result = await db.execute(select(Order).where(Order.order_number == order_number))
        return result.scalars().first()

    @staticmethod
    async def count_orders_between(db: AsyncSession, start: datetime, end: datetime) -> int:
        result = await db.execute(select(func.count(Order.id)).where(*_created_between(start, end)))
        return result.scalar_one()

    @staticmethod
    async def next_day_sequence(db: AsyncSession, day_key: str, start: datetime, end: datetime) -> int:
        """Advance the counter for ``day_key`` in one statement and return the new value.

        A missing row is seeded from the orders already created that day.
        """
        dialect = db.get_bind().dialect.name
        insert = _UPSERT_INSERTS.get(dialect)
        if insert is None:
            raise RuntimeError(f"Atomic order sequences are not supported on {dialect}")

        seed = (
            select(func.count(Order.id) + 1)
            .where(*_created_between(start, end))
            .scalar_subquery()
        )
        stmt = (
            insert(OrderDaySequence)
            .values(day=day_key, last_value=seed)
            .on_conflict_do_update(
                index_elements=["day"],
                set_={"last_value": OrderDaySequence.last_value + 1},
            )
            .returning(OrderDaySequence.last_value)
        )
        result = await db.execute(stmt)
        return result.scalar_one()

    @staticmethod
    async def list_orders(
        db: AsyncSession,
        user_id: int | None = None,
        status: str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
        limit: int | None = None,
        offset: int = 0,
    ):
        stmt = select(Order).where(*_created_between(start, end))
        if user_id is not None:
            stmt = stmt.where(Order.user_id == user_id)
        if status is not None:
            stmt = stmt.where(Order.status == status)
        stmt = stmt.order_by(Order.created_at.desc(), Order.id.desc()).offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await db.execute(stmt)
        return result.scalars().all()

    @staticmethod
    async def sales_totals(db: AsyncSession, start: datetime | None = None, end: datetime | None = None):
        """Order count, revenue, cost and profit of non-cancelled orders."""
        stmt = select(
            func.count(Order.id),
            func.coalesce(func.sum(Order.total_amount), 0),
            func.coalesce(func.sum(Order.total_cost), 0),
            func.coalesce(func.sum(Order.total_amount - Order.total_cost - Order.shipping_cost), 0),
        ).where(Order.status != "cancelled", *_created_between(start, end))
        count, revenue, cost, profit = (await db.execute(stmt)).one()
        return {
            "orders": count,
            "revenue": float(revenue),
            "cost": float(cost),
            "profit": float(profit),
        }

    @staticmethod
    async def sales_since(db: AsyncSession, start: datetime):
        stmt = (
            select(Order.created_at, Order.total_amount)
            .where(Order.status != "cancelled", Order.created_at >= start)
            .order_by(Order.created_at)
        )
        result = await db.execute(stmt)
        return result.all()
