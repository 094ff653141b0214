from collections import OrderedDict
from datetime import datetime, timedelta, timezone

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from shared.config import settings as config
from shared.observability import (
    ecomm_order_number_collisions_total,
    ecomm_order_payment_updates_total,
    ecomm_order_status_transitions_total,
    ecomm_orders_created_total,
)

from . import lifecycle, periods
from .errors import DuplicateOrderNumber, OrderNotFound
from .lifecycle import as_utc
from .models import Order, OrderItem
from .numbering import assign_order_number
from .repository import OrderRepository
from .schemas import (
    OrderCreate,
    OrderFilter,
    PaymentDetails,
    RecentOrder,
    SalesReport,
    SalesTotals,
    SalesTrendPoint,
    ShippingUpdate,
)

logger = structlog.get_logger(__name__)

RECENT_ORDERS_LIMIT = 10


def _now(now: datetime | None) -> datetime:
    return as_utc(now) if now else datetime.now(timezone.utc)


class OrderService:
    @staticmethod
    def build_order(data: OrderCreate, now: datetime | None = None) -> Order:
        """Validate a checkout payload and turn it into an unnumbered, unsaved order."""
        now = _now(now)
        lifecycle.validate_order(data)

        return Order(
            user_id=data.user_id,
            items=[
                OrderItem(
                    product_id=item.product_id,
                    name=item.name,
                    unit_price=item.unit_price,
                    unit_cost=item.unit_cost,
                    quantity=item.quantity,
                    image=item.image,
                )
                for item in data.items
            ],
            shipping_address=data.shipping_address.model_dump(),
            subtotal=data.subtotal,
            shipping_cost=data.shipping_cost,
            tax=data.tax,
            discount=data.discount,
            total_amount=data.total_amount,
            status="pending",
            payment_method=data.payment_method,
            payment_status="pending",
            notes=data.notes,
            created_at=now,
            updated_at=now,
        )

    @staticmethod
    async def create_order(db: AsyncSession, data: OrderCreate, now: datetime | None = None):
        now = _now(now)
        order = OrderService.build_order(data, now)
        await assign_order_number(db, order, now)

        try:
            order = await OrderRepository.create_order(db, order)
        except DuplicateOrderNumber as e:
            ecomm_order_number_collisions_total.inc()
            logger.warning("order_number_collision", order_number=e.order_number, user_id=data.user_id)
            raise

        ecomm_orders_created_total.labels(payment_method=order.payment_method).inc()
        logger.info(
            "order_created",
            order_id=order.id,
            order_number=order.order_number,
            total_amount=order.total_amount,
            total_cost=order.total_cost,
        )
        return order

    @staticmethod
    async def get_order(db: AsyncSession, order_id: int):
        order = await OrderRepository.get_order(db, order_id)
        if not order:
            raise OrderNotFound(order_id)
        return order

    @staticmethod
    async def get_order_by_number(db: AsyncSession, order_number: str):
        order = await OrderRepository.get_by_number(db, order_number)
        if not order:
            raise OrderNotFound(order_number)
        return order

    @staticmethod
    async def list_orders(
        db: AsyncSession,
        user_id: int | None = None,
        status: str | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
        limit: int | None = 50,
        offset: int = 0,
    ):
        if status is not None:
            lifecycle.ensure_choice(status, lifecycle.ORDER_STATUSES, "status")
        return await OrderRepository.list_orders(
            db, user_id=user_id, status=status, start=start, end=end, limit=limit, offset=offset
        )

    @staticmethod
    async def filter_orders(db: AsyncSession, criteria: OrderFilter, now: datetime | None = None):
        bounds = periods.period_range(
            criteria.filter_type,
            _now(now),
            config.settings.tz,
            day=criteria.date,
            week=criteria.week,
            month=criteria.month,
            year=criteria.year,
        )
        start, end = bounds if bounds else (None, None)
        return await OrderRepository.list_orders(db, start=start, end=end)

    @staticmethod
    async def update_status(
        db: AsyncSession,
        order_id: int,
        status: str,
        note: str | None = None,
        updated_by: int | None = None,
    ):
        lifecycle.ensure_choice(status, lifecycle.ORDER_STATUSES, "status")
        order = await OrderService.get_order(db, order_id)
        previous = order.status

        # The history entry itself is written by the flush hook.
        order.set_status(status, note=note, updated_by=updated_by)
        order = await OrderRepository.save(db, order)

        if previous != status:
            ecomm_order_status_transitions_total.labels(status=status).inc()
            logger.info(
                "order_status_changed",
                order_number=order.order_number,
                previous=previous,
                status=status,
                updated_by=updated_by,
            )
        return order

    @staticmethod
    async def update_payment_status(
        db: AsyncSession,
        order_id: int,
        payment_status: str,
        details: PaymentDetails | None = None,
    ):
        lifecycle.ensure_choice(payment_status, lifecycle.PAYMENT_STATUSES, "payment_status")
        order = await OrderService.get_order(db, order_id)

        order.payment_status = payment_status
        if details is not None:
            merged = dict(order.payment_details or {})
            merged.update(details.model_dump(exclude_none=True))
            order.payment_details = merged
        order = await OrderRepository.save(db, order)

        ecomm_order_payment_updates_total.labels(payment_status=payment_status).inc()
        logger.info("order_payment_updated", order_number=order.order_number, payment_status=payment_status)
        return order

    @staticmethod
    async def update_shipping(db: AsyncSession, order_id: int, data: ShippingUpdate):
        order = await OrderService.get_order(db, order_id)
        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(order, field, value)
        return await OrderRepository.save(db, order)

    @staticmethod
    async def cancel_order(db: AsyncSession, order_id: int, note: str | None = None):
        return await OrderService.update_status(db, order_id, "cancelled", note=note)

    @staticmethod
    async def refund_order(db: AsyncSession, order_id: int, note: str | None = None):
        order = await OrderService.get_order(db, order_id)
        order.payment_status = "refunded"
        order = await OrderService.update_status(db, order_id, "refunded", note=note)
        ecomm_order_payment_updates_total.labels(payment_status="refunded").inc()
        return order

    @staticmethod
    async def sales_report(db: AsyncSession, now: datetime | None = None) -> SalesReport:
        now = _now(now)
        tz = config.settings.tz
        today = now.astimezone(tz).date()

        month_start, month_end = periods.month_range(today.year, today.month, tz)
        overview = await OrderRepository.sales_totals(db)
        monthly = await OrderRepository.sales_totals(db, month_start, month_end)
        weekly = await OrderRepository.sales_totals(db, now - timedelta(days=7))

        # Buckets are keyed by local calendar month, oldest first.
        trend = OrderedDict()
        for created_at, amount in await OrderRepository.sales_since(
            db, periods.last_twelve_months_start(now, tz)
        ):
            local = as_utc(created_at).astimezone(tz)
            bucket = trend.setdefault((local.year, local.month), {"sales": 0.0, "orders": 0})
            bucket["sales"] += amount
            bucket["orders"] += 1

        recent = await OrderRepository.list_orders(db, limit=RECENT_ORDERS_LIMIT)

        return SalesReport(
            overview=SalesTotals(**overview),
            monthly=SalesTotals(**monthly),
            weekly=SalesTotals(**weekly),
            sales_trend=[
                SalesTrendPoint(year=year, month=month, **values)
                for (year, month), values in trend.items()
            ],
            recent_orders=[RecentOrder.model_validate(order) for order in recent],
        )
