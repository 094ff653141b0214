from datetime import date, datetime, timedelta, timezone

import pytest

from conftest import NOW, make_order_data
from services.order_service.errors import InvalidStatusTransition, MalformedOrder, OrderNotFound
from services.order_service.schemas import LineItemCreate, OrderFilter, PaymentDetails, ShippingUpdate
from services.order_service.service import OrderService


@pytest.mark.asyncio
async def test_create_order_computes_cost_and_profit(db):
    order = await OrderService.create_order(db, make_order_data(), now=NOW)

    assert order.id is not None
    assert order.status == "pending"
    assert order.payment_status == "pending"
    assert order.total_cost == 130
    assert order.profit == 150
    assert order.profit_margin == 50.0
    assert [item.name for item in order.items] == ["Clay Vase", "Jute Mat"]
    assert order.shipping_address["country"] == "India"


@pytest.mark.asyncio
async def test_create_order_writes_no_history(db):
    order = await OrderService.create_order(db, make_order_data(), now=NOW)
    assert order.status_history == []


@pytest.mark.asyncio
async def test_create_order_rejects_malformed_payload(db):
    with pytest.raises(MalformedOrder):
        await OrderService.create_order(db, make_order_data(shipping_address=None), now=NOW)


@pytest.mark.asyncio
async def test_status_change_appends_one_entry(db):
    order = await OrderService.create_order(db, make_order_data(), now=NOW)

    order = await OrderService.update_status(db, order.id, "confirmed", note="Payment verified", updated_by=3)

    assert order.status == "confirmed"
    assert len(order.status_history) == 1
    entry = order.status_history[0]
    assert (entry.status, entry.note, entry.updated_by) == ("confirmed", "Payment verified", 3)


@pytest.mark.asyncio
async def test_other_updates_append_nothing(db):
    order = await OrderService.create_order(db, make_order_data(), now=NOW)

    await OrderService.update_payment_status(db, order.id, "paid", PaymentDetails(transaction_id="tx-1"))
    await OrderService.update_shipping(db, order.id, ShippingUpdate(tracking_number="IP123"))
    order = await OrderService.update_status(db, order.id, "pending")

    assert order.status_history == []
    assert order.payment_status == "paid"
    assert order.payment_details == {"transaction_id": "tx-1"}
    assert order.tracking_number == "IP123"


@pytest.mark.asyncio
async def test_history_keeps_every_transition(db):
    order = await OrderService.create_order(db, make_order_data(), now=NOW)
    for status in ("confirmed", "processing", "shipped", "delivered"):
        order = await OrderService.update_status(db, order.id, status)

    assert [e.status for e in order.status_history] == ["confirmed", "processing", "shipped", "delivered"]


@pytest.mark.asyncio
async def test_unknown_status_is_rejected(db):
    order = await OrderService.create_order(db, make_order_data(), now=NOW)
    with pytest.raises(MalformedOrder):
        await OrderService.update_status(db, order.id, "lost")


@pytest.mark.asyncio
async def test_strict_transitions_roll_back(db, order_settings):
    order = await OrderService.create_order(db, make_order_data(), now=NOW)
    order_id = order.id
    order_settings(strict_transitions=True)

    # The rollback expires every instance, so only the plain id is reused.
    with pytest.raises(InvalidStatusTransition):
        await OrderService.update_status(db, order_id, "delivered")

    reloaded = await OrderService.get_order(db, order_id)
    assert reloaded.status == "pending"
    assert reloaded.status_history == []


@pytest.mark.asyncio
async def test_payment_details_are_merged(db):
    order = await OrderService.create_order(db, make_order_data(payment_method="razorpay"), now=NOW)
    await OrderService.update_payment_status(db, order.id, "pending", PaymentDetails(razorpay_order_id="ro_1"))
    order = await OrderService.update_payment_status(
        db, order.id, "paid", PaymentDetails(razorpay_payment_id="rp_1")
    )
    assert order.payment_details == {"razorpay_order_id": "ro_1", "razorpay_payment_id": "rp_1"}


@pytest.mark.asyncio
async def test_cancel_and_refund(db):
    order = await OrderService.create_order(db, make_order_data(), now=NOW)

    order = await OrderService.cancel_order(db, order.id)
    assert order.status == "cancelled"

    order = await OrderService.refund_order(db, order.id)
    assert order.status == "refunded"
    assert order.payment_status == "refunded"
    assert [e.status for e in order.status_history] == ["cancelled", "refunded"]


@pytest.mark.asyncio
async def test_missing_order_raises(db):
    with pytest.raises(OrderNotFound):
        await OrderService.get_order(db, 404)
    with pytest.raises(OrderNotFound):
        await OrderService.get_order_by_number(db, "SH20000101001")
    with pytest.raises(OrderNotFound):
        await OrderService.cancel_order(db, 404)


@pytest.mark.asyncio
async def test_lookup_by_number(db):
    order = await OrderService.create_order(db, make_order_data(), now=NOW)
    found = await OrderService.get_order_by_number(db, order.order_number)
    assert found.id == order.id


@pytest.mark.asyncio
async def test_list_orders_filters_and_sorts(db):
    first = await OrderService.create_order(db, make_order_data(user_id=1), now=NOW)
    second = await OrderService.create_order(db, make_order_data(user_id=2), now=NOW + timedelta(hours=1))
    third = await OrderService.create_order(db, make_order_data(user_id=1), now=NOW + timedelta(hours=2))
    await OrderService.update_status(db, third.id, "shipped")

    assert [o.id for o in await OrderService.list_orders(db)] == [third.id, second.id, first.id]
    assert [o.id for o in await OrderService.list_orders(db, user_id=1)] == [third.id, first.id]
    assert [o.id for o in await OrderService.list_orders(db, status="shipped")] == [third.id]
    assert [o.id for o in await OrderService.list_orders(db, limit=1, offset=1)] == [second.id]


@pytest.mark.asyncio
async def test_filter_orders_by_period(db):
    in_day = await OrderService.create_order(db, make_order_data(), now=NOW)
    same_month = await OrderService.create_order(db, make_order_data(), now=datetime(2026, 10, 2, tzinfo=timezone.utc))
    last_year = await OrderService.create_order(db, make_order_data(), now=datetime(2025, 3, 5, tzinfo=timezone.utc))

    by_day = await OrderService.filter_orders(db, OrderFilter(filter_type="date", date=date(2026, 10, 19)), now=NOW)
    assert [o.id for o in by_day] == [in_day.id]

    by_month = await OrderService.filter_orders(db, OrderFilter(filter_type="month"), now=NOW)
    assert {o.id for o in by_month} == {in_day.id, same_month.id}

    by_year = await OrderService.filter_orders(db, OrderFilter(filter_type="year", year=2025), now=NOW)
    assert [o.id for o in by_year] == [last_year.id]

    everything = await OrderService.filter_orders(db, OrderFilter(), now=NOW)
    assert len(everything) == 3


@pytest.mark.asyncio
async def test_filter_orders_by_current_week(db):
    # 2026-10-19 is a Monday; the week runs Sunday 18th to Saturday 24th.
    inside = await OrderService.create_order(db, make_order_data(), now=datetime(2026, 10, 18, 1, tzinfo=timezone.utc))
    await OrderService.create_order(db, make_order_data(), now=datetime(2026, 10, 17, 23, tzinfo=timezone.utc))

    orders = await OrderService.filter_orders(db, OrderFilter(filter_type="week"), now=NOW)
    assert [o.id for o in orders] == [inside.id]


@pytest.mark.asyncio
async def test_sales_report(db):
    await OrderService.create_order(db, make_order_data(), now=NOW)
    await OrderService.create_order(db, make_order_data(), now=NOW - timedelta(days=40))
    cheap = make_order_data(
        items=[LineItemCreate(product_id=3, name="Coaster", unit_price=50, unit_cost=10, quantity=1)],
        subtotal=50,
        shipping_cost=0,
        total_amount=50,
    )
    cancelled = await OrderService.create_order(db, cheap, now=NOW)
    await OrderService.cancel_order(db, cancelled.id)

    report = await OrderService.sales_report(db, now=NOW)

    assert report.overview.orders == 2
    assert report.overview.revenue == 600
    assert report.overview.cost == 260
    assert report.overview.profit == 300
    assert report.monthly.orders == 1
    assert report.weekly.revenue == 300
    assert [(p.year, p.month, p.orders) for p in report.sales_trend] == [(2026, 9, 1), (2026, 10, 1)]
    assert len(report.recent_orders) == 3
    assert report.recent_orders[0].status == "cancelled"
