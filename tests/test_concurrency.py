"""Two checkouts on the same day racing for the next order number."""
import pytest
from sqlalchemy import func, select

from conftest import NOW, make_order_data
from services.order_service.errors import DuplicateOrderNumber
from services.order_service.models import Order
from services.order_service.numbering import assign_order_number
from services.order_service.repository import OrderRepository
from services.order_service.service import OrderService


@pytest.mark.asyncio
async def test_count_strategy_surfaces_collision(session_factory, order_settings):
    order_settings(sequence_strategy="count")

    async with session_factory() as first, session_factory() as second:
        order_a = OrderService.build_order(make_order_data(user_id=1), NOW)
        order_b = OrderService.build_order(make_order_data(user_id=2), NOW)

        # Both read the day's count before either write commits.
        await assign_order_number(first, order_a, NOW)
        await assign_order_number(second, order_b, NOW)
        assert order_a.order_number == order_b.order_number == "SH20261019001"

        await OrderRepository.create_order(first, order_a)
        with pytest.raises(DuplicateOrderNumber) as exc:
            await OrderRepository.create_order(second, order_b)

    assert exc.value.order_number == "SH20261019001"
    assert exc.value.retryable

    async with session_factory() as check:
        count = (await check.execute(select(func.count(Order.id)))).scalar_one()
    assert count == 1


@pytest.mark.asyncio
async def test_retry_after_collision_gets_fresh_number(session_factory, order_settings):
    order_settings(sequence_strategy="count")

    async with session_factory() as first, session_factory() as second:
        order_a = OrderService.build_order(make_order_data(), NOW)
        order_b = OrderService.build_order(make_order_data(), NOW)
        await assign_order_number(first, order_a, NOW)
        await assign_order_number(second, order_b, NOW)
        await OrderRepository.create_order(first, order_a)
        with pytest.raises(DuplicateOrderNumber):
            await OrderRepository.create_order(second, order_b)

    async with session_factory() as retry:
        order = await OrderService.create_order(retry, make_order_data(), now=NOW)
    assert order.order_number == "SH20261019002"


@pytest.mark.asyncio
async def test_counter_strategy_serialises_creators(session_factory, order_settings):
    order_settings(sequence_strategy="counter")

    async with session_factory() as first, session_factory() as second:
        order_a = await OrderService.create_order(first, make_order_data(user_id=1), now=NOW)
        order_b = await OrderService.create_order(second, make_order_data(user_id=2), now=NOW)

    assert (order_a.order_number, order_b.order_number) == ("SH20261019001", "SH20261019002")


@pytest.mark.asyncio
async def test_counter_rolls_back_with_failed_order(session_factory, order_settings):
    order_settings(sequence_strategy="counter")

    async with session_factory() as session:
        order = OrderService.build_order(make_order_data(), NOW)
        await assign_order_number(session, order, NOW)
        await session.rollback()

    async with session_factory() as session:
        created = await OrderService.create_order(session, make_order_data(), now=NOW)
    assert created.order_number == "SH20261019001"
