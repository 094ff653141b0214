"""
Order number allocation: ``<prefix><YYYYMMDD><sequence>``, e.g. ``SH20261019001``.

The sequence is the order's ordinal within its calendar day in
``ORDER_TIMEZONE``, zero-padded to three digits. Two strategies exist:

``counter`` (default)
    one atomic upsert on ``order_day_sequences`` inside the order's
    transaction. Concurrent creators on the same day are serialised by the
    counter row.
``count``
    counts today's orders and adds one. Two creators that count before either
    commits get the same number; the unique constraint rejects the second one
    and ``DuplicateOrderNumber`` is raised for the caller to retry.
"""
from datetime import date, datetime, timedelta, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from shared.config import settings as config

from .lifecycle import as_utc
from .repository import OrderRepository


def format_order_number(prefix: str, day: date, sequence: int) -> str:
    return f"{prefix}{day:%Y%m%d}{sequence:03d}"


def local_day(now: datetime, tz) -> date:
    return as_utc(now).astimezone(tz).date()


def day_bounds(day: date, tz) -> tuple[datetime, datetime]:
    """UTC instants of local midnight on ``day`` and on the day after."""
    start = datetime(day.year, day.month, day.day, tzinfo=tz)
    following = day + timedelta(days=1)
    end = datetime(following.year, following.month, following.day, tzinfo=tz)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


async def assign_order_number(db: AsyncSession, order, now: datetime | None = None) -> str:
    """Give ``order`` its number unless it already has one."""
    if order.order_number:
        return order.order_number

    cfg = config.settings
    now = as_utc(now) if now else datetime.now(timezone.utc)
    day = local_day(now, cfg.tz)
    start, end = day_bounds(day, cfg.tz)

    if cfg.sequence_strategy == "count":
        sequence = await OrderRepository.count_orders_between(db, start, end) + 1
    else:
        sequence = await OrderRepository.next_day_sequence(db, f"{day:%Y%m%d}", start, end)

    order.order_number = format_order_number(cfg.number_prefix, day, sequence)
    return order.order_number
