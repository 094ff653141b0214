"""
Order lifecycle rules applied around persistence.

* ``validate_order`` / ``validate_line_items`` reject bad input before any
  totals are computed.
* ``recompute_totals`` sets ``total_cost`` from the item snapshot. The
  caller-supplied subtotal, shipping, tax, discount and total amount are
  trusted as-is.
* ``record_status_transition`` appends one history entry when the status of an
  already persisted order changes. Any status may follow any other unless
  ``ORDER_STRICT_TRANSITIONS`` is switched on, in which case
  ``ALLOWED_PREDECESSORS`` is enforced.

The two persistence-time rules are wired into every flush by ``hooks.py``.
"""
from datetime import datetime, timezone

from shared.config import settings as config

from .errors import InvalidLineItem, InvalidStatusTransition, MalformedOrder
from .financials import compute_total_cost
from .models import OrderStatusEvent

ORDER_STATUSES = ("pending", "confirmed", "processing", "shipped", "delivered", "cancelled", "refunded")
PAYMENT_STATUSES = ("pending", "paid", "failed", "refunded")
PAYMENT_METHODS = ("cod", "razorpay", "upi", "bank_transfer")

# Only consulted in strict mode.
ALLOWED_PREDECESSORS = {
    "pending": set(),
    "confirmed": {"pending"},
    "processing": {"confirmed"},
    "shipped": {"processing"},
    "delivered": {"shipped"},
    "cancelled": {"pending", "confirmed", "processing"},
    "refunded": {"delivered", "cancelled"},
}

REQUIRED_ADDRESS_FIELDS = ("full_name", "phone", "address", "city", "state", "country", "pincode")
MONEY_FIELDS = ("subtotal", "shipping_cost", "tax", "discount", "total_amount")
MAX_NOTES_LENGTH = 500


def as_utc(value: datetime) -> datetime:
    """Naive datetimes are taken to be UTC already."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def ensure_choice(value, choices, field: str):
    if value not in choices:
        raise MalformedOrder(f"{field} must be one of {', '.join(choices)}, got {value!r}")
    return value


def validate_line_items(items):
    for index, item in enumerate(items):
        if item.unit_price is None or item.unit_price < 0:
            raise InvalidLineItem(index, "unit price must be zero or more")
        if item.unit_cost is None or item.unit_cost < 0:
            raise InvalidLineItem(index, "unit cost must be zero or more")
        if item.quantity is None or item.quantity < 1:
            raise InvalidLineItem(index, "quantity must be at least 1")


def validate_order(data):
    """Boundary checks for a checkout payload. Line items are checked last."""
    address = data.shipping_address
    if address is None:
        raise MalformedOrder("shipping address is required")
    for field in REQUIRED_ADDRESS_FIELDS:
        if not str(getattr(address, field, "") or "").strip():
            raise MalformedOrder(f"shipping address is missing {field}")

    if not data.payment_method:
        raise MalformedOrder("payment method is required")
    ensure_choice(data.payment_method, PAYMENT_METHODS, "payment_method")

    for field in MONEY_FIELDS:
        value = getattr(data, field)
        if value is None:
            raise MalformedOrder(f"{field} is required")
        if value < 0:
            raise MalformedOrder(f"{field} must be zero or more")

    if data.notes and len(data.notes) > MAX_NOTES_LENGTH:
        raise MalformedOrder(f"notes must be at most {MAX_NOTES_LENGTH} characters")

    validate_line_items(data.items)


def recompute_totals(order):
    order.total_cost = compute_total_cost(order.items)
    return order


def check_transition(previous: str, status: str):
    if not config.settings.strict_transitions:
        return
    if previous not in ALLOWED_PREDECESSORS.get(status, set()):
        raise InvalidStatusTransition(previous, status)


def record_status_transition(order, previous_status, now: datetime | None = None, is_new: bool = False):
    """Append a history entry if ``order.status`` moved away from ``previous_status``."""
    if is_new or previous_status is None or previous_status == order.status:
        return None

    check_transition(previous_status, order.status)

    entry = OrderStatusEvent(
        status=order.status,
        timestamp=as_utc(now) if now else datetime.now(timezone.utc),
        note=getattr(order, "_transition_note", None),
        updated_by=getattr(order, "_transition_actor", None),
    )
    order.status_history.append(entry)
    order._transition_note = None
    order._transition_actor = None
    return entry
