"""
Session hook that runs the lifecycle rules on every flush of an Order.

New orders get their total cost computed. Persisted orders get the total cost
recomputed and, when their status changed, a status history entry.
"""
from datetime import datetime, timezone

from sqlalchemy import event, inspect, select
from sqlalchemy.orm import Session

from . import lifecycle
from .models import Order

_orders = Order.__table__


def _previous_status(session, obj):
    history = inspect(obj).attrs.status.history
    if not history.has_changes():
        return obj.status
    if history.deleted:
        return history.deleted[0]
    # Status was assigned while unloaded (expired or after a rollback),
    # so the stored value has to be read back.
    order_id = inspect(obj).identity[0]
    with session.no_autoflush:
        return session.connection().scalar(select(_orders.c.status).where(_orders.c.id == order_id))


@event.listens_for(Session, "before_flush")
def apply_order_lifecycle(session, flush_context, instances):
    now = datetime.now(timezone.utc)

    for obj in list(session.new):
        if isinstance(obj, Order):
            lifecycle.recompute_totals(obj)

    for obj in list(session.dirty):
        if not isinstance(obj, Order) or not session.is_modified(obj):
            continue
        lifecycle.recompute_totals(obj)
        lifecycle.record_status_transition(obj, _previous_status(session, obj), now=now)
