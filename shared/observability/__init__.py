from .setup import setup_observability
from .metrics import (
    ecomm_orders_created_total,
    ecomm_order_number_collisions_total,
    ecomm_order_status_transitions_total,
    ecomm_order_payment_updates_total
)
