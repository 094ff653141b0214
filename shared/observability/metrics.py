from prometheus_client import Counter

# Business Metrics
ecomm_orders_created_total = Counter(
    "ecomm_orders_created_total",
    "Total orders persisted",
    ["payment_method"] # Labels: 'cod', 'razorpay', 'upi', 'bank_transfer'
)

ecomm_order_number_collisions_total = Counter(
    "ecomm_order_number_collisions_total",
    "Order creations rejected because the order number was already taken"
)

ecomm_order_status_transitions_total = Counter(
    "ecomm_order_status_transitions_total",
    "Status changes appended to order status history",
    ["status"]
)

ecomm_order_payment_updates_total = Counter(
    "ecomm_order_payment_updates_total",
    "Payment status updates applied to orders",
    ["payment_status"] # Labels: 'pending', 'paid', 'failed', 'refunded'
)
