"""
Errors raised by the order lifecycle.

Every error is detected synchronously and handed back to the caller; none are
retried here. ``retryable`` tells the HTTP layer whether the caller should try
again (a fresh order number will be allocated on the next attempt).
"""


class OrderError(Exception):
    code = "order_error"
    retryable = False


class DuplicateOrderNumber(OrderError):
    code = "duplicate_order_number"
    retryable = True

    def __init__(self, order_number: str):
        self.order_number = order_number
        super().__init__(f"Order number {order_number} is already taken, retry the request")


class InvalidLineItem(OrderError):
    code = "invalid_line_item"

    def __init__(self, index: int, reason: str):
        self.index = index
        self.reason = reason
        super().__init__(f"Line item {index}: {reason}")


class MalformedOrder(OrderError):
    code = "malformed_order"


class InvalidStatusTransition(OrderError):
    code = "invalid_status_transition"

    def __init__(self, previous: str, status: str):
        self.previous = previous
        self.status = status
        super().__init__(f"Order status cannot move from '{previous}' to '{status}'")


class OrderNotFound(OrderError):
    code = "order_not_found"

    def __init__(self, key):
        self.key = key
        super().__init__(f"Order {key} not found")
