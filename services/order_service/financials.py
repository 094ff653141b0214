"""Derived money values of an order. Pure functions, computed on read."""


def compute_total_cost(items) -> float:
    """Sum of ``unit_cost * quantity`` over the line items."""
    return float(sum(item.unit_cost * item.quantity for item in items))


def profit(order) -> float:
    return (order.total_amount or 0) - (order.total_cost or 0) - (order.shipping_cost or 0)


def profit_margin(order) -> float:
    """Profit as a percentage of the amount charged, 2 decimals. 0 for free orders."""
    if not order.total_amount:
        return 0.0
    return round(profit(order) / order.total_amount * 100, 2)
