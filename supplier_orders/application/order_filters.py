from collections.abc import Iterable, Sequence
from typing import TypeVar

from supplier_orders.domain.order import Order

OrderT = TypeVar("OrderT", bound=Order)

ALL = "all"


def filter_orders(
    orders: Sequence[OrderT],
    search: str | None = None,
    product: str | None = None,
    store: str | None = None,
) -> list[OrderT]:
    """Apply the dashboard filters; empty values and ``"all"`` disable a filter.

    - ``search``: case-insensitive match on name, customer name, email or order number
    - ``product``: case-insensitive substring of any line item name
    - ``store``: exact shop match
    """
    filtered = list(orders)

    if search and search.strip():
        term = search.strip().lower()
        filtered = [order for order in filtered if _matches_search(order, term)]

    if product and product != ALL:
        needle = product.lower()
        filtered = [
            order
            for order in filtered
            if any(needle in item.name.lower() for item in order.line_items)
        ]

    if store and store != ALL:
        filtered = [order for order in filtered if order.store == store]

    return filtered


def _matches_search(order: Order, term: str) -> bool:
    fields = (order.name, order.customer_name, order.customer_email, order.order_number)
    return any(term in (value or "").lower() for value in fields)


def product_names(orders: Iterable[Order]) -> list[str]:
    """Sorted unique line item names across ``orders``."""
    return sorted({item.name for order in orders for item in order.line_items if item.name})


def total_items(order: Order) -> int:
    return sum(item.quantity for item in order.line_items)
