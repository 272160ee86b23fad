"""CSV exports of the order tables shown in the dashboards."""

import csv
import io
from collections.abc import Iterable

from supplier_orders.application.order_filters import total_items
from supplier_orders.domain.order import AdminOrder, Order

ADMIN_HEADER = ["Order #", "Customer", "Status", "Amount", "Store", "Margin", "Date"]
SUPPLIER_HEADER = ["Order #", "Customer", "Status", "Amount", "Date", "Items"]


def _date(order: Order) -> str:
    return order.date.isoformat() if order.date else ""


def _write(header: list[str], rows: Iterable[list]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(header)
    writer.writerows(rows)
    return buffer.getvalue()


def admin_orders_csv(orders: Iterable[AdminOrder]) -> str:
    return _write(
        ADMIN_HEADER,
        (
            [
                order.order_number,
                order.customer_name,
                order.status.value,
                f"{order.amount:.2f}",
                order.store or "",
                f"{order.margin:.2f}",
                _date(order),
            ]
            for order in orders
        ),
    )


def supplier_orders_csv(orders: Iterable[Order]) -> str:
    return _write(
        SUPPLIER_HEADER,
        (
            [
                order.order_number,
                order.customer_name,
                order.status.value,
                f"{order.amount:.2f}",
                _date(order),
                total_items(order),
            ]
            for order in orders
        ),
    )
