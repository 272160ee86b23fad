"""Maps raw order records into canonical ``Order`` objects.

Records arrive in one of the shapes listed in ``SourceShape``: rows from the
local store, Shopify REST orders, Shopify GraphQL nodes, or orders that are
already canonical (either ``Order`` instances or their JSON dumps). Each shape
has its own normalization function; all of them share the coercion helpers
below, so a malformed field degrades to a default instead of failing the
record.

Normalization is pure: no I/O, input order is preserved, and feeding the
output (or its JSON dump) back in yields equal orders.
"""

import json
import math
from collections.abc import Callable, Iterable, Mapping
from datetime import datetime
from typing import Any

from loguru import logger
from pydantic import ValidationError

from supplier_orders.domain.order import Address, LineItem, Order, OrderStatus, SourceShape

GUEST_NAME = "Guest"
NO_EMAIL = "No email"
DEFAULT_CURRENCY = "INR"
DEFAULT_FINANCIAL_STATUS = "pending"

_STATUS_ALIASES: dict[str, OrderStatus] = {
    "pending": OrderStatus.pending,
    "unfulfilled": OrderStatus.pending,
    "fulfilled": OrderStatus.fulfilled,
    "partial": OrderStatus.partial,
    "partially_fulfilled": OrderStatus.partial,
    "cancelled": OrderStatus.cancelled,
    "canceled": OrderStatus.cancelled,
}


# ---------------------------------------------------------------------------
# Coercion helpers
# ---------------------------------------------------------------------------


def to_amount(value: Any) -> float:
    """Coerce a money value to float; missing, malformed or non-finite gives 0.0."""
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        amount = float(value)
    except (TypeError, ValueError):
        return 0.0
    return amount if math.isfinite(amount) else 0.0


def to_quantity(value: Any) -> int:
    """Coerce a quantity to a non-negative int."""
    return max(int(to_amount(value)), 0)


def to_datetime(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return datetime.fromisoformat(value.strip())
        except ValueError:
            logger.debug(f"Unparsable order date: {value!r}")
    return None


def to_status(value: Any, cancelled: bool = False) -> OrderStatus:
    """Map a store or Shopify fulfillment status onto ``OrderStatus``.

    Unknown values map to ``pending``; a cancellation marker wins over any status.
    """
    if cancelled:
        return OrderStatus.cancelled
    if isinstance(value, str):
        return _STATUS_ALIASES.get(value.strip().lower(), OrderStatus.pending)
    return OrderStatus.pending


def parse_address(value: Any) -> Address | None:
    """Parse an address stored as JSON text or given as a mapping.

    Anything that is not a non-empty object, or that fails validation, yields
    ``None``; a partially valid address is never returned.
    """
    if value is None or value == "":
        return None
    if isinstance(value, Address):
        return value
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except json.JSONDecodeError as exc:
            logger.warning(f"Error parsing address data: {exc}")
            return None
    if not isinstance(value, Mapping):
        return None
    try:
        address = Address.model_validate(dict(value))
    except ValidationError as exc:
        logger.warning(f"Discarding invalid address: {exc.error_count()} error(s)")
        return None
    if not address.model_dump(exclude_none=True):
        return None
    return address


def _text(value: Any) -> str | None:
    if value is None or isinstance(value, (dict, list)):
        return None
    text = str(value).strip()
    return text or None


def _dig(record: Any, *keys: str) -> Any:
    """Follow nested mapping keys, returning None as soon as one is missing."""
    for key in keys:
        if not isinstance(record, Mapping):
            return None
        record = record.get(key)
    return record


def _records(value: Any) -> list[Mapping]:
    if not isinstance(value, (list, tuple)):
        return []
    return [item for item in value if isinstance(item, Mapping)]


def _full_name(first: Any, last: Any) -> str | None:
    return _text(" ".join(part for part in (_text(first), _text(last)) if part))


def _order_number(number: Any, name: Any) -> str:
    if text := _text(number):
        return text
    return (_text(name) or "").lstrip("#")


def _display_name(name: Any, number: str) -> str | None:
    return _text(name) or (f"#{number}" if number else None)


def _shopify_id(value: Any) -> str | None:
    """Reduce a GraphQL GID such as ``gid://shopify/Product/777`` to ``777``.

    REST ids and product mappings use the bare number.
    """
    text = _text(value)
    if text and text.startswith("gid://"):
        return _text(text.rsplit("/", 1)[-1].split("?", 1)[0])
    return text


# ---------------------------------------------------------------------------
# One normalizer per source shape
# ---------------------------------------------------------------------------


def _from_store(record: Mapping) -> Order:
    number = _order_number(record.get("order_number"), None)
    return Order(
        id=_text(record.get("shopify_order_id")) or _text(record.get("id")) or "",
        order_number=number,
        name=_display_name(None, number),
        customer_name=_text(record.get("customer_name")) or GUEST_NAME,
        customer_email=_text(record.get("customer_email")) or NO_EMAIL,
        customer_phone=_text(record.get("customer_phone")),
        shipping_address=parse_address(record.get("shipping_address")),
        billing_address=parse_address(record.get("billing_address")),
        status=to_status(record.get("status")),
        financial_status=_text(record.get("financial_status")) or DEFAULT_FINANCIAL_STATUS,
        amount=to_amount(record.get("total_amount")),
        currency=_text(record.get("currency")) or DEFAULT_CURRENCY,
        date=to_datetime(record.get("order_date")),
        store=_text(record.get("store_url")),
        line_items=[
            LineItem(
                id=_text(item.get("shopify_line_item_id")) or _text(item.get("id")) or "",
                name=_text(item.get("product_name")) or "",
                quantity=to_quantity(item.get("quantity")),
                price=to_amount(item.get("price")),
                product_id=_text(item.get("supplier_product_id")),
                variant_id=_text(item.get("variant_id")),
                shopify_product_id=_text(item.get("shopify_product_id")),
                sku=_text(item.get("sku")),
            )
            for item in _records(record.get("supplier_order_items"))
        ],
    )


def _from_shopify_rest(record: Mapping) -> Order:
    customer = record.get("customer") if isinstance(record.get("customer"), Mapping) else {}
    shipping = parse_address(record.get("shipping_address"))
    number = _order_number(record.get("order_number"), record.get("name"))
    return Order(
        id=_text(record.get("id")) or "",
        order_number=number,
        name=_display_name(record.get("name"), number),
        customer_name=(
            _full_name(customer.get("first_name"), customer.get("last_name"))
            or (shipping and _full_name(shipping.first_name, shipping.last_name))
            or GUEST_NAME
        ),
        customer_email=(
            _text(record.get("email"))
            or _text(record.get("contact_email"))
            or _text(customer.get("email"))
            or NO_EMAIL
        ),
        customer_phone=_text(record.get("phone")) or _text(customer.get("phone")),
        shipping_address=shipping,
        billing_address=parse_address(record.get("billing_address")),
        status=to_status(
            record.get("fulfillment_status"), cancelled=bool(record.get("cancelled_at"))
        ),
        financial_status=_text(record.get("financial_status")) or DEFAULT_FINANCIAL_STATUS,
        amount=to_amount(record.get("total_price")),
        currency=_text(record.get("currency")) or DEFAULT_CURRENCY,
        date=to_datetime(record.get("created_at")),
        store=None,
        line_items=[
            LineItem(
                id=_text(item.get("id")) or "",
                name=_text(item.get("title")) or _text(item.get("name")) or "",
                quantity=to_quantity(item.get("quantity")),
                price=to_amount(item.get("price")),
                variant_id=_text(item.get("variant_id")),
                shopify_product_id=_text(item.get("product_id")),
                sku=_text(item.get("sku")),
            )
            for item in _records(record.get("line_items"))
        ],
    )


def _graphql_line_items(connection: Any) -> list[Mapping]:
    # Accept both ``{edges: [{node}]}`` and ``{nodes: [...]}`` connections
    if isinstance(connection, Mapping):
        if "edges" in connection:
            return _records([_dig(edge, "node") for edge in _records(connection["edges"])])
        return _records(connection.get("nodes"))
    return _records(connection)


def _from_shopify_graphql(node: Mapping) -> Order:
    customer = node.get("customer") if isinstance(node.get("customer"), Mapping) else {}
    shipping = parse_address(node.get("shippingAddress"))
    money = _dig(node, "totalPriceSet", "shopMoney")
    if not isinstance(money, Mapping):
        money = {}
    number = _order_number(None, node.get("name"))
    return Order(
        id=_shopify_id(node.get("id")) or "",
        order_number=number,
        name=_display_name(node.get("name"), number),
        customer_name=(
            _full_name(customer.get("firstName"), customer.get("lastName"))
            or (shipping and _full_name(shipping.first_name, shipping.last_name))
            or GUEST_NAME
        ),
        customer_email=_text(node.get("email")) or _text(customer.get("email")) or NO_EMAIL,
        customer_phone=_text(node.get("phone")) or _text(customer.get("phone")),
        shipping_address=shipping,
        billing_address=parse_address(node.get("billingAddress")),
        status=to_status(
            node.get("displayFulfillmentStatus"), cancelled=bool(node.get("cancelledAt"))
        ),
        financial_status=(
            (_text(node.get("displayFinancialStatus")) or DEFAULT_FINANCIAL_STATUS).lower()
        ),
        amount=to_amount(money.get("amount")),
        currency=_text(money.get("currencyCode")) or DEFAULT_CURRENCY,
        date=to_datetime(node.get("createdAt")),
        store=None,
        line_items=[
            LineItem(
                id=_shopify_id(item.get("id")) or "",
                name=_text(item.get("title")) or _text(item.get("name")) or "",
                quantity=to_quantity(item.get("quantity")),
                price=to_amount(_dig(item, "originalUnitPriceSet", "shopMoney", "amount")),
                variant_id=_shopify_id(_dig(item, "variant", "id")),
                shopify_product_id=_shopify_id(_dig(item, "product", "id")),
                sku=_text(item.get("sku")),
            )
            for item in _graphql_line_items(node.get("lineItems"))
        ],
    )


def _from_canonical(record: Mapping | Order) -> Order:
    if isinstance(record, Order):
        record = record.to_json()
    number = _order_number(record.get("orderNumber") or record.get("order_number"), record.get("name"))
    items = record.get("lineItems") or record.get("supplierProducts")
    return Order(
        id=_text(record.get("id")) or "",
        order_number=number,
        name=_display_name(record.get("name"), number),
        customer_name=_text(record.get("customerName")) or GUEST_NAME,
        customer_email=_text(record.get("customerEmail")) or NO_EMAIL,
        customer_phone=_text(record.get("customerPhone")),
        shipping_address=parse_address(record.get("shippingAddress")),
        billing_address=parse_address(record.get("billingAddress")),
        status=to_status(record.get("status")),
        financial_status=(
            _text(record.get("financialStatus"))
            or _text(record.get("financial_status"))
            or DEFAULT_FINANCIAL_STATUS
        ),
        amount=to_amount(record.get("amount")),
        currency=_text(record.get("currency")) or DEFAULT_CURRENCY,
        date=to_datetime(record.get("date") or record.get("created_at")),
        store=_text(record.get("store")) or _text(record.get("storeName")),
        line_items=[
            LineItem(
                id=_text(item.get("id")) or "",
                name=_text(item.get("name")) or "",
                quantity=to_quantity(item.get("quantity")),
                price=to_amount(item.get("price")),
                product_id=_text(item.get("productId")),
                variant_id=_text(item.get("variantId")),
                shopify_product_id=_text(item.get("shopifyProductId")),
                sku=_text(item.get("sku")),
            )
            for item in _records(items)
        ],
    )


_NORMALIZERS: dict[SourceShape, Callable[[Any], Order]] = {
    SourceShape.STORE: _from_store,
    SourceShape.SHOPIFY_REST: _from_shopify_rest,
    SourceShape.SHOPIFY_GRAPHQL: _from_shopify_graphql,
    SourceShape.CANONICAL: _from_canonical,
}


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def detect_source(record: Mapping | Order) -> SourceShape:
    """Guess the shape of ``record`` from its distinguishing keys.

    Records with none of the recognised keys are treated as store rows.
    """
    if isinstance(record, Order):
        return SourceShape.CANONICAL
    if "supplier_order_items" in record or "shopify_order_id" in record or "total_amount" in record:
        return SourceShape.STORE
    if (
        "totalPriceSet" in record
        or "displayFinancialStatus" in record
        or "createdAt" in record
        or isinstance(record.get("lineItems"), Mapping)
    ):
        return SourceShape.SHOPIFY_GRAPHQL
    if "orderNumber" in record or "customerName" in record or "lineItems" in record or "amount" in record:
        return SourceShape.CANONICAL
    if "line_items" in record or "total_price" in record or "order_number" in record:
        return SourceShape.SHOPIFY_REST
    return SourceShape.STORE


def normalize_order(record: Mapping | Order, source: SourceShape | None = None) -> Order:
    shape = source or detect_source(record)
    return _NORMALIZERS[shape](record)


def normalize_orders(
    records: Iterable[Mapping | Order], source: SourceShape | None = None
) -> list[Order]:
    """Normalize ``records`` in order.

    ``source`` forces one shape for the whole batch; otherwise each record's
    shape is detected. Entries that are not records at all are skipped.
    """
    orders: list[Order] = []
    for record in records:
        if not isinstance(record, (Mapping, Order)):
            logger.warning(f"Skipping non-record entry of type {type(record).__name__}")
            continue
        orders.append(normalize_order(record, source))
    return orders
