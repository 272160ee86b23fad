import json
from datetime import UTC, datetime
from decimal import Decimal

from loguru import logger
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from supplier_orders.domain.order import Address, Order
from supplier_orders.infrastructure.tables import SupplierOrderItemRow, SupplierOrderRow
from supplier_orders.shared.decorators import log_errors, reraise_as


class StorageError(Exception):
    """Raised when the relational store cannot be read or written."""


class OrderStore:
    """Reads and writes supplier orders and their items."""

    def __init__(self, session: Session) -> None:
        self._session = session

    @log_errors
    @reraise_as(StorageError, catch=SQLAlchemyError)
    def fetch_supplier_orders(self, supplier_id: str) -> list[dict]:
        """Return every order stored for ``supplier_id`` with its items, newest first.

        Rows come back in the store's own shape (snake_case columns plus a
        ``supplier_order_items`` list) for the normalizer to consume.
        """
        stmt = (
            select(SupplierOrderRow)
            .where(SupplierOrderRow.supplier_id == supplier_id)
            .options(selectinload(SupplierOrderRow.items))
            .order_by(SupplierOrderRow.order_date.desc().nulls_last(), SupplierOrderRow.id.desc())
        )
        rows = self._session.scalars(stmt).all()
        logger.debug(f"Loaded {len(rows)} stored order(s) for supplier {supplier_id}")
        return [_to_record(row) for row in rows]

    @log_errors
    @reraise_as(StorageError, catch=SQLAlchemyError)
    def save_supplier_order(self, supplier_id: str, order: Order) -> bool:
        """Insert or overwrite the supplier's copy of ``order``.

        Rows are keyed by (supplier, Shopify order id); existing items are
        replaced by ``order.line_items``. Returns True when a new row was created.
        """
        row = self._session.scalar(
            select(SupplierOrderRow).where(
                SupplierOrderRow.supplier_id == supplier_id,
                SupplierOrderRow.shopify_order_id == order.id,
            )
        )
        created = row is None
        if row is None:
            row = SupplierOrderRow(supplier_id=supplier_id, shopify_order_id=order.id)
            self._session.add(row)

        row.order_number = order.order_number
        row.customer_name = order.customer_name
        row.customer_email = order.customer_email
        row.customer_phone = order.customer_phone
        row.shipping_address = _dump_address(order.shipping_address)
        row.billing_address = _dump_address(order.billing_address)
        row.status = order.status.value
        row.financial_status = order.financial_status
        row.total_amount = Decimal(str(order.amount))
        row.currency = order.currency
        row.order_date = _as_utc(order.date)
        row.store_url = order.store
        row.items = [
            SupplierOrderItemRow(
                shopify_line_item_id=item.id,
                shopify_product_id=item.shopify_product_id,
                supplier_product_id=item.product_id,
                product_name=item.name,
                quantity=item.quantity,
                price=Decimal(str(item.price)),
                variant_id=item.variant_id,
                sku=item.sku,
            )
            for item in order.line_items
        ]
        self._session.flush()
        return created

    @log_errors
    @reraise_as(StorageError, catch=SQLAlchemyError)
    def commit(self) -> None:
        self._session.commit()

    def rollback(self) -> None:
        self._session.rollback()


def _dump_address(address: Address | None) -> str | None:
    if address is None:
        return None
    return json.dumps(address.model_dump(by_alias=True, exclude_none=True))


def _to_record(row: SupplierOrderRow) -> dict:
    return {
        "id": row.id,
        "shopify_order_id": row.shopify_order_id,
        "supplier_id": row.supplier_id,
        "order_number": row.order_number,
        "customer_name": row.customer_name,
        "customer_email": row.customer_email,
        "customer_phone": row.customer_phone,
        "shipping_address": row.shipping_address,
        "billing_address": row.billing_address,
        "status": row.status,
        "financial_status": row.financial_status,
        "total_amount": row.total_amount,
        "currency": row.currency,
        "order_date": row.order_date,
        "store_url": row.store_url,
        "supplier_order_items": [
            {
                "id": item.id,
                "shopify_line_item_id": item.shopify_line_item_id,
                "shopify_product_id": item.shopify_product_id,
                "supplier_product_id": item.supplier_product_id,
                "product_name": item.product_name,
                "quantity": item.quantity,
                "price": item.price,
                "variant_id": item.variant_id,
                "sku": item.sku,
            }
            for item in row.items
        ],
    }


def _as_utc(value: datetime | None) -> datetime | None:
    # SQLite drops the offset, so aware values are stored in UTC
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(UTC)
