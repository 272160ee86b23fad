from collections.abc import Iterable

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from supplier_orders.domain.supplier import ConnectedStore, ProductMapping, Supplier
from supplier_orders.infrastructure.order_store import StorageError
from supplier_orders.infrastructure.tables import (
    ConnectedStoreRow,
    ProductMappingRow,
    SupplierRow,
)
from supplier_orders.shared.decorators import log_errors, reraise_as


class SupplierDirectory:
    """Looks up supplier accounts by login email."""

    def __init__(self, session: Session) -> None:
        self._session = session

    @log_errors
    @reraise_as(StorageError, catch=SQLAlchemyError)
    def find_by_email(self, email: str) -> Supplier | None:
        row = self._session.scalar(select(SupplierRow).where(SupplierRow.email == email))
        if row is None:
            return None
        return Supplier(id=str(row.id), username=row.username, email=row.email)


class StoreDirectory:
    """Lists the Shopify stores connected to the dashboard."""

    def __init__(self, session: Session) -> None:
        self._session = session

    @log_errors
    @reraise_as(StorageError, catch=SQLAlchemyError)
    def list_stores(self) -> list[ConnectedStore]:
        rows = self._session.scalars(select(ConnectedStoreRow).order_by(ConnectedStoreRow.shop))
        return [ConnectedStore(shop=row.shop, access_token=row.access_token) for row in rows]


class ProductMappings:
    def __init__(self, session: Session) -> None:
        self._session = session

    @log_errors
    @reraise_as(StorageError, catch=SQLAlchemyError)
    def find_by_product_ids(self, shopify_product_ids: Iterable[str]) -> dict[str, ProductMapping]:
        """Return mappings keyed by Shopify product id; unmapped ids are absent."""
        ids = sorted(set(shopify_product_ids))
        if not ids:
            return {}
        rows = self._session.scalars(
            select(ProductMappingRow).where(ProductMappingRow.shopify_product_id.in_(ids))
        )
        return {
            row.shopify_product_id: ProductMapping(
                shopify_product_id=row.shopify_product_id,
                supplier_id=row.supplier_id,
                supplier_product_id=row.supplier_product_id,
            )
            for row in rows
        }
