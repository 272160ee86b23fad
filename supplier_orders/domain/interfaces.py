from collections.abc import Iterable
from typing import Protocol

from .order import Order, SourceShape
from .supplier import ConnectedStore, ProductMapping, Supplier
from .sync import SyncResult


class IOrderStore(Protocol):
    def fetch_supplier_orders(self, supplier_id: str) -> list[dict]:
        """Return raw store rows for ``supplier_id``, newest first."""
        ...

    def save_supplier_order(self, supplier_id: str, order: Order) -> bool:
        """Insert or replace the supplier's copy of ``order``; True if created."""
        ...

    def commit(self) -> None: ...


class ISupplierDirectory(Protocol):
    def find_by_email(self, email: str) -> Supplier | None: ...


class IStoreDirectory(Protocol):
    def list_stores(self) -> list[ConnectedStore]: ...


class IProductMappings(Protocol):
    def find_by_product_ids(
        self, shopify_product_ids: Iterable[str]
    ) -> dict[str, ProductMapping]: ...


class ISyncTrigger(Protocol):
    def trigger(self) -> SyncResult: ...


class IOrderFetcher(Protocol):
    def fetch(self, days: int) -> tuple[list[dict], SourceShape]:
        """Return raw orders and the shape they are in."""
        ...
