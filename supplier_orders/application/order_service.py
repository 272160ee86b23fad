from enum import StrEnum

from loguru import logger
from pydantic import BaseModel, Field

from supplier_orders.application.order_normalizer import normalize_orders
from supplier_orders.domain.interfaces import IOrderStore, ISyncTrigger
from supplier_orders.domain.order import Order, SourceShape
from supplier_orders.infrastructure.order_store import StorageError


class RetrievalState(StrEnum):
    QUERIED = "queried"
    SYNCED_ONCE = "synced_once"


class OrderListing(BaseModel):
    orders: list[Order] = Field(default_factory=list)
    synced: bool = False  # orders only appeared after an implicit sync

    def to_json(self) -> dict:
        body: dict = {"orders": [order.to_json() for order in self.orders]}
        if self.synced:
            body["synced"] = True
        return body


class OrderService:
    """Lists a supplier's stored orders, syncing from Shopify on a miss."""

    def __init__(self, store: IOrderStore, sync_trigger: ISyncTrigger) -> None:
        self._store = store
        self._sync_trigger = sync_trigger

    def list_orders(self, supplier_id: str, force_sync: bool = False) -> OrderListing:
        """Return the supplier's orders, newest first.

        With ``force_sync`` a sync runs before the query. Otherwise an empty
        first query moves the retrieval from ``QUERIED`` to ``SYNCED_ONCE``: one
        sync, one re-query, and whatever that yields is final.

        Raises:
            StorageError: the first query failed.
        """
        if force_sync:
            logger.info("Force sync requested, triggering order sync")
            self._sync_trigger.trigger()

        state = RetrievalState.QUERIED
        records = self._store.fetch_supplier_orders(supplier_id)

        if not records and not force_sync:
            state = RetrievalState.SYNCED_ONCE
            records = self._sync_and_requery(supplier_id)

        orders = normalize_orders(records, SourceShape.STORE)
        logger.info(f"Returning {len(orders)} order(s) for supplier {supplier_id} [{state}]")
        return OrderListing(
            orders=orders, synced=state is RetrievalState.SYNCED_ONCE and bool(orders)
        )

    def _sync_and_requery(self, supplier_id: str) -> list[dict]:
        logger.info(f"No orders found for supplier {supplier_id}, triggering automatic sync")
        result = self._sync_trigger.trigger()
        if not result.success:
            return []
        try:
            return self._store.fetch_supplier_orders(supplier_id)
        except StorageError as exc:
            logger.warning(f"Re-query after sync failed for supplier {supplier_id}: {exc}")
            return []
