from collections.abc import Callable

import httpx
from loguru import logger

from supplier_orders.application.order_normalizer import normalize_orders
from supplier_orders.domain.interfaces import (
    IOrderFetcher,
    IOrderStore,
    IProductMappings,
    IStoreDirectory,
)
from supplier_orders.domain.order import LineItem, Order
from supplier_orders.domain.supplier import ConnectedStore, ProductMapping
from supplier_orders.domain.sync import SyncSummary
from supplier_orders.infrastructure.shopify_client import ShopifyGraphQLError


def split_by_supplier(
    order: Order, mappings: dict[str, ProductMapping]
) -> dict[str, list[LineItem]]:
    """Group an order's line items by the supplier their product maps to.

    Each item gets the supplier's product id; items with no mapping are dropped.
    """
    grouped: dict[str, list[LineItem]] = {}
    for item in order.line_items:
        mapping = mappings.get(item.shopify_product_id or "")
        if mapping is None:
            continue
        grouped.setdefault(mapping.supplier_id, []).append(
            item.model_copy(update={"product_id": mapping.supplier_product_id})
        )
    return grouped


class OrderSyncService:
    """Mirrors recent Shopify orders of every connected store into the order store."""

    def __init__(
        self,
        stores: IStoreDirectory,
        mappings: IProductMappings,
        order_store: IOrderStore,
        fetcher_factory: Callable[[ConnectedStore], IOrderFetcher],
    ) -> None:
        self._stores = stores
        self._mappings = mappings
        self._order_store = order_store
        self._fetcher_factory = fetcher_factory

    def sync_all(self, days: int) -> SyncSummary:
        """Sync orders created in the last ``days`` days from every store.

        Stores are processed one at a time. A store whose Shopify fetch fails is
        skipped and reported in ``errors``; storage errors propagate.
        """
        summary = SyncSummary()
        for store in self._stores.list_stores():
            try:
                records, shape = self._fetcher_factory(store).fetch(days)
            except (ShopifyGraphQLError, httpx.HTTPError) as exc:
                logger.error(f"Skipping {store.shop}: {exc}")
                summary.errors.append(f"{store.shop}: {exc}")
                continue

            orders = [
                order.model_copy(update={"store": store.shop})
                for order in normalize_orders(records, shape)
            ]
            written = self._persist(orders)
            self._order_store.commit()

            summary.stores += 1
            summary.orders_fetched += len(orders)
            summary.supplier_orders += written
            logger.info(f"[{store.shop}] {len(orders)} order(s) fetched, {written} supplier order(s) saved")

        return summary

    def _persist(self, orders: list[Order]) -> int:
        product_ids = {
            item.shopify_product_id
            for order in orders
            for item in order.line_items
            if item.shopify_product_id
        }
        mappings = self._mappings.find_by_product_ids(product_ids)
        logger.debug(f"{len(mappings)} of {len(product_ids)} product(s) mapped to suppliers")

        written = 0
        for order in orders:
            for supplier_id, items in split_by_supplier(order, mappings).items():
                self._order_store.save_supplier_order(
                    supplier_id, order.model_copy(update={"line_items": items})
                )
                written += 1
        return written
