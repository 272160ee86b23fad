from collections.abc import Callable

import httpx
from loguru import logger
from pydantic import BaseModel, Field

from supplier_orders.application.order_filters import product_names
from supplier_orders.application.order_normalizer import normalize_orders
from supplier_orders.domain.interfaces import IOrderFetcher, IStoreDirectory
from supplier_orders.domain.order import AdminOrder, Order
from supplier_orders.domain.supplier import ConnectedStore
from supplier_orders.infrastructure.shopify_client import ShopifyGraphQLError

# Placeholder: a flat share of the order amount, not derived from product costs
MARGIN_RATE = 0.15


def estimate_margin(amount: float) -> float:
    return amount * MARGIN_RATE


def _newest_first(order: Order) -> float:
    return order.date.timestamp() if order.date else float("-inf")


class AdminOrderListing(BaseModel):
    orders: list[AdminOrder] = Field(default_factory=list)
    stores: list[str] = Field(default_factory=list)
    products: list[str] = Field(default_factory=list)

    def summary(self) -> dict:
        return {
            "totalOrders": len(self.orders),
            "totalRevenue": round(sum(order.amount for order in self.orders), 2),
            "totalMargin": round(sum(order.margin for order in self.orders), 2),
            "connectedStores": len(self.stores),
        }

    def to_json(self) -> dict:
        return {
            "orders": [order.to_json() for order in self.orders],
            "stores": self.stores,
            "products": self.products,
            "summary": self.summary(),
        }


class AdminOrderService:
    """Collects live orders from every connected store for the admin view."""

    def __init__(
        self,
        stores: IStoreDirectory,
        fetcher_factory: Callable[[ConnectedStore], IOrderFetcher],
        days: int,
    ) -> None:
        self._stores = stores
        self._fetcher_factory = fetcher_factory
        self._days = days

    def list_orders(self) -> AdminOrderListing:
        """Fetch each store in turn; a store that fails both APIs is left out."""
        connected = self._stores.list_stores()
        orders: list[AdminOrder] = []

        for store in connected:
            try:
                records, shape = self._fetcher_factory(store).fetch(self._days)
            except (ShopifyGraphQLError, httpx.HTTPError) as exc:
                logger.error(f"Error fetching orders for {store.shop}: {exc}")
                continue

            for order in normalize_orders(records, shape):
                orders.append(
                    AdminOrder(
                        **{
                            **dict(order),
                            "store": store.shop,
                            "margin": estimate_margin(order.amount),
                        }
                    )
                )

        orders.sort(key=_newest_first, reverse=True)
        logger.info(f"Collected {len(orders)} order(s) from {len(connected)} store(s)")
        return AdminOrderListing(
            orders=orders,
            stores=[store.shop for store in connected],
            products=product_names(orders),
        )
