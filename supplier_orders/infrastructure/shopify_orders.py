from datetime import UTC, datetime, timedelta

import httpx
from loguru import logger

from supplier_orders.domain.order import SourceShape
from supplier_orders.domain.supplier import ConnectedStore
from supplier_orders.infrastructure.shopify_client import (
    ShopifyGraphQLClient,
    ShopifyGraphQLError,
    ShopifyRestClient,
)

_ADDRESS_FIELDS = """
    firstName
    lastName
    company
    address1
    address2
    city
    province
    provinceCode
    zip
    country
    countryCode
    phone
"""

_LINE_ITEM_FIELDS = """
    id
    title
    quantity
    sku
    variant { id }
    product { id }
    originalUnitPriceSet {
      shopMoney { amount currencyCode }
    }
"""

ORDERS_QUERY = f"""
  query FetchOrders($query: String!, $first: Int!, $after: String) {{
    orders(query: $query, first: $first, after: $after, sortKey: CREATED_AT, reverse: true) {{
      pageInfo {{
        hasNextPage
        endCursor
      }}
      edges {{
        node {{
          id
          name
          createdAt
          cancelledAt
          email
          phone
          displayFinancialStatus
          displayFulfillmentStatus
          customer {{ firstName lastName email phone }}
          shippingAddress {{ {_ADDRESS_FIELDS} }}
          billingAddress {{ {_ADDRESS_FIELDS} }}
          totalPriceSet {{
            shopMoney {{ amount currencyCode }}
          }}
          lineItems(first: 50) {{
            pageInfo {{
              hasNextPage
              endCursor
            }}
            edges {{
              node {{ {_LINE_ITEM_FIELDS} }}
            }}
          }}
        }}
      }}
    }}
  }}
"""

# Follow-up for orders with more line items than the first page carries
LINE_ITEMS_QUERY = f"""
  query FetchOrderLineItems($id: ID!, $first: Int!, $after: String) {{
    order(id: $id) {{
      lineItems(first: $first, after: $after) {{
        pageInfo {{
          hasNextPage
          endCursor
        }}
        edges {{
          node {{ {_LINE_ITEM_FIELDS} }}
        }}
      }}
    }}
  }}
"""


class ShopifyOrderFetcher:
    """Retrieves raw orders for one store, via GraphQL with a REST fallback."""

    # Fetch 50 orders per GraphQL page (Shopify max is 250, 50 is a safe default)
    PAGE_SIZE = 50
    LINE_ITEM_PAGE_SIZE = 250
    REST_PAGE_LIMIT = 250

    def __init__(self, shop: str, graphql: ShopifyGraphQLClient, rest: ShopifyRestClient) -> None:
        self.shop = shop
        self._graphql = graphql
        self._rest = rest

    @classmethod
    def for_store(
        cls, store: ConnectedStore, client: httpx.Client, api_version: str
    ) -> "ShopifyOrderFetcher":
        return cls(
            shop=store.shop,
            graphql=ShopifyGraphQLClient(client, store.shop, store.access_token, api_version),
            rest=ShopifyRestClient(client, store.shop, store.access_token, api_version),
        )

    def fetch(self, days: int) -> tuple[list[dict], SourceShape]:
        """Return orders from the last ``days`` days and the shape they are in.

        GraphQL is tried first; any Shopify or HTTP failure falls back to the
        REST API once. A REST failure propagates.
        """
        try:
            return self.fetch_graphql(days), SourceShape.SHOPIFY_GRAPHQL
        except (ShopifyGraphQLError, httpx.HTTPError) as exc:
            logger.warning(f"GraphQL failed for {self.shop}, trying REST API: {exc}")
        return self.fetch_rest(days), SourceShape.SHOPIFY_REST

    def fetch_graphql(self, days: int) -> list[dict]:
        """Return raw GraphQL order nodes created in the last ``days`` days."""
        query_string = f"created_at:>={_since(days)}"

        nodes: list[dict] = []
        cursor: str | None = None

        # Paginate until all matching orders are fetched
        while True:
            variables: dict = {
                "query": query_string,
                "first": self.PAGE_SIZE,
                "after": cursor,
            }
            data = self._graphql.execute(ORDERS_QUERY, variables)

            cost = data.get("extensions", {}).get("cost", {})
            throttle = cost.get("throttleStatus", {})
            logger.debug(
                f"[{self.shop}] Query cost: {cost.get('actualQueryCost', 0)} | "
                f"Available: {throttle.get('currentlyAvailable')} / {throttle.get('maximumAvailable')}"
            )

            page = data["data"]["orders"]
            for edge in page["edges"]:
                node = edge["node"]
                self._complete_line_items(node)
                nodes.append(node)

            page_info = page["pageInfo"]
            if not page_info["hasNextPage"]:
                break
            cursor = page_info["endCursor"]

        logger.info(f"[{self.shop}] Fetched {len(nodes)} order(s) via GraphQL")
        return nodes

    def _complete_line_items(self, node: dict) -> None:
        """Append the line items past the first page to ``node`` in place."""
        line_items = node.get("lineItems") or {}
        page_info = line_items.get("pageInfo") or {}
        if not page_info.get("hasNextPage"):
            return

        edges = line_items.setdefault("edges", [])
        while page_info.get("hasNextPage"):
            variables = {
                "id": node["id"],
                "first": self.LINE_ITEM_PAGE_SIZE,
                "after": page_info.get("endCursor"),
            }
            data = self._graphql.execute(LINE_ITEMS_QUERY, variables)
            page = data["data"]["order"]["lineItems"]
            edges.extend(page["edges"])
            page_info = page["pageInfo"]

        logger.debug(f"[{self.shop}] Paged {len(edges)} line item(s) for order {node.get('name')}")

    def fetch_rest(self, days: int) -> list[dict]:
        """Return raw REST orders created in the last ``days`` days.

        Follows the ``Link: rel="next"`` cursor Shopify returns for pagination.
        """
        orders: list[dict] = []
        response = self._rest.get(
            "orders.json",
            params={
                "status": "any",
                "limit": self.REST_PAGE_LIMIT,
                "created_at_min": _since(days),
            },
        )
        while True:
            orders.extend(response.json().get("orders", []))
            next_url = response.links.get("next", {}).get("url")
            if not next_url:
                break
            response = self._rest.get(next_url)

        logger.info(f"[{self.shop}] Fetched {len(orders)} order(s) via REST")
        return orders


def _since(days: int) -> str:
    since: datetime = datetime.now(UTC) - timedelta(days=days)
    return since.strftime("%Y-%m-%dT%H:%M:%SZ")
