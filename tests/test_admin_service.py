"""Tests for the admin listing, dashboard filters and CSV exports."""

from datetime import UTC, datetime
from unittest.mock import MagicMock

import httpx
import pytest

from supplier_orders.application.admin_service import (
    MARGIN_RATE,
    AdminOrderService,
    estimate_margin,
)
from supplier_orders.application.csv_export import admin_orders_csv, supplier_orders_csv
from supplier_orders.application.order_filters import filter_orders, product_names, total_items
from supplier_orders.domain.interfaces import IOrderFetcher, IStoreDirectory
from supplier_orders.domain.order import AdminOrder, LineItem, Order, OrderStatus, SourceShape
from supplier_orders.domain.supplier import ConnectedStore

ACME = ConnectedStore(shop="acme.myshopify.com", access_token="shpat_a")
ZETA = ConnectedStore(shop="zeta.myshopify.com", access_token="shpat_z")


def _make_node(order_id: str, name: str, created_at: str | None, amount: str = "100.00") -> dict:
    """Helper: a minimal GraphQL order node with one line item."""
    return {
        "id": order_id,
        "name": name,
        "createdAt": created_at,
        "displayFinancialStatus": "PAID",
        "totalPriceSet": {"shopMoney": {"amount": amount, "currencyCode": "INR"}},
        "lineItems": {
            "edges": [
                {"node": {"id": f"{order_id}-li", "title": f"Item {name}", "quantity": 1}}
            ]
        },
    }


def _make_fetcher(nodes: list[dict]) -> MagicMock:
    fetcher = MagicMock(spec=IOrderFetcher)
    fetcher.fetch.return_value = (nodes, SourceShape.SHOPIFY_GRAPHQL)
    return fetcher


def _make_order(number: str, **kwargs) -> AdminOrder:
    defaults = dict(
        id=number,
        order_number=number,
        name=f"#{number}",
        customer_name="Asha Rao",
        customer_email="asha@example.com",
        amount=100.0,
        margin=15.0,
        store="acme.myshopify.com",
        date=datetime(2025, 2, 1, 10, 0, tzinfo=UTC),
        line_items=[LineItem(id=f"{number}-1", name="Brass Lamp", quantity=2, price=50.0)],
    )
    return AdminOrder(**{**defaults, **kwargs})


# ---------------------------------------------------------------------------
# Margin
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("amount", [0.0, 19.99, 100.0, 1499.5])
def test_margin_is_fifteen_percent(amount: float) -> None:
    assert estimate_margin(amount) == pytest.approx(amount * 0.15)
    assert MARGIN_RATE == 0.15


# ---------------------------------------------------------------------------
# AdminOrderService
# ---------------------------------------------------------------------------


def test_list_orders_merges_stores_newest_first() -> None:
    stores = MagicMock(spec=IStoreDirectory)
    stores.list_stores.return_value = [ACME, ZETA]
    fetchers = {
        ACME.shop: _make_fetcher(
            [
                _make_node("a1", "#1001", "2025-01-10T00:00:00Z"),
                _make_node("a2", "#1002", None),
            ]
        ),
        ZETA.shop: _make_fetcher([_make_node("z1", "#2001", "2025-03-01T00:00:00Z", "40.00")]),
    }

    listing = AdminOrderService(stores, lambda s: fetchers[s.shop], days=14).list_orders()

    assert [o.id for o in listing.orders] == ["z1", "a1", "a2"]
    assert [o.store for o in listing.orders] == [ZETA.shop, ACME.shop, ACME.shop]
    assert [o["storeName"] for o in listing.to_json()["orders"]] == [ZETA.shop, ACME.shop, ACME.shop]
    assert listing.orders[0].margin == pytest.approx(6.0)
    assert listing.stores == [ACME.shop, ZETA.shop]
    assert listing.products == ["Item #1001", "Item #1002", "Item #2001"]
    fetchers[ACME.shop].fetch.assert_called_once_with(14)


def test_failing_store_is_left_out() -> None:
    stores = MagicMock(spec=IStoreDirectory)
    stores.list_stores.return_value = [ACME, ZETA]
    broken = MagicMock(spec=IOrderFetcher)
    request = httpx.Request("GET", "https://acme.myshopify.com/admin/api/2025-01/orders.json")
    broken.fetch.side_effect = httpx.HTTPStatusError(
        "401", request=request, response=httpx.Response(401, request=request)
    )
    fetchers = {ACME.shop: broken, ZETA.shop: _make_fetcher([_make_node("z1", "#2001", None)])}

    listing = AdminOrderService(stores, lambda s: fetchers[s.shop], days=14).list_orders()

    assert [o.id for o in listing.orders] == ["z1"]
    assert listing.stores == [ACME.shop, ZETA.shop]


def test_summary_totals() -> None:
    stores = MagicMock(spec=IStoreDirectory)
    stores.list_stores.return_value = [ACME]
    fetcher = _make_fetcher(
        [_make_node("a1", "#1", None, "100.00"), _make_node("a2", "#2", None, "19.99")]
    )

    body = AdminOrderService(stores, lambda _: fetcher, days=14).list_orders().to_json()

    assert body["summary"] == {
        "totalOrders": 2,
        "totalRevenue": 119.99,
        "totalMargin": 18.0,
        "connectedStores": 1,
    }
    assert body["orders"][0]["margin"] == pytest.approx(15.0)


# ---------------------------------------------------------------------------
# Filters
# ---------------------------------------------------------------------------


def test_search_matches_name_customer_email_and_number() -> None:
    orders = [
        _make_order("1001", customer_name="Asha Rao"),
        _make_order("1002", customer_name="Ravi Kumar", customer_email="ravi@example.com"),
    ]

    assert [o.id for o in filter_orders(orders, search="ravi")] == ["1002"]
    assert [o.id for o in filter_orders(orders, search="#1001")] == ["1001"]
    assert [o.id for o in filter_orders(orders, search="  ASHA ")] == ["1001"]
    assert len(filter_orders(orders, search="   ")) == 2


def test_product_and_store_filters() -> None:
    orders = [
        _make_order("1", store="acme.myshopify.com"),
        _make_order(
            "2",
            store="zeta.myshopify.com",
            line_items=[LineItem(id="x", name="Copper Pot", quantity=1)],
        ),
    ]

    assert [o.id for o in filter_orders(orders, product="copper")] == ["2"]
    assert [o.id for o in filter_orders(orders, store="acme.myshopify.com")] == ["1"]
    assert filter_orders(orders, store="acme") == []
    assert len(filter_orders(orders, product="all", store="all")) == 2


def test_product_names_and_total_items() -> None:
    order = Order(
        id="1",
        order_number="1",
        line_items=[
            LineItem(id="a", name="Lamp", quantity=2),
            LineItem(id="b", name="Bowl", quantity=3),
            LineItem(id="c", name="Lamp", quantity=1),
        ],
    )

    assert product_names([order]) == ["Bowl", "Lamp"]
    assert total_items(order) == 6


# ---------------------------------------------------------------------------
# CSV export
# ---------------------------------------------------------------------------


def test_admin_csv() -> None:
    csv_text = admin_orders_csv(
        [
            _make_order("1001", status=OrderStatus.fulfilled, amount=19.99, margin=estimate_margin(19.99)),
            _make_order("1002", customer_name="Rao, Asha", date=None),
        ]
    )

    assert csv_text.splitlines() == [
        "Order #,Customer,Status,Amount,Store,Margin,Date",
        "1001,Asha Rao,fulfilled,19.99,acme.myshopify.com,3.00,2025-02-01T10:00:00+00:00",
        '1002,"Rao, Asha",pending,100.00,acme.myshopify.com,15.00,',
    ]


def test_supplier_csv_counts_items() -> None:
    csv_text = supplier_orders_csv([_make_order("1001")])

    assert csv_text.splitlines() == [
        "Order #,Customer,Status,Amount,Date,Items",
        "1001,Asha Rao,pending,100.00,2025-02-01T10:00:00+00:00,2",
    ]


def test_empty_csv_has_header_only() -> None:
    assert supplier_orders_csv([]) == "Order #,Customer,Status,Amount,Date,Items\n"
