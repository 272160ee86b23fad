"""Tests for OrderStore and the directories against in-memory SQLite."""

from datetime import UTC, datetime, timedelta, timezone

import pytest
from sqlalchemy.orm import Session

from supplier_orders.application.order_normalizer import normalize_orders
from supplier_orders.domain.order import Address, LineItem, Order, OrderStatus, SourceShape
from supplier_orders.infrastructure.database import Base
from supplier_orders.infrastructure.directories import (
    ProductMappings,
    StoreDirectory,
    SupplierDirectory,
)
from supplier_orders.infrastructure.order_store import OrderStore, StorageError
from supplier_orders.infrastructure.tables import (
    ConnectedStoreRow,
    ProductMappingRow,
    SupplierOrderRow,
    SupplierRow,
)


def _make_order(order_id: str = "5551001", number: str = "1001", **kwargs) -> Order:
    defaults = dict(
        id=order_id,
        order_number=number,
        name=f"#{number}",
        customer_name="Asha Rao",
        customer_email="asha@example.com",
        shipping_address=Address(first_name="Asha", city="Pune", zip="411001"),
        status=OrderStatus.fulfilled,
        financial_status="paid",
        amount=1499.5,
        currency="INR",
        date=datetime(2025, 2, 1, 10, 0, tzinfo=UTC),
        store="acme.myshopify.com",
        line_items=[
            LineItem(
                id="9001",
                name="Brass Lamp",
                quantity=2,
                price=749.75,
                product_id="SP-1",
                shopify_product_id="777",
                variant_id="888",
                sku="LAMP-01",
            )
        ],
    )
    return Order(**{**defaults, **kwargs})


# ---------------------------------------------------------------------------
# OrderStore
# ---------------------------------------------------------------------------


def test_saved_order_reads_back_through_normalizer(session: Session) -> None:
    """A stored order normalizes back to the same data it was saved from."""
    store = OrderStore(session)
    original = _make_order()

    assert store.save_supplier_order("acme-supplies", original) is True
    store.commit()

    (restored,) = normalize_orders(store.fetch_supplier_orders("acme-supplies"), SourceShape.STORE)

    assert restored.id == original.id
    assert restored.name == "#1001"
    assert restored.shipping_address == original.shipping_address
    assert restored.status is OrderStatus.fulfilled
    assert restored.amount == 1499.5
    assert restored.store == "acme.myshopify.com"
    assert restored.date.replace(tzinfo=None) == datetime(2025, 2, 1, 10, 0)
    assert restored.line_items == original.line_items


def test_orders_are_scoped_to_supplier(session: Session) -> None:
    store = OrderStore(session)
    store.save_supplier_order("acme-supplies", _make_order())
    store.save_supplier_order("other-supplier", _make_order())
    store.commit()

    assert len(store.fetch_supplier_orders("acme-supplies")) == 1
    assert len(store.fetch_supplier_orders("other-supplier")) == 1
    assert store.fetch_supplier_orders("nobody") == []


def test_orders_come_back_newest_first_with_undated_last(session: Session) -> None:
    store = OrderStore(session)
    store.save_supplier_order("acme", _make_order("1", "1", date=datetime(2025, 1, 1, tzinfo=UTC)))
    store.save_supplier_order("acme", _make_order("2", "2", date=None))
    store.save_supplier_order("acme", _make_order("3", "3", date=datetime(2025, 3, 1, tzinfo=UTC)))
    store.commit()

    rows = store.fetch_supplier_orders("acme")

    assert [row["shopify_order_id"] for row in rows] == ["3", "1", "2"]


def test_ordering_compares_instants_across_offsets(session: Session) -> None:
    """A shop-local timestamp sorts by its UTC instant, not its wall-clock time."""
    store = OrderStore(session)
    eastern = timezone(timedelta(hours=-5))
    store.save_supplier_order("acme", _make_order("1", "1", date=datetime(2025, 3, 5, 8, 30, tzinfo=eastern)))
    store.save_supplier_order("acme", _make_order("2", "2", date=datetime(2025, 3, 5, 10, 0, tzinfo=UTC)))
    store.commit()

    rows = store.fetch_supplier_orders("acme")

    assert [row["shopify_order_id"] for row in rows] == ["1", "2"]
    assert rows[0]["order_date"].replace(tzinfo=None) == datetime(2025, 3, 5, 13, 30)


def test_saving_again_replaces_row_and_items(session: Session) -> None:
    """Re-syncing an order overwrites it instead of duplicating it."""
    store = OrderStore(session)
    store.save_supplier_order("acme", _make_order())
    store.commit()

    updated = _make_order(
        status=OrderStatus.cancelled,
        line_items=[LineItem(id="9002", name="Copper Pot", quantity=1, price=10.0)],
    )
    assert store.save_supplier_order("acme", updated) is False
    store.commit()

    rows = store.fetch_supplier_orders("acme")
    assert len(rows) == 1
    assert rows[0]["status"] == "cancelled"
    assert [item["product_name"] for item in rows[0]["supplier_order_items"]] == ["Copper Pot"]
    assert session.query(SupplierOrderRow).count() == 1


def test_missing_address_is_stored_as_null(session: Session) -> None:
    store = OrderStore(session)
    store.save_supplier_order("acme", _make_order(shipping_address=None))
    store.commit()

    assert store.fetch_supplier_orders("acme")[0]["shipping_address"] is None


def test_database_failure_raises_storage_error(session: Session) -> None:
    Base.metadata.drop_all(bind=session.get_bind())

    with pytest.raises(StorageError):
        OrderStore(session).fetch_supplier_orders("acme")


# ---------------------------------------------------------------------------
# Directories
# ---------------------------------------------------------------------------


def test_supplier_directory_finds_by_email(session: Session) -> None:
    session.add(SupplierRow(id=4, username="acme-supplies", email="ops@acme.test"))
    session.commit()

    directory = SupplierDirectory(session)
    supplier = directory.find_by_email("ops@acme.test")

    assert supplier.id == "4"
    assert supplier.username == "acme-supplies"
    assert directory.find_by_email("nobody@acme.test") is None


def test_store_directory_lists_stores_by_shop(session: Session) -> None:
    session.add_all(
        [
            ConnectedStoreRow(shop="zeta.myshopify.com", access_token="shpat_z"),
            ConnectedStoreRow(shop="acme.myshopify.com", access_token="shpat_a"),
        ]
    )
    session.commit()

    stores = StoreDirectory(session).list_stores()

    assert [s.shop for s in stores] == ["acme.myshopify.com", "zeta.myshopify.com"]
    assert stores[0].access_token == "shpat_a"
    assert "shpat_a" not in repr(stores[0])


def test_product_mappings_are_keyed_by_shopify_id(session: Session) -> None:
    session.add_all(
        [
            ProductMappingRow(shopify_product_id="777", supplier_id="acme", supplier_product_id="SP-1"),
            ProductMappingRow(shopify_product_id="778", supplier_id="other", supplier_product_id=None),
        ]
    )
    session.commit()

    mappings = ProductMappings(session).find_by_product_ids(["777", "999"])

    assert set(mappings) == {"777"}
    assert mappings["777"].supplier_id == "acme"
    assert mappings["777"].supplier_product_id == "SP-1"
    assert ProductMappings(session).find_by_product_ids([]) == {}
