from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_serializer
from pydantic.alias_generators import to_camel


class OrderStatus(StrEnum):
    pending = "pending"
    fulfilled = "fulfilled"
    cancelled = "cancelled"
    partial = "partial"


class SourceShape(StrEnum):
    """Known shapes a raw order record can arrive in."""

    STORE = "store"  # supplier_orders row joined with supplier_order_items
    SHOPIFY_REST = "shopify_rest"  # Admin REST orders.json entry
    SHOPIFY_GRAPHQL = "shopify_graphql"  # Admin GraphQL order node
    CANONICAL = "canonical"  # an already-normalized Order, or its JSON dump


class Address(BaseModel):
    """Postal address attached to an order.

    Accepts both snake_case keys (Shopify REST, local store) and camelCase keys
    (Shopify GraphQL, dashboard JSON).
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    first_name: str | None = None
    last_name: str | None = None
    company: str | None = None
    address1: str | None = None
    address2: str | None = None
    city: str | None = None
    state: str | None = None
    province: str | None = None
    province_code: str | None = None
    zip: str | None = None
    country: str | None = None
    country_code: str | None = None
    phone: str | None = None


class LineItem(BaseModel):
    """One product entry within an order.

    ``product_id`` is the supplier's own product id, ``shopify_product_id`` the
    id of the Shopify product the line item was bought as.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    name: str
    quantity: int = Field(default=0, ge=0)
    price: float = 0.0
    product_id: str | None = None
    variant_id: str | None = None
    shopify_product_id: str | None = None
    sku: str | None = None


class Order(BaseModel):
    """Canonical, source-agnostic order consumed by the dashboards."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str  # Shopify order id (numeric REST id or GraphQL GID)
    order_number: str  # e.g. "1001"
    name: str | None = None  # e.g. "#1001"
    customer_name: str = "Guest"
    customer_email: str = "No email"
    customer_phone: str | None = None
    shipping_address: Address | None = None
    billing_address: Address | None = None
    status: OrderStatus = OrderStatus.pending
    financial_status: str = "pending"
    amount: float = 0.0
    currency: str = "INR"
    date: datetime | None = None
    store: str | None = None  # owning shop domain
    line_items: list[LineItem] = Field(default_factory=list)

    @field_serializer("shipping_address", "billing_address")
    def _serialize_address(self, address: Address | None) -> dict | None:
        if address is None:
            return None
        return address.model_dump(by_alias=True, exclude_none=True)

    def to_json(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class AdminOrder(Order):
    """Order as shown in the admin view, with an estimated margin."""

    margin: float = 0.0

    @computed_field(alias="storeName")
    @property
    def store_name(self) -> str | None:
        """The owning shop under the key the admin dashboard filters on."""
        return self.store
