from pydantic import BaseModel, Field


class Identity(BaseModel):
    """An authenticated dashboard user, as carried by a verified access token."""

    email: str


class Supplier(BaseModel):
    id: str
    username: str  # the owner key supplier orders are stored under
    email: str | None = None


class ConnectedStore(BaseModel):
    """A Shopify shop the service holds an Admin API token for."""

    shop: str  # e.g. "acme.myshopify.com"
    access_token: str = Field(repr=False)


class ProductMapping(BaseModel):
    """Links a Shopify product to the supplier that fulfils it."""

    shopify_product_id: str
    supplier_id: str
    supplier_product_id: str | None = None
