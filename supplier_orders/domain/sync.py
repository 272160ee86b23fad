from pydantic import BaseModel, Field


class SyncResult(BaseModel):
    """Outcome of asking the sync endpoint to pull orders from Shopify."""

    success: bool
    payload: dict = Field(default_factory=dict)


class SyncSummary(BaseModel):
    stores: int = 0  # stores fetched successfully
    orders_fetched: int = 0
    supplier_orders: int = 0  # supplier order rows written
    errors: list[str] = Field(default_factory=list)

    def to_json(self) -> dict:
        return {
            "stores": self.stores,
            "ordersFetched": self.orders_fetched,
            "supplierOrders": self.supplier_orders,
            "errors": self.errors,
        }
