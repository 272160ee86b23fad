"""SQLAlchemy tables mirroring the dashboard's Supabase schema."""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from supplier_orders.infrastructure.database import Base


class SupplierRow(Base):
    __tablename__ = "suppliers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    username: Mapped[str] = mapped_column(String(255), unique=True)
    email: Mapped[str | None] = mapped_column(String(255), unique=True, index=True)


class ConnectedStoreRow(Base):
    __tablename__ = "shopify_stores"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    shop: Mapped[str] = mapped_column(String(255), unique=True)  # e.g. "acme.myshopify.com"
    access_token: Mapped[str] = mapped_column(String(255))


class ProductMappingRow(Base):
    __tablename__ = "product_shopify_mappings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    shopify_product_id: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    supplier_id: Mapped[str] = mapped_column(String(255), index=True)
    supplier_product_id: Mapped[str | None] = mapped_column(String(255))


class SupplierOrderRow(Base):
    """A supplier's slice of one Shopify order."""

    __tablename__ = "supplier_orders"
    __table_args__ = (
        UniqueConstraint(
            "supplier_id", "shopify_order_id", name="supplier_orders_supplier_order_unique"
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    shopify_order_id: Mapped[str] = mapped_column(String(255))
    supplier_id: Mapped[str] = mapped_column(String(255), index=True)
    order_number: Mapped[str] = mapped_column(String(50))
    customer_name: Mapped[str | None] = mapped_column(String(255))
    customer_email: Mapped[str | None] = mapped_column(String(255))
    customer_phone: Mapped[str | None] = mapped_column(String(50))

    # Addresses are stored as JSON text
    shipping_address: Mapped[str | None] = mapped_column(Text)
    billing_address: Mapped[str | None] = mapped_column(Text)

    status: Mapped[str] = mapped_column(String(20), default="pending")
    financial_status: Mapped[str | None] = mapped_column(String(50))
    total_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)
    currency: Mapped[str | None] = mapped_column(String(3))
    order_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), index=True)
    store_url: Mapped[str | None] = mapped_column(String(255))

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    items: Mapped[list["SupplierOrderItemRow"]] = relationship(
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="SupplierOrderItemRow.id",
    )

    def __repr__(self) -> str:
        return f"<SupplierOrder {self.supplier_id}:{self.order_number}>"


class SupplierOrderItemRow(Base):
    __tablename__ = "supplier_order_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    supplier_order_id: Mapped[int] = mapped_column(
        ForeignKey("supplier_orders.id", ondelete="CASCADE"), index=True
    )
    shopify_line_item_id: Mapped[str | None] = mapped_column(String(255))
    shopify_product_id: Mapped[str | None] = mapped_column(String(255))
    supplier_product_id: Mapped[str | None] = mapped_column(String(255))
    product_name: Mapped[str | None] = mapped_column(String(255))
    quantity: Mapped[int] = mapped_column(Integer, default=0)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=0)
    variant_id: Mapped[str | None] = mapped_column(String(255))
    sku: Mapped[str | None] = mapped_column(String(255))

    order: Mapped[SupplierOrderRow] = relationship(back_populates="items")
