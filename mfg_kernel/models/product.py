"""
Product (stock item) model.

A product is identified by its SKU.  Products are never deleted; the
reference cost changes only through valuation (receipts, re-baseline) or an
explicit manual override.
"""

from decimal import Decimal

from sqlalchemy import Index, String
from sqlalchemy.orm import Mapped, mapped_column

from mfg_kernel.db.base import TrackedBase


class Product(TrackedBase):
    """Catalog entry for a stock-keeping unit."""

    __tablename__ = "products"

    __table_args__ = (
        Index("idx_product_category", "category"),
    )

    sku: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    category: Mapped[str | None] = mapped_column(String(100), nullable=True)
    unit: Mapped[str] = mapped_column(String(20), nullable=False, default="UND")
    reference_cost: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))
    min_stock: Mapped[Decimal | None] = mapped_column(nullable=True)

    def __repr__(self) -> str:
        return f"<Product {self.sku}: {self.name}>"
