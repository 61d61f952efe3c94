"""
Catalog models: products and their purchasable variants.

A product carries the supplier attribution used on order line items. Each
variant holds its own integer stock count, which only the order placement
transaction writes (always as a decrement).
"""

from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Float, ForeignKey, TIMESTAMP
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from gebeya.database import Base, JSONType


def _utcnow():
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Product(Base):
    __tablename__ = "products"

    id = Column(String, primary_key=True)

    created_at = Column(TIMESTAMP(timezone=False), default=_utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(
        TIMESTAMP(timezone=False),
        default=_utcnow,
        onupdate=_utcnow,
        server_default=func.now(),
        nullable=False,
    )

    name = Column(String, nullable=False)
    category = Column(String, index=True)
    description = Column(String)
    price = Column(Float, nullable=True)
    images = Column(JSONType, nullable=True, default=list)

    # Nullable on purpose: legacy catalog rows were created before supplier onboarding
    supplier_id = Column(String, nullable=True, index=True)

    variants = relationship(
        "ProductVariant",
        back_populates="product",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} supplier={self.supplier_id}>"


class ProductVariant(Base):
    __tablename__ = "product_variants"

    product_id = Column(String, ForeignKey("products.id", ondelete="CASCADE"), primary_key=True)
    id = Column(String, primary_key=True)

    # e.g. {"size": "M", "color": "Red"}
    attributes = Column(JSONType, nullable=True, default=dict)
    price = Column(Float, nullable=True)
    stock = Column(Integer, nullable=True, default=0)

    product = relationship("Product", back_populates="variants")

    def __repr__(self) -> str:
        return f"<ProductVariant {self.product_id}/{self.id} stock={self.stock}>"
