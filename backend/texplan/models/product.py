"""
Product catalog models (read-only for planning)

Products are garment styles; variants are the size x color combinations
that customers actually order. Catalog CRUD is owned by the catalog service.
"""
from sqlalchemy import Column, Integer, String, DateTime, Boolean, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime

from texplan.db.base import Base


class Product(Base):
    """Garment style (e.g. 'Polo Pique')"""
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(50), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    variants = relationship("ProductVariant", back_populates="product", cascade="all, delete-orphan")
    bom_entries = relationship("BOMCommonEntry", back_populates="product", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Product {self.code}: {self.name}>"


class ProductVariant(Base):
    """Size x color combination of a product - the unit customers order"""
    __tablename__ = "product_variants"

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    sku = Column(String(80), unique=True, nullable=True)
    size = Column(String(20), nullable=False)  # S, M, L, XL, 12, 14...
    color = Column(String(50), nullable=False)

    # Relationships
    product = relationship("Product", back_populates="variants")
    bom_variations = relationship("BOMVariationEntry", back_populates="variant", cascade="all, delete-orphan")

    __table_args__ = (
        UniqueConstraint("product_id", "size", "color", name="uq_product_variant"),
    )

    def __repr__(self):
        return f"<ProductVariant {self.sku or self.id}: {self.size}/{self.color}>"
