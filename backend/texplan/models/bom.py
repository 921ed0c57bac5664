"""
Bill of Materials models

A product's BOM has two layers:
- BOMCommonEntry: materials every variant of the product consumes
- BOMVariationEntry: variant-specific materials; an entry for a material
  replaces the common entry for that material on that variant
"""
from sqlalchemy import Column, Integer, String, Numeric, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from texplan.db.base import Base


class BOMCommonEntry(Base):
    """Material consumed by every variant of a product"""
    __tablename__ = "bom_common_entries"

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    material_id = Column(Integer, ForeignKey("materials.id"), nullable=False)
    sequence = Column(Integer, nullable=True)

    unit = Column(String(20), nullable=False)  # M, KG, EA, CONE...
    quantity_per_unit = Column(Numeric(18, 4), nullable=False)  # per garment produced

    # Waste allowance in percent (5 = 5%)
    scrap_factor = Column(Numeric(5, 2), default=0, nullable=False)

    # Relationships
    product = relationship("Product", back_populates="bom_entries")
    material = relationship("Material")

    __table_args__ = (
        UniqueConstraint("product_id", "material_id", name="uq_bom_common_material"),
    )

    def __repr__(self):
        return f"<BOMCommonEntry product={self.product_id} material={self.material_id} qty={self.quantity_per_unit}>"


class BOMVariationEntry(Base):
    """Material consumption specific to one product variant"""
    __tablename__ = "bom_variation_entries"

    id = Column(Integer, primary_key=True, index=True)
    variant_id = Column(Integer, ForeignKey("product_variants.id"), nullable=False, index=True)
    material_id = Column(Integer, ForeignKey("materials.id"), nullable=False)
    sequence = Column(Integer, nullable=True)

    unit = Column(String(20), nullable=False)
    quantity_per_unit = Column(Numeric(18, 4), nullable=False)
    scrap_factor = Column(Numeric(5, 2), default=0, nullable=False)

    # Relationships
    variant = relationship("ProductVariant", back_populates="bom_variations")
    material = relationship("Material")

    __table_args__ = (
        UniqueConstraint("variant_id", "material_id", name="uq_bom_variation_material"),
    )

    def __repr__(self):
        return f"<BOMVariationEntry variant={self.variant_id} material={self.material_id} qty={self.quantity_per_unit}>"
