"""
Supplier models for the purchasing module
"""
from sqlalchemy import Column, Integer, String, DateTime, Text, Boolean, Numeric, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime

from texplan.db.base import Base


class Supplier(Base):
    """Supplier of raw materials"""
    __tablename__ = "suppliers"

    id = Column(Integer, primary_key=True, index=True)

    # Basic info
    code = Column(String(50), unique=True, nullable=False, index=True)  # SUP-001
    name = Column(String(200), nullable=False)
    tax_id = Column(String(50), nullable=True)

    # Contact info
    contact_name = Column(String(100), nullable=True)
    email = Column(String(200), nullable=True)
    phone = Column(String(50), nullable=True)

    # Business terms
    payment_terms = Column(String(100), nullable=True)  # Net 30, COD, etc.

    notes = Column(Text, nullable=True)

    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    material_links = relationship("SupplierMaterial", back_populates="supplier", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Supplier {self.code}: {self.name}>"


class SupplierMaterial(Base):
    """
    Supplier relationship for one material: price, MOQ and lead time.

    At most one relationship per material should be flagged preferred;
    planning reports a warning when that does not hold.
    """
    __tablename__ = "supplier_materials"

    id = Column(Integer, primary_key=True, index=True)
    material_id = Column(Integer, ForeignKey("materials.id"), nullable=False, index=True)
    supplier_id = Column(Integer, ForeignKey("suppliers.id"), nullable=False, index=True)

    unit_price = Column(Numeric(18, 4), nullable=False)
    min_order_qty = Column(Numeric(18, 4), default=0, nullable=False)  # 0 = no MOQ
    lead_time_days = Column(Integer, default=0, nullable=False)
    is_preferred = Column(Boolean, default=False, nullable=False)

    # Relationships
    material = relationship("Material", back_populates="supplier_links")
    supplier = relationship("Supplier", back_populates="material_links")

    __table_args__ = (
        UniqueConstraint("material_id", "supplier_id", name="uq_supplier_material"),
    )

    def __repr__(self):
        flag = " preferred" if self.is_preferred else ""
        return f"<SupplierMaterial material={self.material_id} supplier={self.supplier_id}{flag}>"
