"""
Raw material model

stock_on_hand is maintained by the inventory movement ledger. The planning
engine reads it once per run and never writes it.
"""
from datetime import datetime
from sqlalchemy import Column, Integer, String, Numeric, Boolean, DateTime
from sqlalchemy.orm import relationship

from texplan.db.base import Base


class Material(Base):
    """Fabric, thread, trims, labels, packaging..."""
    __tablename__ = "materials"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(50), unique=True, nullable=False, index=True)  # TEL-JER-NEG
    name = Column(String(200), nullable=False)
    category = Column(String(50), nullable=True)  # fabric, thread, label, trim
    unit = Column(String(20), nullable=False)  # unit of measure for stock and purchasing

    stock_on_hand = Column(Numeric(18, 4), default=0, nullable=False)
    # BOM consumption units per stock unit (e.g. meters of jersey per kg); 1 when they match
    yield_factor = Column(Numeric(10, 4), default=1, nullable=False)

    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    supplier_links = relationship("SupplierMaterial", back_populates="material", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Material {self.code}: {self.stock_on_hand}{self.unit}>"
