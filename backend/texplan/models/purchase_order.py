"""
Purchase order models

Purchase orders created by suggestion approval start in 'draft' and are then
owned by the procurement/receiving subsystem. Outstanding quantities on
open purchase orders are the scheduled receipts planning nets against.
"""
from sqlalchemy import Column, Integer, String, Numeric, DateTime, Date, ForeignKey, Text
from sqlalchemy.orm import relationship
from datetime import datetime
from decimal import Decimal

from texplan.db.base import Base


# Statuses whose outstanding quantity is still expected to arrive
OPEN_PO_STATUSES = ("draft", "ordered", "shipped")


class PurchaseOrder(Base):
    """Purchase order header"""
    __tablename__ = "purchase_orders"

    id = Column(Integer, primary_key=True, index=True)
    # PO-2025-001; planning-generated numbers are assigned from id right after insert
    po_number = Column(String(50), unique=True, nullable=True, index=True)
    supplier_id = Column(Integer, ForeignKey("suppliers.id"), nullable=False, index=True)

    # Status: draft, ordered, shipped, received, closed, cancelled
    status = Column(String(20), default="draft", nullable=False, index=True)

    order_date = Column(Date, nullable=True)
    expected_date = Column(Date, nullable=True)
    received_date = Column(Date, nullable=True)

    # Totals
    subtotal = Column(Numeric(18, 4), default=0, nullable=False)
    tax_amount = Column(Numeric(18, 4), default=0, nullable=False)
    shipping_cost = Column(Numeric(18, 4), default=0, nullable=False)
    total_amount = Column(Numeric(18, 4), default=0, nullable=False)

    # Provenance when generated from planning
    planning_run_id = Column(Integer, ForeignKey("planning_runs.id"), nullable=True, index=True)
    suggestion_id = Column(Integer, ForeignKey("purchase_suggestions.id"), nullable=True, unique=True)

    notes = Column(Text, nullable=True)
    created_by = Column(String(100), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    supplier = relationship("Supplier")
    lines = relationship(
        "PurchaseOrderLine",
        back_populates="purchase_order",
        cascade="all, delete-orphan",
        order_by="PurchaseOrderLine.line_number",
    )

    def recalculate_totals(self) -> None:
        """Recalculate totals from lines"""
        self.subtotal = sum((line.line_total for line in self.lines), Decimal("0"))
        self.total_amount = self.subtotal + (self.tax_amount or Decimal("0")) + (self.shipping_cost or Decimal("0"))

    def __repr__(self):
        return f"<PurchaseOrder {self.po_number}: {self.status}>"


class PurchaseOrderLine(Base):
    """Purchase order line"""
    __tablename__ = "purchase_order_lines"

    id = Column(Integer, primary_key=True, index=True)
    purchase_order_id = Column(Integer, ForeignKey("purchase_orders.id"), nullable=False, index=True)
    line_number = Column(Integer, nullable=False)
    material_id = Column(Integer, ForeignKey("materials.id"), nullable=False, index=True)

    quantity_ordered = Column(Numeric(18, 4), nullable=False)
    quantity_received = Column(Numeric(18, 4), default=0, nullable=False)
    unit_cost = Column(Numeric(18, 4), nullable=False)
    line_total = Column(Numeric(18, 4), nullable=False)

    suggestion_line_id = Column(Integer, ForeignKey("purchase_suggestion_lines.id"), nullable=True, unique=True)

    notes = Column(Text, nullable=True)

    # Relationships
    purchase_order = relationship("PurchaseOrder", back_populates="lines")
    material = relationship("Material")

    @property
    def quantity_outstanding(self):
        return max(self.quantity_ordered - (self.quantity_received or 0), 0)

    def __repr__(self):
        return f"<PurchaseOrderLine {self.purchase_order_id}-{self.line_number}>"
