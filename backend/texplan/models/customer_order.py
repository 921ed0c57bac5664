"""
Customer order models (read-only for planning)

Order entry is owned by the sales module. Planning reads orders whose
delivery date falls in the run's horizon and whose status is not terminal.
"""
from sqlalchemy import Column, Integer, String, Numeric, DateTime, Date, ForeignKey
from sqlalchemy.orm import relationship
from datetime import datetime

from texplan.db.base import Base


ORDER_STATUS_PENDING = "PENDING"
ORDER_STATUS_IN_PRODUCTION = "IN_PRODUCTION"
ORDER_STATUS_COMPLETED = "COMPLETED"
ORDER_STATUS_CANCELLED = "CANCELLED"

TERMINAL_ORDER_STATUSES = (ORDER_STATUS_COMPLETED, ORDER_STATUS_CANCELLED)


class CustomerOrder(Base):
    """Customer order header"""
    __tablename__ = "customer_orders"

    id = Column(Integer, primary_key=True, index=True)
    order_number = Column(String(50), unique=True, nullable=False, index=True)
    client_name = Column(String(200), nullable=True)

    delivery_date = Column(Date, nullable=False, index=True)

    # Status: PENDING, IN_PRODUCTION, COMPLETED, CANCELLED
    status = Column(String(20), default=ORDER_STATUS_PENDING, nullable=False, index=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    lines = relationship("CustomerOrderLine", back_populates="order", cascade="all, delete-orphan")

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_ORDER_STATUSES

    def __repr__(self):
        return f"<CustomerOrder {self.order_number}: {self.status}>"


class CustomerOrderLine(Base):
    """Quantity of one product variant on a customer order"""
    __tablename__ = "customer_order_lines"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("customer_orders.id"), nullable=False, index=True)
    variant_id = Column(Integer, ForeignKey("product_variants.id"), nullable=False)
    quantity = Column(Numeric(18, 4), nullable=False)

    # Relationships
    order = relationship("CustomerOrder", back_populates="lines")
    variant = relationship("ProductVariant")

    def __repr__(self):
        return f"<CustomerOrderLine order={self.order_id} variant={self.variant_id} qty={self.quantity}>"
