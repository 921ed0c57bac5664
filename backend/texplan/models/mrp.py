"""
MRP (Material Requirements Planning) models.

- PlanningRun: Audit trail of planning runs (append-only once finished)
- PlanningRunOrder: Customer orders included in a run, in processing order
- PlanningRunRequirement: Gross/net figures per material for a run
- PurchaseSuggestion / PurchaseSuggestionLine: Supplier-scoped draft
  purchases awaiting operator approval
"""
from sqlalchemy import (
    Column, Integer, String, Numeric, DateTime, Date, Text, Boolean, ForeignKey, JSON, UniqueConstraint,
)
from sqlalchemy.orm import relationship
from datetime import datetime

from texplan.db.base import Base


RUN_STATUS_EXECUTING = "EXECUTING"
RUN_STATUS_COMPLETED = "COMPLETED"
RUN_STATUS_FAILED = "FAILED"

SUGGESTION_STATUS_PENDING = "PENDING"
SUGGESTION_STATUS_EDITED = "EDITED"
SUGGESTION_STATUS_APPROVED = "APPROVED"
SUGGESTION_STATUS_REJECTED = "REJECTED"

# Statuses from which a suggestion can still be edited, approved or rejected
OPEN_SUGGESTION_STATUSES = (SUGGESTION_STATUS_PENDING, SUGGESTION_STATUS_EDITED)


class PlanningRun(Base):
    """
    One execution of the planning engine over a date range.

    Lifecycle: EXECUTING -> COMPLETED | FAILED. Never mutated afterwards;
    re-planning the same range creates a new run.
    """
    __tablename__ = "planning_runs"

    id = Column(Integer, primary_key=True, index=True)

    # Scope
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    as_of_date = Column(Date, nullable=False)  # "today" used for lead-time risk

    # Results
    orders_processed = Column(Integer, default=0, nullable=False)
    materials_analyzed = Column(Integer, default=0, nullable=False)
    shortages_found = Column(Integer, default=0, nullable=False)
    suggestions_created = Column(Integer, default=0, nullable=False)
    warnings = Column(JSON, default=list, nullable=False)

    # Status
    status = Column(String(20), default=RUN_STATUS_EXECUTING, nullable=False, index=True)
    error_message = Column(Text, nullable=True)

    # Audit
    created_by = Column(String(100), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    completed_at = Column(DateTime, nullable=True)

    # Relationships
    orders = relationship(
        "PlanningRunOrder",
        back_populates="run",
        cascade="all, delete-orphan",
        order_by="PlanningRunOrder.position",
    )
    requirements = relationship(
        "PlanningRunRequirement",
        back_populates="run",
        cascade="all, delete-orphan",
        order_by="PlanningRunRequirement.material_id",
    )
    suggestions = relationship(
        "PurchaseSuggestion",
        back_populates="run",
        cascade="all, delete-orphan",
        order_by="PurchaseSuggestion.id",
    )

    @property
    def order_ids(self):
        return [link.order_id for link in self.orders]

    def __repr__(self):
        return f"<PlanningRun {self.id}: {self.status} ({self.suggestions_created} suggestions)>"


class PlanningRunOrder(Base):
    """Customer order included in a planning run"""
    __tablename__ = "planning_run_orders"

    id = Column(Integer, primary_key=True, index=True)
    run_id = Column(Integer, ForeignKey("planning_runs.id"), nullable=False, index=True)
    order_id = Column(Integer, ForeignKey("customer_orders.id"), nullable=False)
    position = Column(Integer, nullable=False)

    run = relationship("PlanningRun", back_populates="orders")

    __table_args__ = (
        UniqueConstraint("run_id", "order_id", name="uq_planning_run_order"),
    )


class PlanningRunRequirement(Base):
    """Per-material netting figures recorded for a run"""
    __tablename__ = "planning_run_requirements"

    id = Column(Integer, primary_key=True, index=True)
    run_id = Column(Integer, ForeignKey("planning_runs.id"), nullable=False, index=True)
    material_id = Column(Integer, ForeignKey("materials.id"), nullable=False)

    gross_quantity = Column(Numeric(18, 4), nullable=False)
    on_hand_quantity = Column(Numeric(18, 4), nullable=False)
    incoming_quantity = Column(Numeric(18, 4), nullable=False)
    net_quantity = Column(Numeric(18, 4), nullable=False)

    run = relationship("PlanningRun", back_populates="requirements")
    material = relationship("Material")


class PurchaseSuggestion(Base):
    """
    Draft purchase for one supplier generated by a planning run.

    Lifecycle:
    - PENDING: as generated
    - EDITED: an operator overrode a line's quantity or price
    - APPROVED: materialized into exactly one purchase order (terminal)
    - REJECTED: excluded from materialization (terminal)
    """
    __tablename__ = "purchase_suggestions"

    id = Column(Integer, primary_key=True, index=True)
    run_id = Column(Integer, ForeignKey("planning_runs.id"), nullable=False, index=True)
    supplier_id = Column(Integer, ForeignKey("suppliers.id"), nullable=False)

    status = Column(String(20), default=SUGGESTION_STATUS_PENDING, nullable=False, index=True)

    # Set by approval in the same transaction as the status change
    purchase_order_id = Column(
        Integer,
        ForeignKey("purchase_orders.id", use_alter=True, name="fk_suggestion_purchase_order"),
        nullable=True,
    )

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, nullable=True, onupdate=datetime.utcnow)
    decided_by = Column(String(100), nullable=True)
    decided_at = Column(DateTime, nullable=True)

    # Relationships
    run = relationship("PlanningRun", back_populates="suggestions")
    supplier = relationship("Supplier")
    purchase_order = relationship("PurchaseOrder", foreign_keys=[purchase_order_id])
    lines = relationship(
        "PurchaseSuggestionLine",
        back_populates="suggestion",
        cascade="all, delete-orphan",
        order_by="PurchaseSuggestionLine.material_id",
    )

    @property
    def is_open(self) -> bool:
        return self.status in OPEN_SUGGESTION_STATUSES

    def __repr__(self):
        return f"<PurchaseSuggestion {self.id}: supplier {self.supplier_id} {self.status}>"


class PurchaseSuggestionLine(Base):
    """One material on a purchase suggestion"""
    __tablename__ = "purchase_suggestion_lines"

    id = Column(Integer, primary_key=True, index=True)
    suggestion_id = Column(Integer, ForeignKey("purchase_suggestions.id"), nullable=False, index=True)
    material_id = Column(Integer, ForeignKey("materials.id"), nullable=False)

    net_quantity = Column(Numeric(18, 4), nullable=False)  # before lot sizing
    quantity = Column(Numeric(18, 4), nullable=False)  # lot-sized, or operator override
    unit_price = Column(Numeric(18, 4), nullable=False)

    # Timing
    need_by_date = Column(Date, nullable=False)
    order_by_date = Column(Date, nullable=False)  # need_by_date - supplier lead time
    lead_time_risk = Column(Boolean, default=False, nullable=False)

    # Operator overrides (original values kept for audit)
    original_quantity = Column(Numeric(18, 4), nullable=True)
    original_unit_price = Column(Numeric(18, 4), nullable=True)
    edited_by = Column(String(100), nullable=True)
    edited_at = Column(DateTime, nullable=True)

    # Relationships
    suggestion = relationship("PurchaseSuggestion", back_populates="lines")
    material = relationship("Material")

    @property
    def is_edited(self) -> bool:
        return self.edited_at is not None

    @property
    def line_total(self):
        return self.quantity * self.unit_price

    def __repr__(self):
        return f"<PurchaseSuggestionLine {self.id}: material {self.material_id} x {self.quantity}>"
