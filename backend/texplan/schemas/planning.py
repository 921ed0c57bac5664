"""
Planning Pydantic Schemas

Planning runs, purchase suggestions and the purchase orders created from them.
"""
from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional
from datetime import datetime, date
from decimal import Decimal
from enum import Enum


# ============================================================================
# Enums
# ============================================================================

class RunStatus(str, Enum):
    EXECUTING = "EXECUTING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class SuggestionStatus(str, Enum):
    PENDING = "PENDING"
    EDITED = "EDITED"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


# ============================================================================
# Requests
# ============================================================================

class PlanningRunCreate(BaseModel):
    """Start a planning run over a delivery-date range (inclusive)"""
    start_date: date
    end_date: date
    operator: Optional[str] = Field(None, max_length=100)


class SuggestionLineUpdate(BaseModel):
    """Operator override of a suggestion line"""
    quantity: Optional[Decimal] = None
    unit_price: Optional[Decimal] = None
    edited_by: Optional[str] = Field(None, max_length=100)


class SuggestionApproveRequest(BaseModel):
    suggestion_ids: List[int] = Field(..., min_length=1)
    approved_by: Optional[str] = Field(None, max_length=100)


class SuggestionRejectRequest(BaseModel):
    suggestion_ids: List[int] = Field(..., min_length=1)
    rejected_by: Optional[str] = Field(None, max_length=100)


# ============================================================================
# Responses
# ============================================================================

class PlanningWarningResponse(BaseModel):
    code: str
    message: str
    details: Dict[str, Any] = {}


class SuggestionLineResponse(BaseModel):
    id: int
    material_id: int
    net_quantity: Decimal
    quantity: Decimal
    unit_price: Decimal
    line_total: Decimal
    need_by_date: date
    order_by_date: date
    lead_time_risk: bool

    # Present once an operator edited the line
    original_quantity: Optional[Decimal] = None
    original_unit_price: Optional[Decimal] = None
    edited_by: Optional[str] = None
    edited_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class SuggestionResponse(BaseModel):
    id: int
    run_id: int
    supplier_id: int
    supplier_name: Optional[str] = None
    status: SuggestionStatus
    total_amount: Decimal
    purchase_order_id: Optional[int] = None
    decided_by: Optional[str] = None
    decided_at: Optional[datetime] = None
    created_at: datetime
    lines: List[SuggestionLineResponse] = []


class RequirementResponse(BaseModel):
    """Per-material netting figures of a run"""
    material_id: int
    gross_quantity: Decimal
    on_hand_quantity: Decimal
    incoming_quantity: Decimal
    net_quantity: Decimal

    class Config:
        from_attributes = True


class PlanningRunListResponse(BaseModel):
    """Run history row"""
    id: int
    start_date: date
    end_date: date
    status: RunStatus
    orders_processed: int
    materials_analyzed: int
    shortages_found: int
    suggestions_created: int
    error_message: Optional[str] = None
    created_by: str
    created_at: datetime
    completed_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PlanningRunResponse(PlanningRunListResponse):
    """Full run record"""
    as_of_date: date
    order_ids: List[int] = []
    warnings: List[PlanningWarningResponse] = []


class PlanningRunResult(BaseModel):
    """Outcome of POST /runs"""
    run_id: int
    status: RunStatus
    orders_processed: int
    materials_analyzed: int
    shortages_found: int
    suggestions_created: int
    suggestions: List[SuggestionResponse] = []
    warnings: List[PlanningWarningResponse] = []


class PurchaseOrderLineResponse(BaseModel):
    id: int
    line_number: int
    material_id: int
    quantity_ordered: Decimal
    quantity_received: Decimal
    unit_cost: Decimal
    line_total: Decimal
    suggestion_line_id: Optional[int] = None

    class Config:
        from_attributes = True


class PurchaseOrderResponse(BaseModel):
    """Purchase order created by approving a suggestion"""
    id: int
    po_number: str
    supplier_id: int
    status: str
    order_date: Optional[date] = None
    expected_date: Optional[date] = None
    subtotal: Decimal
    total_amount: Decimal
    planning_run_id: Optional[int] = None
    suggestion_id: Optional[int] = None
    created_by: Optional[str] = None
    created_at: datetime
    lines: List[PurchaseOrderLineResponse] = []

    class Config:
        from_attributes = True
