"""
Planning API Endpoints

Planning runs, purchase suggestions and their approval into purchase orders.
Domain errors (TexPlanException) are rendered by the handler in texplan.main.
"""
from fastapi import APIRouter, Depends, Query
from typing import List, Optional
from decimal import Decimal
from sqlalchemy.orm import Session

from texplan.db.session import get_db
from texplan.logging_config import get_logger
from texplan.models.mrp import PlanningRun, PurchaseSuggestion
from texplan.schemas.planning import (
    PlanningRunCreate,
    PlanningRunListResponse,
    PlanningRunResponse,
    PlanningRunResult,
    PlanningWarningResponse,
    PurchaseOrderResponse,
    RequirementResponse,
    SuggestionApproveRequest,
    SuggestionLineResponse,
    SuggestionLineUpdate,
    SuggestionRejectRequest,
    SuggestionResponse,
    SuggestionStatus,
)
from texplan.services.planning_service import PlanningService

router = APIRouter()
logger = get_logger(__name__)


def _suggestion_response(suggestion: PurchaseSuggestion) -> SuggestionResponse:
    lines = [SuggestionLineResponse.model_validate(line) for line in suggestion.lines]
    return SuggestionResponse(
        id=suggestion.id,
        run_id=suggestion.run_id,
        supplier_id=suggestion.supplier_id,
        supplier_name=suggestion.supplier.name if suggestion.supplier else None,
        status=suggestion.status,
        total_amount=sum((line.line_total for line in lines), Decimal("0")),
        purchase_order_id=suggestion.purchase_order_id,
        decided_by=suggestion.decided_by,
        decided_at=suggestion.decided_at,
        created_at=suggestion.created_at,
        lines=lines,
    )


def _warnings(run: PlanningRun) -> List[PlanningWarningResponse]:
    return [PlanningWarningResponse(**warning) for warning in (run.warnings or [])]


def _run_response(run: PlanningRun) -> PlanningRunResponse:
    summary = PlanningRunListResponse.model_validate(run)
    return PlanningRunResponse(
        **summary.model_dump(),
        as_of_date=run.as_of_date,
        order_ids=run.order_ids,
        warnings=_warnings(run),
    )


# ============================================================================
# Planning Runs
# ============================================================================

@router.post("/runs", response_model=PlanningRunResult, status_code=201)
async def execute_planning_run(
    request: PlanningRunCreate,
    db: Session = Depends(get_db),
):
    """
    Execute a planning run.

    Explodes the BOMs of every open customer order delivering in
    [start_date, end_date], nets against stock and open purchase orders and
    returns one purchase suggestion per supplier.

    A run with invalid parameters is recorded as FAILED and answered with
    400 INVALID_RUN_PARAMETERS (details.run_id names the failed run).
    """
    run = PlanningService(db).execute_run(request.start_date, request.end_date, request.operator)

    return PlanningRunResult(
        run_id=run.id,
        status=run.status,
        orders_processed=run.orders_processed,
        materials_analyzed=run.materials_analyzed,
        shortages_found=run.shortages_found,
        suggestions_created=run.suggestions_created,
        suggestions=[_suggestion_response(s) for s in run.suggestions],
        warnings=_warnings(run),
    )


@router.get("/runs", response_model=List[PlanningRunListResponse])
async def list_planning_runs(
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
):
    """Planning run history, newest first"""
    return PlanningService(db).list_runs(skip=skip, limit=limit)


@router.get("/runs/{run_id}", response_model=PlanningRunResponse)
async def get_planning_run(
    run_id: int,
    db: Session = Depends(get_db),
):
    """Run record with its included orders and warnings"""
    return _run_response(PlanningService(db).get_run(run_id))


@router.get("/runs/{run_id}/suggestions", response_model=List[SuggestionResponse])
async def get_run_suggestions(
    run_id: int,
    status: Optional[SuggestionStatus] = None,
    db: Session = Depends(get_db),
):
    """
    Purchase suggestions generated by a run

    - **status**: Filter by status (PENDING, EDITED, APPROVED, REJECTED)
    """
    suggestions = PlanningService(db).get_suggestions(run_id, status.value if status else None)
    return [_suggestion_response(s) for s in suggestions]


@router.get("/runs/{run_id}/requirements", response_model=List[RequirementResponse])
async def get_run_requirements(
    run_id: int,
    db: Session = Depends(get_db),
):
    """Gross, on-hand, incoming and net quantity per material"""
    return PlanningService(db).get_requirements(run_id)


# ============================================================================
# Suggestion workflow
# ============================================================================

@router.patch("/suggestions/{suggestion_id}/lines/{line_id}", response_model=SuggestionResponse)
async def edit_suggestion_line(
    suggestion_id: int,
    line_id: int,
    request: SuggestionLineUpdate,
    db: Session = Depends(get_db),
):
    """Override quantity and/or unit price on a pending suggestion"""
    service = PlanningService(db)
    service.edit_line(
        suggestion_id,
        line_id,
        quantity=request.quantity,
        unit_price=request.unit_price,
        edited_by=request.edited_by,
    )
    return _suggestion_response(service.get_suggestion(suggestion_id))


@router.post("/suggestions/approve", response_model=List[PurchaseOrderResponse])
async def approve_suggestions(
    request: SuggestionApproveRequest,
    db: Session = Depends(get_db),
):
    """
    Approve suggestions, creating one draft purchase order each.

    All-or-nothing: if any suggestion cannot be approved, none are.
    Re-approving returns the purchase order created the first time.
    """
    purchase_orders = PlanningService(db).approve(request.suggestion_ids, request.approved_by)
    logger.info(
        "Suggestions approved",
        extra={"suggestion_ids": request.suggestion_ids, "purchase_orders": [po.po_number for po in purchase_orders]},
    )
    return purchase_orders


@router.post("/suggestions/reject", response_model=List[SuggestionResponse])
async def reject_suggestions(
    request: SuggestionRejectRequest,
    db: Session = Depends(get_db),
):
    """Reject suggestions; they are never materialized"""
    suggestions = PlanningService(db).reject(request.suggestion_ids, request.rejected_by)
    return [_suggestion_response(s) for s in suggestions]
