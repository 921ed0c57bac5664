"""
Planning Service

Persistence side of planning: runs the engine over a database snapshot,
stores the run record, and drives the suggestion workflow
(edit -> approve | reject) including purchase order materialization.

Status changes on a suggestion go through a single compare-and-set UPDATE
(WHERE status IN ('PENDING', 'EDITED')), so two operators approving the same
suggestion can never create two purchase orders.
"""
from datetime import date, datetime
from decimal import Decimal
from typing import Iterable, List, Optional

from sqlalchemy import desc
from sqlalchemy.orm import Session

from texplan.core.settings import settings
from texplan.exceptions import (
    ApprovalConflictError,
    InvalidRunParameters,
    InvalidSuggestionEdit,
    InvalidSuggestionTransition,
    RunNotFoundError,
    SuggestionLineNotFoundError,
    SuggestionNotFoundError,
)
from texplan.logging_config import audit_log, get_logger
from texplan.models.mrp import (
    OPEN_SUGGESTION_STATUSES,
    RUN_STATUS_COMPLETED,
    RUN_STATUS_EXECUTING,
    RUN_STATUS_FAILED,
    SUGGESTION_STATUS_APPROVED,
    SUGGESTION_STATUS_EDITED,
    SUGGESTION_STATUS_PENDING,
    SUGGESTION_STATUS_REJECTED,
    PlanningRun,
    PlanningRunOrder,
    PlanningRunRequirement,
    PurchaseSuggestion,
    PurchaseSuggestionLine,
)
from texplan.models.purchase_order import PurchaseOrder, PurchaseOrderLine
from texplan.services.planning_engine import RunParameters, run_plan
from texplan.services.planning_snapshot import load_snapshot
from texplan.services.planning_types import PlanResult

logger = get_logger(__name__)


def format_po_number(year: int, po_id: int) -> str:
    """
    PO-2026-001 style number derived from the purchase order's primary key.

    The id comes from the database, so batches approving in parallel never
    compete for a number.
    """
    return f"{settings.PO_NUMBER_PREFIX}-{year}-{po_id:03d}"


class PlanningService:
    """Planning runs and the purchase suggestion workflow"""

    def __init__(self, db: Session):
        self.db = db

    # ========================================================================
    # Runs
    # ========================================================================

    def execute_run(
        self,
        start_date: date,
        end_date: date,
        operator: Optional[str] = None,
        as_of: Optional[date] = None,
    ) -> PlanningRun:
        """
        Execute a planning run over [start_date, end_date].

        The run row is committed as EXECUTING first so a failure can be
        recorded against it. Invalid parameters and unexpected errors leave
        the run FAILED with its error message and nothing else persisted.

        Raises:
            InvalidRunParameters: with details["run_id"] set once the run exists
        """
        operator = operator or settings.DEFAULT_OPERATOR
        as_of = as_of or date.today()

        if start_date is None or end_date is None:
            raise InvalidRunParameters(
                "start_date and end_date are required",
                parameter="start_date" if start_date is None else "end_date",
            )

        run = PlanningRun(
            start_date=start_date,
            end_date=end_date,
            as_of_date=as_of,
            status=RUN_STATUS_EXECUTING,
            created_by=operator,
            warnings=[],
        )
        self.db.add(run)
        self.db.flush()
        run_id = run.id
        # No reads between this commit and load_snapshot, so the snapshot
        # opens the next transaction at its own isolation level
        self.db.commit()

        logger.info(
            "Planning run started",
            extra={"run_id": run_id, "start_date": str(start_date), "end_date": str(end_date), "operator": operator},
        )

        try:
            params = RunParameters.build(start_date, end_date, operator, settings.PLANNING_MAX_HORIZON_DAYS)
            snapshot = load_snapshot(self.db, params.start_date, params.end_date, as_of)
            result = run_plan(snapshot)
            self._store_result(run, result)
            self.db.commit()
        except InvalidRunParameters as e:
            self.db.rollback()
            self._mark_failed(run_id, e.message, operator)
            raise e.attach_run(run_id)
        except Exception as e:
            self.db.rollback()
            logger.exception("Planning run crashed", extra={"run_id": run_id})
            self._mark_failed(run_id, f"Unexpected error: {e}", operator)
            raise

        audit_log(
            "PLANNING_RUN_COMPLETED",
            operator=operator,
            resource_type="planning_run",
            resource_id=run_id,
            details={
                "orders_processed": run.orders_processed,
                "materials_analyzed": run.materials_analyzed,
                "shortages_found": run.shortages_found,
                "suggestions_created": run.suggestions_created,
                "warnings": len(run.warnings or []),
            },
        )
        return run

    def _store_result(self, run: PlanningRun, result: PlanResult) -> None:
        for position, order_id in enumerate(result.order_ids, start=1):
            run.orders.append(PlanningRunOrder(order_id=order_id, position=position))

        for summary in result.requirement_summaries:
            run.requirements.append(PlanningRunRequirement(
                material_id=summary.material_id,
                gross_quantity=summary.gross_quantity,
                on_hand_quantity=summary.on_hand_quantity,
                incoming_quantity=summary.incoming_quantity,
                net_quantity=summary.net_quantity,
            ))

        for draft in result.suggestions:
            suggestion = PurchaseSuggestion(supplier_id=draft.supplier_id, status=SUGGESTION_STATUS_PENDING)
            for line in draft.lines:
                suggestion.lines.append(PurchaseSuggestionLine(
                    material_id=line.material_id,
                    net_quantity=line.net_quantity,
                    quantity=line.quantity,
                    unit_price=line.unit_price,
                    need_by_date=line.need_by_date,
                    order_by_date=line.order_by_date,
                    lead_time_risk=line.lead_time_risk,
                ))
            run.suggestions.append(suggestion)

        run.orders_processed = len(result.order_ids)
        run.materials_analyzed = result.materials_analyzed
        run.shortages_found = result.shortages_found
        run.suggestions_created = len(result.suggestions)
        run.warnings = [warning.to_dict() for warning in result.warnings]
        run.status = RUN_STATUS_COMPLETED
        run.completed_at = datetime.utcnow()

    def _mark_failed(self, run_id: int, message: str, operator: str) -> None:
        run = self.db.query(PlanningRun).filter(PlanningRun.id == run_id).first()
        run.status = RUN_STATUS_FAILED
        run.error_message = message
        run.completed_at = datetime.utcnow()
        self.db.commit()

        logger.warning("Planning run failed", extra={"run_id": run_id, "error": message})
        audit_log(
            "PLANNING_RUN_FAILED",
            operator=operator,
            resource_type="planning_run",
            resource_id=run_id,
            details={"error": message},
        )

    def list_runs(self, skip: int = 0, limit: int = 50) -> List[PlanningRun]:
        """Run history, newest first"""
        return (
            self.db.query(PlanningRun)
            .order_by(desc(PlanningRun.created_at), desc(PlanningRun.id))
            .offset(skip)
            .limit(limit)
            .all()
        )

    def get_run(self, run_id: int) -> PlanningRun:
        run = self.db.query(PlanningRun).filter(PlanningRun.id == run_id).first()
        if not run:
            raise RunNotFoundError(run_id)
        return run

    def get_suggestions(self, run_id: int, status: Optional[str] = None) -> List[PurchaseSuggestion]:
        self.get_run(run_id)
        query = self.db.query(PurchaseSuggestion).filter(PurchaseSuggestion.run_id == run_id)
        if status:
            query = query.filter(PurchaseSuggestion.status == status.upper())
        return query.order_by(PurchaseSuggestion.supplier_id, PurchaseSuggestion.id).all()

    def get_requirements(self, run_id: int) -> List[PlanningRunRequirement]:
        return self.get_run(run_id).requirements

    # ========================================================================
    # Suggestion workflow
    # ========================================================================

    def get_suggestion(self, suggestion_id: int) -> PurchaseSuggestion:
        suggestion = self.db.query(PurchaseSuggestion).filter(PurchaseSuggestion.id == suggestion_id).first()
        if not suggestion:
            raise SuggestionNotFoundError(suggestion_id)
        return suggestion

    def _compare_and_set(self, suggestion_id: int, target_status: str, operator: str, now: datetime) -> None:
        """
        Move an open suggestion to target_status in one UPDATE.

        Raises:
            ApprovalConflictError: the suggestion was no longer PENDING/EDITED
        """
        values = {
            PurchaseSuggestion.status: target_status,
            PurchaseSuggestion.updated_at: now,
        }
        if target_status in (SUGGESTION_STATUS_APPROVED, SUGGESTION_STATUS_REJECTED):
            values[PurchaseSuggestion.decided_by] = operator
            values[PurchaseSuggestion.decided_at] = now

        updated = (
            self.db.query(PurchaseSuggestion)
            .filter(
                PurchaseSuggestion.id == suggestion_id,
                PurchaseSuggestion.status.in_(OPEN_SUGGESTION_STATUSES),
            )
            .update(values, synchronize_session=False)
        )
        if updated != 1:
            current_status = (
                self.db.query(PurchaseSuggestion.status)
                .filter(PurchaseSuggestion.id == suggestion_id)
                .scalar()
            )
            raise ApprovalConflictError(suggestion_id, current_status)

    def edit_line(
        self,
        suggestion_id: int,
        line_id: int,
        quantity: Optional[Decimal] = None,
        unit_price: Optional[Decimal] = None,
        edited_by: Optional[str] = None,
    ) -> PurchaseSuggestionLine:
        """
        Override a line's quantity and/or unit price before approval.

        The first edit keeps the generated values in original_quantity /
        original_unit_price.
        """
        operator = edited_by or settings.DEFAULT_OPERATOR
        suggestion = self.get_suggestion(suggestion_id)
        line = next((item for item in suggestion.lines if item.id == line_id), None)
        if line is None:
            raise SuggestionLineNotFoundError(suggestion_id, line_id)

        if quantity is None and unit_price is None:
            raise InvalidSuggestionEdit("Provide a quantity and/or a unit_price", {"line_id": line_id})
        if quantity is not None and quantity <= 0:
            raise InvalidSuggestionEdit("quantity must be greater than zero", {"quantity": str(quantity)})
        if unit_price is not None and unit_price < 0:
            raise InvalidSuggestionEdit("unit_price cannot be negative", {"unit_price": str(unit_price)})

        now = datetime.utcnow()
        try:
            self._compare_and_set(suggestion_id, SUGGESTION_STATUS_EDITED, operator, now)
        except ApprovalConflictError as conflict:
            self.db.rollback()
            raise InvalidSuggestionTransition(suggestion_id, conflict.current_status, SUGGESTION_STATUS_EDITED)

        if not line.is_edited:
            line.original_quantity = line.quantity
            line.original_unit_price = line.unit_price
        changes = {}
        if quantity is not None:
            changes["quantity"] = {"from": str(line.quantity), "to": str(quantity)}
            line.quantity = quantity
        if unit_price is not None:
            changes["unit_price"] = {"from": str(line.unit_price), "to": str(unit_price)}
            line.unit_price = unit_price
        line.edited_by = operator
        line.edited_at = now

        self.db.commit()
        self.db.refresh(line)

        audit_log(
            "SUGGESTION_LINE_EDITED",
            operator=operator,
            resource_type="purchase_suggestion",
            resource_id=suggestion_id,
            details={"line_id": line_id, "material_id": line.material_id, "changes": changes},
        )
        return line

    def approve(self, suggestion_ids: Iterable[int], approved_by: Optional[str] = None) -> List[PurchaseOrder]:
        """
        Approve suggestions and create one purchase order per suggestion.

        The whole batch is one transaction. Approving an already approved
        suggestion returns its existing purchase order.

        Raises:
            SuggestionNotFoundError: unknown id (batch rolled back)
            InvalidSuggestionTransition: a suggestion is REJECTED (batch rolled back)
        """
        operator = approved_by or settings.DEFAULT_OPERATOR
        ids = list(dict.fromkeys(suggestion_ids))
        now = datetime.utcnow()

        created: List[int] = []
        try:
            purchase_orders = []
            for suggestion_id in ids:
                po, is_new = self._approve_one(suggestion_id, operator, now)
                purchase_orders.append(po)
                if is_new:
                    created.append(suggestion_id)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        if created:
            audit_log(
                "SUGGESTIONS_APPROVED",
                operator=operator,
                resource_type="purchase_suggestion",
                resource_id=created,
                details={"purchase_orders": [po.po_number for po in purchase_orders if po.suggestion_id in created]},
            )
        return purchase_orders

    def _approve_one(self, suggestion_id: int, operator: str, now: datetime):
        suggestion = self.get_suggestion(suggestion_id)
        try:
            self._compare_and_set(suggestion_id, SUGGESTION_STATUS_APPROVED, operator, now)
        except ApprovalConflictError as conflict:
            if conflict.current_status != SUGGESTION_STATUS_APPROVED:
                raise InvalidSuggestionTransition(suggestion_id, conflict.current_status, SUGGESTION_STATUS_APPROVED)
            existing = (
                self.db.query(PurchaseOrder)
                .filter(PurchaseOrder.suggestion_id == suggestion_id)
                .first()
            )
            if existing is None:
                raise
            logger.info(
                "Suggestion already approved; returning existing purchase order",
                extra={"suggestion_id": suggestion_id, "po_number": existing.po_number},
            )
            return existing, False

        # The UPDATE bypassed the identity map
        self.db.expire(suggestion)

        po = self._materialize(suggestion, operator, now)
        self.db.add(po)
        self.db.flush()
        po.po_number = format_po_number(now.year, po.id)
        suggestion.purchase_order_id = po.id
        self.db.flush()

        logger.info(
            "Purchase order created from suggestion",
            extra={"suggestion_id": suggestion_id, "po_number": po.po_number, "total": str(po.total_amount)},
        )
        return po, True

    def _materialize(self, suggestion: PurchaseSuggestion, operator: str, now: datetime) -> PurchaseOrder:
        lines = suggestion.lines
        po = PurchaseOrder(
            supplier_id=suggestion.supplier_id,
            status="draft",
            order_date=now.date(),
            expected_date=min((line.need_by_date for line in lines), default=None),
            tax_amount=Decimal("0"),
            shipping_cost=Decimal("0"),
            planning_run_id=suggestion.run_id,
            suggestion_id=suggestion.id,
            notes=f"Generated from planning run {suggestion.run_id}",
            created_by=operator,
        )
        for line_number, line in enumerate(lines, start=1):
            po.lines.append(PurchaseOrderLine(
                line_number=line_number,
                material_id=line.material_id,
                quantity_ordered=line.quantity,
                quantity_received=Decimal("0"),
                unit_cost=line.unit_price,
                line_total=line.quantity * line.unit_price,
                suggestion_line_id=line.id,
            ))
        po.recalculate_totals()
        return po

    def reject(self, suggestion_ids: Iterable[int], rejected_by: Optional[str] = None) -> List[PurchaseSuggestion]:
        """
        Reject suggestions. Rejecting a rejected suggestion is a no-op.

        Raises:
            SuggestionNotFoundError: unknown id (batch rolled back)
            InvalidSuggestionTransition: a suggestion is APPROVED (batch rolled back)
        """
        operator = rejected_by or settings.DEFAULT_OPERATOR
        ids = list(dict.fromkeys(suggestion_ids))
        now = datetime.utcnow()

        rejected: List[int] = []
        try:
            suggestions = []
            for suggestion_id in ids:
                suggestion = self.get_suggestion(suggestion_id)
                try:
                    self._compare_and_set(suggestion_id, SUGGESTION_STATUS_REJECTED, operator, now)
                    rejected.append(suggestion_id)
                except ApprovalConflictError as conflict:
                    if conflict.current_status != SUGGESTION_STATUS_REJECTED:
                        raise InvalidSuggestionTransition(
                            suggestion_id, conflict.current_status, SUGGESTION_STATUS_REJECTED
                        )
                suggestions.append(suggestion)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        if rejected:
            audit_log(
                "SUGGESTIONS_REJECTED",
                operator=operator,
                resource_type="purchase_suggestion",
                resource_id=rejected,
            )
        return suggestions
