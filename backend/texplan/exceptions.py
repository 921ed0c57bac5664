"""
TexPlan exception hierarchy

All domain errors derive from TexPlanException so the API layer can render
them uniformly (see the exception handler in texplan.main).

Planning data gaps (BOMNotFoundError, NoSupplierError,
AmbiguousPreferredSupplierError) are raised by the engine components and
collected as run warnings; they never fail a run.
"""
from typing import Any, Dict, Iterable, Optional


class TexPlanException(Exception):
    """Base exception for all TexPlan errors."""

    error_code = "TEXPLAN_ERROR"
    status_code = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details,
        }


# ============================================================================
# Not found
# ============================================================================

class NotFoundError(TexPlanException):
    error_code = "NOT_FOUND"
    status_code = 404


class RunNotFoundError(NotFoundError):
    error_code = "RUN_NOT_FOUND"

    def __init__(self, run_id: int):
        super().__init__(f"Planning run {run_id} not found", {"run_id": run_id})
        self.run_id = run_id


class SuggestionNotFoundError(NotFoundError):
    error_code = "SUGGESTION_NOT_FOUND"

    def __init__(self, suggestion_id: int):
        super().__init__(
            f"Purchase suggestion {suggestion_id} not found",
            {"suggestion_id": suggestion_id},
        )
        self.suggestion_id = suggestion_id


class SuggestionLineNotFoundError(NotFoundError):
    error_code = "SUGGESTION_LINE_NOT_FOUND"

    def __init__(self, suggestion_id: int, line_id: int):
        super().__init__(
            f"Line {line_id} not found on purchase suggestion {suggestion_id}",
            {"suggestion_id": suggestion_id, "line_id": line_id},
        )


# ============================================================================
# Run parameters
# ============================================================================

class InvalidRunParameters(TexPlanException):
    """Fatal: the run cannot be planned with the given input."""

    error_code = "INVALID_RUN_PARAMETERS"
    status_code = 400

    def __init__(self, message: str, parameter: Optional[str] = None, run_id: Optional[int] = None):
        details = {}
        if parameter:
            details["parameter"] = parameter
        if run_id is not None:
            details["run_id"] = run_id
        super().__init__(message, details)
        self.parameter = parameter
        self.run_id = run_id

    def attach_run(self, run_id: int) -> "InvalidRunParameters":
        self.run_id = run_id
        self.details["run_id"] = run_id
        return self


# ============================================================================
# Planning data gaps (non-fatal, surfaced as warnings)
# ============================================================================

class PlanningDataError(TexPlanException):
    error_code = "PLANNING_DATA_ERROR"
    status_code = 422


class BOMNotFoundError(PlanningDataError):
    error_code = "BOM_NOT_FOUND"

    def __init__(self, variant_id: int, product_id: Optional[int] = None):
        if product_id is None:
            message = f"Product variant {variant_id} is unknown or has no bill of materials"
        else:
            message = f"Product {product_id} (variant {variant_id}) has no bill of materials"
        super().__init__(message, {"product_variant_id": variant_id, "product_id": product_id})
        self.variant_id = variant_id
        self.product_id = product_id


class NoSupplierError(PlanningDataError):
    error_code = "NO_SUPPLIER"

    def __init__(self, material_id: int):
        super().__init__(
            f"Material {material_id} has no supplier relationships",
            {"material_id": material_id},
        )
        self.material_id = material_id


class AmbiguousPreferredSupplierError(PlanningDataError):
    error_code = "AMBIGUOUS_PREFERRED_SUPPLIER"

    def __init__(self, material_id: int, supplier_ids: Iterable[int]):
        supplier_ids = sorted(supplier_ids)
        super().__init__(
            f"Material {material_id} has {len(supplier_ids)} preferred suppliers; fix the catalog",
            {"material_id": material_id, "supplier_ids": supplier_ids},
        )
        self.material_id = material_id
        self.supplier_ids = supplier_ids


# ============================================================================
# Suggestion workflow
# ============================================================================

class SuggestionWorkflowError(TexPlanException):
    error_code = "SUGGESTION_WORKFLOW_ERROR"
    status_code = 409


class ApprovalConflictError(SuggestionWorkflowError):
    """The compare-and-set on a suggestion's status lost a race."""

    error_code = "APPROVAL_CONFLICT"

    def __init__(self, suggestion_id: int, current_status: Optional[str]):
        super().__init__(
            f"Purchase suggestion {suggestion_id} changed status concurrently",
            {"suggestion_id": suggestion_id, "current_status": current_status},
        )
        self.suggestion_id = suggestion_id
        self.current_status = current_status


class InvalidSuggestionTransition(SuggestionWorkflowError):
    error_code = "INVALID_SUGGESTION_TRANSITION"

    def __init__(self, suggestion_id: int, current_status: str, target_status: str):
        super().__init__(
            f"Cannot move purchase suggestion {suggestion_id} from {current_status} to {target_status}",
            {
                "suggestion_id": suggestion_id,
                "current_status": current_status,
                "target_status": target_status,
            },
        )
        self.suggestion_id = suggestion_id
        self.current_status = current_status
        self.target_status = target_status


class InvalidSuggestionEdit(TexPlanException):
    error_code = "INVALID_SUGGESTION_EDIT"
    status_code = 400
