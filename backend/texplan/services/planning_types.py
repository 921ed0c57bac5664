"""
Data classes for planning calculations

These are the explicit inputs and outputs of the planning engine. The engine
never touches the database: the planning service loads a PlanningSnapshot,
hands it to run_plan() and persists the PlanResult.
"""
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional, Tuple

from texplan.exceptions import TexPlanException


ZERO = Decimal("0")
ONE = Decimal("1")


# ============================================================================
# Inputs
# ============================================================================

@dataclass(frozen=True)
class OrderLineInput:
    """One customer order line inside the planning horizon"""
    order_id: int
    order_line_id: int
    variant_id: int
    quantity: Decimal
    need_by_date: date
    order_status: str = "PENDING"


@dataclass(frozen=True)
class BOMEntry:
    """Material consumption per garment, from either BOM layer"""
    material_id: int
    quantity_per_unit: Decimal
    unit: str
    scrap_factor: Decimal = ZERO


@dataclass(frozen=True)
class OpenReceipt:
    """Outstanding quantity on an open purchase order"""
    quantity: Decimal
    expected_date: Optional[date] = None


@dataclass(frozen=True)
class SupplierOption:
    """Supplier relationship for a material"""
    supplier_id: int
    material_id: int
    unit_price: Decimal
    min_order_qty: Decimal = ZERO
    lead_time_days: int = 0
    is_preferred: bool = False


@dataclass(frozen=True)
class PlanningSnapshot:
    """
    Consistent read of everything a run needs, taken once at run start.

    Mappings are keyed by id: variant -> product, product -> common BOM,
    variant -> variation BOM, material -> stock / receipts / suppliers
    and material -> yield factor (absent means 1).
    """
    as_of: date
    order_lines: Tuple[OrderLineInput, ...]
    variant_products: Mapping[int, int] = field(default_factory=dict)
    bom_common: Mapping[int, Tuple[BOMEntry, ...]] = field(default_factory=dict)
    bom_variations: Mapping[int, Tuple[BOMEntry, ...]] = field(default_factory=dict)
    stock: Mapping[int, Decimal] = field(default_factory=dict)
    open_receipts: Mapping[int, Tuple[OpenReceipt, ...]] = field(default_factory=dict)
    supplier_options: Mapping[int, Tuple[SupplierOption, ...]] = field(default_factory=dict)
    material_yields: Mapping[int, Decimal] = field(default_factory=dict)

    @property
    def order_ids(self) -> List[int]:
        """Distinct order ids in first-seen order"""
        return list(dict.fromkeys(line.order_id for line in self.order_lines))


# ============================================================================
# Intermediate results
# ============================================================================

@dataclass(frozen=True)
class GrossDemand:
    """Material demand implied by one order line, before netting"""
    material_id: int
    quantity: Decimal
    need_by_date: date
    source_order_id: int
    source_order_line_id: int


@dataclass(frozen=True)
class NetRequirement:
    """Net shortage of a material for one need-by date bucket"""
    material_id: int
    need_by_date: date
    quantity: Decimal
    gross_quantity: Decimal


@dataclass(frozen=True)
class MaterialRequirementSummary:
    """Per-material totals recorded on the run"""
    material_id: int
    gross_quantity: Decimal
    on_hand_quantity: Decimal
    incoming_quantity: Decimal
    net_quantity: Decimal


@dataclass(frozen=True)
class SizedRequirement:
    """Net requirement with its supplier chosen and its quantity lot-sized"""
    material_id: int
    supplier_id: int
    net_quantity: Decimal
    quantity: Decimal
    unit_price: Decimal
    min_order_qty: Decimal
    lead_time_days: int
    need_by_date: date
    order_by_date: date
    lead_time_risk: bool


# ============================================================================
# Outputs
# ============================================================================

@dataclass(frozen=True)
class DraftSuggestionLine:
    material_id: int
    net_quantity: Decimal
    quantity: Decimal
    unit_price: Decimal
    need_by_date: date
    order_by_date: date
    lead_time_risk: bool


@dataclass(frozen=True)
class DraftSuggestion:
    supplier_id: int
    lines: Tuple[DraftSuggestionLine, ...]

    @property
    def total_amount(self) -> Decimal:
        return sum((line.quantity * line.unit_price for line in self.lines), ZERO)


@dataclass(frozen=True)
class PlanningWarning:
    """Non-fatal data gap found during a run"""
    code: str
    message: str
    details: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_exception(cls, exc: TexPlanException) -> "PlanningWarning":
        return cls(code=exc.error_code, message=exc.message, details=dict(exc.details))

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}


@dataclass
class PlanResult:
    """Everything one planning run produces"""
    order_ids: List[int] = field(default_factory=list)
    gross_demand: List[GrossDemand] = field(default_factory=list)
    net_requirements: List[NetRequirement] = field(default_factory=list)
    requirement_summaries: List[MaterialRequirementSummary] = field(default_factory=list)
    sized_requirements: List[SizedRequirement] = field(default_factory=list)
    suggestions: List[DraftSuggestion] = field(default_factory=list)
    warnings: List[PlanningWarning] = field(default_factory=list)

    @property
    def materials_analyzed(self) -> int:
        return len(self.requirement_summaries)

    @property
    def shortages_found(self) -> int:
        return len({req.material_id for req in self.net_requirements})
