"""
Planning Engine

Pure orchestration of one planning run:
1. BOM resolution + demand explosion
2. Time-phased netting against stock and open receipts
3. Supplier selection + lot sizing
4. Aggregation into supplier-scoped suggestions

run_plan() is deterministic for a given snapshot and never reads or writes
the database. Per-material data gaps become warnings; only invalid input
raises.
"""
from dataclasses import dataclass
from datetime import date
from itertools import groupby
from typing import List, Optional

from texplan.exceptions import InvalidRunParameters, PlanningDataError
from texplan.logging_config import get_logger
from texplan.services.bom_resolver import BOMResolver
from texplan.services.demand_explosion import explode
from texplan.services.net_requirements import net_and_summarize
from texplan.services.planning_types import PlanningSnapshot, PlanningWarning, PlanResult, SizedRequirement
from texplan.services.suggestion_aggregator import aggregate
from texplan.services.supplier_selection import choose_supplier, size_with

logger = get_logger(__name__)


@dataclass(frozen=True)
class RunParameters:
    """Validated input of a planning run"""
    start_date: date
    end_date: date
    operator: str

    @classmethod
    def build(
        cls,
        start_date: Optional[date],
        end_date: Optional[date],
        operator: str,
        max_horizon_days: int,
    ) -> "RunParameters":
        """
        Raises:
            InvalidRunParameters: missing dates, end before start, or a
                range longer than max_horizon_days
        """
        if start_date is None:
            raise InvalidRunParameters("start_date is required", parameter="start_date")
        if end_date is None:
            raise InvalidRunParameters("end_date is required", parameter="end_date")
        if end_date < start_date:
            raise InvalidRunParameters(
                f"end_date {end_date} is before start_date {start_date}",
                parameter="date_range",
            )
        span = (end_date - start_date).days + 1
        if span > max_horizon_days:
            raise InvalidRunParameters(
                f"Date range covers {span} days; the maximum is {max_horizon_days}",
                parameter="date_range",
            )
        if not operator or not operator.strip():
            raise InvalidRunParameters("operator is required", parameter="operator")
        return cls(start_date=start_date, end_date=end_date, operator=operator.strip())


def select_suppliers(net_requirements, snapshot: PlanningSnapshot, warnings: List[PlanningWarning]) -> List[SizedRequirement]:
    """Choose one supplier per material and size every date bucket with it"""
    sized: List[SizedRequirement] = []
    for material_id, buckets in groupby(net_requirements, key=lambda req: req.material_id):
        try:
            option = choose_supplier(material_id, snapshot.supplier_options.get(material_id, ()))
        except PlanningDataError as e:
            logger.warning(e.message, extra={"material_id": material_id, "error_code": e.error_code})
            warnings.append(PlanningWarning.from_exception(e))
            continue
        sized.extend(size_with(req, option, snapshot.as_of) for req in buckets)
    return sized


def run_plan(snapshot: PlanningSnapshot) -> PlanResult:
    """
    Run the planning pipeline over a snapshot.

    Raises:
        InvalidRunParameters: the snapshot holds no order lines
    """
    if not snapshot.order_lines:
        raise InvalidRunParameters("No open customer orders in the date range", parameter="date_range")

    result = PlanResult(order_ids=snapshot.order_ids)

    resolver = BOMResolver.from_snapshot(snapshot)
    result.gross_demand, explosion_warnings = explode(
        snapshot.order_lines, resolver, snapshot.material_yields
    )
    result.warnings.extend(explosion_warnings)

    result.net_requirements, result.requirement_summaries = net_and_summarize(
        result.gross_demand, snapshot.stock, snapshot.open_receipts
    )

    # net_and_summarize returns requirements grouped by material, as groupby needs
    result.sized_requirements = select_suppliers(result.net_requirements, snapshot, result.warnings)
    result.suggestions = aggregate(result.sized_requirements)

    logger.info(
        "Planning calculation finished",
        extra={
            "orders_processed": len(result.order_ids),
            "materials_analyzed": result.materials_analyzed,
            "shortages_found": result.shortages_found,
            "suggestions": len(result.suggestions),
            "warnings": len(result.warnings),
        },
    )
    return result
