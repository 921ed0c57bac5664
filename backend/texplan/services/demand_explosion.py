"""
Demand Explosion

Expands customer order lines into gross material demand through the BOM.
Demand keeps order-line provenance and is not aggregated here; netting
does the bucketing.
"""
from decimal import Decimal
from typing import Iterable, List, Mapping, Optional, Set, Tuple

from texplan.exceptions import BOMNotFoundError
from texplan.logging_config import get_logger
from texplan.services.bom_resolver import BOMResolver
from texplan.services.planning_types import (
    BOMEntry, GrossDemand, ONE, OrderLineInput, PlanningWarning, ZERO,
)

logger = get_logger(__name__)

HUNDRED = Decimal("100")


def line_demand(quantity: Decimal, entry: BOMEntry, yield_factor: Decimal = ONE) -> Decimal:
    """
    Gross material quantity for `quantity` garments, in the material's stock unit.

    Scrap is added on the BOM quantity, then the result is divided by the
    material's yield (BOM units per stock unit). A yield of 0 or less is
    ignored.
    """
    demand = quantity * entry.quantity_per_unit
    if entry.scrap_factor:
        demand *= ONE + entry.scrap_factor / HUNDRED
    if yield_factor > ZERO and yield_factor != ONE:
        demand /= yield_factor
    return demand


def explode(
    order_lines: Iterable[OrderLineInput],
    resolver: BOMResolver,
    material_yields: Optional[Mapping[int, Decimal]] = None,
) -> Tuple[List[GrossDemand], List[PlanningWarning]]:
    """
    Explode order lines into gross demand.

    Variants without a BOM are skipped with one warning per variant; the
    rest of the order set is still exploded.

    material_yields converts BOM units to stock units per material.

    Returns:
        (gross demand in order-line then BOM order, warnings)
    """
    yields = material_yields or {}
    demand: List[GrossDemand] = []
    warnings: List[PlanningWarning] = []
    missing_variants: Set[int] = set()

    for line in order_lines:
        if line.quantity <= ZERO:
            continue

        try:
            bom = resolver.resolve(line.variant_id)
        except BOMNotFoundError as e:
            if line.variant_id not in missing_variants:
                missing_variants.add(line.variant_id)
                logger.warning(
                    "Skipping variant without BOM",
                    extra={"variant_id": line.variant_id, "order_id": line.order_id},
                )
                warnings.append(PlanningWarning.from_exception(e))
            continue

        for entry in bom:
            demand.append(GrossDemand(
                material_id=entry.material_id,
                quantity=line_demand(line.quantity, entry, yields.get(entry.material_id, ONE)),
                need_by_date=line.need_by_date,
                source_order_id=line.order_id,
                source_order_line_id=line.order_line_id,
            ))

    return demand, warnings
