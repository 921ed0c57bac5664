"""
Suggestion Aggregator

Groups sized requirements into one draft suggestion per supplier with one
line per material. A material with a single date bucket keeps the quantity
supplier selection sized for it; several buckets are merged and re-sized so
MOQ rounding is applied once per material, not once per bucket.
"""
from collections import defaultdict
from typing import Dict, Iterable, List

from texplan.services.planning_types import (
    DraftSuggestion, DraftSuggestionLine, SizedRequirement, ZERO,
)
from texplan.services.supplier_selection import lot_size


def merge_material(buckets: List[SizedRequirement]) -> DraftSuggestionLine:
    """Merge the date buckets of one material from one supplier"""
    first = buckets[0]
    net_total = sum((b.net_quantity for b in buckets), ZERO)
    if len(buckets) == 1:
        quantity = first.quantity
    else:
        quantity = lot_size(net_total, first.min_order_qty)
    return DraftSuggestionLine(
        material_id=first.material_id,
        net_quantity=net_total,
        quantity=quantity,
        unit_price=first.unit_price,
        need_by_date=min(b.need_by_date for b in buckets),
        order_by_date=min(b.order_by_date for b in buckets),
        lead_time_risk=any(b.lead_time_risk for b in buckets),
    )


def aggregate(sized_requirements: Iterable[SizedRequirement]) -> List[DraftSuggestion]:
    """One suggestion per supplier, ordered by supplier id; lines ordered by material id"""
    by_supplier: Dict[int, Dict[int, List[SizedRequirement]]] = defaultdict(lambda: defaultdict(list))
    for sized in sized_requirements:
        by_supplier[sized.supplier_id][sized.material_id].append(sized)

    suggestions = []
    for supplier_id in sorted(by_supplier):
        materials = by_supplier[supplier_id]
        lines = tuple(merge_material(materials[material_id]) for material_id in sorted(materials))
        suggestions.append(DraftSuggestion(supplier_id=supplier_id, lines=lines))
    return suggestions
