"""
Net Requirement Calculator

Time-phased netting of gross demand against on-hand stock and open
purchase-order receipts.

For each material, demand is bucketed by need-by date, each bucket is rounded
up to whole stock units, and the buckets are consumed in date order, so the
earliest need is covered first:

    available = on_hand + receipts expected on or before the bucket date
    net       = max(0, gross - available)
    available = max(0, available - gross)
"""
from collections import defaultdict
from datetime import date
from decimal import ROUND_CEILING, Decimal
from typing import Dict, Iterable, List, Mapping, Sequence, Tuple

from texplan.services.planning_types import (
    GrossDemand, MaterialRequirementSummary, NetRequirement, OpenReceipt, ZERO,
)


def bucket_demand(gross_demand: Iterable[GrossDemand]) -> Dict[int, Dict[date, Decimal]]:
    """Total gross demand per material per need-by date"""
    buckets: Dict[int, Dict[date, Decimal]] = defaultdict(lambda: defaultdict(lambda: ZERO))
    for demand in gross_demand:
        buckets[demand.material_id][demand.need_by_date] += demand.quantity
    return buckets


def whole_units(quantity: Decimal) -> Decimal:
    """Round a bucket's gross demand up to whole stock units (12.3 m -> 13 m)"""
    return quantity.to_integral_value(rounding=ROUND_CEILING)


def _sorted_receipts(receipts: Sequence[OpenReceipt]) -> List[Tuple[date, Decimal]]:
    # Undated receipts are treated as already due (date.min)
    return sorted(
        ((r.expected_date or date.min, r.quantity) for r in receipts if r.quantity > ZERO),
        key=lambda item: item[0],
    )


def net_material(
    material_id: int,
    buckets: Mapping[date, Decimal],
    on_hand: Decimal,
    receipts: Sequence[OpenReceipt] = (),
) -> Tuple[List[NetRequirement], Decimal]:
    """
    Net one material's date buckets.

    Returns:
        (net requirements with a positive quantity, receipt quantity counted)
    """
    available = max(on_hand, ZERO)
    pending = _sorted_receipts(receipts)
    incoming = ZERO
    requirements: List[NetRequirement] = []

    for need_by in sorted(buckets):
        while pending and pending[0][0] <= need_by:
            _, quantity = pending.pop(0)
            available += quantity
            incoming += quantity

        gross = whole_units(buckets[need_by])
        net = max(ZERO, gross - available)
        available = max(ZERO, available - gross)

        if net > ZERO:
            requirements.append(NetRequirement(
                material_id=material_id,
                need_by_date=need_by,
                quantity=net,
                gross_quantity=gross,
            ))

    return requirements, incoming


def net_requirements(
    gross_demand: Iterable[GrossDemand],
    stock_snapshot: Mapping[int, Decimal],
    open_receipts: Mapping[int, Sequence[OpenReceipt]],
) -> List[NetRequirement]:
    """Net requirements for every material, ordered by material then date"""
    requirements, _ = net_and_summarize(gross_demand, stock_snapshot, open_receipts)
    return requirements


def net_and_summarize(
    gross_demand: Iterable[GrossDemand],
    stock_snapshot: Mapping[int, Decimal],
    open_receipts: Mapping[int, Sequence[OpenReceipt]],
) -> Tuple[List[NetRequirement], List[MaterialRequirementSummary]]:
    """
    Net requirements plus a per-material summary for the run record.

    Every material with gross demand gets a summary, including those fully
    covered by stock.
    """
    buckets = bucket_demand(gross_demand)
    requirements: List[NetRequirement] = []
    summaries: List[MaterialRequirementSummary] = []

    for material_id in sorted(buckets):
        on_hand = stock_snapshot.get(material_id, ZERO)
        material_reqs, incoming = net_material(
            material_id,
            buckets[material_id],
            on_hand,
            open_receipts.get(material_id, ()),
        )
        requirements.extend(material_reqs)
        summaries.append(MaterialRequirementSummary(
            material_id=material_id,
            gross_quantity=sum((whole_units(q) for q in buckets[material_id].values()), ZERO),
            on_hand_quantity=on_hand,
            incoming_quantity=incoming,
            net_quantity=sum((req.quantity for req in material_reqs), ZERO),
        ))

    return requirements, summaries
