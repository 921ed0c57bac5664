"""
Supplier Selection & Lot Sizing

Supplier choice for a material:
1. the relationship flagged preferred, regardless of price
2. otherwise the lowest unit price (ties: shorter lead time, then lower
   supplier id so runs are deterministic)

Lot sizing rounds the net quantity up to a multiple of the supplier's MOQ.
Lead-time risk only annotates the requirement; it never blocks it.
"""
from datetime import date, timedelta
from decimal import Decimal, ROUND_CEILING
from typing import Sequence

from texplan.exceptions import AmbiguousPreferredSupplierError, NoSupplierError
from texplan.services.planning_types import NetRequirement, SizedRequirement, SupplierOption, ZERO


def choose_supplier(material_id: int, options: Sequence[SupplierOption]) -> SupplierOption:
    """
    Pick the supplying relationship for a material.

    Raises:
        NoSupplierError: no relationships at all
        AmbiguousPreferredSupplierError: more than one flagged preferred
    """
    if not options:
        raise NoSupplierError(material_id)

    preferred = [option for option in options if option.is_preferred]
    if len(preferred) > 1:
        raise AmbiguousPreferredSupplierError(material_id, (o.supplier_id for o in preferred))
    if preferred:
        return preferred[0]

    return min(options, key=lambda o: (o.unit_price, o.lead_time_days, o.supplier_id))


def lot_size(net_quantity: Decimal, min_order_qty: Decimal) -> Decimal:
    """Round up to a whole number of MOQ lots; unchanged when there is no MOQ"""
    if min_order_qty is None or min_order_qty <= ZERO:
        return net_quantity
    lots = (net_quantity / min_order_qty).to_integral_value(rounding=ROUND_CEILING)
    return lots * min_order_qty


def has_lead_time_risk(need_by_date: date, as_of: date, lead_time_days: int) -> bool:
    """True when the supplier cannot deliver by the need-by date if ordered today"""
    return (need_by_date - as_of).days < (lead_time_days or 0)


def size_with(requirement: NetRequirement, option: SupplierOption, as_of: date) -> SizedRequirement:
    lead_time = option.lead_time_days or 0
    return SizedRequirement(
        material_id=requirement.material_id,
        supplier_id=option.supplier_id,
        net_quantity=requirement.quantity,
        quantity=lot_size(requirement.quantity, option.min_order_qty),
        unit_price=option.unit_price,
        min_order_qty=option.min_order_qty,
        lead_time_days=lead_time,
        need_by_date=requirement.need_by_date,
        order_by_date=requirement.need_by_date - timedelta(days=lead_time),
        lead_time_risk=has_lead_time_risk(requirement.need_by_date, as_of, lead_time),
    )


def select_and_size(
    requirement: NetRequirement,
    options: Sequence[SupplierOption],
    as_of: date,
) -> SizedRequirement:
    """Choose a supplier for a net requirement and lot-size it"""
    option = choose_supplier(requirement.material_id, options)
    return size_with(requirement, option, as_of)
