"""
Unit tests for grouping sized requirements into supplier suggestions
"""
from datetime import date, timedelta
from decimal import Decimal

from texplan.services.planning_types import SizedRequirement
from texplan.services.suggestion_aggregator import aggregate


def sized(material_id, supplier_id, net, due, moq="0", price="1", risk=False, lead=0, qty=None):
    net = Decimal(net)
    return SizedRequirement(
        material_id=material_id,
        supplier_id=supplier_id,
        net_quantity=net,
        quantity=Decimal(qty) if qty is not None else net,
        unit_price=Decimal(price),
        min_order_qty=Decimal(moq),
        lead_time_days=lead,
        need_by_date=due,
        order_by_date=due - timedelta(days=lead),
        lead_time_risk=risk,
    )


class TestAggregate:
    def test_one_suggestion_per_supplier_sorted(self):
        suggestions = aggregate([
            sized(3, 20, "5", date(2026, 3, 1)),
            sized(1, 10, "5", date(2026, 3, 1)),
            sized(2, 20, "5", date(2026, 3, 1)),
        ])
        assert [s.supplier_id for s in suggestions] == [10, 20]
        assert [line.material_id for line in suggestions[1].lines] == [2, 3]

    def test_buckets_of_a_material_merge_before_lot_sizing(self):
        """Two 10 m buckets with a 25 m MOQ order 25 m, not 50 m"""
        suggestions = aggregate([
            sized(1, 10, "10", date(2026, 4, 1), moq="25", lead=7),
            sized(1, 10, "10", date(2026, 3, 1), moq="25", lead=7, risk=True),
        ])
        line = suggestions[0].lines[0]
        assert line.net_quantity == Decimal("20")
        assert line.quantity == Decimal("25")
        assert line.need_by_date == date(2026, 3, 1)
        assert line.order_by_date == date(2026, 2, 22)
        assert line.lead_time_risk is True

    def test_single_bucket_keeps_its_sized_quantity(self):
        suggestions = aggregate([sized(1, 10, "10", date(2026, 3, 1), moq="5", qty="15")])
        line = suggestions[0].lines[0]
        assert line.net_quantity == Decimal("10")
        # Not re-sized to 10
        assert line.quantity == Decimal("15")

    def test_merged_buckets_ignore_per_bucket_sizing(self):
        suggestions = aggregate([
            sized(1, 10, "10", date(2026, 3, 1), moq="25", qty="25"),
            sized(1, 10, "30", date(2026, 4, 1), moq="25", qty="50"),
        ])
        # 40 m net is two lots, not the 75 m of the per-bucket sizes
        assert suggestions[0].lines[0].quantity == Decimal("50")

    def test_total_amount(self):
        suggestions = aggregate([
            sized(1, 10, "10", date(2026, 3, 1), price="2.5"),
            sized(2, 10, "4", date(2026, 3, 1), price="10"),
        ])
        assert suggestions[0].total_amount == Decimal("65")

    def test_empty_input(self):
        assert aggregate([]) == []
