"""
Unit tests for the pure planning engine (no database)
"""
import pytest
from datetime import date
from decimal import Decimal

from texplan.exceptions import InvalidRunParameters
from texplan.services.planning_engine import RunParameters, run_plan
from texplan.services.planning_types import (
    BOMEntry, OpenReceipt, OrderLineInput, PlanningSnapshot, SupplierOption,
)


AS_OF = date(2026, 3, 1)
DUE = date(2026, 3, 15)
FABRIC, THREAD = 1, 2
VARIANT, PRODUCT = 100, 10


def snapshot(stock="50", suppliers=None, receipts=None, qty=100, extra_lines=()):
    if suppliers is None:
        suppliers = {FABRIC: (SupplierOption(supplier_id=7, material_id=FABRIC, unit_price=Decimal("3.5"), min_order_qty=Decimal("25")),)}
    lines = (OrderLineInput(order_id=1, order_line_id=1, variant_id=VARIANT, quantity=Decimal(qty), need_by_date=DUE),)
    return PlanningSnapshot(
        as_of=AS_OF,
        order_lines=lines + tuple(extra_lines),
        variant_products={VARIANT: PRODUCT},
        bom_common={PRODUCT: (BOMEntry(material_id=FABRIC, quantity_per_unit=Decimal("2"), unit="M"),)},
        bom_variations={},
        stock={FABRIC: Decimal(stock)},
        open_receipts=receipts or {},
        supplier_options=suppliers,
    )


class TestScenarios:
    def test_scenario_a_short_fabric_becomes_one_line(self):
        """100 units x 2 m, 50 m on hand, MOQ 25 -> 150 m exactly"""
        result = run_plan(snapshot())

        assert len(result.suggestions) == 1
        suggestion = result.suggestions[0]
        assert suggestion.supplier_id == 7
        assert len(suggestion.lines) == 1
        line = suggestion.lines[0]
        assert line.material_id == FABRIC
        assert line.net_quantity == Decimal("150")
        assert line.quantity == Decimal("150")
        assert result.warnings == []

    def test_scenario_b_enough_stock_means_no_suggestion(self):
        result = run_plan(snapshot(stock="210"))

        assert result.net_requirements == []
        assert result.suggestions == []
        assert result.materials_analyzed == 1
        assert result.shortages_found == 0

    def test_scenario_c_preferred_supplier_regardless_of_price(self):
        suppliers = {FABRIC: (
            SupplierOption(supplier_id=7, material_id=FABRIC, unit_price=Decimal("3.00")),
            SupplierOption(supplier_id=8, material_id=FABRIC, unit_price=Decimal("4.50"), is_preferred=True),
        )}
        result = run_plan(snapshot(suppliers=suppliers))

        assert [s.supplier_id for s in result.suggestions] == [8]
        assert result.suggestions[0].lines[0].unit_price == Decimal("4.50")

    def test_scenario_d_no_supplier_is_a_warning(self):
        result = run_plan(snapshot(suppliers={}))

        assert result.suggestions == []
        assert result.shortages_found == 1
        assert len(result.warnings) == 1
        assert result.warnings[0].code == "NO_SUPPLIER"
        assert result.warnings[0].details["material_id"] == FABRIC


class TestRunPlan:
    def test_ambiguous_preferred_supplier_warns_once_per_material(self):
        later = OrderLineInput(order_id=2, order_line_id=2, variant_id=VARIANT, quantity=Decimal("10"), need_by_date=date(2026, 4, 1))
        suppliers = {FABRIC: (
            SupplierOption(supplier_id=7, material_id=FABRIC, unit_price=Decimal("3"), is_preferred=True),
            SupplierOption(supplier_id=8, material_id=FABRIC, unit_price=Decimal("4"), is_preferred=True),
        )}
        result = run_plan(snapshot(suppliers=suppliers, extra_lines=[later]))

        assert result.suggestions == []
        assert [w.code for w in result.warnings] == ["AMBIGUOUS_PREFERRED_SUPPLIER"]

    def test_zero_demand_materials_never_reach_suggestions(self):
        result = run_plan(snapshot(stock="1000"))
        suggested = {line.material_id for s in result.suggestions for line in s.lines}
        assert FABRIC not in suggested

    def test_open_receipt_reduces_suggestion(self):
        receipts = {FABRIC: (OpenReceipt(quantity=Decimal("100"), expected_date=date(2026, 3, 10)),)}
        result = run_plan(snapshot(receipts=receipts))
        assert result.suggestions[0].lines[0].net_quantity == Decimal("50")

    def test_order_ids_are_recorded(self):
        second = OrderLineInput(order_id=9, order_line_id=3, variant_id=VARIANT, quantity=Decimal("1"), need_by_date=DUE)
        result = run_plan(snapshot(extra_lines=[second]))
        assert result.order_ids == [1, 9]

    def test_empty_order_set_is_invalid(self):
        empty = PlanningSnapshot(as_of=AS_OF, order_lines=())
        with pytest.raises(InvalidRunParameters) as exc_info:
            run_plan(empty)
        assert exc_info.value.parameter == "date_range"

    def test_deterministic(self):
        assert run_plan(snapshot()).suggestions == run_plan(snapshot()).suggestions


class TestRunParameters:
    def test_valid_range(self):
        params = RunParameters.build(date(2026, 3, 1), date(2026, 3, 31), " planner ", 366)
        assert params.operator == "planner"

    def test_single_day_range_is_valid(self):
        RunParameters.build(DUE, DUE, "planner", 1)

    def test_end_before_start(self):
        with pytest.raises(InvalidRunParameters) as exc_info:
            RunParameters.build(date(2026, 3, 31), date(2026, 3, 1), "planner", 366)
        assert exc_info.value.details["parameter"] == "date_range"

    def test_range_longer_than_horizon(self):
        with pytest.raises(InvalidRunParameters):
            RunParameters.build(date(2026, 1, 1), date(2026, 1, 31), "planner", 30)

    def test_missing_operator(self):
        with pytest.raises(InvalidRunParameters) as exc_info:
            RunParameters.build(DUE, DUE, "  ", 366)
        assert exc_info.value.parameter == "operator"
