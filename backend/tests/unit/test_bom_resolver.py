"""
Unit tests for BOM resolution (common layer + variation layer)
"""
import pytest
from decimal import Decimal

from texplan.exceptions import BOMNotFoundError
from texplan.services.bom_resolver import BOMResolver
from texplan.services.planning_types import BOMEntry


FABRIC, THREAD, LABEL, ZIPPER = 1, 2, 3, 4


def entry(material_id, qty, unit="M", scrap="0"):
    return BOMEntry(material_id=material_id, quantity_per_unit=Decimal(qty), unit=unit, scrap_factor=Decimal(scrap))


@pytest.fixture
def resolver():
    # product 10 has variants 100 (M) and 101 (XL); variant 102 has no product BOM
    return BOMResolver(
        variant_products={100: 10, 101: 10, 102: 11, 103: 10},
        bom_common={
            10: (entry(FABRIC, "1.5"), entry(THREAD, "20"), entry(LABEL, "1", unit="EA")),
        },
        bom_variations={
            101: (entry(FABRIC, "2.1"), entry(ZIPPER, "1", unit="EA")),
            102: (),
            103: (entry(LABEL, "0", unit="EA"),),
        },
    )


class TestResolve:
    def test_common_entries_only(self, resolver):
        lines = resolver.resolve(100)
        assert [(line.material_id, line.quantity_per_unit) for line in lines] == [
            (FABRIC, Decimal("1.5")),
            (THREAD, Decimal("20")),
            (LABEL, Decimal("1")),
        ]

    def test_variation_replaces_common_entry_in_place(self, resolver):
        """XL uses more fabric; the fabric line keeps its position"""
        lines = resolver.resolve(101)
        assert [line.material_id for line in lines] == [FABRIC, THREAD, LABEL, ZIPPER]
        assert lines[0].quantity_per_unit == Decimal("2.1")

    def test_variation_only_material_is_appended(self, resolver):
        lines = resolver.resolve(101)
        assert lines[-1] == entry(ZIPPER, "1", unit="EA")

    def test_zero_quantity_variation_removes_material(self, resolver):
        lines = resolver.resolve(103)
        assert LABEL not in [line.material_id for line in lines]
        assert len(lines) == 2

    def test_unknown_variant_raises(self, resolver):
        with pytest.raises(BOMNotFoundError) as exc_info:
            resolver.resolve(999)
        assert exc_info.value.variant_id == 999
        assert exc_info.value.product_id is None

    def test_product_without_any_entries_raises(self, resolver):
        with pytest.raises(BOMNotFoundError) as exc_info:
            resolver.resolve(102)
        assert exc_info.value.product_id == 11
        assert exc_info.value.details["product_variant_id"] == 102

    def test_repeated_entries_in_one_layer_are_summed(self):
        resolver = BOMResolver(
            variant_products={1: 1},
            bom_common={1: (entry(THREAD, "10"), entry(THREAD, "5"))},
            bom_variations={},
        )
        lines = resolver.resolve(1)
        assert len(lines) == 1
        assert lines[0].quantity_per_unit == Decimal("15")

    def test_result_is_a_copy(self, resolver):
        """Callers mutating the returned list must not corrupt the cache"""
        first = resolver.resolve(100)
        first.clear()
        assert len(resolver.resolve(100)) == 3
