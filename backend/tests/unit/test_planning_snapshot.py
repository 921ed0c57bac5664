"""
Unit tests for the SQLAlchemy snapshot adapters
"""
from datetime import date
from decimal import Decimal
from unittest.mock import MagicMock, patch

from texplan.services.planning_snapshot import (
    SqlCatalog,
    SqlOrderSource,
    SqlStockLedger,
    begin_snapshot,
    build_snapshot,
    load_snapshot,
)
from texplan.services.planning_types import BOMEntry, OpenReceipt, OrderLineInput, SupplierOption


class TestSqlOrderSource:
    def test_lists_open_orders_in_range(self, db_session, data, scenario):
        data.order(date(2026, 4, 30), [(scenario["variant"], 5)])
        data.order(date(2026, 3, 20), [(scenario["variant"], 5)], status="CANCELLED")
        data.order(date(2026, 3, 31), [(scenario["variant"], 7)], status="IN_PRODUCTION")
        data.commit()

        lines = SqlOrderSource(db_session).list_order_lines(date(2026, 3, 1), date(2026, 3, 31))

        assert [(line.quantity, line.need_by_date) for line in lines] == [
            (Decimal("100"), date(2026, 3, 15)),
            (Decimal("7"), date(2026, 3, 31)),
        ]
        assert lines[1].order_status == "IN_PRODUCTION"


class TestSqlStockLedger:
    def test_current_stock(self, db_session, scenario):
        ledger = SqlStockLedger(db_session)
        assert ledger.current_stock(scenario["fabric"].id) == Decimal("50")
        assert ledger.current_stock(999) == Decimal("0")

    def test_open_receipts_are_outstanding_quantities(self, db_session, data, scenario):
        fabric, supplier = scenario["fabric"], scenario["supplier"]
        data.purchase_order(supplier, fabric, ordered="100", received="40", expected_date=date(2026, 3, 10))
        data.purchase_order(supplier, fabric, ordered="30", status="draft")
        data.purchase_order(supplier, fabric, ordered="80", received="80", status="shipped")
        data.purchase_order(supplier, fabric, ordered="999", status="closed")
        data.purchase_order(supplier, fabric, ordered="999", status="cancelled")
        data.commit()

        receipts = SqlStockLedger(db_session).open_receipts(fabric.id)

        assert sorted(receipts, key=lambda r: r.quantity) == [
            OpenReceipt(quantity=Decimal("30"), expected_date=None),
            OpenReceipt(quantity=Decimal("60"), expected_date=date(2026, 3, 10)),
        ]


class TestSqlCatalog:
    def test_bom_layers_and_suppliers(self, db_session, data, scenario):
        thread = data.material(name="Thread", unit="CONE")
        data.variation(scenario["variant"], thread, "0.1", scrap="5", unit="CONE")
        data.commit()
        catalog = SqlCatalog(db_session)

        assert catalog.variant_product(scenario["variant"].id) == scenario["product"].id
        assert catalog.variant_product(999) is None
        assert catalog.bom_common(scenario["product"].id) == [
            BOMEntry(material_id=scenario["fabric"].id, quantity_per_unit=Decimal("2"), unit="M"),
        ]
        assert catalog.bom_variation(scenario["variant"].id) == [
            BOMEntry(material_id=thread.id, quantity_per_unit=Decimal("0.1"), unit="CONE", scrap_factor=Decimal("5")),
        ]
        assert catalog.supplier_relationships(scenario["fabric"].id) == [
            SupplierOption(
                supplier_id=scenario["supplier"].id,
                material_id=scenario["fabric"].id,
                unit_price=Decimal("3.50"),
                min_order_qty=Decimal("25"),
                lead_time_days=10,
                is_preferred=False,
            ),
        ]

    def test_material_yield(self, db_session, data):
        jersey = data.material(unit="KG", yield_factor="3.2")
        plain = data.material()
        data.commit()
        catalog = SqlCatalog(db_session)

        assert catalog.material_yield(jersey.id) == Decimal("3.2")
        assert catalog.material_yield(plain.id) == Decimal("1")
        assert catalog.material_yield(999) == Decimal("1")


class FakeOrders:
    def __init__(self, lines):
        self.lines = lines

    def list_order_lines(self, start, end):
        return [line for line in self.lines if start <= line.need_by_date <= end]


class FakeStock:
    def current_stock(self, material_id):
        return Decimal("5")

    def open_receipts(self, material_id):
        return []


class FakeCatalog:
    def variant_product(self, variant_id):
        return {1: 10}.get(variant_id)

    def bom_common(self, product_id):
        return [BOMEntry(material_id=100, quantity_per_unit=Decimal("1"), unit="M")]

    def bom_variation(self, variant_id):
        return [BOMEntry(material_id=200, quantity_per_unit=Decimal("1"), unit="EA")]

    def supplier_relationships(self, material_id):
        return []

    def material_yield(self, material_id):
        return Decimal("2") if material_id == 100 else Decimal("1")


class TestBuildSnapshot:
    def test_loads_only_reachable_data(self):
        lines = [
            OrderLineInput(order_id=1, order_line_id=1, variant_id=1, quantity=Decimal("3"), need_by_date=date(2026, 3, 2)),
            OrderLineInput(order_id=2, order_line_id=2, variant_id=2, quantity=Decimal("3"), need_by_date=date(2026, 3, 3)),
        ]
        snapshot = build_snapshot(
            FakeOrders(lines), FakeStock(), FakeCatalog(),
            date(2026, 3, 1), date(2026, 3, 31), as_of=date(2026, 3, 1),
        )

        assert len(snapshot.order_lines) == 2
        assert snapshot.variant_products == {1: 10}
        assert set(snapshot.bom_common) == {10}
        assert set(snapshot.stock) == {100, 200}
        assert snapshot.supplier_options == {100: (), 200: ()}
        assert snapshot.material_yields == {100: Decimal("2"), 200: Decimal("1")}

    def test_load_snapshot_from_database(self, db_session, scenario):
        snapshot = load_snapshot(db_session, date(2026, 3, 1), date(2026, 3, 31), date(2026, 3, 1))

        fabric_id = scenario["fabric"].id
        assert snapshot.order_ids == [scenario["order"].id]
        assert snapshot.stock == {fabric_id: Decimal("50")}
        assert len(snapshot.supplier_options[fabric_id]) == 1
        assert snapshot.material_yields == {fabric_id: Decimal("1")}


class TestSnapshotIsolation:
    def test_repeatable_read_outside_sqlite(self):
        db = MagicMock()
        db.get_bind.return_value.dialect.name = "postgresql"

        assert begin_snapshot(db) == "REPEATABLE READ"
        db.connection.assert_called_once_with(execution_options={"isolation_level": "REPEATABLE READ"})

    def test_sqlite_is_left_alone(self, db_session):
        assert begin_snapshot(db_session) is None

    def test_disabled_by_empty_setting(self):
        db = MagicMock()
        db.get_bind.return_value.dialect.name = "postgresql"

        with patch("texplan.services.planning_snapshot.settings") as settings:
            settings.PLANNING_SNAPSHOT_ISOLATION = ""
            assert begin_snapshot(db) is None
        db.connection.assert_not_called()

    def test_load_snapshot_sets_isolation_before_reading(self):
        db = MagicMock()
        db.get_bind.return_value.dialect.name = "postgresql"

        with patch("texplan.services.planning_snapshot.build_snapshot") as build:
            # Isolation is set before the first read
            build.side_effect = lambda *args: db.connection.assert_called_once()
            load_snapshot(db, date(2026, 3, 1), date(2026, 3, 31), date(2026, 3, 1))

        build.assert_called_once()
