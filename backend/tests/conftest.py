"""
Shared pytest fixtures

Every test gets a fresh in-memory SQLite database. Settings are pointed away
from files before texplan is imported.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("AUDIT_LOG_FILE", "")
os.environ.setdefault("LOG_FORMAT", "text")

from datetime import date
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import texplan.models  # noqa: F401
from texplan.db.base import Base
from texplan.db.session import get_db
from texplan.models import (
    BOMCommonEntry,
    BOMVariationEntry,
    CustomerOrder,
    CustomerOrderLine,
    Material,
    Product,
    ProductVariant,
    PurchaseOrder,
    PurchaseOrderLine,
    Supplier,
    SupplierMaterial,
)


SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"
engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session():
    """Create a fresh database for each test"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db_session):
    """Create a test client with database override"""
    from texplan.main import app

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


class PlanningData:
    """Small builder for catalog, stock, order and purchase order rows"""

    def __init__(self, db):
        self.db = db
        self._seq = 0

    def _code(self, prefix):
        self._seq += 1
        return f"{prefix}-{self._seq:03d}"

    def material(self, stock="0", unit="M", name=None, yield_factor="1"):
        material = Material(
            code=self._code("MAT"),
            name=name or "Fabric",
            unit=unit,
            stock_on_hand=Decimal(stock),
            yield_factor=Decimal(yield_factor),
        )
        self.db.add(material)
        self.db.flush()
        return material

    def supplier(self, name=None):
        supplier = Supplier(code=self._code("SUP"), name=name or "Textiles SA")
        self.db.add(supplier)
        self.db.flush()
        return supplier

    def link(self, material, supplier, price, moq="0", lead_time_days=0, preferred=False):
        link = SupplierMaterial(
            material_id=material.id,
            supplier_id=supplier.id,
            unit_price=Decimal(price),
            min_order_qty=Decimal(moq),
            lead_time_days=lead_time_days,
            is_preferred=preferred,
        )
        self.db.add(link)
        self.db.flush()
        return link

    def product(self, name="T-shirt"):
        product = Product(code=self._code("PRD"), name=name)
        self.db.add(product)
        self.db.flush()
        return product

    def variant(self, product, size="M", color="Black"):
        variant = ProductVariant(product_id=product.id, size=size, color=color)
        self.db.add(variant)
        self.db.flush()
        return variant

    def common(self, product, material, qty, scrap="0", unit="M"):
        entry = BOMCommonEntry(
            product_id=product.id,
            material_id=material.id,
            unit=unit,
            quantity_per_unit=Decimal(qty),
            scrap_factor=Decimal(scrap),
        )
        self.db.add(entry)
        self.db.flush()
        return entry

    def variation(self, variant, material, qty, scrap="0", unit="M"):
        entry = BOMVariationEntry(
            variant_id=variant.id,
            material_id=material.id,
            unit=unit,
            quantity_per_unit=Decimal(qty),
            scrap_factor=Decimal(scrap),
        )
        self.db.add(entry)
        self.db.flush()
        return entry

    def order(self, delivery_date, lines, status="PENDING"):
        """lines: [(variant, quantity), ...]"""
        order = CustomerOrder(
            order_number=self._code("ORD"),
            client_name="Client",
            delivery_date=delivery_date,
            status=status,
        )
        for variant, quantity in lines:
            order.lines.append(CustomerOrderLine(variant_id=variant.id, quantity=Decimal(str(quantity))))
        self.db.add(order)
        self.db.flush()
        return order

    def purchase_order(self, supplier, material, ordered, received="0", expected_date=None, status="ordered"):
        po = PurchaseOrder(
            po_number=self._code("EXT"),
            supplier_id=supplier.id,
            status=status,
            expected_date=expected_date,
        )
        po.lines.append(PurchaseOrderLine(
            line_number=1,
            material_id=material.id,
            quantity_ordered=Decimal(ordered),
            quantity_received=Decimal(received),
            unit_cost=Decimal("1"),
            line_total=Decimal(ordered),
        ))
        self.db.add(po)
        self.db.flush()
        return po

    def commit(self):
        self.db.commit()


@pytest.fixture
def data(db_session):
    return PlanningData(db_session)


def seed_scenario(data):
    """
    One product, one variant, fabric at 2 m/unit with 50 m on hand and a
    single supplier with a 25 m MOQ. One order for 100 units on 2026-03-15.
    """
    fabric = data.material(stock="50", name="Jersey fabric")
    supplier = data.supplier(name="Telas del Norte")
    data.link(fabric, supplier, price="3.50", moq="25", lead_time_days=10)
    product = data.product()
    variant = data.variant(product)
    data.common(product, fabric, "2")
    order = data.order(date(2026, 3, 15), [(variant, 100)])
    data.commit()
    return {
        "fabric": fabric,
        "supplier": supplier,
        "product": product,
        "variant": variant,
        "order": order,
    }


@pytest.fixture
def scenario(data):
    return seed_scenario(data)


@pytest.fixture
def session_factory(tmp_path):
    """Sessions on a file database, each with its own connection"""
    file_engine = create_engine(
        f"sqlite:///{tmp_path / 'texplan.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=file_engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=file_engine)
    file_engine.dispose()


@pytest.fixture
def file_scenario(session_factory):
    """The scenario data committed to the file database"""
    db = session_factory()
    try:
        yield seed_scenario(PlanningData(db))
    finally:
        db.close()
