"""
Planning Snapshot Loader

Reads everything a planning run needs exactly once, at run start, through
three narrow collaborator interfaces:

- OrderSource: customer order lines inside the horizon
- StockLedger: on-hand stock and open purchase-order receipts
- Catalog: variant -> product mapping, both BOM layers, supplier relationships

The SQLAlchemy implementations below are the production adapters; tests can
pass any object with the same methods.
"""
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional, Protocol, Sequence, Tuple

from sqlalchemy.orm import Session

from texplan.core.settings import settings
from texplan.logging_config import get_logger
from texplan.models.bom import BOMCommonEntry, BOMVariationEntry
from texplan.models.customer_order import CustomerOrder, CustomerOrderLine, TERMINAL_ORDER_STATUSES
from texplan.models.material import Material
from texplan.models.product import ProductVariant
from texplan.models.purchase_order import OPEN_PO_STATUSES, PurchaseOrder, PurchaseOrderLine
from texplan.models.supplier import SupplierMaterial
from texplan.services.planning_types import (
    BOMEntry, ONE, OpenReceipt, OrderLineInput, PlanningSnapshot, SupplierOption, ZERO,
)

logger = get_logger(__name__)


# ============================================================================
# Collaborator interfaces
# ============================================================================

class OrderSource(Protocol):
    def list_order_lines(self, start: date, end: date) -> List[OrderLineInput]:
        ...


class StockLedger(Protocol):
    def current_stock(self, material_id: int) -> Decimal:
        ...

    def open_receipts(self, material_id: int) -> List[OpenReceipt]:
        ...


class Catalog(Protocol):
    def variant_product(self, variant_id: int) -> Optional[int]:
        ...

    def bom_common(self, product_id: int) -> List[BOMEntry]:
        ...

    def bom_variation(self, variant_id: int) -> List[BOMEntry]:
        ...

    def supplier_relationships(self, material_id: int) -> List[SupplierOption]:
        ...

    def material_yield(self, material_id: int) -> Decimal:
        ...


# ============================================================================
# SQLAlchemy adapters
# ============================================================================

def _decimal(value) -> Decimal:
    if value is None:
        return ZERO
    return value if isinstance(value, Decimal) else Decimal(str(value))


def _bom_entry(row) -> BOMEntry:
    return BOMEntry(
        material_id=row.material_id,
        quantity_per_unit=_decimal(row.quantity_per_unit),
        unit=row.unit,
        scrap_factor=_decimal(row.scrap_factor),
    )


class SqlOrderSource:
    """Customer order lines whose delivery date falls in [start, end]"""

    def __init__(self, db: Session):
        self.db = db

    def list_order_lines(self, start: date, end: date) -> List[OrderLineInput]:
        rows = (
            self.db.query(CustomerOrderLine, CustomerOrder)
            .join(CustomerOrder, CustomerOrderLine.order_id == CustomerOrder.id)
            .filter(
                CustomerOrder.delivery_date >= start,
                CustomerOrder.delivery_date <= end,
                CustomerOrder.status.notin_(TERMINAL_ORDER_STATUSES),
            )
            .order_by(CustomerOrder.delivery_date, CustomerOrder.id, CustomerOrderLine.id)
            .all()
        )
        return [
            OrderLineInput(
                order_id=order.id,
                order_line_id=line.id,
                variant_id=line.variant_id,
                quantity=_decimal(line.quantity),
                need_by_date=order.delivery_date,
                order_status=order.status,
            )
            for line, order in rows
        ]


class SqlStockLedger:
    def __init__(self, db: Session):
        self.db = db

    def current_stock(self, material_id: int) -> Decimal:
        material = self.db.query(Material).filter(Material.id == material_id).first()
        if not material:
            return ZERO
        return _decimal(material.stock_on_hand)

    def open_receipts(self, material_id: int) -> List[OpenReceipt]:
        """Outstanding quantities on draft, ordered or shipped purchase orders"""
        rows = (
            self.db.query(PurchaseOrderLine, PurchaseOrder.expected_date)
            .join(PurchaseOrder, PurchaseOrderLine.purchase_order_id == PurchaseOrder.id)
            .filter(
                PurchaseOrderLine.material_id == material_id,
                PurchaseOrder.status.in_(OPEN_PO_STATUSES),
            )
            .order_by(PurchaseOrder.expected_date, PurchaseOrderLine.id)
            .all()
        )
        receipts = []
        for line, expected_date in rows:
            outstanding = _decimal(line.quantity_ordered) - _decimal(line.quantity_received)
            if outstanding > ZERO:
                receipts.append(OpenReceipt(quantity=outstanding, expected_date=expected_date))
        return receipts


class SqlCatalog:
    def __init__(self, db: Session):
        self.db = db

    def variant_product(self, variant_id: int) -> Optional[int]:
        variant = self.db.query(ProductVariant).filter(ProductVariant.id == variant_id).first()
        return variant.product_id if variant else None

    def bom_common(self, product_id: int) -> List[BOMEntry]:
        rows = (
            self.db.query(BOMCommonEntry)
            .filter(BOMCommonEntry.product_id == product_id)
            .order_by(BOMCommonEntry.sequence, BOMCommonEntry.id)
            .all()
        )
        return [_bom_entry(row) for row in rows]

    def bom_variation(self, variant_id: int) -> List[BOMEntry]:
        rows = (
            self.db.query(BOMVariationEntry)
            .filter(BOMVariationEntry.variant_id == variant_id)
            .order_by(BOMVariationEntry.sequence, BOMVariationEntry.id)
            .all()
        )
        return [_bom_entry(row) for row in rows]

    def supplier_relationships(self, material_id: int) -> List[SupplierOption]:
        rows = (
            self.db.query(SupplierMaterial)
            .filter(SupplierMaterial.material_id == material_id)
            .order_by(SupplierMaterial.supplier_id)
            .all()
        )
        return [
            SupplierOption(
                supplier_id=row.supplier_id,
                material_id=row.material_id,
                unit_price=_decimal(row.unit_price),
                min_order_qty=_decimal(row.min_order_qty),
                lead_time_days=row.lead_time_days or 0,
                is_preferred=bool(row.is_preferred),
            )
            for row in rows
        ]

    def material_yield(self, material_id: int) -> Decimal:
        yield_factor = (
            self.db.query(Material.yield_factor).filter(Material.id == material_id).scalar()
        )
        return _decimal(yield_factor) if yield_factor is not None else ONE


# ============================================================================
# Snapshot assembly
# ============================================================================

def build_snapshot(
    orders: OrderSource,
    stock: StockLedger,
    catalog: Catalog,
    start: date,
    end: date,
    as_of: date,
) -> PlanningSnapshot:
    """
    Read orders, BOMs, stock, receipts and supplier relationships once.

    Only the variants, products and materials reachable from the order lines
    are loaded.
    """
    order_lines = tuple(orders.list_order_lines(start, end))

    variant_products: Dict[int, int] = {}
    bom_variations: Dict[int, Tuple[BOMEntry, ...]] = {}
    for variant_id in dict.fromkeys(line.variant_id for line in order_lines):
        product_id = catalog.variant_product(variant_id)
        if product_id is None:
            continue
        variant_products[variant_id] = product_id
        bom_variations[variant_id] = tuple(catalog.bom_variation(variant_id))

    bom_common: Dict[int, Tuple[BOMEntry, ...]] = {
        product_id: tuple(catalog.bom_common(product_id))
        for product_id in dict.fromkeys(variant_products.values())
    }

    material_ids = _material_ids(list(bom_common.values()) + list(bom_variations.values()))

    snapshot = PlanningSnapshot(
        as_of=as_of,
        order_lines=order_lines,
        variant_products=variant_products,
        bom_common=bom_common,
        bom_variations=bom_variations,
        stock={material_id: stock.current_stock(material_id) for material_id in material_ids},
        open_receipts={material_id: tuple(stock.open_receipts(material_id)) for material_id in material_ids},
        supplier_options={
            material_id: tuple(catalog.supplier_relationships(material_id)) for material_id in material_ids
        },
        material_yields={material_id: catalog.material_yield(material_id) for material_id in material_ids},
    )

    logger.debug(
        "Planning snapshot loaded",
        extra={
            "order_lines": len(order_lines),
            "variants": len(variant_products),
            "materials": len(material_ids),
        },
    )
    return snapshot


def _material_ids(layers: Sequence[Tuple[BOMEntry, ...]]) -> List[int]:
    return sorted({entry.material_id for layer in layers for entry in layer})


def begin_snapshot(db: Session) -> Optional[str]:
    """
    Open the snapshot transaction at PLANNING_SNAPSHOT_ISOLATION.

    Stock and open receipts are read with separate statements; under READ
    COMMITTED a receipt posted between them would be counted twice or not at
    all. Must run before the session's transaction issues its first
    statement. SQLite serializes writers and has no such level, so it is
    left alone.

    Returns:
        the isolation level applied, or None
    """
    level = settings.PLANNING_SNAPSHOT_ISOLATION
    if not level or db.get_bind().dialect.name == "sqlite":
        return None
    db.connection(execution_options={"isolation_level": level})
    return level


def load_snapshot(db: Session, start: date, end: date, as_of: date) -> PlanningSnapshot:
    """Build a snapshot through the SQLAlchemy adapters inside one consistent read"""
    level = begin_snapshot(db)
    if level:
        logger.debug("Planning snapshot isolation", extra={"isolation_level": level})
    return build_snapshot(
        SqlOrderSource(db),
        SqlStockLedger(db),
        SqlCatalog(db),
        start,
        end,
        as_of,
    )
