"""
SQLAlchemy models

Importing this package registers every table on Base.metadata.
"""
from texplan.models.product import Product, ProductVariant
from texplan.models.material import Material
from texplan.models.supplier import Supplier, SupplierMaterial
from texplan.models.bom import BOMCommonEntry, BOMVariationEntry
from texplan.models.customer_order import CustomerOrder, CustomerOrderLine
from texplan.models.purchase_order import PurchaseOrder, PurchaseOrderLine
from texplan.models.mrp import (
    PlanningRun,
    PlanningRunOrder,
    PlanningRunRequirement,
    PurchaseSuggestion,
    PurchaseSuggestionLine,
)

__all__ = [
    "Product",
    "ProductVariant",
    "Material",
    "Supplier",
    "SupplierMaterial",
    "BOMCommonEntry",
    "BOMVariationEntry",
    "CustomerOrder",
    "CustomerOrderLine",
    "PurchaseOrder",
    "PurchaseOrderLine",
    "PlanningRun",
    "PlanningRunOrder",
    "PlanningRunRequirement",
    "PurchaseSuggestion",
    "PurchaseSuggestionLine",
]
