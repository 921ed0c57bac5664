"""
BOM Resolver

Merges the two BOM layers for a product variant:
1. common entries of the variant's product
2. variation entries of the exact variant, replacing the common entry for
   the same material in place, or appended when the material is new
"""
from typing import Dict, Iterable, List, Mapping, Tuple

from texplan.exceptions import BOMNotFoundError
from texplan.services.planning_types import BOMEntry, PlanningSnapshot, ZERO


def _merge_layer(entries: Iterable[BOMEntry]) -> Dict[int, BOMEntry]:
    """Collapse one layer to a single entry per material, summing repeats"""
    layer: Dict[int, BOMEntry] = {}
    for entry in entries:
        existing = layer.get(entry.material_id)
        if existing is not None:
            entry = BOMEntry(
                material_id=entry.material_id,
                quantity_per_unit=existing.quantity_per_unit + entry.quantity_per_unit,
                unit=existing.unit,
                scrap_factor=existing.scrap_factor,
            )
        layer[entry.material_id] = entry
    return layer


class BOMResolver:
    """Resolves the effective bill of materials of product variants"""

    def __init__(
        self,
        variant_products: Mapping[int, int],
        bom_common: Mapping[int, Tuple[BOMEntry, ...]],
        bom_variations: Mapping[int, Tuple[BOMEntry, ...]],
    ):
        self.variant_products = variant_products
        self.bom_common = bom_common
        self.bom_variations = bom_variations
        self._cache: Dict[int, List[BOMEntry]] = {}

    @classmethod
    def from_snapshot(cls, snapshot: PlanningSnapshot) -> "BOMResolver":
        return cls(snapshot.variant_products, snapshot.bom_common, snapshot.bom_variations)

    def resolve(self, variant_id: int) -> List[BOMEntry]:
        """
        Return the merged BOM lines for a variant.

        Order is common entries first (in catalog order), then
        variant-only materials.

        Raises:
            BOMNotFoundError: variant unknown, or neither layer has entries
        """
        if variant_id in self._cache:
            return list(self._cache[variant_id])

        product_id = self.variant_products.get(variant_id)
        if product_id is None:
            raise BOMNotFoundError(variant_id)

        merged = _merge_layer(self.bom_common.get(product_id, ()))
        overrides = _merge_layer(self.bom_variations.get(variant_id, ()))

        # dict keeps insertion order, so replaced materials keep their slot.
        # A zero-quantity variation entry removes the material from the variant.
        merged.update(overrides)
        merged = {mid: entry for mid, entry in merged.items() if entry.quantity_per_unit > ZERO}

        if not merged:
            raise BOMNotFoundError(variant_id, product_id)

        lines = list(merged.values())
        self._cache[variant_id] = lines
        return list(lines)
