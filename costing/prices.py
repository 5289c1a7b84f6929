# =============================================================================
# STABILISER COSTING ENGINE - PRICES MODULE
# =============================================================================
# Applies price shocks and user-edited material fields to catalog data.
#
# FORMULA:
# Effective_price[m] = New_price[m] * (1 + Shock[m])
# =============================================================================

from dataclasses import replace
from typing import Dict, Mapping

from .catalog import Catalog, Material, UnknownMaterialError

EDITABLE_MATERIAL_FIELDS = ("name", "unit_of_measure", "new_price", "old_cost", "on_hand")


def effective_price(material: Material, shock: float = 0.0) -> float:
    """Latest price of a material after a fractional shock (0.1 = +10%)."""
    return material.new_price * (1 + shock)


def calculate_effective_prices(
    materials: Mapping[str, Material],
    price_shocks: Mapping[str, float]
) -> Dict[str, float]:
    """
    Calculate shocked prices for all materials.

    Args:
        materials: Material table by material_id
        price_shocks: Fractional shock by material_id; missing ids get 0

    Returns:
        Dict mapping material_id to effective unit price

    Raises:
        UnknownMaterialError: a shock names a material not in the table
    """
    for material_id in price_shocks:
        if material_id not in materials:
            raise UnknownMaterialError(material_id, context="price shocks")

    return {
        material_id: effective_price(material, price_shocks.get(material_id, 0.0))
        for material_id, material in materials.items()
    }


def shock_materials(
    materials: Mapping[str, Material],
    price_shocks: Mapping[str, float]
) -> Dict[str, Material]:
    """Copy of the material table with new_price replaced by the shocked price."""
    prices = calculate_effective_prices(materials, price_shocks)
    return {
        material_id: replace(material, new_price=prices[material_id])
        for material_id, material in materials.items()
    }


def apply_material_overrides(
    catalog: Catalog,
    overrides: Mapping[str, Mapping[str, object]]
) -> Catalog:
    """
    Apply user-edited material fields without mutating the catalog.

    Args:
        catalog: Source catalog
        overrides: Field values by material_id, e.g.
                   {"M_COPPER": {"new_price": 880, "on_hand": 1000}}

    Returns:
        New Catalog sharing everything but the material table

    Raises:
        UnknownMaterialError: override for a material not in the catalog
        ValueError: override for a field that cannot be edited
    """
    if not overrides:
        return catalog

    materials = dict(catalog.materials)
    for material_id, fields in overrides.items():
        material = catalog.get_material(material_id, context="material overrides")
        unknown = [name for name in fields if name not in EDITABLE_MATERIAL_FIELDS]
        if unknown:
            raise ValueError(
                f"Cannot override field(s) {', '.join(unknown)} of material {material_id}"
            )
        values = {}
        for name, value in fields.items():
            values[name] = value if name in ("name", "unit_of_measure") else float(value)
        materials[material_id] = replace(material, **values)

    return replace(catalog, materials=materials)


# =============================================================================
# END OF PRICES MODULE
# =============================================================================
