# =============================================================================
# STABILISER COSTING ENGINE - CATALOG MODULE
# =============================================================================
# Static reference data: materials, products, BOM lines, overhead profiles,
# the substitution rule and sample price trends.
#
# Normalized model: one Material table, BOM lines per product reference it
# by material_id. A material's BOM quantity for a product is the sum of its
# line quantities (0 when the product has no line for it).
# =============================================================================

from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Tuple

from .assumptions import get_section


class CatalogReferenceError(KeyError):
    """Raised when an id does not resolve to a catalog entry."""

    def __init__(self, kind: str, ref_id: str, context: str = ""):
        self.kind = kind
        self.ref_id = ref_id
        message = f"Unknown {kind} '{ref_id}'"
        if context:
            message += f" referenced by {context}"
        self.message = message
        super().__init__(message)

    def __str__(self) -> str:
        return self.message


class UnknownProductError(CatalogReferenceError):
    def __init__(self, product_id: str, context: str = ""):
        super().__init__("product", product_id, context)


class UnknownMaterialError(CatalogReferenceError):
    def __init__(self, material_id: str, context: str = ""):
        super().__init__("material", material_id, context)


class UnknownPlantError(CatalogReferenceError):
    def __init__(self, plant: str, context: str = ""):
        super().__init__("plant", plant, context)


@dataclass
class Material:
    """Purchased material with its price and inventory position."""
    material_id: str
    name: str
    unit_of_measure: str
    new_price: float  # current quoted unit price
    old_cost: float  # previous moving-average unit cost
    on_hand: float = 0.0


@dataclass
class Product:
    """Finished product sold at a list price."""
    product_id: str
    name: str
    list_price: float
    target_margin: float  # fraction of list price, in [0, 1)
    plant: str


@dataclass
class BOMLine:
    """Quantity of one material per finished unit."""
    material_id: str
    quantity: float
    unit_of_measure: str = ""


@dataclass
class OverheadProfile:
    """Conversion overheads for a plant."""
    labor_pct_of_direct_material: float = 0.0
    energy_pct_of_direct_material: float = 0.0
    freight_per_unit: float = 0.0
    warranty_pct_of_list_price: float = 0.0


@dataclass
class SubstitutionRule:
    """Replace part of a base material with a substitute material."""
    base_material_id: str
    substitute_material_id: str
    substitution_ratio: float  # substitute qty per unit of base qty removed
    cap_fraction: float  # max share of base qty that may be substituted


@dataclass
class Catalog:
    """Complete reference data for one costing model."""
    materials: Dict[str, Material] = field(default_factory=dict)
    products: Dict[str, Product] = field(default_factory=dict)
    bom: Dict[str, List[BOMLine]] = field(default_factory=dict)
    overheads: Dict[str, OverheadProfile] = field(default_factory=dict)
    substitution_rule: Optional[SubstitutionRule] = None
    price_trends: Dict[str, List[Tuple[str, float]]] = field(default_factory=dict)

    def get_material(self, material_id: str, context: str = "") -> Material:
        """Get material by ID."""
        material = self.materials.get(material_id)
        if material is None:
            raise UnknownMaterialError(material_id, context)
        return material

    def get_product(self, product_id: str) -> Product:
        """Get product by ID."""
        product = self.products.get(product_id)
        if product is None:
            raise UnknownProductError(product_id)
        return product

    def get_overhead(self, plant: str, context: str = "") -> OverheadProfile:
        """Get overhead profile for a plant."""
        profile = self.overheads.get(plant)
        if profile is None:
            raise UnknownPlantError(plant, context)
        return profile

    def get_bom(self, product_id: str) -> List[BOMLine]:
        """
        Get a copy of the BOM lines for a product.

        Every line must reference a known material; the copy can be
        modified without touching the catalog.
        """
        self.get_product(product_id)
        lines = []
        for line in self.bom.get(product_id, []):
            self.get_material(line.material_id, context=f"BOM of {product_id}")
            lines.append(replace(line))
        return lines

    def price_trend(self, material_id: str) -> List[Tuple[str, float]]:
        """Static (period, price) samples for a material."""
        self.get_material(material_id)
        return list(self.price_trends.get(material_id, []))


def load_catalog(assumptions: Dict) -> Catalog:
    """
    Load catalog definitions from assumptions.

    Args:
        assumptions: Full assumptions dictionary

    Returns:
        Catalog with materials, products, BOM, overheads, substitution rule
        and price trends

    Expected structure in assumptions:
        materials:
          by_material:
            <material_id>: {name, unit_of_measure, new_price, old_cost, on_hand}
        products:
          by_product:
            <product_id>: {name, list_price, target_margin, plant}
        bom:
          by_product:
            <product_id>:
              lines:
                - {material_id, quantity, unit_of_measure}
        overheads:
          by_plant:
            <plant>: {labor_pct_of_direct_material, ...}
        substitution: {base_material_id, substitute_material_id,
                       substitution_ratio, cap_fraction}
        price_trends:
          by_material:
            <material_id>: [{period, price}, ...]
    """
    catalog = Catalog()

    by_material = get_section(assumptions, "materials", "by_material")
    for material_id, data in by_material.items():
        catalog.materials[material_id] = Material(
            material_id=material_id,
            name=data.get("name", material_id),
            unit_of_measure=data.get("unit_of_measure", ""),
            new_price=float(data.get("new_price", 0.0)),
            old_cost=float(data.get("old_cost", data.get("new_price", 0.0))),
            on_hand=float(data.get("on_hand", 0.0)),
        )

    by_product = get_section(assumptions, "products", "by_product")
    for product_id, data in by_product.items():
        catalog.products[product_id] = Product(
            product_id=product_id,
            name=data.get("name", product_id),
            list_price=float(data.get("list_price", 0.0)),
            target_margin=float(data.get("target_margin", 0.0)),
            plant=data.get("plant", ""),
        )

    for product_id, data in get_section(assumptions, "bom", "by_product").items():
        lines = []
        for line_data in data.get("lines", []):
            material_id = line_data.get("material_id", "")
            uom = line_data.get("unit_of_measure")
            if uom is None and material_id in catalog.materials:
                uom = catalog.materials[material_id].unit_of_measure
            lines.append(BOMLine(
                material_id=material_id,
                quantity=float(line_data.get("quantity", 0.0)),
                unit_of_measure=uom or "",
            ))
        catalog.bom[product_id] = lines

    for plant, data in get_section(assumptions, "overheads", "by_plant").items():
        catalog.overheads[plant] = OverheadProfile(
            labor_pct_of_direct_material=float(data.get("labor_pct_of_direct_material", 0.0)),
            energy_pct_of_direct_material=float(data.get("energy_pct_of_direct_material", 0.0)),
            freight_per_unit=float(data.get("freight_per_unit", 0.0)),
            warranty_pct_of_list_price=float(data.get("warranty_pct_of_list_price", 0.0)),
        )

    rule = get_section(assumptions, "substitution")
    if rule:
        catalog.substitution_rule = SubstitutionRule(
            base_material_id=rule.get("base_material_id", ""),
            substitute_material_id=rule.get("substitute_material_id", ""),
            substitution_ratio=float(rule.get("substitution_ratio", 1.0)),
            cap_fraction=float(rule.get("cap_fraction", 0.0)),
        )

    for material_id, points in get_section(assumptions, "price_trends", "by_material").items():
        catalog.price_trends[material_id] = [
            (str(point.get("period", "")), float(point.get("price", 0.0)))
            for point in points
        ]

    return catalog


def validate_catalog(catalog: Catalog) -> List[str]:
    """
    Validate catalog completeness and constraints.

    Args:
        catalog: Loaded catalog

    Returns:
        List of validation errors (empty if valid)

    Validations:
        - Prices and on-hand quantities >= 0
        - List price >= 0, target margin in [0, 1)
        - Every product has a known plant and >= 1 BOM line
        - BOM quantities >= 0 and BOM lines reference known materials
        - Substitution rule references known materials, cap in [0, 1]
    """
    errors = []

    for material_id, material in catalog.materials.items():
        if material.new_price < 0:
            errors.append(f"Negative new_price for material {material_id}: {material.new_price}")
        if material.old_cost < 0:
            errors.append(f"Negative old_cost for material {material_id}: {material.old_cost}")
        if material.on_hand < 0:
            errors.append(f"Negative on_hand for material {material_id}: {material.on_hand}")

    for product_id, product in catalog.products.items():
        if product.list_price < 0:
            errors.append(f"Negative list_price for product {product_id}: {product.list_price}")
        if product.target_margin < 0 or product.target_margin >= 1:
            errors.append(
                f"target_margin out of range for product {product_id}: "
                f"{product.target_margin} (must be in [0, 1))"
            )
        if product.plant not in catalog.overheads:
            errors.append(f"Unknown plant '{product.plant}' for product {product_id}")
        if not catalog.bom.get(product_id):
            errors.append(f"Product {product_id} has no lines in BOM")

    for product_id, lines in catalog.bom.items():
        if product_id not in catalog.products:
            errors.append(f"BOM defined for unknown product {product_id}")
        for line in lines:
            if line.material_id not in catalog.materials:
                errors.append(f"Unknown material '{line.material_id}' in BOM of {product_id}")
            if line.quantity < 0:
                errors.append(
                    f"Negative quantity for {product_id}/{line.material_id}: {line.quantity}"
                )

    for plant, profile in catalog.overheads.items():
        for name, value in vars(profile).items():
            if value < 0:
                errors.append(f"Negative overhead {name} for plant {plant}: {value}")

    rule = catalog.substitution_rule
    if rule is not None:
        for material_id in (rule.base_material_id, rule.substitute_material_id):
            if material_id not in catalog.materials:
                errors.append(f"Unknown material '{material_id}' in substitution rule")
        if rule.cap_fraction < 0 or rule.cap_fraction > 1:
            errors.append(f"Substitution cap_fraction out of range: {rule.cap_fraction}")
        if rule.substitution_ratio < 0:
            errors.append(f"Negative substitution_ratio: {rule.substitution_ratio}")

    return errors


def bom_quantities(lines: List[BOMLine]) -> Dict[str, float]:
    """
    Sum BOM line quantities by material.

    Args:
        lines: BOM lines for one product

    Returns:
        Dict mapping material_id to quantity per finished unit
    """
    result: Dict[str, float] = {}
    for line in lines:
        result[line.material_id] = result.get(line.material_id, 0.0) + line.quantity
    return result


# =============================================================================
# END OF CATALOG MODULE
# =============================================================================
