# =============================================================================
# STABILISER COSTING ENGINE - SIMULATION ENGINE
# =============================================================================
# Runs one costing simulation for one product.
#
# EXECUTION ORDER:
# 1. Apply user material overrides (copy of the catalog)
# 2. Resolve product, list price, target margin and overheads
# 3. Apply the substitution rule to the product BOM
# 4. Apply price shocks
# 5. Unit costs: moving average from the procurement plan ("procurement")
#    or shocked latest price ("price_shock")
# 6. Aggregate costs, margin and recommended selling price
#
# Pure: the catalog and the inputs are never modified.
# =============================================================================

import logging
from dataclasses import dataclass, field
from typing import Dict, Optional

from .aggregation import SimulationResult, aggregate_costs, resolve_overheads
from .assumptions import SIMULATION_MODES, get_section
from .catalog import Catalog, bom_quantities
from .prices import apply_material_overrides, shock_materials
from .procurement import average_costs, plan_procurement
from .substitution import apply_substitution, effective_fraction

logger = logging.getLogger(__name__)


@dataclass
class SimulationInput:
    """Everything a caller can vary between two simulations."""
    product_id: str
    mode: str = "procurement"  # procurement | price_shock
    forecast_units: float = 0.0
    price_shocks: Dict[str, float] = field(default_factory=dict)
    substitution_fraction: float = 0.0
    overhead_overrides: Dict[str, float] = field(default_factory=dict)
    list_price_override: Optional[float] = None
    target_margin_override: Optional[float] = None
    material_overrides: Dict[str, Dict[str, object]] = field(default_factory=dict)


def simulation_input_from_assumptions(assumptions: Dict) -> SimulationInput:
    """
    Build simulation inputs from the 'simulation' section of assumptions.

    Expected structure:
        simulation:
          product_id: str
          mode: procurement | price_shock
          forecast_units: float
          substitution_fraction: float
          price_shocks: {<material_id>: float}
          overhead_overrides: {<overhead field>: float}
          list_price_override: float | null
          target_margin_override: float | null
          material_overrides: {<material_id>: {<field>: value}}
    """
    data = get_section(assumptions, "simulation")
    product_id = data.get("product_id")
    if product_id is None:
        products = get_section(assumptions, "products", "by_product")
        product_id = next(iter(products), "")

    list_price = data.get("list_price_override")
    target_margin = data.get("target_margin_override")
    return SimulationInput(
        product_id=product_id,
        mode=data.get("mode", "procurement"),
        forecast_units=float(data.get("forecast_units", 0.0)),
        price_shocks={k: float(v) for k, v in (data.get("price_shocks") or {}).items()},
        substitution_fraction=float(data.get("substitution_fraction", 0.0)),
        overhead_overrides={
            k: float(v) for k, v in (data.get("overhead_overrides") or {}).items() if v is not None
        },
        list_price_override=float(list_price) if list_price is not None else None,
        target_margin_override=float(target_margin) if target_margin is not None else None,
        material_overrides=dict(data.get("material_overrides") or {}),
    )


def compute_simulation(catalog: Catalog, inputs: SimulationInput) -> SimulationResult:
    """
    Compute unit cost, margin and recommended price for one product.

    Args:
        catalog: Reference data (not modified)
        inputs: Product, mode and all per-simulation overrides

    Returns:
        SimulationResult

    Raises:
        CatalogReferenceError: unknown product, material or plant
        ValueError: unknown mode or unknown override field
    """
    if inputs.mode not in SIMULATION_MODES:
        raise ValueError(
            f"Unknown simulation mode '{inputs.mode}' (expected one of {', '.join(SIMULATION_MODES)})"
        )

    # 1-2. Overrides, product and overheads
    catalog = apply_material_overrides(catalog, inputs.material_overrides)
    product = catalog.get_product(inputs.product_id)
    profile = catalog.get_overhead(product.plant, context=f"product {product.product_id}")
    overheads = resolve_overheads(profile, inputs.overhead_overrides)

    list_price = product.list_price
    if inputs.list_price_override is not None:
        list_price = inputs.list_price_override
    target_margin = product.target_margin
    if inputs.target_margin_override is not None:
        target_margin = inputs.target_margin_override

    # 3. Substitution
    lines = catalog.get_bom(product.product_id)
    applied_fraction = 0.0
    rule = catalog.substitution_rule
    if inputs.substitution_fraction > 0:
        if rule is None:
            logger.warning("Substitution requested but catalog has no substitution rule")
        else:
            lines = apply_substitution(lines, rule, inputs.substitution_fraction, catalog.materials)
            applied_fraction = max(0.0, effective_fraction(inputs.substitution_fraction, rule))

    # 4. Price shocks
    materials = shock_materials(catalog.materials, inputs.price_shocks)

    # 5. Unit costs
    plan = []
    if inputs.mode == "procurement":
        plan = plan_procurement(materials, bom_quantities(lines), inputs.forecast_units)
        unit_costs = average_costs(plan)
    else:
        unit_costs = {material_id: m.new_price for material_id, m in materials.items()}

    # 6. Aggregate
    result = aggregate_costs(lines, unit_costs, overheads, list_price, target_margin)
    result.product_id = product.product_id
    result.mode = inputs.mode
    result.substitution_fraction = applied_fraction
    result.procurement_plan = plan

    logger.debug(
        "Simulated %s (%s): DM=%.2f total=%.2f margin=%.4f",
        product.product_id, inputs.mode, result.direct_material_cost,
        result.total_cost, result.margin_pct,
    )
    return result


# =============================================================================
# END OF SIMULATION ENGINE
# =============================================================================
