# =============================================================================
# STABILISER COSTING ENGINE - PROCUREMENT MODULE
# =============================================================================
# Procurement plan against on-hand inventory and single-period moving-average
# unit cost.
#
# FORMULAS:
# Gross_requirement[m] = BOM_qty[m] * Forecast_units
# Procure_qty[m]       = MAX(0, Gross_requirement[m] - On_hand[m])
# Spend[m]             = Procure_qty[m] * New_price[m]
# End_qty[m]           = On_hand[m] + Procure_qty[m]
# Average_cost[m]      = (On_hand[m] * Old_cost[m] + Spend[m]) / End_qty[m]
#                        (New_price[m] when End_qty[m] == 0)
# =============================================================================

from dataclasses import dataclass
from typing import Dict, List, Mapping

from .catalog import Material, UnknownMaterialError


@dataclass
class ProcurementEntry:
    """Procurement plan for one material over the simulation horizon."""
    material_id: str
    bom_quantity: float
    gross_requirement: float
    on_hand: float
    procure_quantity: float
    spend: float
    end_quantity: float
    average_cost: float
    old_cost: float = 0.0
    new_price: float = 0.0


def moving_average_cost(
    on_hand: float,
    old_cost: float,
    procure_quantity: float,
    new_price: float
) -> float:
    """
    Blend on-hand value with incoming spend, weighted by quantity.

    Returns new_price when there is neither stock nor procurement. A single
    contributing side returns its price unchanged.
    """
    if on_hand <= 0:
        return new_price
    if procure_quantity <= 0:
        return old_cost
    end_quantity = on_hand + procure_quantity
    return (on_hand * old_cost + procure_quantity * new_price) / end_quantity


def plan_material(material: Material, bom_quantity: float, forecast_units: float) -> ProcurementEntry:
    """Build the procurement entry for a single material."""
    gross_requirement = bom_quantity * forecast_units
    procure_quantity = max(0.0, gross_requirement - material.on_hand)
    return ProcurementEntry(
        material_id=material.material_id,
        bom_quantity=bom_quantity,
        gross_requirement=gross_requirement,
        on_hand=material.on_hand,
        procure_quantity=procure_quantity,
        spend=procure_quantity * material.new_price,
        end_quantity=material.on_hand + procure_quantity,
        average_cost=moving_average_cost(
            material.on_hand, material.old_cost, procure_quantity, material.new_price
        ),
        old_cost=material.old_cost,
        new_price=material.new_price,
    )


def plan_procurement(
    materials: Mapping[str, Material],
    bom_quantities: Mapping[str, float],
    forecast_units: float
) -> List[ProcurementEntry]:
    """
    Calculate the procurement plan for every material.

    Args:
        materials: Material table by material_id (catalog order is kept)
        bom_quantities: Quantity per finished unit by material_id;
                        materials without an entry use 0
        forecast_units: Finished units to build (fractional allowed)

    Returns:
        One ProcurementEntry per material

    Raises:
        UnknownMaterialError: a BOM quantity names a material not in the table
    """
    for material_id in bom_quantities:
        if material_id not in materials:
            raise UnknownMaterialError(material_id, context="procurement plan")

    return [
        plan_material(material, bom_quantities.get(material_id, 0.0), forecast_units)
        for material_id, material in materials.items()
    ]


def average_costs(plan: List[ProcurementEntry]) -> Dict[str, float]:
    """Moving-average unit cost by material_id."""
    return {entry.material_id: entry.average_cost for entry in plan}


def total_spend(plan: List[ProcurementEntry]) -> float:
    """Total procurement spend over the plan."""
    return sum(entry.spend for entry in plan)


def validate_procurement_plan(plan: List[ProcurementEntry]) -> List[str]:
    """
    Validate procurement plan calculations.

    Validations:
        - Procure quantity >= 0
        - End quantity = On hand + Procure quantity
        - End quantity covers the gross requirement
    """
    errors = []
    tolerance = 1e-6

    for entry in plan:
        if entry.procure_quantity < 0:
            errors.append(
                f"Negative procure_quantity for {entry.material_id}: {entry.procure_quantity}"
            )
        if abs(entry.end_quantity - (entry.on_hand + entry.procure_quantity)) > tolerance:
            errors.append(
                f"End quantity mismatch for {entry.material_id}: "
                f"{entry.end_quantity} != {entry.on_hand} + {entry.procure_quantity}"
            )
        if entry.end_quantity + tolerance < entry.gross_requirement:
            errors.append(
                f"Requirement not covered for {entry.material_id}: "
                f"{entry.end_quantity} < {entry.gross_requirement}"
            )

    return errors


# =============================================================================
# END OF PROCUREMENT MODULE
# =============================================================================
