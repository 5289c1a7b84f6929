# =============================================================================
# STABILISER COSTING ENGINE - COST AGGREGATION MODULE
# =============================================================================
# Combines material costs with plant overheads into total unit cost, margin
# and a recommended selling price.
#
# FORMULAS:
# DM              = SUM_m(BOM_qty[m] * Unit_cost[m])
# Labor           = DM * Labor_pct
# Energy          = DM * Energy_pct
# Freight         = Freight_per_unit
# Warranty        = List_price * Warranty_pct
# Total_cost      = DM + Labor + Energy + Freight + Warranty
# Margin          = List_price - Total_cost
# Margin_pct      = Margin / List_price              (0 when List_price == 0)
# Recommended_SP  = Total_cost / (1 - Target_margin) (Total_cost when >= 1)
#
# No rounding is applied here.
# =============================================================================

from dataclasses import dataclass, field, replace
from typing import Dict, List, Mapping, Optional, Tuple

from .catalog import BOMLine, OverheadProfile, UnknownMaterialError, bom_quantities
from .procurement import ProcurementEntry

OVERHEAD_FIELDS = (
    "labor_pct_of_direct_material",
    "energy_pct_of_direct_material",
    "freight_per_unit",
    "warranty_pct_of_list_price",
)


@dataclass
class SimulationResult:
    """Output structure for one costing simulation."""
    product_id: str = ""
    mode: str = "procurement"

    # Unit cost build-up
    direct_material_cost: float = 0.0
    labor: float = 0.0
    energy: float = 0.0
    freight: float = 0.0
    warranty: float = 0.0
    total_cost: float = 0.0

    # Pricing
    list_price: float = 0.0
    margin_amount: float = 0.0
    margin_pct: float = 0.0
    target_margin: float = 0.0
    recommended_selling_price: float = 0.0

    # Inputs actually used
    substitution_fraction: float = 0.0
    bom_lines: List[BOMLine] = field(default_factory=list)
    unit_costs: Dict[str, float] = field(default_factory=dict)
    procurement_plan: List[ProcurementEntry] = field(default_factory=list)

    def line_costs(self) -> List[Tuple[BOMLine, float, float]]:
        """(line, unit cost, line cost) for every BOM line."""
        rows = []
        for line in self.bom_lines:
            unit_cost = self.unit_costs.get(line.material_id, 0.0)
            rows.append((line, unit_cost, line.quantity * unit_cost))
        return rows


def resolve_overheads(
    profile: OverheadProfile,
    overrides: Optional[Mapping[str, float]] = None
) -> OverheadProfile:
    """
    Apply per-simulation overhead overrides on top of a plant profile.

    Fields missing from overrides, or set to None, keep the profile value.
    """
    if not overrides:
        return profile
    unknown = [name for name in overrides if name not in OVERHEAD_FIELDS]
    if unknown:
        raise ValueError(f"Unknown overhead field(s): {', '.join(unknown)}")
    values = {name: float(value) for name, value in overrides.items() if value is not None}
    return replace(profile, **values)


def calculate_direct_material_cost(
    quantities: Mapping[str, float],
    unit_costs: Mapping[str, float]
) -> float:
    """
    Direct material cost per finished unit.

    Args:
        quantities: BOM quantity per unit by material_id
        unit_costs: Unit cost by material_id

    Raises:
        UnknownMaterialError: a BOM material has no unit cost
    """
    total = 0.0
    for material_id, quantity in quantities.items():
        if material_id not in unit_costs:
            raise UnknownMaterialError(material_id, context="unit costs")
        total += quantity * unit_costs[material_id]
    return total


def calculate_margin(list_price: float, total_cost: float) -> Tuple[float, float]:
    """Margin amount and margin as a fraction of list price."""
    margin_amount = list_price - total_cost
    margin_pct = margin_amount / list_price if list_price > 0 else 0.0
    return margin_amount, margin_pct


def recommended_selling_price(total_cost: float, target_margin: float) -> float:
    """Price that earns target_margin on total_cost."""
    if target_margin < 1:
        return total_cost / (1 - target_margin)
    return total_cost


def aggregate_costs(
    bom_lines: List[BOMLine],
    unit_costs: Mapping[str, float],
    overheads: OverheadProfile,
    list_price: float,
    target_margin: float
) -> SimulationResult:
    """
    Main cost aggregation.

    Args:
        bom_lines: BOM lines after substitution
        unit_costs: Unit cost by material_id (moving average or shocked price)
        overheads: Resolved overhead profile
        list_price: Selling price per unit
        target_margin: Desired margin fraction

    Returns:
        SimulationResult with the cost build-up; product_id, mode and the
        procurement plan are filled in by the caller
    """
    result = SimulationResult()

    result.direct_material_cost = calculate_direct_material_cost(
        bom_quantities(bom_lines), unit_costs
    )
    result.labor = result.direct_material_cost * overheads.labor_pct_of_direct_material
    result.energy = result.direct_material_cost * overheads.energy_pct_of_direct_material
    result.freight = overheads.freight_per_unit
    result.warranty = list_price * overheads.warranty_pct_of_list_price
    result.total_cost = (
        result.direct_material_cost
        + result.labor
        + result.energy
        + result.freight
        + result.warranty
    )

    result.list_price = list_price
    result.target_margin = target_margin
    result.margin_amount, result.margin_pct = calculate_margin(list_price, result.total_cost)
    result.recommended_selling_price = recommended_selling_price(result.total_cost, target_margin)

    result.bom_lines = [replace(line) for line in bom_lines]
    result.unit_costs = {
        line.material_id: unit_costs[line.material_id] for line in bom_lines
    }

    return result


def validate_simulation_result(result: SimulationResult) -> List[str]:
    """
    Validate aggregation output.

    Validations:
        - Total cost = DM + Labor + Energy + Freight + Warranty
        - Margin amount + Total cost = List price
        - Recommended price * (1 - Target margin) = Total cost
    """
    errors = []
    tolerance = 1e-6

    expected_total = (
        result.direct_material_cost + result.labor + result.energy
        + result.freight + result.warranty
    )
    if abs(result.total_cost - expected_total) > tolerance:
        errors.append(f"Total cost mismatch: {result.total_cost} != {expected_total}")

    if abs(result.margin_amount + result.total_cost - result.list_price) > tolerance:
        errors.append(
            f"Margin identity violated: {result.margin_amount} + {result.total_cost} "
            f"!= {result.list_price}"
        )

    if result.target_margin < 1:
        back_solved = result.recommended_selling_price * (1 - result.target_margin)
        if abs(back_solved - result.total_cost) > tolerance * max(1.0, abs(result.total_cost)):
            errors.append(
                f"Recommended price does not invert to total cost: {back_solved} != {result.total_cost}"
            )

    return errors


# =============================================================================
# END OF COST AGGREGATION MODULE
# =============================================================================
