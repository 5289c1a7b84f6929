# =============================================================================
# STABILISER COSTING ENGINE - SUBSTITUTION MODULE
# =============================================================================
# Replaces part of a base material (copper) with a substitute (aluminium).
#
# FORMULAS:
# Effective_fraction = MIN(Requested_fraction, Cap_fraction)
# Base_qty'          = Base_qty * (1 - Effective_fraction)
# Substitute_qty    += Base_qty * Effective_fraction * Substitution_ratio
# =============================================================================

import logging
from dataclasses import replace
from typing import List, Mapping, Optional

from .catalog import BOMLine, Material, SubstitutionRule, UnknownMaterialError

logger = logging.getLogger(__name__)


def effective_fraction(requested_fraction: float, rule: SubstitutionRule) -> float:
    """Requested fraction clamped to the rule's cap."""
    return min(requested_fraction, rule.cap_fraction)


def apply_substitution(
    lines: List[BOMLine],
    rule: SubstitutionRule,
    requested_fraction: float,
    materials: Optional[Mapping[str, Material]] = None
) -> List[BOMLine]:
    """
    Apply a capped substitution to a BOM line set.

    Args:
        lines: BOM lines for one product (not modified)
        rule: Substitution rule (base, substitute, ratio, cap)
        requested_fraction: Share of base quantity to substitute
        materials: Material table, used for the unit of measure of a newly
                   added substitute line

    Returns:
        New list of BOM lines

    Notes:
        - Fractions above the cap are clamped without error
        - Fraction <= 0, or no base line, returns the lines unchanged
        - An existing substitute line is topped up, otherwise a line is appended
    """
    result = [replace(line) for line in lines]

    fraction = effective_fraction(requested_fraction, rule)
    if fraction <= 0:
        return result
    if fraction < requested_fraction:
        logger.debug(
            "Substitution fraction %.4f clamped to cap %.4f", requested_fraction, fraction
        )

    base_quantity = 0.0
    has_base = False
    for line in result:
        if line.material_id == rule.base_material_id:
            has_base = True
            base_quantity += line.quantity
            line.quantity = line.quantity * (1 - fraction)

    if not has_base:
        return result

    substitute_quantity = base_quantity * fraction * rule.substitution_ratio

    for line in result:
        if line.material_id == rule.substitute_material_id:
            line.quantity += substitute_quantity
            return result

    unit_of_measure = ""
    if materials is not None:
        substitute = materials.get(rule.substitute_material_id)
        if substitute is None:
            raise UnknownMaterialError(rule.substitute_material_id, context="substitution rule")
        unit_of_measure = substitute.unit_of_measure

    result.append(BOMLine(
        material_id=rule.substitute_material_id,
        quantity=substitute_quantity,
        unit_of_measure=unit_of_measure,
    ))
    return result


# =============================================================================
# END OF SUBSTITUTION MODULE
# =============================================================================
