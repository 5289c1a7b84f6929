# =============================================================================
# STABILISER COSTING ENGINE - VALIDATION REPORT GENERATOR
# =============================================================================
# Checks the numeric invariants of a simulation result.
# =============================================================================

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from .aggregation import SimulationResult, validate_simulation_result
from .procurement import validate_procurement_plan


@dataclass
class CheckResult:
    """Result of a single check."""
    name: str
    passed: bool
    message: str = ""
    variance: Optional[float] = None


@dataclass
class ValidationReport:
    """Complete validation report."""
    timestamp: str = ""
    scenario_id: str = ""
    product_id: str = ""

    checks: Dict[str, List[CheckResult]] = field(default_factory=dict)

    total_passed: int = 0
    total_failed: int = 0
    overall_passed: bool = False


def check_aggregation(result: SimulationResult) -> List[CheckResult]:
    """Total cost composition, margin identity and price inversion."""
    errors = validate_simulation_result(result)
    checks = [
        CheckResult(
            "cost_composition",
            not any("Total cost" in e for e in errors),
        ),
        CheckResult(
            "margin_identity",
            not any("Margin identity" in e for e in errors),
            variance=result.margin_amount + result.total_cost - result.list_price,
        ),
        CheckResult(
            "price_inversion",
            not any("Recommended price" in e for e in errors),
        ),
    ]
    for check in checks:
        if not check.passed:
            check.message = "; ".join(errors)
    return checks


def check_procurement(result: SimulationResult) -> List[CheckResult]:
    """Procurement quantities and moving-average bounds."""
    if not result.procurement_plan:
        return []

    errors = validate_procurement_plan(result.procurement_plan)
    checks = [CheckResult(
        "procurement_plan", not errors, "; ".join(errors[:3])
    )]

    # Average must lie between old cost and new price.
    out_of_bounds = []
    for entry in result.procurement_plan:
        if entry.end_quantity > 0:
            low, high = sorted((entry.old_cost, entry.new_price))
            if entry.procure_quantity == 0:
                low = high = entry.old_cost
            elif entry.on_hand == 0:
                low = high = entry.new_price
            tolerance = 1e-9 * max(1.0, high)
            if not (low - tolerance <= entry.average_cost <= high + tolerance):
                out_of_bounds.append(entry.material_id)
        elif entry.average_cost != entry.new_price:
            out_of_bounds.append(entry.material_id)
    checks.append(CheckResult(
        "moving_average_bounds",
        not out_of_bounds,
        f"Average cost out of bounds for {out_of_bounds}" if out_of_bounds else "",
    ))
    return checks


def generate_validation_report(
    result: SimulationResult,
    scenario_id: str = ""
) -> ValidationReport:
    """
    Generate validation report for one simulation result.

    Args:
        result: Simulation output
        scenario_id: Scenario identifier for the report header

    Returns:
        ValidationReport with all check results
    """
    report = ValidationReport(
        timestamp=datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
        scenario_id=scenario_id,
        product_id=result.product_id,
    )

    report.checks["Cost Aggregation"] = check_aggregation(result)
    procurement_checks = check_procurement(result)
    if procurement_checks:
        report.checks["Procurement"] = procurement_checks

    all_checks = [check for checks in report.checks.values() for check in checks]
    report.total_passed = sum(1 for c in all_checks if c.passed)
    report.total_failed = sum(1 for c in all_checks if not c.passed)
    report.overall_passed = report.total_failed == 0

    return report


def format_report(report: ValidationReport) -> str:
    """Format validation report as text."""
    lines = [
        "=" * 60,
        "VALIDATION REPORT",
        "=" * 60,
        f"Date: {report.timestamp}",
        f"Scenario: {report.scenario_id}",
        f"Product: {report.product_id}",
        "",
        "CHECKS",
        "-" * 40
    ]

    for group, checks in report.checks.items():
        passed = sum(1 for c in checks if c.passed)
        total = len(checks)
        status = "PASSED" if passed == total else "FAILED"
        lines.append(f"{group}: {passed}/{total} {status}")
        for check in checks:
            if not check.passed:
                lines.append(f"  - {check.name}: {check.message}")

    lines.extend([
        "",
        "=" * 60,
        f"OVERALL: {'PASSED' if report.overall_passed else 'FAILED'}",
        f"Total: {report.total_passed} passed, {report.total_failed} failed",
        "=" * 60
    ])

    return "\n".join(lines)


# =============================================================================
# END OF VALIDATION REPORT GENERATOR
# =============================================================================
