# =============================================================================
# STABILISER COSTING ENGINE - VALIDATION REPORT TESTS
# =============================================================================

import dataclasses

from costing.simulation import SimulationInput, compute_simulation
from costing.validation_report import format_report, generate_validation_report


class TestValidationReport:
    """Tests for invariant checks on results."""

    def test_procurement_result_passes(self, procurement_result):
        report = generate_validation_report(procurement_result, scenario_id="base")
        assert report.overall_passed
        assert report.total_failed == 0
        assert set(report.checks) == {"Cost Aggregation", "Procurement"}
        assert report.product_id == "P100"

    def test_price_shock_has_no_procurement_checks(self, catalog):
        result = compute_simulation(catalog, SimulationInput("P100", mode="price_shock"))
        report = generate_validation_report(result)
        assert list(report.checks) == ["Cost Aggregation"]
        assert report.overall_passed

    def test_broken_margin_fails(self, procurement_result):
        broken = dataclasses.replace(procurement_result, margin_amount=0.0)
        report = generate_validation_report(broken)
        assert not report.overall_passed
        failed = [c.name for c in report.checks["Cost Aggregation"] if not c.passed]
        assert failed == ["margin_identity"]

    def test_average_outside_prices_fails(self, procurement_result):
        plan = [dataclasses.replace(e) for e in procurement_result.procurement_plan]
        plan[0].average_cost = 5000.0
        broken = dataclasses.replace(procurement_result, procurement_plan=plan)
        report = generate_validation_report(broken)
        bounds = next(c for c in report.checks["Procurement"] if c.name == "moving_average_bounds")
        assert not bounds.passed
        assert "M_COPPER" in bounds.message

    def test_format(self, procurement_result):
        text = format_report(generate_validation_report(procurement_result, scenario_id="base"))
        assert "VALIDATION REPORT" in text
        assert "Scenario: base" in text
        assert "OVERALL: PASSED" in text
