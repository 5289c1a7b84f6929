# =============================================================================
# STABILISER COSTING ENGINE - COSTING PACKAGE
# =============================================================================
# This package contains all calculation engines for the costing model.
#
# Modules:
# - assumptions: YAML loading, scenario overrides and validation
# - catalog: Materials, products, BOM lines, overhead profiles
# - prices: Price shocks and user material overrides
# - substitution: Capped copper -> aluminium substitution
# - procurement: Procurement plan and moving-average inventory cost
# - aggregation: Overheads, total unit cost, margin, recommended price
# - simulation: Orchestrates a single costing simulation
# - scenario: Scenario store, comparison and file-driven runs
# - validation_report: Invariant checks on simulation results
# =============================================================================

__version__ = "0.1.0"
