# =============================================================================
# STABILISER COSTING ENGINE - MAIN ENTRY POINT
# =============================================================================
# Command-line interface for running the costing engine.
#
# Usage:
#   python main.py run --scenario base
#   python main.py run --product P200 --mode price_shock --shock M_COPPER=0.1
#   python main.py compare --all
#   python main.py validate --scenario copper_requote
#   python main.py trend --material M_COPPER
# =============================================================================

import argparse
import logging
import sys
from pathlib import Path
from typing import Dict, List

import pandas as pd

from costing.assumptions import list_scenario_ids, load_scenario_assumptions
from costing.catalog import CatalogReferenceError, load_catalog
from costing.procurement import total_spend
from costing.scenario import ScenarioStore, compare_scenarios, run_all_scenarios, run_scenario
from costing.simulation import compute_simulation, simulation_input_from_assumptions
from costing.validation_report import format_report, generate_validation_report
from reports.tables import (
    bom_breakdown_frame,
    price_trend_frame,
    procurement_frame,
    scenario_comparison_frame,
)


def _parse_shocks(values: List[str]) -> Dict[str, float]:
    shocks: Dict[str, float] = {}
    for value in values or []:
        material_id, sep, pct = value.partition("=")
        if not sep:
            raise ValueError(f"Invalid shock '{value}', expected MATERIAL=FRACTION")
        shocks[material_id] = float(pct)
    return shocks


def _print_result(result, catalog) -> None:
    print(f"\nPRODUCT {result.product_id} ({result.mode})")
    print("-" * 40)
    with pd.option_context("display.width", 120, "display.max_columns", 20):
        print(bom_breakdown_frame(result, catalog).to_string(index=False, float_format=lambda v: f"{v:,.3f}"))
        if result.procurement_plan:
            print("\nPROCUREMENT PLAN:")
            print(procurement_frame(result, catalog).to_string(index=False, float_format=lambda v: f"{v:,.2f}"))
            print(f"\nTotal procurement spend: INR {total_spend(result.procurement_plan):,.2f}")

    print("\nKEY METRICS:")
    print(f"  Direct Material:   INR {result.direct_material_cost:,.2f}")
    print(f"  Total Unit Cost:   INR {result.total_cost:,.2f}")
    print(f"  List Price:        INR {result.list_price:,.2f}")
    print(f"  Margin:            INR {result.margin_amount:,.2f} ({result.margin_pct:.2%})")
    print(f"  Target Margin:     {result.target_margin:.2%}")
    print(f"  Recommended SP:    INR {result.recommended_selling_price:,.2f}")
    if result.substitution_fraction:
        print(f"  Substitution:      {result.substitution_fraction:.0%}")


def run_single(args) -> int:
    """Run one scenario, with command-line overrides on top."""
    assumptions = load_scenario_assumptions(args.scenario, Path(args.dir))
    catalog = load_catalog(assumptions)
    inputs = simulation_input_from_assumptions(assumptions)

    if args.product:
        inputs.product_id = args.product
    if args.mode:
        inputs.mode = args.mode
    if args.forecast_units is not None:
        inputs.forecast_units = args.forecast_units
    if args.substitution is not None:
        inputs.substitution_fraction = args.substitution
    if args.list_price is not None:
        inputs.list_price_override = args.list_price
    if args.target_margin is not None:
        inputs.target_margin_override = args.target_margin
    try:
        inputs.price_shocks.update(_parse_shocks(args.shock))
        result = compute_simulation(catalog, inputs)
    except (CatalogReferenceError, ValueError) as exc:
        print(f"\nERROR: {exc}")
        return 1

    print(f"\nRunning scenario: {args.scenario}")
    _print_result(result, catalog)
    return 0


def run_compare(args) -> int:
    """Run several scenarios, capture them into a store and compare."""
    assumptions_dir = Path(args.dir)
    scenario_ids = list_scenario_ids(assumptions_dir) if args.all else args.scenarios
    if not scenario_ids:
        scenario_ids = ["base"]

    print("\n" + "=" * 60)
    print("RUNNING SCENARIOS")
    print("=" * 60)

    runs = run_all_scenarios(scenario_ids, assumptions_dir)
    store = ScenarioStore()
    labels = {}
    failed = False
    for scenario_id, run in runs.items():
        if run.errors:
            failed = True
            print(f"\n{scenario_id.upper()}: FAILED")
            for error in run.errors:
                print(f"  - {error}")
            continue
        scenario = store.add_scenario(run.result)
        labels[scenario.name] = scenario_id
        print(f"\n{scenario.name}: {scenario_id} - {run.description}")

    if not len(store):
        return 1

    print("\n" + "=" * 60)
    print("COMPARISON vs FIRST SCENARIO")
    print("=" * 60)
    frame = scenario_comparison_frame(store)
    frame.insert(1, "scenario_id", frame["name"].map(labels))
    with pd.option_context("display.width", 160, "display.max_columns", 20):
        print(frame.to_string(index=False, float_format=lambda v: f"{v:,.4f}"))

    matrix = compare_scenarios(store)
    for metric in ["total_cost", "margin_pct", "recommended_selling_price"]:
        print(f"\n{metric}:")
        for name in matrix.scenarios:
            value = matrix.metrics[metric].get(name, 0)
            variance = matrix.variances[metric].get(name, 0)
            print(f"  {labels[name]:20}: {value:>15,.4f}  ({variance:+.1%})")

    return 1 if failed else 0


def run_validation(args) -> int:
    """Run validation checks on one scenario."""
    run = run_scenario(args.scenario, Path(args.dir))
    if run.errors:
        print("\nERRORS:")
        for error in run.errors:
            print(f"  - {error}")
        return 1

    report = generate_validation_report(run.result, scenario_id=args.scenario)
    print(format_report(report))
    return 0 if report.overall_passed else 1


def show_trend(args) -> int:
    """Print the static price trend for a material."""
    catalog = load_catalog(load_scenario_assumptions("base", Path(args.dir)))
    try:
        frame = price_trend_frame(catalog, args.material)
    except CatalogReferenceError as exc:
        print(f"\nERROR: {exc}")
        return 1
    print(frame.to_string(index=False))
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Stabiliser Costing Engine")
    parser.add_argument("--log-level", default="WARNING", help="Logging level")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Run command
    run_parser = subparsers.add_parser("run", help="Run one scenario")
    run_parser.add_argument("--scenario", "-s", default="base", help="Scenario ID to run")
    run_parser.add_argument("--dir", "-d", default="assumptions", help="Assumptions directory")
    run_parser.add_argument("--product", "-p", help="Product ID")
    run_parser.add_argument("--mode", choices=["procurement", "price_shock"])
    run_parser.add_argument("--forecast-units", type=float)
    run_parser.add_argument("--substitution", type=float, help="Copper share moved to aluminium")
    run_parser.add_argument("--list-price", type=float)
    run_parser.add_argument("--target-margin", type=float)
    run_parser.add_argument("--shock", action="append", help="MATERIAL=FRACTION, repeatable")

    # Compare command
    cmp_parser = subparsers.add_parser("compare", help="Run and compare scenarios")
    cmp_parser.add_argument("scenarios", nargs="*", help="Scenario IDs")
    cmp_parser.add_argument("--all", "-a", action="store_true", help="All scenarios in the directory")
    cmp_parser.add_argument("--dir", "-d", default="assumptions", help="Assumptions directory")

    # Validate command
    val_parser = subparsers.add_parser("validate", help="Run validation")
    val_parser.add_argument("--scenario", "-s", default="base", help="Scenario ID to validate")
    val_parser.add_argument("--dir", "-d", default="assumptions", help="Assumptions directory")

    # Trend command
    trend_parser = subparsers.add_parser("trend", help="Show static price trend")
    trend_parser.add_argument("--material", "-m", default="M_COPPER")
    trend_parser.add_argument("--dir", "-d", default="assumptions", help="Assumptions directory")

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.WARNING),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    )

    if args.command == "run":
        return run_single(args)
    elif args.command == "compare":
        return run_compare(args)
    elif args.command == "validate":
        return run_validation(args)
    elif args.command == "trend":
        return show_trend(args)
    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
