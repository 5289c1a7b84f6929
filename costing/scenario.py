# =============================================================================
# STABILISER COSTING ENGINE - SCENARIO ENGINE
# =============================================================================
# Captures simulation results as named snapshots and compares them.
#
# KEY PRINCIPLES:
# - A scenario is a deep copy of a result taken at capture time
# - The store is ordered and append-only until cleared
# - Names are "Scenario <n>", numbering restarts at 1 after a clear
# - One store per caller session; the store is not thread-safe
# =============================================================================

import copy
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from .aggregation import SimulationResult
from .assumptions import load_scenario_assumptions, validate_assumptions
from .catalog import CatalogReferenceError, load_catalog, validate_catalog
from .simulation import compute_simulation, simulation_input_from_assumptions

logger = logging.getLogger(__name__)

COMPARISON_METRICS = [
    "direct_material_cost",
    "total_cost",
    "margin_amount",
    "margin_pct",
    "recommended_selling_price",
]


@dataclass(frozen=True)
class Scenario:
    """Named snapshot of a simulation result."""
    name: str
    result: SimulationResult


class ScenarioStore:
    """
    Ordered collection of captured scenarios.

    Results are deep-copied on the way in and on the way out, so nothing
    a caller does to a returned Scenario reaches the stored snapshot.
    """

    def __init__(self, scenarios: Iterable[Scenario] = ()):
        self._scenarios: List[Scenario] = copy.deepcopy(list(scenarios))

    def add_scenario(self, result: SimulationResult) -> Scenario:
        """Capture a snapshot of result as the next numbered scenario."""
        scenario = Scenario(
            name=f"Scenario {len(self._scenarios) + 1}",
            result=copy.deepcopy(result),
        )
        self._scenarios.append(scenario)
        logger.debug("Captured %s for %s", scenario.name, result.product_id)
        return copy.deepcopy(scenario)

    def clear(self) -> None:
        """Remove all scenarios."""
        self._scenarios.clear()

    @property
    def scenarios(self) -> Tuple[Scenario, ...]:
        return tuple(copy.deepcopy(self._scenarios))

    def get(self, name: str) -> Scenario:
        """Get scenario by name."""
        for scenario in self._scenarios:
            if scenario.name == name:
                return copy.deepcopy(scenario)
        raise KeyError(f"Scenario {name} not found")

    def __len__(self) -> int:
        return len(self._scenarios)

    def __iter__(self) -> Iterator[Scenario]:
        return iter(self.scenarios)


def add_scenario(result: SimulationResult, store: ScenarioStore) -> ScenarioStore:
    """Return a new store with result appended; store is left as is."""
    new_store = ScenarioStore(store.scenarios)
    new_store.add_scenario(result)
    return new_store


def clear_scenarios(store: ScenarioStore) -> ScenarioStore:
    """Return an empty store."""
    return ScenarioStore()


@dataclass
class ComparisonMatrix:
    """Comparison of multiple scenarios."""
    scenarios: List[str] = field(default_factory=list)
    metrics: Dict[str, Dict[str, float]] = field(default_factory=dict)
    variances: Dict[str, Dict[str, float]] = field(default_factory=dict)


def compare_scenarios(
    scenarios: Iterable[Scenario],
    base_name: Optional[str] = None
) -> ComparisonMatrix:
    """
    Generate comparison matrix and variance analysis.

    Args:
        scenarios: Captured scenarios (a ScenarioStore works too)
        base_name: Reference scenario for variances; defaults to the first

    Returns:
        ComparisonMatrix with metrics and relative variances vs base
        (variance omitted where the base value is 0)

    Raises:
        KeyError: base_name is not among the scenarios
    """
    scenarios = list(scenarios)
    matrix = ComparisonMatrix()
    matrix.scenarios = [s.name for s in scenarios]

    base = None
    if scenarios:
        if base_name is None:
            base = scenarios[0]
        else:
            base = next((s for s in scenarios if s.name == base_name), None)
            if base is None:
                raise KeyError(f"Scenario {base_name} not found")

    for metric in COMPARISON_METRICS:
        matrix.metrics[metric] = {}
        matrix.variances[metric] = {}

        for scenario in scenarios:
            value = getattr(scenario.result, metric)
            matrix.metrics[metric][scenario.name] = value

            if base is not None:
                base_value = getattr(base.result, metric)
                if base_value != 0:
                    matrix.variances[metric][scenario.name] = (value - base_value) / abs(base_value)

    return matrix


@dataclass
class ScenarioRun:
    """Result of running one scenario assumptions file."""
    scenario_id: str
    description: str = ""
    result: Optional[SimulationResult] = None
    errors: List[str] = field(default_factory=list)


def run_scenario(scenario_id: str, assumptions_dir: Path) -> ScenarioRun:
    """
    Load, validate and simulate one scenario.

    Execution order:
    1. Load base assumptions merged with the scenario override
    2. Validate assumptions and catalog
    3. Compute the simulation

    Validation findings and reference errors are returned in errors
    instead of being raised.
    """
    run = ScenarioRun(scenario_id=scenario_id)

    assumptions = load_scenario_assumptions(scenario_id, Path(assumptions_dir))
    run.description = assumptions.get("description", "")

    run.errors.extend(validate_assumptions(assumptions))
    catalog = None
    if not run.errors:
        catalog = load_catalog(assumptions)
        run.errors.extend(validate_catalog(catalog))
    if run.errors:
        for error in run.errors:
            logger.warning("%s: %s", scenario_id, error)
        return run

    try:
        run.result = compute_simulation(catalog, simulation_input_from_assumptions(assumptions))
    except (CatalogReferenceError, ValueError) as exc:
        run.errors.append(str(exc))

    return run


def run_all_scenarios(
    scenario_ids: List[str],
    assumptions_dir: Path
) -> Dict[str, ScenarioRun]:
    """Run several scenarios, keyed by scenario id."""
    return {
        scenario_id: run_scenario(scenario_id, assumptions_dir)
        for scenario_id in scenario_ids
    }


# =============================================================================
# END OF SCENARIO ENGINE
# =============================================================================
