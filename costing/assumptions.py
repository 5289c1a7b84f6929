"""Assumptions loading and validation utilities."""

from __future__ import annotations

import copy
import logging
from pathlib import Path
from typing import Dict, List

import yaml

logger = logging.getLogger(__name__)

REQUIRED_SECTIONS = ["materials", "products", "bom", "overheads"]
OPTIONAL_SECTIONS = ["simulation", "price_trends"]
SIMULATION_MODES = ("procurement", "price_shock")


def deep_merge(base: dict, override: dict) -> dict:
    """Deep merge override into base; lists are replaced, not merged."""
    result = copy.deepcopy(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = copy.deepcopy(value)
    return result


def load_yaml_file(path: Path) -> dict:
    """Load a YAML file and return an object (empty dict for empty files)."""
    with open(path, "r", encoding="utf-8") as handle:
        return yaml.safe_load(handle) or {}


def load_scenario_assumptions(scenario_id: str, assumptions_dir: Path) -> dict:
    """Load base assumptions and merge scenario override if present."""
    assumptions_dir = Path(assumptions_dir)
    base = load_yaml_file(assumptions_dir / "base.yaml")
    if scenario_id == "base":
        return base

    override_path = assumptions_dir / f"{scenario_id}.yaml"
    if override_path.exists():
        return deep_merge(base, load_yaml_file(override_path))
    logger.warning("No override file for scenario %s in %s, using base", scenario_id, assumptions_dir)
    return base


def list_scenario_ids(assumptions_dir: Path) -> List[str]:
    """Scenario ids available in a directory, base first."""
    assumptions_dir = Path(assumptions_dir)
    others = sorted(p.stem for p in assumptions_dir.glob("*.yaml") if p.stem != "base")
    return ["base"] + others


def get_section(assumptions: Dict, *keys: str) -> Dict:
    """
    Nested mapping at keys, or an empty dict.

    A key left blank in YAML loads as None; that and any other non-mapping
    value read as empty here and are reported by validate_assumptions.
    """
    node = assumptions
    for key in keys:
        node = node.get(key) if isinstance(node, dict) else None
    return node if isinstance(node, dict) else {}


def _is_fraction(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_assumptions(assumptions: Dict) -> List[str]:
    """
    Validate assumptions structure and key constraints.

    Reference checks between sections (BOM -> materials, product -> plant)
    are left to catalog.validate_catalog once the catalog is loaded.
    """
    errors: List[str] = []

    for section in REQUIRED_SECTIONS:
        if section not in assumptions:
            errors.append(f"Missing required section: {section}")

    for section in REQUIRED_SECTIONS + OPTIONAL_SECTIONS:
        if section in assumptions and not isinstance(assumptions[section], dict):
            errors.append(f"Section {section} must be a mapping, got {assumptions[section]!r}")

    substitution = assumptions.get("substitution")
    if substitution is not None and not isinstance(substitution, dict):
        errors.append(f"Section substitution must be a mapping, got {substitution!r}")

    for material_id, data in get_section(assumptions, "materials", "by_material").items():
        if not isinstance(data, dict):
            errors.append(f"Material {material_id} must be a mapping, got {data!r}")
            continue
        for key in ("new_price", "old_cost", "on_hand"):
            value = data.get(key, 0.0)
            if not _is_fraction(value):
                errors.append(f"Non-numeric {key} for material {material_id}: {value!r}")
            elif value < 0:
                errors.append(f"Negative {key} for material {material_id}: {value}")

    simulation = get_section(assumptions, "simulation")
    mode = simulation.get("mode", "procurement")
    if mode not in SIMULATION_MODES:
        errors.append(f"simulation mode invalid: {mode} (expected one of {', '.join(SIMULATION_MODES)})")

    forecast_units = simulation.get("forecast_units", 0)
    if not _is_fraction(forecast_units) or forecast_units < 0:
        errors.append(f"forecast_units invalid: {forecast_units!r} (must be a number >= 0)")

    fraction = simulation.get("substitution_fraction", 0.0)
    if not _is_fraction(fraction) or fraction < 0:
        errors.append(f"substitution_fraction invalid: {fraction!r} (must be a number >= 0)")

    for material_id, shock in (simulation.get("price_shocks") or {}).items():
        if not _is_fraction(shock) or shock < -1:
            errors.append(f"price shock invalid for material {material_id}: {shock!r} (must be >= -1)")

    target_margin = simulation.get("target_margin_override")
    if target_margin is not None and (not _is_fraction(target_margin) or target_margin < 0):
        errors.append(f"target_margin_override invalid: {target_margin!r}")

    list_price = simulation.get("list_price_override")
    if list_price is not None and (not _is_fraction(list_price) or list_price < 0):
        errors.append(f"list_price_override invalid: {list_price!r}")

    return errors
