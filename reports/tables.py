"""Transform simulation outputs into tabular report structures."""

from __future__ import annotations

from typing import Iterable, Optional

import pandas as pd

from costing.aggregation import SimulationResult
from costing.catalog import Catalog
from costing.scenario import COMPARISON_METRICS, Scenario


def _safe_pct(num: float, den: float) -> float:
    return (num / den) if den else 0.0


def _material_name(catalog: Optional[Catalog], material_id: str) -> str:
    if catalog is None:
        return material_id
    material = catalog.materials.get(material_id)
    return material.name if material is not None else material_id


def bom_breakdown_frame(result: SimulationResult, catalog: Optional[Catalog] = None) -> pd.DataFrame:
    """One row per BOM line plus overhead and total rows."""
    rows = []
    for line, unit_cost, line_cost in result.line_costs():
        rows.append(
            {
                "component": _material_name(catalog, line.material_id),
                "material_id": line.material_id,
                "quantity": float(line.quantity),
                "unit_of_measure": line.unit_of_measure,
                "unit_cost": float(unit_cost),
                "line_cost": float(line_cost),
                "share_pct": _safe_pct(float(line_cost), result.total_cost),
            }
        )
    for label, value in (
        ("Labor", result.labor),
        ("Energy", result.energy),
        ("Freight", result.freight),
        ("Warranty", result.warranty),
        ("Total Unit Cost", result.total_cost),
    ):
        rows.append(
            {
                "component": label,
                "material_id": "",
                "quantity": float("nan"),
                "unit_of_measure": "",
                "unit_cost": float("nan"),
                "line_cost": float(value),
                "share_pct": _safe_pct(float(value), result.total_cost),
            }
        )
    return pd.DataFrame(rows)


def procurement_frame(result: SimulationResult, catalog: Optional[Catalog] = None) -> pd.DataFrame:
    """Procurement plan as a frame; empty for price-shock simulations."""
    columns = [
        "material_id",
        "material",
        "bom_quantity",
        "gross_requirement",
        "on_hand",
        "procure_quantity",
        "spend",
        "end_quantity",
        "old_cost",
        "new_price",
        "average_cost",
    ]
    if not result.procurement_plan:
        return pd.DataFrame(columns=columns)
    rows = []
    for entry in result.procurement_plan:
        rows.append(
            {
                "material_id": entry.material_id,
                "material": _material_name(catalog, entry.material_id),
                "bom_quantity": entry.bom_quantity,
                "gross_requirement": entry.gross_requirement,
                "on_hand": entry.on_hand,
                "procure_quantity": entry.procure_quantity,
                "spend": entry.spend,
                "end_quantity": entry.end_quantity,
                "old_cost": entry.old_cost,
                "new_price": entry.new_price,
                "average_cost": entry.average_cost,
            }
        )
    return pd.DataFrame(rows, columns=columns)


def cost_summary_frame(result: SimulationResult) -> pd.DataFrame:
    """Headline figures as a two-column metric/value frame."""
    metrics = [
        ("direct_material_cost", result.direct_material_cost),
        ("labor", result.labor),
        ("energy", result.energy),
        ("freight", result.freight),
        ("warranty", result.warranty),
        ("total_cost", result.total_cost),
        ("list_price", result.list_price),
        ("margin_amount", result.margin_amount),
        ("margin_pct", result.margin_pct),
        ("target_margin", result.target_margin),
        ("recommended_selling_price", result.recommended_selling_price),
    ]
    return pd.DataFrame(metrics, columns=["metric", "value"])


def scenario_comparison_frame(scenarios: Iterable[Scenario]) -> pd.DataFrame:
    """One row per captured scenario with the comparison metrics."""
    columns = ["name", "product_id", "mode", "substitution_fraction"] + COMPARISON_METRICS
    rows = []
    for scenario in scenarios:
        row = {
            "name": scenario.name,
            "product_id": scenario.result.product_id,
            "mode": scenario.result.mode,
            "substitution_fraction": scenario.result.substitution_fraction,
        }
        for metric in COMPARISON_METRICS:
            row[metric] = float(getattr(scenario.result, metric))
        rows.append(row)
    return pd.DataFrame(rows, columns=columns)


def price_trend_frame(catalog: Catalog, material_id: str) -> pd.DataFrame:
    """Static price samples for a material with period-on-period change."""
    data = pd.DataFrame(catalog.price_trend(material_id), columns=["period", "price"])
    if data.empty:
        data["change_pct"] = pd.Series(dtype=float)
        return data
    data["change_pct"] = data["price"].pct_change().fillna(0.0)
    return data
