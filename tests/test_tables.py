import math

import pytest

from costing.scenario import ScenarioStore
from costing.simulation import SimulationInput, compute_simulation
from reports.tables import (
    bom_breakdown_frame,
    cost_summary_frame,
    price_trend_frame,
    procurement_frame,
    scenario_comparison_frame,
)


def test_bom_breakdown_rows(procurement_result, catalog):
    frame = bom_breakdown_frame(procurement_result, catalog)
    assert list(frame["component"]) == [
        "Copper Wire", "PCB Assembly", "Labor", "Energy", "Freight", "Warranty", "Total Unit Cost"
    ]
    copper = frame.iloc[0]
    assert copper["line_cost"] == pytest.approx(2.5 * 876.8)
    assert math.isnan(frame.iloc[2]["quantity"])
    assert frame.iloc[-1]["line_cost"] == pytest.approx(procurement_result.total_cost)


def test_bom_breakdown_without_catalog_uses_ids(procurement_result):
    frame = bom_breakdown_frame(procurement_result)
    assert frame.iloc[0]["component"] == "M_COPPER"


def test_procurement_frame(procurement_result, catalog):
    frame = procurement_frame(procurement_result, catalog)
    assert len(frame) == 3
    copper = frame.set_index("material_id").loc["M_COPPER"]
    assert copper["procure_quantity"] == 24000
    assert copper["average_cost"] == pytest.approx(876.8)


def test_procurement_frame_empty_for_price_shock(catalog):
    result = compute_simulation(catalog, SimulationInput("P100", mode="price_shock"))
    frame = procurement_frame(result)
    assert frame.empty
    assert "average_cost" in frame.columns


def test_cost_summary(procurement_result):
    frame = cost_summary_frame(procurement_result).set_index("metric")
    assert frame.loc["total_cost", "value"] == pytest.approx(2960.84)


def test_scenario_comparison_frame(catalog):
    store = ScenarioStore()
    store.add_scenario(compute_simulation(catalog, SimulationInput("P100", mode="price_shock")))
    store.add_scenario(compute_simulation(
        catalog, SimulationInput("P100", mode="price_shock", substitution_fraction=0.4)
    ))
    frame = scenario_comparison_frame(store)
    assert list(frame["name"]) == ["Scenario 1", "Scenario 2"]
    assert frame.iloc[1]["substitution_fraction"] == pytest.approx(0.4)
    assert frame.iloc[1]["direct_material_cost"] < frame.iloc[0]["direct_material_cost"]


def test_scenario_comparison_frame_empty():
    frame = scenario_comparison_frame(ScenarioStore())
    assert frame.empty
    assert "total_cost" in frame.columns


def test_price_trend_frame(catalog):
    frame = price_trend_frame(catalog, "M_COPPER")
    assert list(frame["period"]) == ["May", "Jun", "Jul"]
    assert frame.iloc[0]["change_pct"] == 0.0
    assert frame.iloc[1]["change_pct"] == pytest.approx(800 / 780 - 1)


def test_price_trend_frame_no_samples(catalog):
    frame = price_trend_frame(catalog, "M_ALUM")
    assert frame.empty
    assert list(frame.columns) == ["period", "price", "change_pct"]
