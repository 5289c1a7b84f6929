# =============================================================================
# STABILISER COSTING ENGINE - PYTEST CONFIGURATION
# =============================================================================
# Shared fixtures and configuration for all tests.
# =============================================================================

import pytest
import sys
import os
from pathlib import Path

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


@pytest.fixture
def project_root():
    """Get project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def assumptions_dir(project_root):
    """Get assumptions directory."""
    return project_root / "assumptions"


@pytest.fixture
def base_assumptions():
    """Small catalog: copper on hand, aluminium unused, PCBA overstocked."""
    return {
        "description": "test catalog",
        "materials": {
            "by_material": {
                "M_COPPER": {"name": "Copper Wire", "unit_of_measure": "KG",
                             "new_price": 880, "old_cost": 800, "on_hand": 1000},
                "M_ALUM": {"name": "Aluminium Wire", "unit_of_measure": "KG",
                           "new_price": 255, "old_cost": 250, "on_hand": 0},
                "M_PCBA": {"name": "PCB Assembly", "unit_of_measure": "EA",
                           "new_price": 350, "old_cost": 340, "on_hand": 20000},
            }
        },
        "products": {
            "by_product": {
                "P100": {"name": "SB-1kVA-Digital", "list_price": 6500,
                         "target_margin": 0.25, "plant": "HYD1"}
            }
        },
        "bom": {
            "by_product": {
                "P100": {
                    "lines": [
                        {"material_id": "M_COPPER", "quantity": 2.5, "unit_of_measure": "KG"},
                        {"material_id": "M_PCBA", "quantity": 1.0, "unit_of_measure": "EA"},
                    ]
                }
            }
        },
        "overheads": {
            "by_plant": {
                "HYD1": {
                    "labor_pct_of_direct_material": 0.08,
                    "energy_pct_of_direct_material": 0.04,
                    "freight_per_unit": 60,
                    "warranty_pct_of_list_price": 0.01,
                }
            }
        },
        "substitution": {
            "base_material_id": "M_COPPER",
            "substitute_material_id": "M_ALUM",
            "substitution_ratio": 1.6,
            "cap_fraction": 0.4,
        },
        "price_trends": {
            "by_material": {
                "M_COPPER": [
                    {"period": "May", "price": 780},
                    {"period": "Jun", "price": 800},
                    {"period": "Jul", "price": 830},
                ]
            }
        },
        "simulation": {
            "product_id": "P100",
            "mode": "procurement",
            "forecast_units": 10000,
            "substitution_fraction": 0.0,
            "price_shocks": {},
            "overhead_overrides": {},
            "list_price_override": None,
            "target_margin_override": None,
            "material_overrides": {},
        },
    }


@pytest.fixture
def catalog(base_assumptions):
    """Catalog loaded from base assumptions."""
    from costing.catalog import load_catalog
    return load_catalog(base_assumptions)


@pytest.fixture
def copper_rule():
    """Copper -> aluminium, 1.6 kg per kg, capped at 40%."""
    from costing.catalog import SubstitutionRule
    return SubstitutionRule("M_COPPER", "M_ALUM", 1.6, 0.4)


@pytest.fixture
def procurement_result(catalog):
    """Simulation of P100 on 10,000 units using moving-average costs."""
    from costing.simulation import SimulationInput, compute_simulation
    return compute_simulation(catalog, SimulationInput(product_id="P100", forecast_units=10000))
