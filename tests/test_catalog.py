# =============================================================================
# STABILISER COSTING ENGINE - CATALOG TESTS
# =============================================================================

import copy

import pytest

from costing.catalog import (
    BOMLine,
    CatalogReferenceError,
    UnknownMaterialError,
    UnknownPlantError,
    UnknownProductError,
    bom_quantities,
    load_catalog,
    validate_catalog,
)


class TestLoadCatalog:
    """Tests for catalog loading from assumptions."""

    def test_materials_loaded(self, catalog):
        """Materials keep their prices and stock."""
        copper = catalog.get_material("M_COPPER")
        assert copper.name == "Copper Wire"
        assert copper.unit_of_measure == "KG"
        assert copper.new_price == 880
        assert copper.old_cost == 800
        assert copper.on_hand == 1000

    def test_material_order_kept(self, catalog):
        """Catalog order follows the assumptions."""
        assert list(catalog.materials) == ["M_COPPER", "M_ALUM", "M_PCBA"]

    def test_products_and_overheads(self, catalog):
        """Products resolve to an overhead profile through their plant."""
        product = catalog.get_product("P100")
        assert product.list_price == 6500
        assert product.target_margin == 0.25
        profile = catalog.get_overhead(product.plant)
        assert profile.freight_per_unit == 60
        assert profile.labor_pct_of_direct_material == 0.08

    def test_substitution_rule(self, catalog):
        """Substitution rule is loaded."""
        rule = catalog.substitution_rule
        assert rule.base_material_id == "M_COPPER"
        assert rule.substitute_material_id == "M_ALUM"
        assert rule.substitution_ratio == 1.6
        assert rule.cap_fraction == 0.4

    def test_old_cost_defaults_to_new_price(self):
        """A material without old_cost is valued at its new price."""
        catalog = load_catalog({
            "materials": {"by_material": {"M1": {"new_price": 12.5}}}
        })
        assert catalog.get_material("M1").old_cost == 12.5
        assert catalog.get_material("M1").on_hand == 0.0

    def test_line_uom_defaults_to_material(self, base_assumptions):
        """BOM line without unit of measure takes the material's."""
        del base_assumptions["bom"]["by_product"]["P100"]["lines"][0]["unit_of_measure"]
        catalog = load_catalog(base_assumptions)
        assert catalog.get_bom("P100")[0].unit_of_measure == "KG"

    def test_empty_assumptions(self):
        """Empty assumptions give an empty catalog."""
        catalog = load_catalog({})
        assert catalog.materials == {}
        assert catalog.substitution_rule is None

    def test_blank_sections(self, base_assumptions):
        """Sections left blank in YAML load as empty."""
        blank = copy.deepcopy(base_assumptions)
        blank["overheads"] = None
        blank["substitution"] = None
        blank["price_trends"] = {"by_material": None}
        catalog = load_catalog(blank)
        assert catalog.overheads == {}
        assert catalog.substitution_rule is None
        assert catalog.price_trends == {}
        assert set(catalog.materials) == {"M_COPPER", "M_ALUM", "M_PCBA"}


class TestLookups:
    """Tests for reference lookups and their errors."""

    def test_unknown_product(self, catalog):
        """Unknown product fails fast with its id in the message."""
        with pytest.raises(UnknownProductError, match="P999"):
            catalog.get_product("P999")

    def test_unknown_material(self, catalog):
        """Unknown material is a KeyError subclass."""
        with pytest.raises(KeyError):
            catalog.get_material("M_GOLD")

    def test_unknown_plant(self, catalog):
        """Unknown plant names the referencing context."""
        with pytest.raises(UnknownPlantError, match="product P100"):
            catalog.get_overhead("PUNE2", context="product P100")

    def test_error_message(self):
        """Error message is readable, not a quoted repr."""
        error = UnknownMaterialError("M_X", context="BOM of P1")
        assert str(error) == "Unknown material 'M_X' referenced by BOM of P1"
        assert isinstance(error, CatalogReferenceError)
        assert error.ref_id == "M_X"

    def test_get_bom_returns_copy(self, catalog):
        """Editing returned BOM lines leaves the catalog untouched."""
        lines = catalog.get_bom("P100")
        lines[0].quantity = 99
        assert catalog.get_bom("P100")[0].quantity == 2.5

    def test_get_bom_unknown_material(self, base_assumptions):
        """BOM line with unknown material is a reference error."""
        base_assumptions["bom"]["by_product"]["P100"]["lines"].append(
            {"material_id": "M_GHOST", "quantity": 1.0}
        )
        catalog = load_catalog(base_assumptions)
        with pytest.raises(UnknownMaterialError, match="M_GHOST"):
            catalog.get_bom("P100")

    def test_price_trend(self, catalog):
        """Static trend samples in order."""
        assert catalog.price_trend("M_COPPER") == [("May", 780), ("Jun", 800), ("Jul", 830)]
        assert catalog.price_trend("M_ALUM") == []


class TestValidateCatalog:
    """Tests for catalog validation."""

    def test_valid(self, catalog):
        """Fixture catalog is valid."""
        assert validate_catalog(catalog) == []

    def test_negative_values(self, base_assumptions):
        """Negative prices and quantities are reported."""
        bad = copy.deepcopy(base_assumptions)
        bad["materials"]["by_material"]["M_COPPER"]["new_price"] = -1
        bad["materials"]["by_material"]["M_ALUM"]["on_hand"] = -5
        bad["bom"]["by_product"]["P100"]["lines"][1]["quantity"] = -1
        errors = validate_catalog(load_catalog(bad))
        assert any("new_price" in e and "M_COPPER" in e for e in errors)
        assert any("on_hand" in e and "M_ALUM" in e for e in errors)
        assert any("Negative quantity" in e for e in errors)

    def test_target_margin_range(self, base_assumptions):
        """Target margin of 100% is rejected."""
        base_assumptions["products"]["by_product"]["P100"]["target_margin"] = 1.0
        errors = validate_catalog(load_catalog(base_assumptions))
        assert any("target_margin out of range" in e for e in errors)

    def test_unknown_references(self, base_assumptions):
        """Unknown plant and BOM material are reported."""
        base_assumptions["products"]["by_product"]["P100"]["plant"] = "PUNE2"
        base_assumptions["bom"]["by_product"]["P100"]["lines"].append(
            {"material_id": "M_GHOST", "quantity": 1.0}
        )
        errors = validate_catalog(load_catalog(base_assumptions))
        assert any("Unknown plant" in e for e in errors)
        assert any("M_GHOST" in e for e in errors)

    def test_substitution_cap(self, base_assumptions):
        """Cap above 1 is reported."""
        base_assumptions["substitution"]["cap_fraction"] = 1.5
        errors = validate_catalog(load_catalog(base_assumptions))
        assert any("cap_fraction" in e for e in errors)


class TestBOMQuantities:
    """Tests for BOM quantity aggregation."""

    def test_sums_repeated_material(self):
        """Two lines of the same material add up."""
        lines = [
            BOMLine("M_COPPER", 1.0, "KG"),
            BOMLine("M_PCBA", 1.0, "EA"),
            BOMLine("M_COPPER", 0.5, "KG"),
        ]
        assert bom_quantities(lines) == {"M_COPPER": 1.5, "M_PCBA": 1.0}
