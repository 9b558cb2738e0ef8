"""Tests for the style model container."""

import pytest

from stylelift.adapter import ImportName, ImportSpec
from stylelift.model import FrozenModelError, StyleExpr, StyleModel, VariantDimension


def _make_model(**fields) -> StyleModel:
    return StyleModel(component="Button", style_key="button", **fields)


def _dimension(**overrides) -> VariantDimension:
    fields = {
        "name": "sizeVariants",
        "prop_name": "size",
        "variants": {"small": {"height": "24px"}, "large": {"height": "48px"}},
    }
    fields.update(overrides)
    return VariantDimension(**fields)


class TestStyleModel:
    def test_bucket_created_on_first_use(self):
        model = _make_model()
        model.bucket("disabled")["opacity"] = 0.5
        assert model.buckets == {"disabled": {"opacity": 0.5}}

    def test_imports_and_props_deduplicated(self):
        model = _make_model()
        spec = ImportSpec("./tokens.stylex", (ImportName("themeVars"),))
        model.add_imports([spec, spec])
        model.use_prop("size")
        model.use_prop("size")
        assert model.required_imports == [spec]
        assert model.styling_props == ["size"]

    def test_freeze_blocks_assignment(self):
        model = _make_model(base={"color": "red"}).freeze()
        with pytest.raises(FrozenModelError):
            model.base = {}

    def test_reset_marks_bailed_and_empties(self):
        model = _make_model(base={"color": "red"}, needs_theme_hook=True)
        model.bucket("disabled")["opacity"] = 0.5
        model.reset()
        assert model.bailed
        assert model.is_empty()
        assert not model.needs_theme_hook
        assert model.style_key == "button"

    def test_property_maps_in_emission_order(self):
        model = _make_model(base={"color": "red"}, buckets={"disabled": {"opacity": 0.5}})
        model.dimensions.append(_dimension())
        assert model.property_maps() == [
            {"color": "red"},
            {"opacity": 0.5},
            {"height": "24px"},
            {"height": "48px"},
        ]

    def test_to_dict_serializes_expressions(self):
        model = _make_model(base={"color": StyleExpr("themeVars.color.primary")})
        model.buckets["disabled"] = {"color": {"default": StyleExpr("x"), ":hover": "red"}}
        model.bucket_style_keys["disabled"] = "buttonDisabled"
        data = model.to_dict()
        assert data["base"] == {"color": {"$expr": "themeVars.color.primary"}}
        assert data["buckets"]["disabled"] == {
            "styleKey": "buttonDisabled",
            "styles": {"color": {"default": {"$expr": "x"}, ":hover": "red"}},
        }
        assert data["bailed"] is False


class TestVariantDimension:
    def test_content_key_ignores_name(self):
        assert _dimension().content_key() == _dimension(name="other").content_key()

    def test_content_key_sees_variants(self):
        changed = _dimension(variants={"small": {"height": "20px"}})
        assert _dimension().content_key() != changed.content_key()

    def test_to_dict_omits_unset_optionals(self):
        data = _dimension().to_dict()
        assert "defaultValue" not in data
        assert "namespaceBooleanProp" not in data
