"""Tests for compound variant synthesis over pseudo-carrying properties."""

from stylelift.cascade import synthesize_compounds
from stylelift.model import StyleModel
from stylelift.run_types import LoweringConfig


def _make_model(base, buckets) -> StyleModel:
    model = StyleModel(component="Button", style_key="button", base=base)
    for when, styles in buckets.items():
        model.buckets[when] = styles
    return model


class TestPseudoPreservation:
    def test_boolean_override_keeps_base_pseudos(self):
        model = _make_model(
            {"color": {"default": "red", ":hover": "blue"}},
            {"disabled": {"color": "gray"}},
        )
        created = synthesize_compounds(model)
        assert created == 0
        assert model.buckets["disabled"] == {"color": {"default": "gray", ":hover": "blue"}}

    def test_bucket_pseudo_entries_win(self):
        model = _make_model(
            {"color": {"default": "red", ":hover": "blue", ":focus": "navy"}},
            {"active": {"color": {"default": "green", ":hover": "lime"}}},
        )
        synthesize_compounds(model)
        assert model.buckets["active"]["color"] == {
            "default": "green",
            ":hover": "lime",
            ":focus": "navy",
        }

    def test_scalar_base_untouched(self):
        model = _make_model({"color": "red"}, {"disabled": {"color": "gray"}})
        synthesize_compounds(model)
        assert model.buckets["disabled"] == {"color": "gray"}

    def test_negated_boolean_bucket(self):
        model = _make_model(
            {"color": {"default": "red", ":hover": "blue"}},
            {"!enabled": {"color": "gray"}},
        )
        synthesize_compounds(model)
        assert model.buckets["!enabled"]["color"] == {"default": "gray", ":hover": "blue"}


class TestCompoundBuckets:
    def _primary_model(self, bool_styles):
        return _make_model(
            {"backgroundColor": {"default": "white", ":hover": "#eee"}},
            {
                'color === "primary"': {"backgroundColor": {"default": "blue", ":hover": "navy"}},
                "disabled": bool_styles,
            },
        )

    def test_two_compounds_for_a_two_case_enum(self):
        model = self._primary_model({"backgroundColor": "gray", "opacity": 0.5})
        created = synthesize_compounds(model, {"color": ["primary", "secondary"]})
        assert created == 2
        assert model.buckets['disabled && color === "primary"'] == {
            "backgroundColor": {"default": "gray", ":hover": "navy"}
        }
        assert model.buckets['disabled && color !== "primary"'] == {
            "backgroundColor": {"default": "gray", ":hover": "#eee"}
        }
        assert model.buckets["disabled"] == {"opacity": 0.5}
        assert model.bucket_style_keys['disabled && color === "primary"'] == (
            "buttonDisabledColorPrimary"
        )
        assert model.bucket_style_keys['disabled && color !== "primary"'] == (
            "buttonDisabledColorNotPrimary"
        )

    def test_emptied_boolean_bucket_is_removed(self):
        model = self._primary_model({"backgroundColor": "gray"})
        synthesize_compounds(model)
        assert "disabled" not in model.buckets

    def test_enum_with_more_cases_is_left_alone(self):
        model = self._primary_model({"backgroundColor": "gray"})
        created = synthesize_compounds(
            model, {"color": ["primary", "secondary", "tertiary"]}
        )
        assert created == 0
        assert model.buckets["disabled"] == {"backgroundColor": "gray"}

    def test_namespace_dimensions_skip_compounds(self):
        model = self._primary_model({"backgroundColor": "gray"})
        created = synthesize_compounds(
            model,
            {"color": ["primary", "secondary"]},
            LoweringConfig(namespace_dimensions=True),
        )
        assert created == 0
        assert model.buckets["disabled"] == {"backgroundColor": "gray"}
