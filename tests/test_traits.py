"""Tests for trait definitions and TraitSchema."""

import pytest

from ecotone.core.agent import AgentKind
from ecotone.core.errors import MissingTraitError
from ecotone.core.traits import (
    PREDATOR_TRAITS,
    PREY_TRAITS,
    RESISTANT,
    SUSCEPTIBLE,
    TEMPERATURE_TOLERANCE,
    TOLERANCE_HIGH,
    TOLERANCE_LOW,
    TOLERANCE_MEDIUM,
    AdditiveTrait,
    DominantRecessiveTrait,
    TraitKind,
    TraitSchema,
)


class TestAdditiveTrait:
    def test_express_is_mean(self):
        t = AdditiveTrait("size", 0.5, 2.0)
        assert t.express((1.0, 2.0)) == pytest.approx(1.5)

    def test_clamp(self):
        t = AdditiveTrait("size", 0.5, 2.0)
        assert t.clamp(3.0) == 2.0
        assert t.clamp(0.1) == 0.5
        assert t.clamp(1.2) == 1.2

    def test_kind(self):
        assert AdditiveTrait("x", 0, 1).kind is TraitKind.ADDITIVE


class TestDominanceResolution:
    def test_homozygous_dominant(self):
        assert TEMPERATURE_TOLERANCE.express(("H", "H")) == TOLERANCE_HIGH

    def test_homozygous_recessive(self):
        assert TEMPERATURE_TOLERANCE.express(("L", "L")) == TOLERANCE_LOW

    @pytest.mark.parametrize("pair", [("H", "L"), ("L", "H")])
    def test_heterozygous_is_intermediate(self, pair):
        assert TEMPERATURE_TOLERANCE.express(pair) == TOLERANCE_MEDIUM

    def test_complete_dominance(self):
        resistance = next(t for t in PREY_TRAITS if t.name == "resistance")
        assert resistance.express(("R", "R")) == RESISTANT
        assert resistance.express(("R", "r")) == RESISTANT
        assert resistance.express(("r", "r")) == SUSCEPTIBLE

    def test_categories_deduplicated(self):
        resistance = next(t for t in PREY_TRAITS if t.name == "resistance")
        assert resistance.categories == (RESISTANT, SUSCEPTIBLE)
        assert TEMPERATURE_TOLERANCE.categories == (
            TOLERANCE_HIGH, TOLERANCE_MEDIUM, TOLERANCE_LOW,
        )

    def test_flip(self):
        assert TEMPERATURE_TOLERANCE.flip("H") == "L"
        assert TEMPERATURE_TOLERANCE.flip("L") == "H"


class TestTraitSchema:
    def test_prey_preset(self):
        schema = TraitSchema(AgentKind.PREY)
        assert schema.names() == [t.name for t in PREY_TRAITS]
        assert len(schema) == 6
        assert "resistance" in schema

    def test_predator_preset(self):
        schema = TraitSchema(AgentKind.PREDATOR)
        assert len(schema) == len(PREDATOR_TRAITS)
        assert "resistance" not in schema
        assert "detection_range" in schema

    def test_additive_and_categorical_split(self):
        schema = TraitSchema(AgentKind.PREY)
        assert {t.name for t in schema.categorical()} == {"temperature_tolerance", "resistance"}
        assert len(schema.additive()) == 4

    def test_unknown_trait_raises(self):
        schema = TraitSchema(AgentKind.PREY)
        with pytest.raises(MissingTraitError):
            schema.trait("wingspan")

    def test_missing_trait_error_is_key_error(self):
        schema = TraitSchema(AgentKind.PREY)
        with pytest.raises(KeyError):
            schema.trait("wingspan")

    def test_duplicate_names_rejected(self):
        with pytest.raises(ValueError):
            TraitSchema(AgentKind.PREY, [AdditiveTrait("a", 0, 1), AdditiveTrait("a", 0, 2)])

    def test_custom_traits(self):
        custom = DominantRecessiveTrait("stripes", "S", "s", "Striped", "Striped", "Plain")
        schema = TraitSchema(AgentKind.PREY, [custom])
        assert schema.names() == ["stripes"]
