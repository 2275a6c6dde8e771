"""Tests for the reasoning policy resolver."""

from __future__ import annotations

import logging

import pytest

from libre.llm.models import ModelCapability, ModelRegistry, ReasoningMode
from libre.llm.reasoning import ReasoningPolicyResolver, ReasoningResolution


def _model(mode: ReasoningMode) -> ModelCapability:
    return ModelCapability(id="vendor/model", reasoning=mode)


@pytest.fixture
def resolver():
    return ReasoningPolicyResolver(ModelRegistry.default())


class TestNone:
    def test_no_params_whatever_the_effort(self, resolver):
        model = _model(ReasoningMode.none())
        for effort in (None, "none", "high", "default"):
            assert resolver.resolve(model, effort) == ReasoningResolution()


class TestAlways:
    def test_no_effort_sends_nothing(self, resolver):
        assert resolver.resolve(_model(ReasoningMode.always()), None).params is None

    def test_effort_is_forwarded(self, resolver):
        res = resolver.resolve(_model(ReasoningMode.always()), "high")
        assert res.params == {"effort": "high"}

    def test_forced(self, resolver):
        res = resolver.resolve(_model(ReasoningMode.always(force_enabled=True)), None)
        assert res.params == {"enabled": True}

    def test_builtin_minimax_is_forced(self, resolver):
        res = resolver.for_model("minimax/minimax-m2.5", "high")
        assert res.params == {"enabled": True, "effort": "high"}


class TestOptional:
    def test_none_disables(self, resolver):
        res = resolver.resolve(_model(ReasoningMode.optional()), "none")
        assert res.params == {"enabled": False}

    @pytest.mark.parametrize("effort", [None, "high", "default"])
    def test_anything_else_enables(self, resolver, effort):
        res = resolver.resolve(_model(ReasoningMode.optional()), effort)
        assert res.params == {"enabled": True}
        assert res.alternate_model is None


class TestRoutesToModel:
    def test_routes_when_effort_set(self, resolver):
        res = resolver.for_model("moonshotai/kimi-k2-0905", "high")
        assert res.alternate_model == "moonshotai/kimi-k2-thinking"
        assert res.params is None

    @pytest.mark.parametrize("effort", [None, "none"])
    def test_stays_on_model(self, resolver, effort):
        assert resolver.for_model("moonshotai/kimi-k2-0905", effort) == ReasoningResolution()


class TestEffortSelectable:
    def test_explicit_level(self, resolver):
        res = resolver.for_model("google/gemini-3-pro-preview", "low")
        assert res.params == {"effort": "low"}

    @pytest.mark.parametrize("effort", [None, "default"])
    def test_default_level(self, resolver, effort):
        res = resolver.for_model("google/gemini-3-pro-preview", effort)
        assert res.params == {"effort": "high"}

    def test_unsupported_level_is_clamped_and_logged(self, resolver, caplog):
        with caplog.at_level(logging.WARNING, logger="libre.llm.reasoning"):
            res = resolver.for_model("google/gemini-2.5-flash", "xhigh")
        assert res.params == {"effort": "medium"}
        assert "xhigh" in caplog.text


class TestIsValidEffort:
    def test_effort_levels(self, resolver):
        gemini = resolver.registry.require("google/gemini-3-pro-preview")
        assert resolver.is_valid_effort(gemini, "low")
        assert not resolver.is_valid_effort(gemini, "medium")
        assert resolver.is_valid_effort(gemini, None)
        assert resolver.is_valid_effort(gemini, "default")

    def test_optional_accepts_anything(self, resolver):
        assert resolver.is_valid_effort(_model(ReasoningMode.optional()), "none")
        assert resolver.is_valid_effort(_model(ReasoningMode.optional()), "high")

    def test_no_reasoning_only_accepts_none(self, resolver):
        model = _model(ReasoningMode.none())
        assert resolver.is_valid_effort(model, "none")
        assert not resolver.is_valid_effort(model, "high")


def test_unknown_model_gets_no_params(resolver):
    assert resolver.for_model("vendor/unknown", "high") == ReasoningResolution()
