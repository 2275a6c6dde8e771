"""Tests for the model capability registry."""

from __future__ import annotations

import pytest

from libre.llm.models import (
    BUILTIN_MODELS,
    DEFAULT_MODEL_ID,
    ModelCapability,
    ModelRegistry,
    ReasoningKind,
    ReasoningMode,
)


class TestReasoningMode:
    def test_unsupported_block(self):
        assert ReasoningMode.from_dict({"supported": False}).kind is ReasoningKind.NONE
        assert ReasoningMode.from_dict(None).kind is ReasoningKind.NONE

    def test_toggleable(self):
        mode = ReasoningMode.from_dict({"supported": True, "toggleable": True})
        assert mode.kind is ReasoningKind.OPTIONAL

    def test_alternate_model_wins_over_toggleable(self):
        mode = ReasoningMode.from_dict(
            {"supported": True, "toggleable": True, "alternateModel": "x/thinking"}
        )
        assert mode.kind is ReasoningKind.ROUTES_TO_MODEL
        assert mode.alternate_model == "x/thinking"

    def test_effort_levels(self):
        mode = ReasoningMode.from_dict(
            {"supported": True, "effort": {"levels": ["low", "high"], "default": "high"}}
        )
        assert mode.kind is ReasoningKind.EFFORT_SELECTABLE
        assert mode.levels == ("low", "high")
        assert mode.default_effort == "high"

    def test_effort_without_default_uses_first_level(self):
        mode = ReasoningMode.from_dict(
            {"supported": True, "effort": {"levels": ["low", "high"]}}
        )
        assert mode.default_effort == "low"

    def test_always_and_forced(self):
        assert ReasoningMode.from_dict({"supported": True}).kind is ReasoningKind.ALWAYS
        forced = ReasoningMode.from_dict({"supported": True, "force_enabled": True})
        assert forced.kind is ReasoningKind.ALWAYS
        assert forced.force_enabled

    def test_default_must_be_a_level(self):
        with pytest.raises(ValueError, match="not one of"):
            ReasoningMode.effort_selectable(["low", "high"], "medium")


class TestModelCapability:
    def test_tools_default_to_supported(self):
        model = ModelCapability.from_dict({"id": "a/b"})
        assert model.supports_tools
        assert model.name == "a/b"
        assert not model.supports_vision

    def test_tool_use_false(self):
        assert not ModelCapability.from_dict({"id": "a/b", "tool_use": False}).supports_tools

    def test_missing_id(self):
        with pytest.raises(ValueError):
            ModelCapability.from_dict({"name": "nameless"})

    def test_frozen(self):
        model = ModelCapability(id="a/b")
        with pytest.raises(AttributeError):
            model.supports_tools = False


class TestModelRegistry:
    def test_builtin_catalogue(self):
        registry = ModelRegistry.default()
        assert DEFAULT_MODEL_ID in registry
        assert len(registry) == sum(len(group["models"]) for group in BUILTIN_MODELS)

        speciale = registry.require("deepseek/deepseek-v3.2-speciale")
        assert not speciale.supports_tools
        assert speciale.reasoning.kind is ReasoningKind.ALWAYS

        kimi = registry.require("moonshotai/kimi-k2-0905")
        assert kimi.reasoning.alternate_model == "moonshotai/kimi-k2-thinking"

        gpt = registry.require("openai/gpt-5.2")
        assert "xhigh" in gpt.reasoning.levels

    def test_require_unknown(self):
        with pytest.raises(KeyError):
            ModelRegistry().require("nope")

    def test_describe_unknown_is_permissive(self):
        model = ModelRegistry().describe("vendor/unknown")
        assert model.id == "vendor/unknown"
        assert model.supports_tools
        assert model.reasoning.kind is ReasoningKind.NONE

    def test_duplicate_ids_rejected(self):
        with pytest.raises(ValueError, match="Duplicate"):
            ModelRegistry([ModelCapability(id="a"), ModelCapability(id="a")])

    def test_list_is_sorted(self):
        registry = ModelRegistry([ModelCapability(id="b"), ModelCapability(id="a")])
        assert [m.id for m in registry.list()] == ["a", "b"]
        assert [m.id for m in registry] == ["a", "b"]

    def test_merged_entries_override(self):
        base = ModelRegistry([ModelCapability(id="a"), ModelCapability(id="b")])
        extra = ModelRegistry([ModelCapability(id="a", supports_tools=False)])
        merged = base.merged(extra)

        assert not merged.require("a").supports_tools
        assert "b" in merged
        assert base.require("a").supports_tools

    def test_load_yaml(self, tmp_path):
        path = tmp_path / "models.yaml"
        path.write_text(
            "models:\n"
            "  - category: Local\n"
            "    models:\n"
            "      - id: local/llama\n"
            "        tool_use: false\n"
            "        reasoning: {supported: true, toggleable: true}\n"
        )
        registry = ModelRegistry.load_yaml(path)
        model = registry.require("local/llama")
        assert not model.supports_tools
        assert model.reasoning.kind is ReasoningKind.OPTIONAL

    def test_load_empty_yaml(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert len(ModelRegistry.load_yaml(path)) == 0
