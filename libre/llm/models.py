"""
Model capability registry.

Maps model identifiers to static capability descriptors: tool support,
reasoning mode and vision.  A registry is immutable once built and is passed
explicitly to whatever needs it; ``ModelRegistry.default()`` builds the
bundled catalogue.

Catalogue entries use the same shape whether they come from the bundled
table or a YAML file::

    - id: google/gemini-2.5-flash
      name: Gemini 2.5 Flash
      tool_use: true
      vision: true
      reasoning:
        supported: true
        toggleable: false
        effort: {levels: [low, medium, high], default: medium}

``reasoning.alternateModel`` routes reasoning requests to another model and
``reasoning.force_enabled`` always sends ``enabled: true``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any, Iterable, Iterator

import yaml


class ReasoningKind(Enum):
    NONE = "none"
    ALWAYS = "always"
    OPTIONAL = "optional"
    ROUTES_TO_MODEL = "routes_to_model"
    EFFORT_SELECTABLE = "effort_selectable"


@dataclass(frozen=True)
class ReasoningMode:
    kind: ReasoningKind = ReasoningKind.NONE
    alternate_model: str | None = None
    levels: tuple[str, ...] = ()
    default_effort: str | None = None
    force_enabled: bool = False

    @classmethod
    def none(cls) -> ReasoningMode:
        return cls()

    @classmethod
    def always(cls, force_enabled: bool = False) -> ReasoningMode:
        return cls(kind=ReasoningKind.ALWAYS, force_enabled=force_enabled)

    @classmethod
    def optional(cls) -> ReasoningMode:
        return cls(kind=ReasoningKind.OPTIONAL)

    @classmethod
    def routes_to(cls, model_id: str) -> ReasoningMode:
        return cls(kind=ReasoningKind.ROUTES_TO_MODEL, alternate_model=model_id)

    @classmethod
    def effort_selectable(
        cls, levels: Iterable[str], default: str
    ) -> ReasoningMode:
        levels = tuple(levels)
        if default not in levels:
            raise ValueError(
                f"Default effort {default!r} is not one of {list(levels)}"
            )
        return cls(
            kind=ReasoningKind.EFFORT_SELECTABLE,
            levels=levels,
            default_effort=default,
        )

    @classmethod
    def from_dict(cls, raw: Any) -> ReasoningMode:
        """Parse the catalogue's ``reasoning`` block."""
        if not isinstance(raw, dict) or not raw.get("supported"):
            return cls.none()
        if raw.get("alternateModel"):
            return cls.routes_to(raw["alternateModel"])
        if raw.get("toggleable"):
            return cls.optional()
        effort = raw.get("effort")
        if effort and effort.get("levels"):
            levels = effort["levels"]
            return cls.effort_selectable(levels, effort.get("default") or levels[0])
        return cls.always(force_enabled=bool(raw.get("force_enabled")))


@dataclass(frozen=True)
class ModelCapability:
    """Static capability descriptor for one model id."""

    id: str
    name: str = ""
    supports_tools: bool = True
    reasoning: ReasoningMode = field(default_factory=ReasoningMode)
    supports_vision: bool = False
    description: str = ""

    @classmethod
    def from_dict(cls, raw: dict) -> ModelCapability:
        if not raw.get("id"):
            raise ValueError(f"Model entry without an id: {raw!r}")
        return cls(
            id=raw["id"],
            name=raw.get("name") or raw["id"],
            # Tools are assumed supported unless explicitly disabled.
            supports_tools=raw.get("tool_use", True) is not False,
            reasoning=ReasoningMode.from_dict(raw.get("reasoning")),
            supports_vision=bool(raw.get("vision", False)),
            description=raw.get("description", ""),
        )


class ModelRegistry:
    """Read-only lookup of model id -> ``ModelCapability``."""

    def __init__(self, models: Iterable[ModelCapability] = ()) -> None:
        table: dict[str, ModelCapability] = {}
        for model in models:
            if model.id in table:
                raise ValueError(f"Duplicate model id: {model.id}")
            table[model.id] = model
        self._models = MappingProxyType(table)

    @classmethod
    def from_dicts(cls, entries: Iterable[dict]) -> ModelRegistry:
        """Build a registry from catalogue entries (flat or grouped by category)."""
        return cls(ModelCapability.from_dict(e) for e in _flatten(entries))

    @classmethod
    def load_yaml(cls, path: str | Path) -> ModelRegistry:
        with Path(path).expanduser().open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or []
        if isinstance(data, dict):
            data = data.get("models", [])
        return cls.from_dicts(data)

    @classmethod
    def default(cls) -> ModelRegistry:
        return cls.from_dicts(BUILTIN_MODELS)

    def merged(self, other: ModelRegistry) -> ModelRegistry:
        """Return a new registry where entries from *other* win."""
        table = dict(self._models)
        table.update(other._models)
        return ModelRegistry(table.values())

    def get(self, model_id: str) -> ModelCapability | None:
        return self._models.get(model_id)

    def require(self, model_id: str) -> ModelCapability:
        model = self.get(model_id)
        if model is None:
            raise KeyError(model_id)
        return model

    def describe(self, model_id: str) -> ModelCapability:
        """Like ``get`` but unknown ids get a permissive default descriptor."""
        return self.get(model_id) or ModelCapability(id=model_id, name=model_id)

    def list(self) -> list[ModelCapability]:
        return sorted(self._models.values(), key=lambda m: m.id)

    def __contains__(self, model_id: object) -> bool:
        return model_id in self._models

    def __iter__(self) -> Iterator[ModelCapability]:
        return iter(self.list())

    def __len__(self) -> int:
        return len(self._models)


def _flatten(entries: Iterable[dict]) -> Iterator[dict]:
    for entry in entries:
        if "models" in entry:
            yield from _flatten(entry["models"])
        else:
            yield entry


DEFAULT_MODEL_ID = "moonshotai/kimi-k2.5"

_EFFORT_LMH = {"levels": ["low", "medium", "high"], "default": "medium"}

BUILTIN_MODELS: list[dict] = [
    {
        "category": "DeepSeek",
        "models": [
            {
                "id": "deepseek/deepseek-v3.2-speciale",
                "name": "DeepSeek V3.2 Speciale",
                "tool_use": False,
                "reasoning": {"supported": True, "toggleable": False},
            },
            {
                "id": "deepseek/deepseek-v3.2",
                "name": "DeepSeek V3.2",
                "reasoning": {"supported": True, "toggleable": True},
            },
        ],
    },
    {
        "category": "Google",
        "models": [
            {
                "id": "google/gemini-3-pro-preview",
                "name": "Gemini 3 Pro Preview",
                "vision": True,
                "reasoning": {
                    "supported": True,
                    "effort": {"levels": ["low", "high"], "default": "high"},
                },
            },
            {
                "id": "google/gemini-3-flash-preview",
                "name": "Gemini 3 Flash Preview",
                "vision": True,
                "reasoning": {
                    "supported": True,
                    "effort": {
                        "levels": ["minimal", "low", "medium", "high"],
                        "default": "medium",
                    },
                },
            },
            {
                "id": "google/gemini-2.5-flash",
                "name": "Gemini 2.5 Flash",
                "vision": True,
                "reasoning": {"supported": True, "effort": _EFFORT_LMH},
            },
            {
                "id": "google/gemini-2.5-flash-image",
                "name": "Nano Banana (Image)",
                "tool_use": False,
                "vision": True,
                "reasoning": {"supported": False},
            },
        ],
    },
    {
        "category": "Moonshot AI",
        "models": [
            {
                "id": "moonshotai/kimi-k2.5",
                "name": "Kimi K2.5",
                "vision": True,
                "reasoning": {"supported": True, "toggleable": True},
            },
            {
                "id": "moonshotai/kimi-k2-0905",
                "name": "Kimi K2",
                "reasoning": {
                    "supported": True,
                    "toggleable": True,
                    "alternateModel": "moonshotai/kimi-k2-thinking",
                },
            },
        ],
    },
    {
        "category": "MiniMax",
        "models": [
            {
                "id": "minimax/minimax-m2.5",
                "name": "MiniMax M2.5",
                "reasoning": {"supported": True, "force_enabled": True},
            },
        ],
    },
    {
        "category": "OpenAI",
        "models": [
            {
                "id": "openai/gpt-5.2",
                "name": "GPT-5.2",
                "vision": True,
                "reasoning": {
                    "supported": True,
                    "effort": {
                        "levels": ["low", "medium", "high", "xhigh"],
                        "default": "medium",
                    },
                },
            },
            {
                "id": "openai/gpt-5-mini",
                "name": "GPT-5 Mini",
                "reasoning": {"supported": True, "effort": _EFFORT_LMH},
            },
            {
                "id": "openai/gpt-oss-120b",
                "name": "GPT OSS 120B",
                "reasoning": {"supported": True, "effort": _EFFORT_LMH},
            },
        ],
    },
    {
        "category": "Qwen",
        "models": [
            {
                "id": "qwen/qwen3-vl-235b-a22b-instruct",
                "name": "Qwen 3 VL 235B A22B Instruct",
                "vision": True,
                "reasoning": {"supported": False},
            },
            {
                "id": "qwen/qwen3-next-80b-a3b-instruct",
                "name": "Qwen 3 Next 80B A3B Instruct",
                "reasoning": {"supported": False},
            },
        ],
    },
    {
        "category": "Z.ai",
        "models": [
            {
                "id": "z-ai/glm-4.7",
                "name": "GLM 4.7",
                "reasoning": {"supported": True, "toggleable": True},
            },
        ],
    },
]
