"""
Typed configuration model with precedence-based loader.

Precedence (lowest to highest):
    defaults < config file (YAML) < profile < env vars < CLI flags < per-session overrides
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields, asdict
from pathlib import Path
from typing import Any

import yaml

from libre.llm.models import DEFAULT_MODEL_ID, ModelRegistry
from libre.types import BudgetPolicy, TurnSettings


# ---------------------------------------------------------------------------
# Section dataclasses
# ---------------------------------------------------------------------------

@dataclass
class ProviderConfig:
    name: str = "openai-compat"
    api_base: str = "https://ai.hackclub.com/proxy/v1"
    api_key_env: str = "LIBRE_API_KEY"
    api_key: str = ""  # overrides api_key_env when set
    timeout_seconds: float = 120.0
    idle_timeout_seconds: float = 60.0

    def resolve_api_key(self) -> str:
        return self.api_key or os.environ.get(self.api_key_env, "")


@dataclass
class ChatConfig:
    model: str = DEFAULT_MODEL_ID
    reasoning_effort: str | None = None
    temperature: float | None = None
    top_p: float | None = None
    seed: int | None = None
    web_search: bool = False
    system_prompt: str = ""


@dataclass
class AgentConfig:
    max_iterations: int = 4
    budget_policy: str = BudgetPolicy.DROP.value
    tool_timeout_seconds: float = 30.0
    parallel_tools: bool = False


@dataclass
class ToolsConfig:
    enabled: list[str] = field(default_factory=list)
    disabled: list[str] = field(default_factory=list)


@dataclass
class PluginsConfig:
    enabled: bool = False
    allow_distributions: list[str] = field(default_factory=list)
    allow_tools: list[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Root config
# ---------------------------------------------------------------------------

@dataclass
class LibreConfig:
    provider: ProviderConfig = field(default_factory=ProviderConfig)
    chat: ChatConfig = field(default_factory=ChatConfig)
    agent: AgentConfig = field(default_factory=AgentConfig)
    tools: ToolsConfig = field(default_factory=ToolsConfig)
    plugins: PluginsConfig = field(default_factory=PluginsConfig)
    models: list[dict[str, Any]] = field(default_factory=list)
    models_file: str = ""
    profiles: dict[str, dict[str, Any]] = field(default_factory=dict)

    # ----- per-session overrides (applied last) ----
    _overrides: dict[str, Any] = field(default_factory=dict, repr=False)

    def set_override(self, dotpath: str, value: Any) -> None:
        """Set a per-session override using dot notation (e.g. 'chat.model')."""
        self._overrides[dotpath] = value
        _apply_dotpath(self, dotpath, value)

    def get_override(self, dotpath: str) -> Any | None:
        return self._overrides.get(dotpath)

    def to_dict(self) -> dict:
        d = asdict(self)
        d.pop("_overrides", None)
        d["provider"].pop("api_key", None)
        return d

    @property
    def budget_policy(self) -> BudgetPolicy:
        return BudgetPolicy(self.agent.budget_policy)

    def model_registry(self) -> ModelRegistry:
        """Bundled catalogue, overlaid with ``models_file`` and inline ``models``."""
        registry = ModelRegistry.default()
        if self.models_file:
            registry = registry.merged(ModelRegistry.load_yaml(self.models_file))
        if self.models:
            registry = registry.merged(ModelRegistry.from_dicts(self.models))
        return registry

    def enabled_tools(self, available: list[str]) -> list[str]:
        names = self.tools.enabled or available
        return [n for n in names if n not in self.tools.disabled]

    def turn_settings(self, tools: list[str] | None = None) -> TurnSettings:
        return TurnSettings(
            model=self.chat.model,
            reasoning_effort=self.chat.reasoning_effort,
            temperature=self.chat.temperature,
            top_p=self.chat.top_p,
            seed=self.chat.seed,
            tools=list(tools or []),
            web_search=self.chat.web_search,
            system_prompt=self.chat.system_prompt,
        )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _apply_dotpath(obj: Any, dotpath: str, value: Any) -> None:
    """Walk obj via dotpath and set the final attribute."""
    parts = dotpath.split(".")
    for part in parts[:-1]:
        obj = getattr(obj, part)
    if not hasattr(obj, parts[-1]):
        raise AttributeError(f"Unknown config key: {dotpath}")
    setattr(obj, parts[-1], value)


def _deep_merge(base: dict, overlay: dict) -> dict:
    """Recursively merge overlay into base, returning a new dict."""
    merged = dict(base)
    for k, v in overlay.items():
        if k in merged and isinstance(merged[k], dict) and isinstance(v, dict):
            merged[k] = _deep_merge(merged[k], v)
        else:
            merged[k] = v
    return merged


def _coerce(value: str, target_type: type) -> Any:
    """Coerce a string env value to the target type."""
    if target_type is bool:
        return value.lower() in ("1", "true", "yes", "on")
    if target_type is int:
        return int(value)
    if target_type is float:
        return float(value)
    if target_type is list:
        return [s.strip() for s in value.split(",") if s.strip()]
    return value


def _build_section(cls: type, raw: dict) -> Any:
    """Build a dataclass section from a raw dict, ignoring unknown keys."""
    valid_fields = {f.name for f in fields(cls)}
    filtered = {k: v for k, v in (raw or {}).items() if k in valid_fields}
    return cls(**filtered)


# ---------------------------------------------------------------------------
# ENV var mapping
# ---------------------------------------------------------------------------

_ENV_MAP: dict[str, tuple[str, type]] = {
    "LIBRE_API_BASE":              ("provider.api_base", str),
    "LIBRE_API_KEY_ENV":           ("provider.api_key_env", str),
    "LIBRE_TIMEOUT":               ("provider.timeout_seconds", float),
    "LIBRE_IDLE_TIMEOUT":          ("provider.idle_timeout_seconds", float),
    "LIBRE_MODEL":                 ("chat.model", str),
    "LIBRE_REASONING_EFFORT":      ("chat.reasoning_effort", str),
    "LIBRE_TEMPERATURE":           ("chat.temperature", float),
    "LIBRE_TOP_P":                 ("chat.top_p", float),
    "LIBRE_SEED":                  ("chat.seed", int),
    "LIBRE_WEB_SEARCH":            ("chat.web_search", bool),
    "LIBRE_MAX_ITERATIONS":        ("agent.max_iterations", int),
    "LIBRE_BUDGET_POLICY":         ("agent.budget_policy", str),
    "LIBRE_TOOL_TIMEOUT":          ("agent.tool_timeout_seconds", float),
    "LIBRE_PARALLEL_TOOLS":        ("agent.parallel_tools", bool),
    "LIBRE_TOOLS_ENABLED":         ("tools.enabled", list),
    "LIBRE_TOOLS_DISABLED":        ("tools.disabled", list),
    "LIBRE_PLUGINS_ENABLED":       ("plugins.enabled", bool),
    "LIBRE_MODELS_FILE":           ("models_file", str),
}


# ---------------------------------------------------------------------------
# Loader
# ---------------------------------------------------------------------------

def load_config(
    config_path: str | Path | None = None,
    *,
    profile: str | None = None,
    cli_overrides: dict[str, Any] | None = None,
) -> LibreConfig:
    """
    Build a LibreConfig by layering sources in precedence order:

        defaults  <  config file  <  profile  <  env vars  <  CLI flags

    Parameters
    ----------
    config_path : path to YAML config file (optional)
    profile : name of a profile to apply from the config file
    cli_overrides : dict of dotpath -> value CLI flag overrides
    """
    raw: dict[str, Any] = {}

    # --- 1. Config file ---
    if config_path is not None:
        p = Path(config_path).expanduser()
        if p.is_file():
            with p.open("r", encoding="utf-8") as f:
                file_data = yaml.safe_load(f) or {}
            raw = _deep_merge(raw, file_data)

    # --- 2. Profile overlay ---
    if profile:
        profile_data = raw.get("profiles", {}).get(profile)
        if profile_data is None:
            raise KeyError(f"Unknown profile: {profile}")
        raw = _deep_merge(raw, profile_data)

    # --- Build sections from raw ---
    cfg = LibreConfig(
        provider=_build_section(ProviderConfig, raw.get("provider", {})),
        chat=_build_section(ChatConfig, raw.get("chat", {})),
        agent=_build_section(AgentConfig, raw.get("agent", {})),
        tools=_build_section(ToolsConfig, raw.get("tools", {})),
        plugins=_build_section(PluginsConfig, raw.get("plugins", {})),
        models=list(raw.get("models", [])),
        models_file=raw.get("models_file", ""),
        profiles=raw.get("profiles", {}),
    )

    # --- 3. Env var overrides ---
    for env_var, (dotpath, target_type) in _ENV_MAP.items():
        val = os.environ.get(env_var)
        if val is not None:
            _apply_dotpath(cfg, dotpath, _coerce(val, target_type))

    # --- 4. CLI flag overrides ---
    if cli_overrides:
        for dotpath, value in cli_overrides.items():
            if value is not None:
                _apply_dotpath(cfg, dotpath, value)

    # Raises ValueError for an unknown policy name.
    BudgetPolicy(cfg.agent.budget_policy)
    return cfg
