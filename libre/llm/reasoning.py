"""
Reasoning policy -- turns a model's reasoning mode plus the user's chosen
effort into request parameters and/or an alternate target model.

| kind              | effort              | result                         |
|-------------------|---------------------|--------------------------------|
| NONE              | any                 | nothing                        |
| ALWAYS            | level               | ``{"effort": level}``          |
| ALWAYS (forced)   | any                 | ``{"enabled": True, ...}``     |
| OPTIONAL          | "none" / other      | ``{"enabled": False / True}``  |
| ROUTES_TO_MODEL   | set, not "none"     | alternate model, no params     |
| EFFORT_SELECTABLE | level / unset       | ``{"effort": level/default}``  |

An effort outside an EFFORT_SELECTABLE model's levels is a caller
configuration error.  It is clamped to the model's default and logged;
callers should check ``is_valid_effort`` first.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from libre.llm.models import ModelCapability, ModelRegistry, ReasoningKind

logger = logging.getLogger(__name__)

NO_EFFORT = "none"
DEFAULT_EFFORT = "default"


@dataclass(frozen=True)
class ReasoningResolution:
    params: dict | None = None
    alternate_model: str | None = None


class ReasoningPolicyResolver:
    """Resolves reasoning parameters against an injected ``ModelRegistry``."""

    def __init__(self, registry: ModelRegistry) -> None:
        self.registry = registry

    def for_model(
        self, model_id: str, user_effort: str | None = None
    ) -> ReasoningResolution:
        return self.resolve(self.registry.describe(model_id), user_effort)

    @staticmethod
    def is_valid_effort(descriptor: ModelCapability, effort: str | None) -> bool:
        if effort is None or effort == DEFAULT_EFFORT:
            return True
        mode = descriptor.reasoning
        if mode.kind is ReasoningKind.EFFORT_SELECTABLE:
            return effort in mode.levels
        if mode.kind in (ReasoningKind.OPTIONAL, ReasoningKind.ROUTES_TO_MODEL):
            return True
        if mode.kind is ReasoningKind.ALWAYS:
            return effort != NO_EFFORT
        return effort == NO_EFFORT

    def resolve(
        self, descriptor: ModelCapability, user_effort: str | None = None
    ) -> ReasoningResolution:
        mode = descriptor.reasoning
        kind = mode.kind

        if kind is ReasoningKind.NONE:
            return ReasoningResolution()

        if kind is ReasoningKind.ALWAYS:
            params: dict = {}
            if mode.force_enabled:
                params["enabled"] = True
            if user_effort and user_effort not in (NO_EFFORT, DEFAULT_EFFORT):
                params["effort"] = user_effort
            return ReasoningResolution(params=params or None)

        if kind is ReasoningKind.OPTIONAL:
            return ReasoningResolution(params={"enabled": user_effort != NO_EFFORT})

        if kind is ReasoningKind.ROUTES_TO_MODEL:
            if user_effort and user_effort != NO_EFFORT:
                return ReasoningResolution(alternate_model=mode.alternate_model)
            return ReasoningResolution()

        # EFFORT_SELECTABLE
        effort = user_effort
        if effort is None or effort == DEFAULT_EFFORT:
            effort = mode.default_effort
        elif effort not in mode.levels:
            logger.warning(
                "Effort %r not supported by %s (allowed: %s); using %r",
                effort,
                descriptor.id,
                ", ".join(mode.levels),
                mode.default_effort,
            )
            effort = mode.default_effort
        return ReasoningResolution(params={"effort": effort})
