"""Upstream transports for chat-completion streams."""

from libre.llm.providers.base import Provider
from libre.llm.providers.openai_compat import OpenAICompatProvider

__all__ = ["OpenAICompatProvider", "Provider"]
