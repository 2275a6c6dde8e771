"""libre-core -- streaming agent loop for OpenAI-style chat-completion APIs."""

__version__ = "0.1.0"
