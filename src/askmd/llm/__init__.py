"""Model invocation."""

from askmd.llm.client import ModelClient, mock_enabled

__all__ = ["ModelClient", "mock_enabled"]
