"""Model access, prompts and AI-backed helpers."""

from .provider import LLMClient, get_llm_client, should_fallback

__all__ = ["LLMClient", "get_llm_client", "should_fallback"]
