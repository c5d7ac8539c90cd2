"""Anthropic-backed text generation with a primary/fallback model pair.

Overload-type failures on the primary model (connection errors, 429/5xx,
"overloaded"/"rate limit"/"quota"/"unavailable" messages) are retried once on
the fallback model. Other errors surface immediately as AIProviderError.
"""

import logging
from functools import lru_cache
from typing import Any, Dict, Iterator, List, Optional

import anthropic
from anthropic import Anthropic

from manymarkets.config import settings
from manymarkets.exceptions import AIProviderError

logger = logging.getLogger(__name__)

FALLBACK_STATUS_CODES = frozenset({429, 500, 502, 503, 529})
FALLBACK_MARKERS = ("overloaded", "rate limit", "quota", "unavailable")


def should_fallback(exc: Exception) -> bool:
    """True when ``exc`` looks like capacity trouble rather than a bad request."""
    if isinstance(exc, anthropic.APIConnectionError):
        return True
    if getattr(exc, "status_code", None) in FALLBACK_STATUS_CODES:
        return True
    message = str(exc).lower()
    return any(marker in message for marker in FALLBACK_MARKERS)


class LLMClient:
    """Thin wrapper over the Anthropic Messages API."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        primary_model: Optional[str] = None,
        fallback_model: Optional[str] = None,
        max_tokens: Optional[int] = None,
        client: Optional[Anthropic] = None,
    ):
        self._api_key = api_key or settings.anthropic_api_key
        self._client = client
        self.primary_model = primary_model or settings.primary_model
        self.fallback_model = fallback_model if fallback_model is not None else settings.fallback_model
        self.max_tokens = max_tokens or settings.max_output_tokens

    @property
    def client(self) -> Anthropic:
        if self._client is None:
            self._client = Anthropic(api_key=self._api_key)
        return self._client

    @property
    def models(self) -> List[str]:
        models = [self.primary_model]
        if self.fallback_model and self.fallback_model != self.primary_model:
            models.append(self.fallback_model)
        return models

    def _request_kwargs(self, model: str, messages: List[Dict[str, Any]], system: Optional[str]) -> Dict[str, Any]:
        kwargs: Dict[str, Any] = {"model": model, "max_tokens": self.max_tokens, "messages": messages}
        if system:
            kwargs["system"] = system
        return kwargs

    def generate_text(self, prompt: str, system: Optional[str] = None) -> str:
        """
        Generate a single completion for ``prompt``.

        Raises:
            AIProviderError: If every model attempt fails
        """
        messages = [{"role": "user", "content": prompt}]
        models = self.models
        for index, model in enumerate(models):
            try:
                response = self.client.messages.create(**self._request_kwargs(model, messages, system))
                return response.content[0].text if response.content else ""
            except anthropic.APIError as exc:
                if index + 1 < len(models) and should_fallback(exc):
                    logger.warning("[LLM] %s failed (%s); falling back to %s", model, exc, models[index + 1])
                    continue
                logger.error("[LLM] Generation failed on %s: %s", model, exc)
                raise AIProviderError(f"Text generation failed: {exc}", model=model) from exc
        raise AIProviderError("No model configured")

    def stream_text(self, messages: List[Dict[str, Any]], system: Optional[str] = None) -> Iterator[str]:
        """
        Yield response text chunks for a chat transcript.

        The fallback model is only tried if the primary fails before emitting
        anything; a failure mid-stream raises AIProviderError.
        """
        models = self.models
        for index, model in enumerate(models):
            emitted = False
            try:
                with self.client.messages.stream(**self._request_kwargs(model, messages, system)) as stream:
                    for text in stream.text_stream:
                        emitted = True
                        yield text
                return
            except anthropic.APIError as exc:
                if not emitted and index + 1 < len(models) and should_fallback(exc):
                    logger.warning("[LLM] Stream on %s failed (%s); falling back to %s", model, exc, models[index + 1])
                    continue
                logger.error("[LLM] Stream failed on %s: %s", model, exc)
                raise AIProviderError(f"Streaming failed: {exc}", model=model) from exc
        raise AIProviderError("No model configured")


@lru_cache(maxsize=1)
def _default_client() -> LLMClient:
    return LLMClient()


def get_llm_client() -> LLMClient:
    """FastAPI dependency returning the shared LLM client."""
    return _default_client()
