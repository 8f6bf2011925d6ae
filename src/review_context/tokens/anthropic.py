"""Token counting through Anthropic's count-tokens endpoint."""

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from review_context.tokens.base import TokenCounter
from review_context.tokens.context import TokenCountMode, TokenCounterContext
from review_context.tokens.heuristic import HeuristicTokenCounter

logger = logging.getLogger(__name__)

ANTHROPIC_API_BASE = "https://api.anthropic.com/v1"
ANTHROPIC_VERSION = "2023-06-01"


@dataclass
class AnthropicCounterConfig:
    """Endpoint settings for the count-tokens API."""

    base_url: str = ANTHROPIC_API_BASE
    version: str = ANTHROPIC_VERSION
    beta: str | None = None
    timeout_seconds: float = 15.0


class AnthropicTokenCounter(TokenCounter):
    """Precise counts from the provider, heuristic otherwise.

    A request is only made in PRECISE mode with both an API key and a model.
    Any failure (transport error, non-success status, malformed body) falls
    back to the heuristic counter. There are no retries.
    """

    def __init__(
        self,
        config: AnthropicCounterConfig | None = None,
        fallback: HeuristicTokenCounter | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        self.config = config or AnthropicCounterConfig()
        self._fallback = fallback or HeuristicTokenCounter()
        self._client = client or httpx.Client(timeout=self.config.timeout_seconds)

    def close(self) -> None:
        """Close the HTTP client."""
        self._client.close()

    def __enter__(self) -> "AnthropicTokenCounter":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def count_text_tokens(self, text: str, context: TokenCounterContext) -> int:
        if not self._can_call_api(context):
            return self._fallback.count_text_tokens(text, context)

        return self._count_via_api(None, text, context, context.model, context.api_key)

    def count_message_tokens(
        self,
        system_prompt: str | None,
        user_prompt: str,
        context: TokenCounterContext,
    ) -> int:
        if not self._can_call_api(context):
            return self._fallback.count_message_tokens(system_prompt, user_prompt, context)

        return self._count_via_api(
            system_prompt, user_prompt, context, context.model, context.api_key
        )

    @staticmethod
    def _can_call_api(context: TokenCounterContext) -> bool:
        return (
            context.mode == TokenCountMode.PRECISE
            and bool(context.api_key)
            and bool(context.model)
        )

    def _count_via_api(
        self,
        system_prompt: str | None,
        user_prompt: str,
        context: TokenCounterContext,
        model: str,
        api_key: str,
    ) -> int:
        """Call the count-tokens endpoint, falling back on any failure."""
        try:
            response = self._client.post(
                self._endpoint(),
                headers=self._build_headers(api_key),
                json=self._build_payload(model, system_prompt, user_prompt),
            )
            response.raise_for_status()
            input_tokens = response.json().get("input_tokens")

            if isinstance(input_tokens, int) and not isinstance(input_tokens, bool):
                return input_tokens

            logger.warning("Anthropic count-tokens response had no input_tokens, using heuristic")
        except (httpx.HTTPError, ValueError, AttributeError) as e:
            logger.warning(f"Anthropic token counting failed, falling back to heuristic: {e}")

        return self._fallback.count_message_tokens(system_prompt, user_prompt, context)

    def _build_headers(self, api_key: str) -> dict[str, str]:
        headers = {
            "x-api-key": api_key,
            "anthropic-version": self.config.version,
            "content-type": "application/json",
        }
        if self.config.beta:
            headers["anthropic-beta"] = self.config.beta
        return headers

    @staticmethod
    def _build_payload(model: str, system_prompt: str | None, user_prompt: str) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": model,
            "messages": [{"role": "user", "content": user_prompt}],
        }
        if system_prompt:
            payload["system"] = system_prompt
        return payload

    def _endpoint(self) -> str:
        return f"{self.config.base_url.rstrip('/')}/messages/count_tokens"
