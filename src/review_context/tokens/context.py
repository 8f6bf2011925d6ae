"""Token counting configuration passed alongside every count request."""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any


class AiProvider(Enum):
    """Model provider families with a dedicated token counter."""

    OPENAI = "openai"
    ANTHROPIC = "anthropic"


class TokenCountMode(Enum):
    """Accuracy mode for token counting.

    - ESTIMATE: cheap local approximation.
    - PRECISE: call the provider's counting service when possible.
    """

    ESTIMATE = "estimate"
    PRECISE = "precise"


@dataclass(frozen=True)
class TokenCounterContext:
    """Immutable selection of provider, model and accuracy for counting."""

    provider: AiProvider | None = None
    model: str | None = None
    mode: TokenCountMode = TokenCountMode.ESTIMATE
    api_key: str | None = None

    def with_mode(self, mode: TokenCountMode, api_key: str | None = None) -> "TokenCounterContext":
        """Copy with a different mode, optionally replacing the API key."""
        if api_key is None:
            return replace(self, mode=mode)
        return replace(self, mode=mode, api_key=api_key)

    @classmethod
    def from_metadata(
        cls,
        metadata: dict[str, Any],
        mode: TokenCountMode = TokenCountMode.ESTIMATE,
    ) -> "TokenCounterContext":
        """Build a context from bundle metadata.

        Reads ``token_counter_provider`` and ``token_counter_model``; values
        that are not strings or name an unknown provider are ignored.
        """
        provider: AiProvider | None = None
        raw_provider = metadata.get("token_counter_provider")
        if isinstance(raw_provider, str):
            try:
                provider = AiProvider(raw_provider.lower())
            except ValueError:
                provider = None

        raw_model = metadata.get("token_counter_model")
        model = raw_model if isinstance(raw_model, str) and raw_model else None

        return cls(provider=provider, model=model, mode=mode)

    def __repr__(self) -> str:
        key = "***" if self.api_key else None
        return (
            f"TokenCounterContext(provider={self.provider}, model={self.model!r}, "
            f"mode={self.mode}, api_key={key})"
        )
