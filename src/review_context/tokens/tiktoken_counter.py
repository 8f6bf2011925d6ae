"""Token counting for OpenAI models via tiktoken."""

import logging
from typing import Any

import tiktoken

from review_context.tokens.base import TokenCounter
from review_context.tokens.context import TokenCounterContext
from review_context.tokens.heuristic import HeuristicTokenCounter

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-4o"

# Chat framing overhead: every message is wrapped in role/separator tokens
# and the reply is primed with three more.
TOKENS_PER_MESSAGE = 3
TOKENS_REPLY_PRIMER = 3


class TiktokenTokenCounter(TokenCounter):
    """Counts tokens with the subword encoder matching the model.

    Unknown models and encoders that cannot be loaded fall back to the
    heuristic counter; callers never see an error.
    """

    def __init__(self, fallback: HeuristicTokenCounter | None = None) -> None:
        self._fallback = fallback or HeuristicTokenCounter()
        # model -> encoder, or None when the model has no usable encoder
        self._encoders: dict[str, Any] = {}

    def count_text_tokens(self, text: str, context: TokenCounterContext) -> int:
        if text == "":
            return 0

        encoder = self._get_encoder(context.model)
        if encoder is None:
            return self._fallback.count_text_tokens(text, context)

        return len(encoder.encode(text, disallowed_special=()))

    def count_message_tokens(
        self,
        system_prompt: str | None,
        user_prompt: str,
        context: TokenCounterContext,
    ) -> int:
        encoder = self._get_encoder(context.model)
        if encoder is None:
            return self._fallback.count_message_tokens(system_prompt, user_prompt, context)

        tokens = TOKENS_REPLY_PRIMER
        for role, content in (("system", system_prompt), ("user", user_prompt)):
            if content is None:
                continue
            tokens += TOKENS_PER_MESSAGE
            tokens += len(encoder.encode(role, disallowed_special=()))
            tokens += len(encoder.encode(content, disallowed_special=()))

        return tokens

    def _get_encoder(self, model: str | None) -> Any:
        """Resolve and cache the encoder for a model."""
        model = model or DEFAULT_MODEL
        if model in self._encoders:
            return self._encoders[model]

        try:
            encoder = tiktoken.encoding_for_model(model)
        except KeyError:
            logger.debug(f"No tiktoken encoding for model {model}, using heuristic")
            encoder = None
        except Exception as e:
            logger.warning(f"Could not load tiktoken encoding for {model}: {e}")
            encoder = None

        self._encoders[model] = encoder
        return encoder
