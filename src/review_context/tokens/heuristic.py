"""Character based token estimate, the universal fallback."""

import math

from review_context.tokens.base import TokenCounter
from review_context.tokens.context import TokenCounterContext

TOKENS_PER_CHAR = 0.25


class HeuristicTokenCounter(TokenCounter):
    """Approximates tokens as a quarter of the character count, rounded up."""

    def count_text_tokens(self, text: str, context: TokenCounterContext) -> int:
        return math.ceil(len(text) * TOKENS_PER_CHAR)

    def count_message_tokens(
        self,
        system_prompt: str | None,
        user_prompt: str,
        context: TokenCounterContext,
    ) -> int:
        return self.count_text_tokens((system_prompt or "") + user_prompt, context)
