"""Base class for token counters."""

from abc import ABC, abstractmethod

from review_context.tokens.context import TokenCounterContext


class TokenCounter(ABC):
    """Estimates how many tokens text would consume for a model."""

    @abstractmethod
    def count_text_tokens(self, text: str, context: TokenCounterContext) -> int:
        """Count tokens in a plain piece of text."""

    @abstractmethod
    def count_message_tokens(
        self,
        system_prompt: str | None,
        user_prompt: str,
        context: TokenCounterContext,
    ) -> int:
        """Count tokens of a request made of an optional system and a user message."""
