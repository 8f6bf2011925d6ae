"""Provider dispatching token counter."""

from review_context.tokens.anthropic import AnthropicTokenCounter
from review_context.tokens.base import TokenCounter
from review_context.tokens.context import AiProvider, TokenCounterContext
from review_context.tokens.heuristic import HeuristicTokenCounter
from review_context.tokens.tiktoken_counter import TiktokenTokenCounter


class CompositeTokenCounter(TokenCounter):
    """Routes each request to the counter for the context's provider."""

    def __init__(
        self,
        openai: TiktokenTokenCounter,
        anthropic: AnthropicTokenCounter,
        heuristic: HeuristicTokenCounter,
    ) -> None:
        self.openai = openai
        self.anthropic = anthropic
        self.heuristic = heuristic

    def resolve(self, context: TokenCounterContext) -> TokenCounter:
        """Pick the counter matching the provider, heuristic when unset."""
        match context.provider:
            case AiProvider.OPENAI:
                return self.openai
            case AiProvider.ANTHROPIC:
                return self.anthropic
            case _:
                return self.heuristic

    def count_text_tokens(self, text: str, context: TokenCounterContext) -> int:
        return self.resolve(context).count_text_tokens(text, context)

    def count_message_tokens(
        self,
        system_prompt: str | None,
        user_prompt: str,
        context: TokenCounterContext,
    ) -> int:
        return self.resolve(context).count_message_tokens(system_prompt, user_prompt, context)
