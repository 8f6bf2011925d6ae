"""Token accounting strategies."""

from review_context.tokens.anthropic import AnthropicCounterConfig, AnthropicTokenCounter
from review_context.tokens.base import TokenCounter
from review_context.tokens.composite import CompositeTokenCounter
from review_context.tokens.context import AiProvider, TokenCounterContext, TokenCountMode
from review_context.tokens.heuristic import HeuristicTokenCounter
from review_context.tokens.tiktoken_counter import TiktokenTokenCounter

__all__ = [
    "AiProvider",
    "AnthropicCounterConfig",
    "AnthropicTokenCounter",
    "CompositeTokenCounter",
    "HeuristicTokenCounter",
    "TiktokenTokenCounter",
    "TokenCountMode",
    "TokenCounter",
    "TokenCounterContext",
]
