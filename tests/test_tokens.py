"""Tests for token counters."""

import httpx
import pytest

from review_context.tokens import TokenCountMode


class FakeEncoder:
    """Encoder double: one token per whitespace separated word."""

    def encode(self, text, disallowed_special=()):
        return text.split()


def anthropic_counter(handler):
    from review_context.tokens import AnthropicTokenCounter

    return AnthropicTokenCounter(client=httpx.Client(transport=httpx.MockTransport(handler)))


def precise_context(**kwargs):
    from review_context.tokens import AiProvider, TokenCounterContext, TokenCountMode

    values = {
        "provider": AiProvider.ANTHROPIC,
        "model": "claude-sonnet-4-5",
        "mode": TokenCountMode.PRECISE,
        "api_key": "test-key",
    }
    values.update(kwargs)
    return TokenCounterContext(**values)


class TestHeuristicTokenCounter:
    """Tests for the character based estimate."""

    def test_quarter_of_characters_rounded_up(self):
        """Tokens are ceil(len / 4)."""
        from review_context.tokens import HeuristicTokenCounter, TokenCounterContext

        counter = HeuristicTokenCounter()
        context = TokenCounterContext()

        assert counter.count_text_tokens("Hello World", context) == 3
        assert counter.count_text_tokens("abcd", context) == 1
        assert counter.count_text_tokens("", context) == 0

    def test_message_concatenates_prompts(self):
        """Message count is the count of system plus user text."""
        from review_context.tokens import HeuristicTokenCounter, TokenCounterContext

        counter = HeuristicTokenCounter()
        context = TokenCounterContext()

        assert counter.count_message_tokens("abcd", "efgh", context) == 2
        assert counter.count_message_tokens(None, "efgh", context) == 1


class TestTokenCounterContext:
    """Tests for TokenCounterContext."""

    def test_with_mode_keeps_other_fields(self):
        """Changing the mode copies provider and model."""
        from review_context.tokens import AiProvider, TokenCounterContext, TokenCountMode

        context = TokenCounterContext(provider=AiProvider.OPENAI, model="gpt-4o")
        precise = context.with_mode(TokenCountMode.PRECISE, api_key="k")

        assert precise.mode == TokenCountMode.PRECISE
        assert precise.provider == AiProvider.OPENAI
        assert precise.model == "gpt-4o"
        assert precise.api_key == "k"
        assert context.mode == TokenCountMode.ESTIMATE

    def test_from_metadata_ignores_unknown_values(self):
        """Unknown providers and non-string models are dropped."""
        from review_context.tokens import AiProvider, TokenCounterContext

        assert TokenCounterContext.from_metadata({"token_counter_provider": "Anthropic"}).provider == (
            AiProvider.ANTHROPIC
        )

        context = TokenCounterContext.from_metadata(
            {"token_counter_provider": "mystery", "token_counter_model": 42}
        )
        assert context.provider is None
        assert context.model is None

    def test_repr_hides_api_key(self):
        """The API key never appears in the repr."""
        context = precise_context(api_key="super-secret-key")

        assert "super-secret-key" not in repr(context)


class TestAnthropicTokenCounter:
    """Tests for the count-tokens API counter."""

    def test_precise_mode_uses_api(self):
        """A successful response returns input_tokens."""
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, json={"input_tokens": 42})

        counter = anthropic_counter(handler)

        assert counter.count_message_tokens("Be brief", "Review this", precise_context()) == 42
        assert len(requests) == 1
        assert requests[0].url.path.endswith("/messages/count_tokens")
        assert requests[0].headers["x-api-key"] == "test-key"

    def test_payload_shape(self):
        """The request carries model, messages and system prompt."""
        import json

        bodies = []

        def handler(request):
            bodies.append(json.loads(request.content))
            return httpx.Response(200, json={"input_tokens": 5})

        anthropic_counter(handler).count_message_tokens("sys", "user text", precise_context())

        assert bodies[0]["model"] == "claude-sonnet-4-5"
        assert bodies[0]["system"] == "sys"
        assert bodies[0]["messages"] == [{"role": "user", "content": "user text"}]

    @pytest.mark.parametrize(
        "overrides",
        [
            {"mode": TokenCountMode.ESTIMATE},
            {"api_key": None},
            {"model": None},
        ],
    )
    def test_no_request_without_precise_inputs(self, overrides):
        """Estimate mode, a missing key or a missing model never call the API."""
        def handler(request):
            raise AssertionError("API must not be called")

        counter = anthropic_counter(handler)

        assert counter.count_text_tokens("Hello World", precise_context(**overrides)) == 3

    @pytest.mark.parametrize(
        "response",
        [
            httpx.Response(500, json={"error": "boom"}),
            httpx.Response(200, json={"unexpected": True}),
            httpx.Response(200, json={"input_tokens": "12"}),
            httpx.Response(200, text="not json"),
        ],
    )
    def test_bad_responses_fall_back(self, response):
        """Error statuses and malformed bodies fall back to the heuristic."""
        counter = anthropic_counter(lambda request: response)

        assert counter.count_text_tokens("Hello World", precise_context()) == 3

    def test_transport_error_falls_back(self):
        """Connection failures fall back to the heuristic."""

        def handler(request):
            raise httpx.ConnectError("connection refused")

        counter = anthropic_counter(handler)

        assert counter.count_message_tokens("abcd", "efgh", precise_context()) == 2

    def test_context_manager_closes_client(self):
        """Leaving the context closes the HTTP client."""
        from review_context.tokens import AnthropicTokenCounter

        client = httpx.Client(transport=httpx.MockTransport(lambda r: httpx.Response(200)))
        with AnthropicTokenCounter(client=client):
            pass

        assert client.is_closed


class TestTiktokenTokenCounter:
    """Tests for the tiktoken based counter."""

    def test_counts_with_encoder(self, monkeypatch):
        """Text is counted with the model's encoder."""
        from review_context.tokens import TiktokenTokenCounter, TokenCounterContext

        monkeypatch.setattr("tiktoken.encoding_for_model", lambda model: FakeEncoder())
        counter = TiktokenTokenCounter()

        context = TokenCounterContext(model="gpt-4o")
        assert counter.count_text_tokens("one two three", context) == 3
        assert counter.count_text_tokens("", context) == 0

    def test_message_overhead(self, monkeypatch):
        """Message counts include role and framing tokens."""
        from review_context.tokens import TiktokenTokenCounter, TokenCounterContext

        monkeypatch.setattr("tiktoken.encoding_for_model", lambda model: FakeEncoder())
        counter = TiktokenTokenCounter()
        context = TokenCounterContext(model="gpt-4o")

        # primer 3 + system (3 + 1 + 4) + user (3 + 1 + 2)
        assert counter.count_message_tokens("You are a reviewer", "Review this", context) == 17
        # primer 3 + user (3 + 1 + 2)
        assert counter.count_message_tokens(None, "Review this", context) == 9

    @pytest.mark.parametrize("error", [KeyError("unknown model"), RuntimeError("download failed")])
    def test_unknown_model_falls_back(self, monkeypatch, error):
        """Encoders that cannot be resolved fall back to the heuristic."""
        from review_context.tokens import TiktokenTokenCounter, TokenCounterContext

        def fail(model):
            raise error

        monkeypatch.setattr("tiktoken.encoding_for_model", fail)
        counter = TiktokenTokenCounter()

        assert counter.count_text_tokens("Hello World", TokenCounterContext(model="mystery")) == 3

    def test_encoder_is_cached_per_model(self, monkeypatch):
        """Encoders are resolved once per model."""
        from review_context.tokens import TiktokenTokenCounter, TokenCounterContext

        calls = []

        def encoding_for_model(model):
            calls.append(model)
            return FakeEncoder()

        monkeypatch.setattr("tiktoken.encoding_for_model", encoding_for_model)
        counter = TiktokenTokenCounter()

        counter.count_text_tokens("a b", TokenCounterContext(model="gpt-4o"))
        counter.count_text_tokens("c d", TokenCounterContext(model="gpt-4o"))
        counter.count_text_tokens("e f", TokenCounterContext())

        # no model means the default, which is gpt-4o
        assert calls == ["gpt-4o"]


class TestCompositeTokenCounter:
    """Tests for provider dispatch."""

    def test_dispatches_by_provider(self):
        """Each provider goes to its own counter, unset to the heuristic."""
        from unittest.mock import MagicMock

        from review_context.tokens import AiProvider, CompositeTokenCounter, TokenCounterContext

        openai, anthropic, heuristic = MagicMock(), MagicMock(), MagicMock()
        openai.count_text_tokens.return_value = 1
        anthropic.count_text_tokens.return_value = 2
        heuristic.count_text_tokens.return_value = 3
        counter = CompositeTokenCounter(openai=openai, anthropic=anthropic, heuristic=heuristic)

        assert counter.count_text_tokens("x", TokenCounterContext(provider=AiProvider.OPENAI)) == 1
        assert counter.count_text_tokens("x", TokenCounterContext(provider=AiProvider.ANTHROPIC)) == 2
        assert counter.count_text_tokens("x", TokenCounterContext()) == 3

    def test_message_dispatch(self):
        """Message counts are dispatched the same way."""
        from unittest.mock import MagicMock

        from review_context.tokens import AiProvider, CompositeTokenCounter, TokenCounterContext

        anthropic = MagicMock()
        anthropic.count_message_tokens.return_value = 7
        counter = CompositeTokenCounter(openai=MagicMock(), anthropic=anthropic, heuristic=MagicMock())
        context = TokenCounterContext(provider=AiProvider.ANTHROPIC)

        assert counter.count_message_tokens("s", "u", context) == 7
        anthropic.count_message_tokens.assert_called_once_with("s", "u", context)
