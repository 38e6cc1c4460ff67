"""Unit tests for model configuration, registry and cancellation."""
import asyncio
import json

import httpx
import pytest
from hypothesis import given
from hypothesis import strategies as st
from pydantic import ValidationError

from pagechat.errors import ConfigurationError, ModelNotConfigured, ProviderError
from pagechat.llm import (
    CancellationToken,
    ChatMessage,
    DeltaStream,
    LLMProvider,
    ModelConfig,
    ModelRegistry,
    OpenAICompatibleProvider,
    ProviderKind,
    StreamAborted,
    create_llm_provider,
)


def make_model(model_id: str, **overrides) -> ModelConfig:
    values = {
        "id": model_id,
        "name": f"Model {model_id}",
        "provider": ProviderKind.DEEPSEEK,
        "api_key": "sk-test",
        "model": "deepseek-chat",
    }
    values.update(overrides)
    return ModelConfig(**values)


class TestProviderKind:
    """Tests for the provider tag and its default endpoints."""

    @pytest.mark.parametrize("kind,endpoint", [
        (ProviderKind.OPENAI, "https://api.openai.com/v1"),
        (ProviderKind.ANTHROPIC, "https://api.anthropic.com/v1"),
        (ProviderKind.DEEPSEEK, "https://api.deepseek.com/v1"),
        (ProviderKind.CUSTOM, None),
    ])
    def test_default_endpoints(self, kind, endpoint):
        """Test each provider's default endpoint."""
        assert kind.default_endpoint == endpoint

    def test_parse_from_string(self):
        """Test provider tags parse from their string values."""
        assert ProviderKind("openai") is ProviderKind.OPENAI


class TestModelConfig:
    """Tests for ModelConfig."""

    def test_defaults(self):
        """Test temperature and max_tokens defaults."""
        model = make_model("a")

        assert model.temperature == 0.7
        assert model.max_tokens == 2000
        assert model.base_url == "https://api.deepseek.com/v1"

    def test_endpoint_override_strips_trailing_slash(self):
        """Test that an explicit endpoint wins and loses its trailing slash."""
        model = make_model("a", api_endpoint="http://localhost:11434/v1/")
        assert model.base_url == "http://localhost:11434/v1"

    def test_custom_provider_requires_endpoint(self):
        """Test that the custom provider without an endpoint is rejected."""
        with pytest.raises(ConfigurationError):
            make_model("a", provider=ProviderKind.CUSTOM)

    def test_api_key_hidden_from_repr(self):
        """Test that the API key never appears in repr."""
        assert "sk-test" not in repr(make_model("a"))

    @given(st.floats(min_value=0.0, max_value=2.0))
    def test_temperature_within_bounds(self, temperature: float):
        """Property test: temperatures in [0, 2] are accepted."""
        assert make_model("a", temperature=temperature).temperature == temperature

    def test_temperature_out_of_bounds_fails(self):
        """Test that temperature above 2 fails validation."""
        with pytest.raises(ValidationError):
            make_model("a", temperature=2.5)

    def test_is_frozen(self):
        """Test that configs are immutable."""
        model = make_model("a")
        with pytest.raises(ValidationError):
            model.temperature = 1.0  # type: ignore


class TestChatMessage:
    """Tests for ChatMessage."""

    def test_to_wire_has_only_role_and_content(self):
        """Test the request body shape of a message."""
        message = ChatMessage(role="user", content="Hi")
        assert message.to_wire() == {"role": "user", "content": "Hi"}

    def test_ids_are_unique(self):
        """Test that each message gets its own id."""
        assert ChatMessage(role="user", content="a").id != ChatMessage(role="user", content="a").id

    def test_copy_keeps_id(self):
        """Test that replacing content keeps the message identity."""
        message = ChatMessage(role="assistant", content="")
        grown = message.model_copy(update={"content": "Hello"})

        assert grown.id == message.id
        assert grown.content == "Hello"
        assert message.content == ""


class TestModelRegistry:
    """Tests for ModelRegistry."""

    def test_resolve_prefers_explicit_id(self):
        """Test that an explicit id beats the selection."""
        registry = ModelRegistry([make_model("a"), make_model("b")], selected_id="a")
        assert registry.resolve("b").id == "b"

    def test_resolve_uses_selection(self):
        """Test that the selected model is used by default."""
        registry = ModelRegistry([make_model("a"), make_model("b")], selected_id="b")
        assert registry.resolve().id == "b"

    def test_resolve_falls_back_to_first(self):
        """Test that a stale selection falls back to the first model."""
        registry = ModelRegistry([make_model("a"), make_model("b")], selected_id="gone")
        assert registry.resolve().id == "a"

    def test_resolve_by_name(self):
        """Test that models can be resolved by display name."""
        registry = ModelRegistry([make_model("a"), make_model("b")])
        assert registry.resolve("Model b").id == "b"

    def test_resolve_empty_raises(self):
        """Test that an empty registry cannot resolve."""
        with pytest.raises(ModelNotConfigured, match="configure an AI model"):
            ModelRegistry([]).resolve()

    def test_resolve_unknown_raises(self):
        """Test that an unknown explicit id raises."""
        with pytest.raises(ModelNotConfigured):
            ModelRegistry([make_model("a")]).resolve("zzz")

    def test_select_changes_default(self):
        """Test that select() changes what resolve() returns."""
        registry = ModelRegistry([make_model("a"), make_model("b")])
        registry.select("b")

        assert registry.selected_id == "b"
        assert registry.resolve().id == "b"

    def test_select_unknown_raises(self):
        """Test selecting an unknown model."""
        registry = ModelRegistry([make_model("a")])
        with pytest.raises(ModelNotConfigured):
            registry.select("zzz")
        assert registry.selected_id is None


class TestCancellationToken:
    """Tests for CancellationToken."""

    @pytest.mark.asyncio
    async def test_cancel_is_idempotent(self):
        """Test that cancel() can be called repeatedly."""
        token = CancellationToken()
        assert not token.cancelled

        token.cancel()
        token.abort()

        assert token.cancelled

    @pytest.mark.asyncio
    async def test_guard_returns_result(self):
        """Test that guard passes through a completed awaitable."""
        token = CancellationToken()

        async def work():
            return 42

        assert await token.guard(work()) == 42

    @pytest.mark.asyncio
    async def test_guard_aborts_pending_read(self):
        """Test that cancelling releases a blocked await."""
        token = CancellationToken()
        blocker = asyncio.Event()

        async def stuck():
            await blocker.wait()

        asyncio.get_running_loop().call_later(0.01, token.cancel)
        with pytest.raises(StreamAborted):
            await asyncio.wait_for(token.guard(stuck()), timeout=2)

    @pytest.mark.asyncio
    async def test_guard_on_cancelled_token_does_not_run(self):
        """Test that a pre-cancelled token never starts the awaitable."""
        token = CancellationToken()
        token.cancel()
        started = False

        async def work():
            nonlocal started
            started = True

        with pytest.raises(StreamAborted):
            await token.guard(work())
        assert not started


class TestDeltaStream:
    """Tests for DeltaStream."""

    @pytest.mark.asyncio
    async def test_counts_deltas(self):
        """Test iteration and the delta counter."""
        async def gen():
            yield "a"
            yield "b"

        stream = DeltaStream(gen(), CancellationToken())

        assert [d async for d in stream] == ["a", "b"]
        assert stream.deltas_yielded == 2
        assert not stream.cancelled

    @pytest.mark.asyncio
    async def test_stops_when_token_fires(self):
        """Test that a cancelled token ends the stream at the next pull."""
        async def gen():
            for i in range(10):
                yield str(i)

        token = CancellationToken()
        stream = DeltaStream(gen(), token)
        seen = []
        async for delta in stream:
            seen.append(delta)
            if len(seen) == 3:
                token.cancel()

        assert seen == ["0", "1", "2"]
        assert stream.cancelled
        await stream.aclose()


class TestProviderFactory:
    """Tests for the one-shot provider factory."""

    def test_provider_is_abstract(self):
        """Test that LLMProvider cannot be instantiated directly."""
        with pytest.raises(TypeError):
            LLMProvider()  # type: ignore

    @pytest.mark.asyncio
    async def test_creates_openai_compatible_provider(self):
        """Test that every provider tag maps to the OpenAI-compatible client."""
        model = make_model("a", provider=ProviderKind.OPENAI, model="gpt-4o-mini")
        provider = create_llm_provider(model)

        assert isinstance(provider, OpenAICompatibleProvider)
        assert provider.model == "gpt-4o-mini"
        await provider.close()


class TestOpenAICompatibleProvider:
    """Tests for one-shot calls over a mocked endpoint."""

    @staticmethod
    def make_provider(handler) -> OpenAICompatibleProvider:
        model = make_model("a", api_endpoint="https://llm.test/v1")
        http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return OpenAICompatibleProvider(model, http_client=http_client, max_retries=0)

    @pytest.mark.asyncio
    async def test_list_models_sorted(self):
        """Test that GET /models ids come back sorted."""
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/v1/models"
            return httpx.Response(200, json={
                "object": "list",
                "data": [
                    {"id": "zeta", "object": "model", "created": 0, "owned_by": "x"},
                    {"id": "alpha", "object": "model", "created": 0, "owned_by": "x"},
                ],
            })

        async with self.make_provider(handler) as provider:
            assert await provider.list_models() == ["alpha", "zeta"]

    @pytest.mark.asyncio
    async def test_chat_completion_returns_text(self):
        """Test a non-streamed completion."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen.update(json.loads(request.content))
            return httpx.Response(200, json={
                "id": "c1",
                "object": "chat.completion",
                "created": 0,
                "model": "deepseek-chat",
                "choices": [{
                    "index": 0,
                    "finish_reason": "stop",
                    "message": {"role": "assistant", "content": "Hi there"},
                }],
            })

        async with self.make_provider(handler) as provider:
            reply = await provider.chat_completion([ChatMessage(role="user", content="Hello")])

        assert reply == "Hi there"
        assert seen["model"] == "deepseek-chat"
        assert seen["temperature"] == 0.7
        assert seen["max_tokens"] == 2000

    @pytest.mark.asyncio
    async def test_connection_failure_returns_false(self):
        """Test that a rejected key reports a failed connection."""
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(401, json={"error": {"message": "Invalid API key"}})

        async with self.make_provider(handler) as provider:
            assert await provider.test_connection() is False

    @pytest.mark.asyncio
    async def test_status_error_maps_to_provider_error(self):
        """Test that SDK status errors become ProviderError."""
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, json={"error": {"message": "boom"}})

        async with self.make_provider(handler) as provider:
            with pytest.raises(ProviderError) as exc_info:
                await provider.list_models()

        assert exc_info.value.status_code == 500
