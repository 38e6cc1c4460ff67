"""Pytest configuration and shared fixtures."""
import json
from collections.abc import AsyncIterator, Callable, Iterable

import httpx
import pytest

from pagechat.assistants import AssistantPreset
from pagechat.chat import PageContent
from pagechat.history import create_history_store
from pagechat.llm import CancellationToken, ChatMessage, DeltaStream, ModelConfig, ProviderKind


def sse_frame(content: str | None = None, **delta: object) -> bytes:
    """Encode one `data:` frame carrying a content delta."""
    if content is not None:
        delta["content"] = content
    payload = {"choices": [{"index": 0, "delta": delta}]}
    return f"data: {json.dumps(payload)}\n\n".encode()


DONE_FRAME = b"data: [DONE]\n\n"


def sse_body(*deltas: str) -> bytes:
    """A complete stream body: one frame per delta plus the sentinel."""
    return b"".join(sse_frame(d) for d in deltas) + DONE_FRAME


async def chunked(*chunks: bytes) -> AsyncIterator[bytes]:
    """Yield response body bytes in the given pieces."""
    for chunk in chunks:
        yield chunk


def mock_http_client(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
    """httpx client whose requests are answered by `handler`."""
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class FakeDeltaSource:
    """Stands in for StreamingClient in controller tests.

    Yields the given deltas, then optionally raises `error` or blocks until
    the exchange's token fires.
    """

    def __init__(
        self,
        deltas: Iterable[str] = (),
        error: Exception | None = None,
        block: bool = False,
    ):
        self.deltas = list(deltas)
        self.error = error
        self.block = block
        self.calls: list[list[ChatMessage]] = []

    def stream(self, messages, model, token: CancellationToken) -> DeltaStream:
        self.calls.append(list(messages))
        return DeltaStream(self._generate(token), token)

    async def _generate(self, token: CancellationToken) -> AsyncIterator[str]:
        for delta in self.deltas:
            yield delta
        if self.error is not None:
            raise self.error
        if self.block:
            await token.wait()


@pytest.fixture
def model_config():
    """Return a model config pointing at a fake endpoint."""
    return ModelConfig(
        id="test-model",
        name="Test Model",
        provider=ProviderKind.CUSTOM,
        api_key="sk-test",
        api_endpoint="https://llm.test/v1/",
        model="test-chat",
        temperature=0.2,
        max_tokens=256,
    )


@pytest.fixture
def sample_page():
    """Return a small extracted page."""
    return PageContent(
        title="Clocks",
        text="Clock skew is common.",
        url="https://a.test/clocks",
    )


@pytest.fixture
def sample_assistant():
    """Return an assistant preset with a content template."""
    return AssistantPreset(
        id="crisp",
        name="Crisp",
        system_prompt="Summarize crisply.",
        user_prompt="<content>{{content}}</content>",
    )


@pytest.fixture(params=["memory", "sqlite"])
def history_factory(request, tmp_path):
    """Return a factory creating an unconnected store for each backend."""
    def factory(max_records: int = 100):
        if request.param == "sqlite":
            return create_history_store(
                "sqlite", path=tmp_path / "history.db", max_records=max_records
            )
        return create_history_store("memory", max_records=max_records)

    return factory
