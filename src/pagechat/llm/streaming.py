"""Incremental chat completions client.

Speaks the OpenAI-compatible streaming wire format directly over httpx:
one POST with `stream: true`, answered by newline-delimited
`data: {json}` frames and a terminal `data: [DONE]`.

Reads are raced against the exchange's cancellation token, so stopping
an exchange abandons the in-flight read and closes the response rather
than waiting for the provider's next frame.
"""

import codecs
import json
import logging
from collections.abc import AsyncIterator, Sequence
from typing import Any

import httpx

from ..config import (
    CONTEXT_OVERFLOW_MARKERS,
    MALFORMED_FRAME_LOG_LIMIT,
    SSE_DATA_PREFIX,
    SSE_DONE_SENTINEL,
)
from ..errors import ContextTooLarge, ProviderError, StreamError
from .cancellation import CancellationToken, StreamAborted
from .models import ChatMessage, DeltaStream, ModelConfig

logger = logging.getLogger(__name__)


def build_payload(messages: Sequence[ChatMessage], model: ModelConfig) -> dict[str, Any]:
    """Build the chat completions request body for a streaming call."""
    return {
        "model": model.model,
        "messages": [msg.to_wire() for msg in messages],
        "temperature": model.temperature,
        "max_tokens": model.max_tokens,
        "stream": True,
    }


def parse_frame(line: str) -> str | None:
    """Extract the text delta carried by one stream line.

    Returns None for non-data lines, the [DONE] sentinel, frames without
    content, and malformed JSON (which is logged, never raised).
    """
    line = line.rstrip("\r")
    if not line.startswith(SSE_DATA_PREFIX):
        return None

    payload = line[len(SSE_DATA_PREFIX):]
    if payload.strip() == SSE_DONE_SENTINEL:
        return None

    try:
        frame = json.loads(payload)
    except json.JSONDecodeError:
        logger.warning(
            "Skipping malformed stream frame: %r",
            payload[:MALFORMED_FRAME_LOG_LIMIT]
        )
        return None

    try:
        content = frame["choices"][0]["delta"].get("content")
    except (KeyError, IndexError, TypeError, AttributeError):
        # Role-only, usage-only and keep-alive frames carry no delta
        return None

    if isinstance(content, str) and content:
        return content
    return None


def _error_message(data: Any) -> str | None:
    if not isinstance(data, dict):
        return None
    error = data.get("error")
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    if isinstance(error, str) and error:
        return error
    for key in ("message", "detail"):
        if data.get(key):
            return str(data[key])
    return None


def classify_error(status_code: int, body: bytes) -> ProviderError:
    """Turn a non-success response into the matching error.

    Context overflow detection is a best-effort substring heuristic on the
    provider's message; phrasing varies between providers.
    """
    try:
        api_error = _error_message(json.loads(body))
    except ValueError:
        api_error = None

    if not api_error:
        return ProviderError(f"Request failed with status {status_code}", status_code)

    lowered = api_error.lower()
    if any(marker in lowered for marker in CONTEXT_OVERFLOW_MARKERS):
        return ContextTooLarge(api_error, status_code)
    return ProviderError(api_error, status_code)


async def _next_chunk(chunks: AsyncIterator[bytes]) -> bytes | None:
    """Read one chunk; None marks the end of the body."""
    try:
        return await anext(chunks)
    except StopAsyncIteration:
        return None


class StreamingClient:
    """Streams text deltas from an OpenAI-compatible completions endpoint.

    Hidden design decisions:
    - Transport and connection reuse (one shared httpx.AsyncClient)
    - Wire framing, incremental UTF-8 decoding and line buffering
    - Mapping provider error bodies onto the error taxonomy
    - Treating aborts as a clean end of stream

    Supports async context manager protocol:
        async with StreamingClient() as client:
            async for delta in client.stream(messages, model, token):
                ...
    """

    def __init__(self, client: httpx.AsyncClient | None = None):
        """Initialize the streaming client.

        Args:
            client: Optional preconfigured httpx client (e.g. with a mock
                transport). When omitted, one is created with no read
                timeout; exchanges end through explicit cancellation.
        """
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(None, connect=10.0)
        )

    def stream(
        self,
        messages: Sequence[ChatMessage],
        model: ModelConfig,
        token: CancellationToken,
    ) -> DeltaStream:
        """Open a lazy, single-pass stream of text deltas.

        No request is made until the first pull.

        Args:
            messages: Wire message list, sent in order
            model: Backend configuration for this exchange
            token: Cancellation token; when set, the stream ends cleanly

        Returns:
            DeltaStream yielding non-empty text fragments

        Raises (during iteration):
            ContextTooLarge: Provider rejected the input as too long
            ProviderError: Any other non-success response
            StreamError: Transport failure not caused by cancellation
        """
        return DeltaStream(self._iter_deltas(list(messages), model, token), token)

    async def _iter_deltas(
        self,
        messages: list[ChatMessage],
        model: ModelConfig,
        token: CancellationToken,
    ) -> AsyncIterator[str]:
        if token.cancelled:
            return

        request = self._client.build_request(
            "POST",
            f"{model.base_url}/chat/completions",
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {model.api_key}",
            },
            json=build_payload(messages, model),
        )
        logger.debug(
            "Opening stream to %s (model=%s, messages=%d)",
            request.url, model.model, len(messages)
        )

        try:
            response = await token.guard(self._client.send(request, stream=True))
        except StreamAborted:
            logger.debug("Stream aborted before response headers")
            return
        except httpx.HTTPError as e:
            if token.cancelled:
                return
            raise StreamError(f"Request to {model.base_url} failed: {e}") from e

        try:
            if not response.is_success:
                body = await token.guard(response.aread())
                error = classify_error(response.status_code, body)
                logger.warning(
                    "Provider returned %d: %s", response.status_code, error.message
                )
                raise error

            decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
            chunks = response.aiter_bytes()
            buffer = ""

            while True:
                chunk = await token.guard(_next_chunk(chunks))
                if chunk is None:
                    break

                buffer += decoder.decode(chunk)
                *lines, buffer = buffer.split("\n")
                for line in lines:
                    delta = parse_frame(line)
                    if delta is None:
                        continue
                    if token.cancelled:
                        return
                    yield delta

            # A final frame may arrive without its trailing newline
            buffer += decoder.decode(b"", final=True)
            delta = parse_frame(buffer)
            if delta is not None and not token.cancelled:
                yield delta

            logger.debug("Stream from %s finished", model.base_url)

        except StreamAborted:
            logger.debug("Stream aborted by cancellation")
        except httpx.HTTPError as e:
            if token.cancelled:
                logger.debug("Transport error after cancellation: %s", e)
                return
            raise StreamError(f"Stream interrupted: {e}") from e
        finally:
            await response.aclose()

    async def close(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "StreamingClient":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit with automatic cleanup."""
        await self.close()
