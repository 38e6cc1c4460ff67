"""Exchange controller.

Drives one user-initiated exchange from request to a terminal outcome:

    IDLE --start--> STREAMING --+--> COMPLETED  (history written)
                                +--> CANCELLED  (partial reply kept, nothing written)
                                +--> FAILED     (error surfaced, nothing written)

and back to IDLE once the outcome is recorded. The controller is the only
writer of the conversation; observers receive immutable snapshots, one
per delta, in arrival order.
"""

import asyncio
import logging
import time
from collections.abc import Callable, Iterable, Sequence
from typing import Protocol

from ..history.base import HistoryStore
from ..history.models import ConversationRecord
from ..llm.cancellation import CancellationToken
from ..llm.models import ChatMessage, DeltaStream, ModelConfig
from .models import Composition, ExchangeResult, ExchangeState

logger = logging.getLogger(__name__)

ConversationObserver = Callable[[tuple[ChatMessage, ...]], None]


class DeltaSource(Protocol):
    """What the controller needs from a streaming client."""

    def stream(
        self,
        messages: Sequence[ChatMessage],
        model: ModelConfig,
        token: CancellationToken,
    ) -> DeltaStream:
        ...


class ExchangeController:
    """Single-writer state machine for streaming exchanges.

    At most one stream is active: starting an exchange cancels and drains
    any previous one before the conversation is touched.
    """

    def __init__(
        self,
        client: DeltaSource,
        history: HistoryStore | None = None,
        observers: Iterable[ConversationObserver] = (),
    ):
        """Initialize the controller.

        Args:
            client: Source of delta streams (normally a StreamingClient)
            history: Store receiving completed exchanges; None disables persistence
            observers: Callables receiving every published conversation snapshot
        """
        self._client = client
        self._history = history
        self._observers = list(observers)
        self._state = ExchangeState.IDLE
        self._messages: tuple[ChatMessage, ...] = ()
        self._token: CancellationToken | None = None
        self._task: asyncio.Task[ExchangeResult] | None = None
        self._switch_lock = asyncio.Lock()
        self._last_result: ExchangeResult | None = None

    @property
    def state(self) -> ExchangeState:
        return self._state

    @property
    def messages(self) -> tuple[ChatMessage, ...]:
        """Current conversation snapshot."""
        return self._messages

    @property
    def last_result(self) -> ExchangeResult | None:
        """Outcome of the most recently finished exchange."""
        return self._last_result

    def subscribe(self, observer: ConversationObserver) -> Callable[[], None]:
        """Register an observer; returns a function that unregisters it."""
        self._observers.append(observer)

        def unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    async def start(
        self,
        composition: Composition,
        model: ModelConfig,
    ) -> asyncio.Task[ExchangeResult]:
        """Begin streaming an exchange.

        Any in-flight exchange is cancelled and awaited first. Overlapping
        calls are serialized, so each one supersedes the exchange installed
        by the previous call. The visible messages plus an empty assistant
        placeholder are published before the first network read.

        Returns:
            Task resolving to the exchange's ExchangeResult (it never raises
            for provider or transport failures; see ExchangeResult.error)
        """
        async with self._switch_lock:
            await self._supersede()

            token = CancellationToken()
            placeholder = ChatMessage(role="assistant", content="")
            self._token = token
            self._messages = (*composition.visible_messages, placeholder)
            self._set_state(ExchangeState.STREAMING)
            self._publish()

            self._task = asyncio.create_task(self._drive(composition, model, token))
            return self._task

    async def run(self, composition: Composition, model: ModelConfig) -> ExchangeResult:
        """Start an exchange and wait for its outcome."""
        task = await self.start(composition, model)
        return await task

    def stop(self) -> None:
        """Cancel the active exchange, if any. Idempotent."""
        if self._token is not None and not self._token.cancelled:
            logger.debug("Stop requested")
            self._token.cancel()

    async def wait(self) -> ExchangeResult | None:
        """Wait for the active exchange (if any) to finish."""
        if self._task is None:
            return self._last_result
        await asyncio.wait({self._task})
        return self._last_result

    async def reset(self) -> None:
        """Stop any active exchange and clear the conversation."""
        async with self._switch_lock:
            await self._supersede()
            self._messages = ()
            self._publish()

    async def _supersede(self) -> None:
        if self._task is not None and not self._task.done():
            logger.debug("Superseding in-flight exchange")
            self.stop()
            await asyncio.wait({self._task})

    async def _drive(
        self,
        composition: Composition,
        model: ModelConfig,
        token: CancellationToken,
    ) -> ExchangeResult:
        started = time.perf_counter()
        stream = self._client.stream(composition.wire_messages, model, token)
        content = ""

        def finish(state: ExchangeState, **kwargs: object) -> ExchangeResult:
            result = ExchangeResult(
                state=state,
                messages=self._messages,
                deltas=stream.deltas_yielded,
                metadata={
                    "model": model.model,
                    "processing_time_seconds": time.perf_counter() - started,
                },
                **kwargs,
            )
            if token is not self._token:
                return result
            return self._finish(result)

        try:
            async for delta in stream:
                if token is not self._token:
                    # Superseded; the slot belongs to a newer exchange
                    token.cancel()
                    break
                content += delta
                self._replace_reply(content)
                self._publish()
        except asyncio.CancelledError:
            token.cancel()
            finish(ExchangeState.CANCELLED)
            raise
        except Exception as e:
            logger.warning("Exchange failed: %s", e)
            return finish(ExchangeState.FAILED, error=e)
        finally:
            await stream.aclose()

        if token.cancelled:
            return finish(ExchangeState.CANCELLED)

        saved = False
        context = composition.history_context
        if content and context is not None and self._history is not None:
            record = ConversationRecord.from_exchange(context, model, self._messages)
            try:
                await self._history.save(record)
                saved = True
            except Exception:
                logger.exception("Failed to save conversation for %s", context.page_url)

        return finish(ExchangeState.COMPLETED, saved=saved)

    def _replace_reply(self, content: str) -> None:
        reply = self._messages[-1]
        self._messages = (*self._messages[:-1], reply.model_copy(update={"content": content}))

    def _publish(self) -> None:
        snapshot = self._messages
        for observer in list(self._observers):
            observer(snapshot)

    def _set_state(self, state: ExchangeState) -> None:
        logger.debug("Exchange state %s -> %s", self._state.value, state.value)
        self._state = state

    def _finish(self, result: ExchangeResult) -> ExchangeResult:
        self._set_state(result.state)
        self._last_result = result
        self._set_state(ExchangeState.IDLE)
        return result
