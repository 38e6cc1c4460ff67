"""Cooperative cancellation shared by the controller and the streaming client."""

import asyncio
import contextlib
from collections.abc import Awaitable
from typing import TypeVar

T = TypeVar("T")


class StreamAborted(Exception):
    """Raised by CancellationToken.guard when the token fires mid-await."""


class CancellationToken:
    """Externally observable abort signal for one exchange.

    The controller owns the token and calls cancel(); the streaming client
    checks `cancelled` before every yield and races each network read
    against the token through guard(), so a blocked read is abandoned
    instead of hanging until the provider sends more bytes.

    Must be created while an event loop is running.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        """Whether cancel() has been called."""
        return self._event.is_set()

    def cancel(self) -> None:
        """Set the signal. Idempotent."""
        self._event.set()

    # Alias matching the AbortController vocabulary used by callers
    abort = cancel

    async def wait(self) -> None:
        """Block until the token is cancelled."""
        await self._event.wait()

    async def guard(self, awaitable: Awaitable[T]) -> T:
        """Await `awaitable` unless the token fires first.

        Raises:
            StreamAborted: If the token was (or becomes) cancelled before
                the awaitable finished. The pending awaitable is cancelled.
        """
        if self.cancelled:
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            raise StreamAborted()

        work = asyncio.ensure_future(awaitable)
        aborted = asyncio.ensure_future(self._event.wait())
        try:
            done, _ = await asyncio.wait(
                {work, aborted}, return_when=asyncio.FIRST_COMPLETED
            )
        except asyncio.CancelledError:
            work.cancel()
            raise
        finally:
            aborted.cancel()

        if work in done:
            return work.result()

        work.cancel()
        # Abandoned read; its outcome no longer matters
        with contextlib.suppress(asyncio.CancelledError, Exception):
            await work
        raise StreamAborted()
