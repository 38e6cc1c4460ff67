"""Data models for composing and running exchanges."""

from dataclasses import dataclass, field
from enum import Enum

from ..history.models import HistoryContext
from ..llm.models import ChatMessage


class RequestKind(str, Enum):
    """The ways a user can start an exchange about a page."""

    SUMMARIZE = "summarize"
    ASSISTANT = "assistant"
    FOLLOW_UP = "follow_up"


@dataclass(frozen=True)
class Composition:
    """Messages for one exchange: what is sent and what is kept.

    `wire_messages` go to the backend verbatim. `visible_messages` are what
    the user sees and what history stores. The two lists correspond by role
    and ordinal position, not by id:

    - Every non-system wire message has a content-equal or deliberately
      redacted visible counterpart (an assistant run drops its expanded
      user turn entirely).
    - The wire system message may carry extracted page text; the visible
      system message never does. When both exist they share an id.
    """

    wire_messages: tuple[ChatMessage, ...]
    visible_messages: tuple[ChatMessage, ...]
    history_context: HistoryContext | None = None


class ExchangeState(str, Enum):
    """Exchange controller states."""

    IDLE = "idle"
    STREAMING = "streaming"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


@dataclass
class ExchangeResult:
    """Terminal outcome of one exchange."""

    state: ExchangeState
    messages: tuple[ChatMessage, ...] = ()
    error: Exception | None = None
    saved: bool = False
    deltas: int = 0
    metadata: dict[str, object] = field(default_factory=dict)

    @property
    def reply(self) -> str:
        """Content of the assistant message built by this exchange."""
        if self.messages and self.messages[-1].role == "assistant":
            return self.messages[-1].content
        return ""

    def raise_for_error(self) -> None:
        """Re-raise the error of a failed exchange."""
        if self.error is not None:
            raise self.error
