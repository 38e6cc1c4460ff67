"""Data models for conversation history.

These models define the persisted shape of a page's conversation,
independent of the storage backend used.
"""

from collections.abc import Sequence
from datetime import datetime, timezone
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from ..llm.models import ChatMessage, ModelConfig


class HistoryContext(BaseModel):
    """Page identity an exchange is filed under once it completes."""

    model_config = ConfigDict(frozen=True)

    page_title: str
    page_url: str
    assistant_name: str | None = None


class ConversationRecord(BaseModel):
    """One page's running conversation.

    At most one record per distinct page_url exists in a store; saving a
    record for a known URL replaces the previous one.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    page_title: str = Field(description="Title of the page the conversation is about")
    page_url: str = Field(description="Page identity; unique within a store")
    model_name: str = Field(description="Display name of the model that answered")
    model_id: str = Field(description="Identifier of the model configuration")
    assistant_name: str | None = Field(default=None, description="Preset used, if any")
    messages: list[ChatMessage] = Field(default_factory=list, description="Visible message list")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def from_exchange(
        cls,
        context: HistoryContext,
        model: ModelConfig,
        messages: Sequence[ChatMessage],
    ) -> "ConversationRecord":
        """Build the record committed when an exchange completes."""
        return cls(
            page_title=context.page_title,
            page_url=context.page_url,
            model_name=model.name,
            model_id=model.id,
            assistant_name=context.assistant_name,
            messages=list(messages),
        )

    def matches(self, query: str | None = None, model_name: str | None = None) -> bool:
        """Case-insensitive title/URL match, optionally restricted to one model."""
        if model_name is not None and self.model_name != model_name:
            return False
        if not query:
            return True
        lowered = query.lower()
        return lowered in self.page_title.lower() or lowered in self.page_url.lower()

    @field_serializer("created_at")
    def serialize_datetime(self, value: datetime) -> str:
        """Serialize datetime to ISO format."""
        return value.isoformat()
