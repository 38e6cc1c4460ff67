"""Chat orchestration: message composition and streaming exchanges."""

from .composer import MessageComposer
from .controller import ConversationObserver, DeltaSource, ExchangeController
from .models import Composition, ExchangeResult, ExchangeState, RequestKind
from .page import FilePageExtractor, PageContent, PageExtractor, StaticPageExtractor

__all__ = [
    "Composition",
    "ConversationObserver",
    "DeltaSource",
    "ExchangeController",
    "ExchangeResult",
    "ExchangeState",
    "FilePageExtractor",
    "MessageComposer",
    "PageContent",
    "PageExtractor",
    "RequestKind",
    "StaticPageExtractor",
]
