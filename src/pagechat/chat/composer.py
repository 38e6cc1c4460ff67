"""Message composition for page exchanges.

Builds the wire list (sent to the backend) and the visible list (shown
and persisted) for each request kind. Page text is large, so it is kept
out of the visible list wherever the user did not type it themselves.
"""

from collections.abc import Sequence

from ..assistants.models import AssistantPreset
from ..errors import ContentExtractionFailed
from ..history.models import HistoryContext
from ..llm.models import ChatMessage
from ..prompts import load_prompt, render_prompt
from .models import Composition, RequestKind
from .page import PageContent, PageExtractor


class MessageComposer:
    """Turns a page extraction plus user or assistant input into a Composition.

    The page extractor is injected so tests and non-browser front ends can
    supply fixed content.
    """

    def __init__(self, extractor: PageExtractor):
        self._extractor = extractor

    async def compose(
        self,
        kind: RequestKind | str,
        *,
        assistant: AssistantPreset | None = None,
        prior: Sequence[ChatMessage] = (),
        user_text: str | None = None,
    ) -> Composition:
        """Extract the current page and compose a request.

        Args:
            kind: Request kind
            assistant: Preset to run (required for ASSISTANT; for FOLLOW_UP it
                only labels the history record)
            prior: Visible messages of the conversation so far (FOLLOW_UP)
            user_text: The user's typed message (FOLLOW_UP)

        Returns:
            Composition with wire and visible message lists

        Raises:
            ContentExtractionFailed: If the page yields no text
            ValueError: If required input for `kind` is missing
        """
        page = await self._extractor.extract()
        return self.compose_for_page(
            kind, page, assistant=assistant, prior=prior, user_text=user_text
        )

    def compose_for_page(
        self,
        kind: RequestKind | str,
        page: PageContent | None,
        *,
        assistant: AssistantPreset | None = None,
        prior: Sequence[ChatMessage] = (),
        user_text: str | None = None,
    ) -> Composition:
        """Compose a request from already-extracted page content."""
        if page is None or not page.text.strip():
            raise ContentExtractionFailed()

        kind = RequestKind(kind)
        if kind is RequestKind.SUMMARIZE:
            return self._summarize(page)
        if kind is RequestKind.ASSISTANT:
            if assistant is None:
                raise ValueError("An assistant preset is required for assistant requests")
            return self._run_assistant(page, assistant)
        return self._follow_up(page, prior, user_text, assistant)

    def _summarize(self, page: PageContent) -> Composition:
        system = ChatMessage(role="system", content=load_prompt("summarize_system"))
        user = ChatMessage(
            role="user",
            content=render_prompt("summarize_user", content=page.text),
        )
        messages = (system, user)
        return Composition(
            wire_messages=messages,
            visible_messages=messages,
            history_context=HistoryContext(page_title=page.title, page_url=page.url),
        )

    def _run_assistant(self, page: PageContent, assistant: AssistantPreset) -> Composition:
        system = ChatMessage(role="system", content=assistant.system_prompt)
        user = ChatMessage(role="user", content=assistant.render_user_prompt(page.text))
        # The expanded template repeats the whole page; only the persona is kept
        return Composition(
            wire_messages=(system, user),
            visible_messages=(system,),
            history_context=HistoryContext(
                page_title=page.title,
                page_url=page.url,
                assistant_name=assistant.name,
            ),
        )

    def _follow_up(
        self,
        page: PageContent,
        prior: Sequence[ChatMessage],
        user_text: str | None,
        assistant: AssistantPreset | None,
    ) -> Composition:
        if user_text is None or not user_text.strip():
            raise ValueError("A message is required for follow-up requests")

        visible_system = next((m for m in prior if m.role == "system"), None)
        if visible_system is None:
            visible_system = ChatMessage(role="system", content=load_prompt("page_chat_system"))

        page_context = render_prompt("page_context", title=page.title, content=page.text)
        wire_system = visible_system.model_copy(
            update={"content": f"{visible_system.content}\n\n{page_context}"}
        )

        turns = tuple(m for m in prior if m.role != "system")
        user = ChatMessage(role="user", content=user_text)

        return Composition(
            wire_messages=(wire_system, *turns, user),
            visible_messages=(visible_system, *turns, user),
            history_context=HistoryContext(
                page_title=page.title,
                page_url=page.url,
                assistant_name=assistant.name if assistant else None,
            ),
        )
