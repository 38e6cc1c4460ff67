"""Main CLI application using Typer."""
import asyncio
import contextlib
import logging
import signal
from pathlib import Path

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from ..chat import (
    ExchangeController,
    ExchangeState,
    FilePageExtractor,
    MessageComposer,
    RequestKind,
)
from ..errors import ContentExtractionFailed, ContextTooLarge, PageChatError
from ..llm import ChatMessage, StreamingClient, create_llm_provider
from .providers import get_assistants, get_history_store, get_registry, require_model

# Load environment variables
load_dotenv()

# Create Typer app
app = typer.Typer(
    name="pagechat",
    help="Chat with an LLM about a page, streaming replies and keeping per-page history",
    no_args_is_help=True,
    add_completion=True,
)
history_app = typer.Typer(help="Browse and manage stored conversations", no_args_is_help=True)
app.add_typer(history_app, name="history")

# Console for rich output
console = Console()


@app.callback()
def main(
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Show debug logging"
    )
):
    """Configure logging for every command."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
        force=True,
    )


class ReplyPrinter:
    """Conversation observer that echoes new reply text as it streams in."""

    def __init__(self, console: Console):
        self._console = console
        self._printed = 0

    def __call__(self, messages: tuple[ChatMessage, ...]) -> None:
        if not messages or messages[-1].role != "assistant":
            return
        content = messages[-1].content
        if len(content) > self._printed:
            self._console.print(
                content[self._printed:], end="", markup=False, highlight=False, soft_wrap=True
            )
            self._printed = len(content)


def _exchange(
    kind: RequestKind,
    source: Path,
    url: str | None,
    title: str | None,
    model_id: str | None,
    assistant_name: str | None = None,
    question: str | None = None,
) -> None:
    """Compose, stream and persist one exchange about `source`."""
    model = require_model(model_id, console)
    catalog = get_assistants(console)

    assistant = None
    if assistant_name is not None:
        assistant = catalog.get(assistant_name)
        if assistant is None:
            console.print(f"[red]Error: Unknown assistant: {assistant_name}[/red]")
            raise typer.Exit(code=1)

    store = get_history_store(console)

    async def _run() -> ExchangeState:
        extractor = FilePageExtractor(source, url=url, title=title)
        composer = MessageComposer(extractor)

        try:
            await store.connect()
            page = await extractor.extract()

            prior: tuple[ChatMessage, ...] = ()
            label = assistant
            if kind is RequestKind.FOLLOW_UP and page is not None:
                record = await store.get(page.url)
                if record is not None:
                    prior = tuple(record.messages)
                    if label is None and record.assistant_name:
                        label = catalog.get(record.assistant_name)
                    console.print(
                        f"[dim]Continuing conversation from {record.created_at:%Y-%m-%d %H:%M}[/dim]"
                    )

            try:
                composition = composer.compose_for_page(
                    kind, page, assistant=label, prior=prior, user_text=question
                )
            except (ContentExtractionFailed, ValueError) as e:
                console.print(f"[red]Error: {e}[/red]")
                raise typer.Exit(code=1)

            console.print(f"[dim]{model.name} · {page.title}[/dim]\n")

            async with StreamingClient() as client:
                controller = ExchangeController(
                    client, history=store, observers=[ReplyPrinter(console)]
                )
                loop = asyncio.get_running_loop()
                with contextlib.suppress(NotImplementedError):
                    loop.add_signal_handler(signal.SIGINT, controller.stop)
                try:
                    result = await controller.run(composition, model)
                finally:
                    with contextlib.suppress(NotImplementedError):
                        loop.remove_signal_handler(signal.SIGINT)

            console.print()
            if result.state is ExchangeState.COMPLETED:
                note = "saved to history" if result.saved else "not saved"
                console.print(
                    f"[dim]{result.deltas} chunks in "
                    f"{result.metadata['processing_time_seconds']:.1f}s, {note}[/dim]"
                )
            elif result.state is ExchangeState.CANCELLED:
                console.print("[yellow]Stopped. Partial reply was not saved.[/yellow]")
            elif isinstance(result.error, ContextTooLarge):
                console.print(Panel(str(result.error), title="Context too large", border_style="red"))
            else:
                console.print(f"[red]Error: {result.error}[/red]")
            return result.state
        finally:
            await store.disconnect()

    state = asyncio.run(_run())
    if state is ExchangeState.FAILED:
        raise typer.Exit(code=1)


_SOURCE = typer.Argument(
    ...,
    exists=True,
    file_okay=True,
    dir_okay=False,
    help="Text or markdown file standing in for the page"
)
_URL = typer.Option(None, "--url", "-u", help="Page URL used as the history key (default: file URI)")
_TITLE = typer.Option(None, "--title", "-t", help="Page title (default: first heading or file name)")
_MODEL = typer.Option(None, "--model", "-m", help="Model id or name (default: selected model)")


@app.command()
def summarize(
    source: Path = _SOURCE,
    url: str | None = _URL,
    title: str | None = _TITLE,
    model: str | None = _MODEL,
):
    """Summarize a page."""
    _exchange(RequestKind.SUMMARIZE, source, url, title, model)


@app.command()
def assist(
    source: Path = _SOURCE,
    assistant: str = typer.Option(
        ...,
        "--assistant",
        "-a",
        help="Assistant preset id or name"
    ),
    url: str | None = _URL,
    title: str | None = _TITLE,
    model: str | None = _MODEL,
):
    """Run an assistant preset over a page."""
    _exchange(RequestKind.ASSISTANT, source, url, title, model, assistant_name=assistant)


@app.command()
def ask(
    source: Path = _SOURCE,
    question: str = typer.Argument(..., help="Question about the page"),
    url: str | None = _URL,
    title: str | None = _TITLE,
    model: str | None = _MODEL,
):
    """Ask about a page, continuing its stored conversation if there is one."""
    _exchange(RequestKind.FOLLOW_UP, source, url, title, model, question=question)


@app.command()
def models(
    remote: bool = typer.Option(
        False,
        "--remote",
        "-r",
        help="List models offered by the selected model's endpoint"
    ),
    test: bool = typer.Option(
        False,
        "--test",
        help="Send a tiny request to check the selected model works"
    ),
):
    """Show configured models."""
    registry = get_registry(console)
    configured = registry.list_models()

    if not configured:
        console.print("[yellow]No models configured.[/yellow]")
        raise typer.Exit(code=1)

    selected = registry.resolve()
    table = Table(title="Configured Models")
    table.add_column("", width=1)
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Provider")
    table.add_column("Model")
    table.add_column("Endpoint", style="dim")
    for item in configured:
        table.add_row(
            "*" if item.id == selected.id else "",
            item.id,
            item.name,
            item.provider.value,
            item.model,
            item.base_url,
        )
    console.print(table)

    if not (remote or test):
        return

    async def _remote() -> None:
        async with create_llm_provider(selected) as provider:
            if remote:
                names = await provider.list_models()
                console.print(f"\n[bold]{len(names)} models at {selected.base_url}[/bold]")
                for name in names:
                    console.print(f"  {name}")
            if test:
                ok = await provider.test_connection()
                if ok:
                    console.print(f"[green]{selected.name}: connection OK[/green]")
                else:
                    console.print(f"[red]{selected.name}: connection failed[/red]")
                    raise typer.Exit(code=1)

    try:
        asyncio.run(_remote())
    except PageChatError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1)


@app.command()
def assistants():
    """Show enabled assistant presets."""
    catalog = get_assistants(console)

    table = Table(title="Assistants")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Description", style="dim")
    for preset in catalog.enabled():
        table.add_row(preset.id, f"{preset.icon} {preset.name}".strip(), preset.description)
    console.print(table)


@history_app.command("list")
def history_list(
    search: str | None = typer.Option(None, "--search", "-s", help="Match title or URL"),
    model: str | None = typer.Option(None, "--model", "-m", help="Only this model name"),
    limit: int = typer.Option(20, "--limit", "-l", help="Maximum rows to show"),
):
    """List stored conversations, most recent first."""
    async def _list():
        async with get_history_store(console) as store:
            return await store.search(search, model)

    records = asyncio.run(_list())
    if not records:
        console.print("[dim]No conversations found.[/dim]")
        return

    table = Table(title=f"History ({len(records)})")
    table.add_column("Date", style="dim")
    table.add_column("Title")
    table.add_column("URL", style="cyan", overflow="fold")
    table.add_column("Model")
    table.add_column("Assistant")
    table.add_column("ID", style="dim")
    for record in records[:limit]:
        table.add_row(
            f"{record.created_at:%Y-%m-%d %H:%M}",
            record.page_title,
            record.page_url,
            record.model_name,
            record.assistant_name or "",
            record.id,
        )
    console.print(table)


@history_app.command("show")
def history_show(
    url: str = typer.Argument(..., help="Page URL of the conversation"),
    system: bool = typer.Option(False, "--system", help="Include the system prompt"),
):
    """Print the conversation stored for a page."""
    async def _get():
        async with get_history_store(console) as store:
            return await store.get(url)

    record = asyncio.run(_get())
    if record is None:
        console.print(f"[yellow]No conversation stored for {url}[/yellow]")
        raise typer.Exit(code=1)

    header = f"{record.page_title}\n[dim]{record.page_url}\n{record.model_name}"
    if record.assistant_name:
        header += f" · {record.assistant_name}"
    console.print(Panel(header + "[/dim]"))

    styles = {"system": "dim", "user": "bold cyan", "assistant": "bold green"}
    for message in record.messages:
        if message.role == "system" and not system:
            continue
        console.print(f"\n[{styles[message.role]}]{message.role}[/{styles[message.role]}]")
        console.print(message.content, markup=False, highlight=False)


@history_app.command("delete")
def history_delete(record_id: str = typer.Argument(..., help="Record id")):
    """Delete one stored conversation."""
    async def _delete():
        async with get_history_store(console) as store:
            return await store.delete(record_id)

    if asyncio.run(_delete()):
        console.print(f"[green]Deleted {record_id}[/green]")
    else:
        console.print(f"[yellow]No record with id {record_id}[/yellow]")
        raise typer.Exit(code=1)


@history_app.command("clear")
def history_clear(
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
):
    """Delete every stored conversation."""
    if not yes and not typer.confirm("Delete all stored conversations?"):
        console.print("[dim]Aborted.[/dim]")
        return

    async def _clear():
        async with get_history_store(console) as store:
            await store.clear()

    asyncio.run(_clear())
    console.print("[green]History cleared.[/green]")


if __name__ == "__main__":
    app()
