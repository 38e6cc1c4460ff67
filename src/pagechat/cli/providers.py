"""Provider factory functions for CLI.

Centralizes creation of the model registry, history store and assistant
catalog from environment variables. Hides configuration details from
command implementations.
"""

import json
import os
from pathlib import Path
from typing import Any

import typer
from pydantic import ValidationError
from rich.console import Console

from ..assistants import AssistantCatalog
from ..config import DEFAULT_HISTORY_PATH, DEFAULT_MAX_TOKENS, DEFAULT_TEMPERATURE, MAX_HISTORY_RECORDS
from ..errors import ConfigurationError, ModelNotConfigured
from ..history import HistoryStore, create_history_store
from ..llm import ModelConfig, ModelRegistry, ProviderKind

# Default console for output
_console = Console()

# Environment variable holding the API key for each provider
_API_KEY_ENV = {
    ProviderKind.OPENAI: "OPENAI_API_KEY",
    ProviderKind.DEEPSEEK: "DEEPSEEK_API_KEY",
    ProviderKind.ANTHROPIC: "ANTHROPIC_API_KEY",
    ProviderKind.CUSTOM: "PAGECHAT_API_KEY",
}

_DEFAULT_MODEL = {
    ProviderKind.OPENAI: "gpt-4o-mini",
    ProviderKind.DEEPSEEK: "deepseek-chat",
    ProviderKind.ANTHROPIC: "claude-sonnet-4-20250514",
}


def _models_from_file(path: Path) -> list[ModelConfig]:
    data: list[dict[str, Any]] = json.loads(path.read_text(encoding="utf-8"))
    return [ModelConfig.model_validate(item) for item in data]


def _model_from_env(console: Console) -> ModelConfig | None:
    provider_name = os.getenv("PAGECHAT_PROVIDER", "deepseek").lower()
    try:
        provider = ProviderKind(provider_name)
    except ValueError:
        console.print(f"[red]Error: Unknown provider: {provider_name}[/red]")
        return None

    key_env = _API_KEY_ENV[provider]
    api_key = os.getenv(key_env)
    if not api_key:
        console.print(f"[yellow]Warning: {key_env} not set, no model configured[/yellow]")
        return None

    model = os.getenv("PAGECHAT_MODEL") or _DEFAULT_MODEL.get(provider)
    if not model:
        console.print("[red]Error: PAGECHAT_MODEL is required for the custom provider[/red]")
        return None

    return ModelConfig(
        id=f"env-{provider.value}",
        name=os.getenv("PAGECHAT_MODEL_NAME", f"{provider.value}/{model}"),
        provider=provider,
        api_key=api_key,
        api_endpoint=os.getenv("PAGECHAT_API_ENDPOINT") or None,
        model=model,
        temperature=float(os.getenv("PAGECHAT_TEMPERATURE", str(DEFAULT_TEMPERATURE))),
        max_tokens=int(os.getenv("PAGECHAT_MAX_TOKENS", str(DEFAULT_MAX_TOKENS))),
    )


def get_registry(console: Console | None = None) -> ModelRegistry:
    """Create the model registry from environment variables.

    Args:
        console: Optional Rich console for output

    Returns:
        Registry with every configured model (possibly empty)

    Environment variables:
        PAGECHAT_MODELS_FILE: JSON list of model configs (takes precedence)
        PAGECHAT_SELECTED_MODEL: Id or name of the model to use by default
        PAGECHAT_PROVIDER: openai, deepseek, anthropic or custom (default: deepseek)
        OPENAI_API_KEY / DEEPSEEK_API_KEY / ANTHROPIC_API_KEY / PAGECHAT_API_KEY:
            Key for the chosen provider (PAGECHAT_API_KEY for custom)
        PAGECHAT_MODEL: Model identifier (provider default when unset)
        PAGECHAT_API_ENDPOINT: Base URL override (required for custom)
        PAGECHAT_TEMPERATURE: Sampling temperature (default: 0.7)
        PAGECHAT_MAX_TOKENS: Completion token cap (default: 2000)
    """
    con = console or _console
    selected = os.getenv("PAGECHAT_SELECTED_MODEL")

    models_file = os.getenv("PAGECHAT_MODELS_FILE")
    if models_file:
        try:
            return ModelRegistry(_models_from_file(Path(models_file)), selected)
        except (OSError, ValueError, ValidationError, ConfigurationError) as e:
            con.print(f"[red]Error: Could not load models from {models_file}: {e}[/red]")
            raise typer.Exit(code=1)

    try:
        model = _model_from_env(con)
    except (ValueError, ValidationError, ConfigurationError) as e:
        con.print(f"[red]Error: Invalid model configuration: {e}[/red]")
        raise typer.Exit(code=1)

    return ModelRegistry([model] if model else [], selected)


def require_model(model_id: str | None = None, console: Console | None = None) -> ModelConfig:
    """Resolve the model for one exchange, exiting if none is configured.

    Raises:
        SystemExit: If no model can be resolved
    """
    con = console or _console
    try:
        return get_registry(con).resolve(model_id)
    except ModelNotConfigured as e:
        con.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1)


def get_history_store(console: Console | None = None) -> HistoryStore:
    """Create the history store from environment variables.

    Environment variables:
        PAGECHAT_HISTORY_BACKEND: memory or sqlite (default: sqlite)
        PAGECHAT_HISTORY_PATH: SQLite file (default: ~/.pagechat/history.db)
        PAGECHAT_MAX_HISTORY: Maximum stored conversations (default: 100)
    """
    con = console or _console
    backend = os.getenv("PAGECHAT_HISTORY_BACKEND", "sqlite").lower()
    kwargs: dict[str, Any] = {}
    if backend == "sqlite":
        kwargs["path"] = os.getenv("PAGECHAT_HISTORY_PATH", str(DEFAULT_HISTORY_PATH))

    try:
        kwargs["max_records"] = int(os.getenv("PAGECHAT_MAX_HISTORY", str(MAX_HISTORY_RECORDS)))
        return create_history_store(backend, **kwargs)
    except ValueError as e:
        con.print(f"[red]Error: Invalid history configuration: {e}[/red]")
        raise typer.Exit(code=1)


def get_assistants(console: Console | None = None) -> AssistantCatalog:
    """Create the assistant catalog.

    Environment variables:
        PAGECHAT_ASSISTANTS_FILE: JSON list of presets (built-in defaults otherwise)
    """
    con = console or _console
    path = os.getenv("PAGECHAT_ASSISTANTS_FILE")
    if not path:
        return AssistantCatalog()
    try:
        return AssistantCatalog.from_file(path)
    except (OSError, ValueError, ValidationError) as e:
        con.print(f"[red]Error: Could not load assistants from {path}: {e}[/red]")
        raise typer.Exit(code=1)
