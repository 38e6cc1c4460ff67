"""Prompt templates.

Request prompts live in text files next to this module. A file with the
same name in `$PAGECHAT_PROMPTS_DIR` or `./prompts` takes precedence, so
wording can be changed without touching the package.
"""

import os
import re
from functools import lru_cache
from pathlib import Path

_PACKAGE_DIR = Path(__file__).parent

_PLACEHOLDER = re.compile(r"\{\{(\w+)\}\}")


def _search_dirs() -> list[Path]:
    dirs = []
    override = os.getenv("PAGECHAT_PROMPTS_DIR")
    if override:
        dirs.append(Path(override))
    dirs.append(Path.cwd() / "prompts")
    dirs.append(_PACKAGE_DIR)
    return dirs


@lru_cache(maxsize=32)
def load_prompt(name: str) -> str:
    """Return the text of prompt `name` (file name without `.txt`).

    Trailing newlines are dropped so a template file ending in a newline
    renders to exactly the text above it.

    Raises:
        FileNotFoundError: If no search directory holds the prompt
    """
    candidates = [directory / f"{name}.txt" for directory in _search_dirs()]
    for path in candidates:
        if path.is_file():
            return path.read_text(encoding="utf-8").rstrip("\n")

    searched = "\n".join(f"  - {path}" for path in candidates)
    raise FileNotFoundError(f"Prompt '{name}' not found. Searched:\n{searched}")


def render_prompt(name: str, **values: str) -> str:
    """Load a prompt and substitute `{{key}}` placeholders.

    Substitution is single-pass, so placeholder-like text inside a
    substituted value is never expanded. Unknown placeholders are left
    untouched.
    """
    return _PLACEHOLDER.sub(
        lambda match: values.get(match.group(1), match.group(0)),
        load_prompt(name)
    )


def clear_cache() -> None:
    """Forget loaded prompts, e.g. after editing an override file."""
    load_prompt.cache_clear()


__all__ = [
    "clear_cache",
    "load_prompt",
    "render_prompt",
]
