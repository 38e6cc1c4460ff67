"""Assistant preset catalog.

Presets come from a JSON file (a list of preset objects) or, when none is
configured, from the built-in defaults whose prompt texts live in the
prompts package.
"""

import json
from collections.abc import Iterable
from pathlib import Path

from ..prompts import load_prompt
from .models import AssistantPreset


def default_assistants() -> list[AssistantPreset]:
    """Return the built-in presets."""
    return [
        AssistantPreset(
            id="bilingual-content-analyst",
            name="TLDR",
            icon="👨‍🎓",
            description="Analyzes the article in depth, extracts key information "
                        "and offers insights from several angles.",
            system_prompt=load_prompt("tldr_system"),
            user_prompt=load_prompt("tldr_user"),
        ),
    ]


class AssistantCatalog:
    """Read-only collection of assistant presets."""

    def __init__(self, presets: Iterable[AssistantPreset] | None = None):
        presets = list(presets) if presets is not None else []
        self._presets = presets or default_assistants()

    @classmethod
    def from_file(cls, path: str | Path) -> "AssistantCatalog":
        """Load presets from a JSON file.

        Raises:
            FileNotFoundError: If the file does not exist
            pydantic.ValidationError: If an entry is not a valid preset
        """
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        return cls(AssistantPreset.model_validate(item) for item in data)

    def all(self) -> list[AssistantPreset]:
        return list(self._presets)

    def enabled(self) -> list[AssistantPreset]:
        """Presets offered to the user."""
        return [preset for preset in self._presets if preset.enabled]

    def get(self, key: str) -> AssistantPreset | None:
        """Find a preset by id, or by case-insensitive name."""
        for preset in self._presets:
            if preset.id == key:
                return preset
        lowered = key.lower()
        for preset in self._presets:
            if preset.name.lower() == lowered:
                return preset
        return None
