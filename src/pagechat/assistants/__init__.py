"""Assistant presets: named prompt pairs driving one-click exchanges."""

from .catalog import AssistantCatalog, default_assistants
from .models import AssistantPreset

__all__ = [
    "AssistantCatalog",
    "AssistantPreset",
    "default_assistants",
]
