"""Data models for assistant presets."""

from pydantic import BaseModel, ConfigDict, Field

from ..config import CONTENT_PLACEHOLDER


class AssistantPreset(BaseModel):
    """A named (system prompt, user prompt template) pair.

    Read-only input to the message composer.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Preset identifier")
    name: str = Field(description="Display name")
    icon: str = Field(default="", description="Icon shown next to the name")
    description: str = Field(default="")
    system_prompt: str = Field(description="Persona sent as the system message")
    user_prompt: str = Field(
        default=CONTENT_PLACEHOLDER,
        description="User turn template; every {{content}} becomes the page text"
    )
    enabled: bool = Field(default=True)

    def render_user_prompt(self, content: str) -> str:
        """Expand the template with extracted page text.

        A template without the placeholder is returned unchanged.
        """
        return self.user_prompt.replace(CONTENT_PLACEHOLDER, content)
