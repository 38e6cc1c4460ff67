"""Model registry.

Resolves the user's selected completion backend to a single immutable
ModelConfig for one exchange. The configured models are passed in
explicitly rather than read from ambient storage.
"""

from collections.abc import Iterable

from ..errors import ModelNotConfigured
from .models import ModelConfig


class ModelRegistry:
    """Holds the configured models and the current selection."""

    def __init__(self, models: Iterable[ModelConfig], selected_id: str | None = None):
        self._models = list(models)
        self._selected_id = selected_id

    @property
    def selected_id(self) -> str | None:
        return self._selected_id

    def list_models(self) -> list[ModelConfig]:
        """Return all configured models in configuration order."""
        return list(self._models)

    def get(self, model_id: str) -> ModelConfig | None:
        """Look up a model by id, falling back to a name match."""
        for model in self._models:
            if model.id == model_id:
                return model
        for model in self._models:
            if model.name == model_id:
                return model
        return None

    def select(self, model_id: str) -> ModelConfig:
        """Change the selected model.

        Exchanges already in flight keep the config they resolved.

        Raises:
            ModelNotConfigured: If no model matches `model_id`
        """
        model = self.get(model_id)
        if model is None:
            raise ModelNotConfigured(f"Unknown model: {model_id}")
        self._selected_id = model.id
        return model

    def resolve(self, model_id: str | None = None) -> ModelConfig:
        """Resolve the configuration for one exchange.

        Order: explicit `model_id`, then the selected model, then the first
        configured model.

        Raises:
            ModelNotConfigured: If nothing can be resolved
        """
        if model_id is not None:
            model = self.get(model_id)
            if model is None:
                raise ModelNotConfigured(f"Unknown model: {model_id}")
            return model

        if self._selected_id is not None:
            model = self.get(self._selected_id)
            if model is not None:
                return model

        if not self._models:
            raise ModelNotConfigured("Please configure an AI model first")
        return self._models[0]
