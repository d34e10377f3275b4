"""
Model Registry - Centralized model access using Flask extension pattern

Models are created by factory functions at app startup; the registry keeps
them on the app so services and jobs can reach them without importing the
factories again.

Usage:
    from opscore.models.registry import get_models

    def my_view():
        models = get_models()
        rule = models['RecurrenceRule'].query.first()
"""
from flask import current_app
from typing import Dict, Any, Optional


class ModelRegistry:
    """Flask extension holding the model classes built by init_models()"""

    def __init__(self, app=None):
        self.models: Dict[str, Any] = {}
        if app:
            self.init_app(app)

    def init_app(self, app):
        """
        Initialize extension with Flask app

        Args:
            app: Flask application instance
        """
        app.extensions['models'] = self

    def register(self, models_dict: Dict[str, Any]):
        """
        Register all models with the registry

        Args:
            models_dict: Dictionary mapping model names to model classes
        """
        self.models = models_dict

    def get(self, model_name: str) -> Optional[Any]:
        return self.models.get(model_name)

    def __getitem__(self, model_name: str) -> Any:
        """
        Dict-like access to models

        Raises:
            KeyError: If model name is not registered
        """
        return self.models[model_name]


# Global instance
model_registry = ModelRegistry()


def get_models() -> Dict[str, Any]:
    """
    Get all registered models from current app context

    Returns:
        Dictionary containing all registered models

    Raises:
        RuntimeError: If called outside application context or before
            model_registry.init_app(app) ran
    """
    if 'models' not in current_app.extensions:
        raise RuntimeError(
            "ModelRegistry not initialized. "
            "Ensure model_registry.init_app(app) is called during app setup."
        )

    return current_app.extensions['models'].models
