"""Configuration management with Pydantic models."""

from .settings import ActionDefinition, ScreenDefinition, ScreenSettings

__all__ = ["ScreenSettings", "ScreenDefinition", "ActionDefinition"]
