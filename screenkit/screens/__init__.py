"""Screen definitions, loading and rendering."""

from .factory import ScreenFactory
from .model import ModelScreen
from .renderer import RenderRequest, ScreenRenderer

__all__ = ["ModelScreen", "RenderRequest", "ScreenFactory", "ScreenRenderer"]
