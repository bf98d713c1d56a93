"""Views that format rendered screens into binary documents."""

from .engines import FopCommandEngine, FormattingEngine, FormattingEngineError, TransformError
from .fop import RenderedView, ScreenFopViewHandler

__all__ = [
    "FopCommandEngine",
    "FormattingEngine",
    "FormattingEngineError",
    "RenderedView",
    "ScreenFopViewHandler",
    "TransformError",
]
