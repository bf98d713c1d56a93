"""Exception hierarchy for screen actions and views."""

from typing import Optional


class ScreenError(Exception):
    """Base class for all screen subsystem errors."""


class ActionConfigError(ScreenError, ValueError):
    """Raised when an action definition is invalid at construction time."""


class ActionError(ScreenError):
    """Raised when an action fails at run time; aborts the action list."""

    def __init__(self, message: str, tag: Optional[str] = None) -> None:
        super().__init__(message)
        self.tag = tag


class ConversionError(ScreenError):
    """Raised when a value cannot be converted to a declared type."""


class ScreenNotFoundError(ScreenError):
    """Raised when a screen location cannot be resolved."""


class ViewHandlerError(ScreenError):
    """Raised when a view cannot be rendered."""
