"""Screen action execution subsystem with a tag-keyed registry."""

from .base import ActionContext, ActionResult, ActionStatus, ScreenAction
from .registry import ActionList, ActionRegistry, get_action_registry, register_action
from . import builtin

__all__ = [
    "ActionContext",
    "ActionList",
    "ActionRegistry",
    "ActionResult",
    "ActionStatus",
    "ScreenAction",
    "get_action_registry",
    "register_action",
]
