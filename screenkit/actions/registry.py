"""Action registry, registration decorator and action lists."""

import time
from collections.abc import Iterable, Sequence
from typing import Any, Dict, Iterator, List, Optional, Type, Union, overload

import structlog
from pydantic import ValidationError

from ..config.settings import ActionDefinition
from ..errors import ActionConfigError, ActionError
from ..utils.metrics import record_action
from .base import ActionContext, ActionResult, ActionStatus, ScreenAction


logger = structlog.get_logger(__name__)


class ActionRegistry:
    """Registry mapping action tags to action classes."""

    def __init__(self) -> None:
        """Initialize the action registry."""
        self._actions: Dict[str, Type[ScreenAction]] = {}
        self._descriptions: Dict[str, str] = {}

        logger.debug("Initialized ActionRegistry")

    def register(
        self, tag: str, action_class: Type[ScreenAction], description: str = ""
    ) -> None:
        """Register an action class under a tag.

        Args:
            tag: Tag name used in definitions
            action_class: ScreenAction subclass built for that tag
            description: Optional description
        """
        if tag in self._actions:
            logger.warning("Overriding existing screen action", tag=tag)

        self._actions[tag] = action_class
        self._descriptions[tag] = description or f"Screen action for {tag}"

        logger.debug("Registered screen action", tag=tag, action=action_class.__name__)

    def create(self, definition: ActionDefinition) -> ScreenAction:
        """Build an action from its definition.

        Raises:
            ActionConfigError: If the tag is unknown or the definition is invalid
        """
        action_class = self._actions.get(definition.tag)
        if action_class is None:
            raise ActionConfigError(
                f"Action element not supported with name: {definition.tag} "
                f"(available: {', '.join(sorted(self._actions))})"
            )
        return action_class(definition.tag, definition.attributes)

    def list_actions(self) -> List[Dict[str, str]]:
        """List all registered actions.

        Returns:
            List of action info dictionaries
        """
        return [
            {"tag": tag, "description": self._descriptions[tag]}
            for tag in sorted(self._actions)
        ]

    def get_stats(self) -> Dict[str, Any]:
        """Get registry statistics.

        Returns:
            Dictionary with statistics
        """
        return {
            "registered_actions": len(self._actions),
            "action_tags": sorted(self._actions),
        }


# Global action registry instance
_action_registry = ActionRegistry()


def register_action(tag: str, description: str = "") -> Any:
    """Decorator to register screen action classes.

    Args:
        tag: Tag name of the action
        description: Optional description

    Returns:
        Decorator function
    """
    def decorator(cls: Type[ScreenAction]) -> Type[ScreenAction]:
        _action_registry.register(tag, cls, description)
        return cls

    return decorator


def get_action_registry() -> ActionRegistry:
    """Get the global action registry instance.

    Returns:
        Global ActionRegistry instance
    """
    return _action_registry


class ActionList(Sequence):
    """Immutable, ordered list of actions run fail-fast against a context."""

    def __init__(self, actions: Iterable[ScreenAction] = ()) -> None:
        self._actions = tuple(actions)

    @classmethod
    def read(
        cls,
        nodes: Optional[Iterable[Union[ActionDefinition, Dict[str, Any]]]],
        registry: Optional[ActionRegistry] = None,
    ) -> "ActionList":
        """Build an action list from definitions or ``{tag: attributes}`` nodes.

        Raises:
            ActionConfigError: If any node is malformed or unsupported
        """
        registry = registry or _action_registry
        actions = []
        for node in nodes or []:
            try:
                definition = ActionDefinition.from_node(node)
            except (ValidationError, ValueError) as e:
                raise ActionConfigError(f"Invalid action definition: {e}") from e
            actions.append(registry.create(definition))
        return cls(actions)

    def run(self, action_context: ActionContext) -> List[ActionResult]:
        """Run every action in order, stopping at the first failure.

        Args:
            action_context: Request context and collaborators

        Returns:
            One result per action

        Raises:
            ActionError: If any action fails; later actions do not run
        """
        results = []
        for action in self._actions:
            start_time = time.time()
            logger.debug("Running screen action", tag=action.tag, action=type(action).__name__)

            try:
                with structlog.contextvars.bound_contextvars(action_tag=action.tag):
                    result = action.execute(action_context)
            except ActionError as e:
                execution_time = time.time() - start_time
                record_action(action.tag, ActionStatus.FAILED.value, execution_time)
                logger.error(
                    "Screen action failed",
                    tag=action.tag,
                    error=str(e),
                    execution_time=execution_time,
                )
                if e.tag is None:
                    e.tag = action.tag
                raise
            except Exception as e:
                execution_time = time.time() - start_time
                record_action(action.tag, ActionStatus.FAILED.value, execution_time)
                logger.error(
                    "Screen action failed",
                    tag=action.tag,
                    error=str(e),
                    error_type=type(e).__name__,
                    execution_time=execution_time,
                )
                raise ActionError(
                    f"Error running {action.tag} action: {e}", tag=action.tag
                ) from e

            result.execution_time_seconds = time.time() - start_time
            record_action(action.tag, result.status.value, result.execution_time_seconds)
            results.append(result)

        return results

    @overload
    def __getitem__(self, index: int) -> ScreenAction: ...

    @overload
    def __getitem__(self, index: slice) -> "ActionList": ...

    def __getitem__(self, index: Union[int, slice]) -> Union[ScreenAction, "ActionList"]:
        if isinstance(index, slice):
            return ActionList(self._actions[index])
        return self._actions[index]

    def __len__(self) -> int:
        return len(self._actions)

    def __iter__(self) -> Iterator[ScreenAction]:
        return iter(self._actions)

    def __repr__(self) -> str:
        return f"ActionList({[action.tag for action in self._actions]})"
