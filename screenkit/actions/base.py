"""Base classes for screen actions."""

from abc import ABC, abstractmethod
from collections.abc import Mapping, MutableMapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Optional

import structlog

from ..context.scopes import ScopedStore
from ..context.stack import APPLICATION, SESSION
from ..entity.value import Delegator
from ..errors import ActionError
from ..resources import PropertyLoader
from ..scripting import ScriptRegistry
from ..services import ServiceDispatcher

logger = structlog.get_logger(__name__)


class ActionStatus(Enum):
    """Status of action execution."""

    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class ActionResult:
    """Result of action execution."""

    status: ActionStatus
    message: str
    details: dict[str, Any]
    execution_time_seconds: float


@dataclass
class ActionContext:
    """Context passed to screen actions.

    Carries the request context together with the collaborators actions
    call into. Session and application stores fall back to the
    ``session``/``application`` context entries when not injected.
    """

    context: MutableMapping[str, Any]
    session: Optional[ScopedStore] = None
    application: Optional[ScopedStore] = None
    dispatcher: Optional[ServiceDispatcher] = None
    delegator: Optional[Delegator] = None
    scripts: ScriptRegistry = field(default_factory=ScriptRegistry.with_defaults)
    properties: Optional[PropertyLoader] = None

    def session_store(self) -> Optional[ScopedStore]:
        return self.session if self.session is not None else self.context.get(SESSION)

    def application_store(self) -> Optional[ScopedStore]:
        return self.application if self.application is not None else self.context.get(APPLICATION)

    def require(self, name: str, tag: str) -> Any:
        """Return a collaborator or fail the action if it was not supplied."""
        collaborator = getattr(self, name)
        if collaborator is None:
            raise ActionError(f"No {name} available for the {tag} action", tag=tag)
        return collaborator


class ScreenAction(ABC):
    """Base class for all screen actions.

    Actions are built once from their definition and hold only
    accessor/expander descriptors, so one instance is shared by every
    request that runs it.
    """

    def __init__(self, tag: str, attributes: Mapping[str, Any]) -> None:
        """Initialize screen action.

        Args:
            tag: Action kind the definition was registered under
            attributes: Definition attributes
        """
        self.tag = tag
        self.attributes = MappingProxyType(dict(attributes))

        logger.debug("Reading screen action", tag=tag)

    @abstractmethod
    def execute(self, action_context: ActionContext) -> ActionResult:
        """Execute the action.

        Args:
            action_context: Request context and collaborators

        Returns:
            Result of action execution

        Raises:
            ActionError: If the action fails
        """
        pass

    def _attribute(self, name: str, default: str = "") -> str:
        value = self.attributes.get(name)
        if value is None:
            return default
        return str(value)

    def _flag(self, name: str) -> bool:
        return self._attribute(name) == "true"

    def _result(
        self, message: str, status: ActionStatus = ActionStatus.SUCCESS, **details: Any
    ) -> ActionResult:
        return ActionResult(
            status=status,
            message=message,
            details=details,
            execution_time_seconds=0,  # Will be set by the action list
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}({dict(self.attributes)!r})"
