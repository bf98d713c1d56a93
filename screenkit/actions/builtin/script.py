"""Built-in action for running scripts."""

from collections.abc import Mapping
from typing import Any

import structlog

from ...errors import ActionConfigError, ActionError
from ...scripting import ScriptError, script_kind
from ..base import ActionContext, ActionResult, ScreenAction
from ..registry import register_action


logger = structlog.get_logger(__name__)


@register_action("script", "Run a script or simple method against the context")
class ScriptAction(ScreenAction):
    """Dispatches to the executor registered for the location's kind."""

    def __init__(self, tag: str, attributes: Mapping[str, Any]) -> None:
        """Initialize the script action."""
        super().__init__(tag, attributes)
        self.location = self._attribute("location")
        if not self.location:
            raise ActionConfigError("The script action requires a location")

    def execute(self, action_context: ActionContext) -> ActionResult:
        """Execute script action."""
        executor = action_context.scripts.resolve(self.location)
        if executor is None:
            raise ActionError(
                f"For screen script actions the script type is not yet supported for "
                f"location: [{self.location}] (supported: {', '.join(action_context.scripts.kinds())})",
                tag=self.tag,
            )

        logger.debug("Running screen script", location=self.location, kind=script_kind(self.location))
        try:
            executor.run(self.location, action_context.context)
        except ScriptError as e:
            logger.error("Screen script failed", location=self.location, error=str(e))
            raise ActionError(
                f"Error running script at location [{self.location}]: {e}", tag=self.tag
            ) from e

        return self._result(f"Ran script [{self.location}]", location=self.location)
