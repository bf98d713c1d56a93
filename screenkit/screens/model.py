"""Screen model: an action list plus the template it feeds."""

from typing import Any, Dict, List, Optional

import structlog
from jinja2 import Environment

from ..actions import ActionContext, ActionList, ActionRegistry, ActionResult
from ..config.settings import ScreenDefinition
from ..context.stack import WIDGET_TRAIL, MapStack


logger = structlog.get_logger(__name__)


class ModelScreen:
    """A screen read from a definition file.

    The action list is built once when the screen is loaded and shared by
    every render of the screen.
    """

    def __init__(
        self,
        definition: ScreenDefinition,
        location: str,
        registry: Optional[ActionRegistry] = None,
    ) -> None:
        self.name = definition.name
        self.location = location
        self.template = definition.template
        self.actions = ActionList.read(definition.actions, registry)

        logger.debug(
            "Read screen definition",
            screen=self.name,
            location=location,
            actions=len(self.actions),
        )

    @property
    def full_location(self) -> str:
        return f"{self.location}#{self.name}"

    def run_actions(self, action_context: ActionContext) -> List[ActionResult]:
        """Run the screen actions against the current context layer."""
        context = action_context.context
        widget_trail = list(context.get(WIDGET_TRAIL) or [])
        widget_trail.append(self.name)
        context[WIDGET_TRAIL] = widget_trail

        return self.actions.run(action_context)

    def render_screen(self, action_context: ActionContext, environment: Environment) -> str:
        """Run the actions in a fresh context layer and render the template.

        Args:
            action_context: Request context and collaborators
            environment: Template environment used to load the template

        Returns:
            Rendered text, empty when the screen has no template

        Raises:
            ActionError: If any action fails
        """
        context = action_context.context
        pushed = isinstance(context, MapStack)
        if pushed:
            context.push()
        try:
            self.run_actions(action_context)
            if not self.template:
                return ""
            template = environment.get_template(self.template)
            values: Dict[str, Any] = dict(context)
            return template.render(values)
        finally:
            if pushed:
                context.pop_layer()

    def __repr__(self) -> str:
        return f"ModelScreen({self.full_location!r}, actions={len(self.actions)})"
