"""Built-in actions for entity queries."""

from collections.abc import Mapping
from typing import Any, Union

import structlog

from ...entity.finders import ByAndFinder, ByConditionFinder, PrimaryKeyFinder
from ...entity.value import EntityError
from ...errors import ActionError
from ..base import ActionContext, ActionResult, ScreenAction
from ..registry import register_action


logger = structlog.get_logger(__name__)


class EntityFindAction(ScreenAction):
    """Runs a finder; the finder itself writes the result into the context."""

    finder: Union[PrimaryKeyFinder, ByAndFinder, ByConditionFinder]

    def execute(self, action_context: ActionContext) -> ActionResult:
        """Execute entity query action."""
        delegator = action_context.require("delegator", self.tag)
        try:
            self.finder.run_find(action_context.context, delegator)
        except EntityError as e:
            message = f"Error doing entity query by condition: {e}"
            logger.error(
                "Entity query failed",
                tag=self.tag,
                entity=self.finder.definition.entity_name,
                error=str(e),
            )
            raise ActionError(message, tag=self.tag) from e

        return self._result(
            f"Ran {self.tag} on [{self.finder.definition.entity_name}]",
            entity=self.finder.definition.entity_name,
        )


@register_action("entity-one", "Find one entity value by primary key")
class EntityOneAction(EntityFindAction):
    def __init__(self, tag: str, attributes: Mapping[str, Any]) -> None:
        super().__init__(tag, attributes)
        self.finder = PrimaryKeyFinder(attributes)


@register_action("entity-and", "Find entity values matching a field map")
class EntityAndAction(EntityFindAction):
    def __init__(self, tag: str, attributes: Mapping[str, Any]) -> None:
        super().__init__(tag, attributes)
        self.finder = ByAndFinder(attributes)


@register_action("entity-condition", "Find entity values matching a condition tree")
class EntityConditionAction(EntityFindAction):
    def __init__(self, tag: str, attributes: Mapping[str, Any]) -> None:
        super().__init__(tag, attributes)
        self.finder = ByConditionFinder(attributes)
