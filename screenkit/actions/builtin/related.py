"""Built-in actions for traversing entity relations."""

from collections.abc import Mapping
from typing import Any, Optional

import structlog

from ...context.accessor import FieldAccessor
from ...entity.value import EntityError, GenericValue
from ...errors import ActionConfigError, ActionError
from ..base import ActionContext, ActionResult, ActionStatus, ScreenAction
from ..registry import register_action


logger = structlog.get_logger(__name__)


class RelatedAction(ScreenAction):
    """Shared handling of the source value for relation traversal."""

    def __init__(self, tag: str, attributes: Mapping[str, Any]) -> None:
        super().__init__(tag, attributes)
        self.value_field = FieldAccessor(self._aliased("value-field", "value-name"))
        self.relation_name = self._attribute("relation-name")
        self.use_cache = self._flag("use-cache")

        if self.value_field.is_empty() or not self.relation_name:
            raise ActionConfigError(f"The {tag} action requires a value-field and a relation-name")

    def _aliased(self, name: str, legacy_name: str) -> str:
        return self._attribute(name) or self._attribute(legacy_name)

    def _source_value(self, action_context: ActionContext) -> Optional[GenericValue]:
        """Return the source value, None when absent; fail on a non-entity value."""
        value = self.value_field.get(action_context.context)
        if value is None:
            logger.debug(
                "Value not found, not getting related",
                value_field=str(self.value_field),
                relation=self.relation_name,
            )
            return None
        if not isinstance(value, GenericValue):
            message = (
                f"Env variable for value-name {self.value_field} is not a GenericValue object; "
                f"for the relation-name: {self.relation_name}"
            )
            logger.error("Related source is not an entity value", value_field=str(self.value_field), relation=self.relation_name)
            raise ActionError(message, tag=self.tag)
        return value

    def _skipped(self) -> ActionResult:
        return self._result(
            f"No value in [{self.value_field}], skipped relation [{self.relation_name}]",
            status=ActionStatus.SKIPPED,
            value_field=str(self.value_field),
        )

    def _relation_failed(self, value: GenericValue, error: EntityError, what: str) -> ActionError:
        message = (
            f"Problem getting {what} from entity with name {value.entity_name} "
            f"for the relation-name: {self.relation_name}: {error}"
        )
        logger.error(
            "Relation fetch failed",
            entity=value.entity_name,
            relation=self.relation_name,
            error=str(error),
        )
        return ActionError(message, tag=self.tag)


@register_action("get-related-one", "Fetch the single entity value across a relation")
class GetRelatedOneAction(RelatedAction):
    """Stores the one related value in ``to-value-field``."""

    def __init__(self, tag: str, attributes: Mapping[str, Any]) -> None:
        super().__init__(tag, attributes)
        self.to_value_field = FieldAccessor(self._aliased("to-value-field", "to-value-name"))
        if self.to_value_field.is_empty():
            raise ActionConfigError("The get-related-one action requires a to-value-field")

    def execute(self, action_context: ActionContext) -> ActionResult:
        """Execute get related one action."""
        value = self._source_value(action_context)
        if value is None:
            return self._skipped()
        try:
            related = value.get_related_one(self.relation_name, use_cache=self.use_cache)
        except EntityError as e:
            raise self._relation_failed(value, e, "related one") from e

        self.to_value_field.put(action_context.context, related)
        return self._result(
            f"Fetched [{self.relation_name}] of [{value.entity_name}]",
            found=related is not None,
        )


@register_action("get-related", "Fetch the entity values across a relation")
class GetRelatedAction(RelatedAction):
    """Stores the related values, optionally constrained and ordered, in ``list``."""

    def __init__(self, tag: str, attributes: Mapping[str, Any]) -> None:
        super().__init__(tag, attributes)
        self.list_field = FieldAccessor(self._aliased("list", "list-name"))
        self.constraint_map = FieldAccessor(self._aliased("map", "map-name"))
        self.order_by_list = FieldAccessor(self._aliased("order-by-list", "order-by-list-name"))
        if self.list_field.is_empty():
            raise ActionConfigError("The get-related action requires a list")

    def execute(self, action_context: ActionContext) -> ActionResult:
        """Execute get related action."""
        context = action_context.context
        value = self._source_value(action_context)
        if value is None:
            return self._skipped()

        order_by = None if self.order_by_list.is_empty() else self.order_by_list.get(context)
        constraints = None if self.constraint_map.is_empty() else self.constraint_map.get(context)
        try:
            related = value.get_related(
                self.relation_name,
                by_and_fields=constraints,
                order_by=order_by,
                use_cache=self.use_cache,
            )
        except EntityError as e:
            raise self._relation_failed(value, e, "related") from e

        self.list_field.put(context, related)
        return self._result(
            f"Fetched [{self.relation_name}] of [{value.entity_name}]",
            count=len(related),
        )
