"""Built-in action for setting a context field."""

from collections.abc import Mapping, MutableMapping
from typing import Any, Optional

import structlog

from ...context.accessor import FieldAccessor
from ...context.convert import is_empty, simple_type_convert
from ...context.expander import StringExpander
from ...context.scopes import ScopedStore, find_in_trail, trail_key
from ...context.stack import GLOBAL_CONTEXT, LOCALE, PAGE, TIME_ZONE, WIDGET_TRAIL
from ...errors import ActionConfigError, ActionError, ConversionError
from ..base import ActionContext, ActionResult, ScreenAction
from ..registry import register_action


logger = structlog.get_logger(__name__)

USER_SCOPE = "user"
APPLICATION_SCOPE = "application"


@register_action("set", "Set a field from another field or an expression")
class SetFieldAction(ScreenAction):
    """Copies or computes a value and stores it in the chosen scope."""

    def __init__(self, tag: str, attributes: Mapping[str, Any]) -> None:
        """Initialize the set action."""
        super().__init__(tag, attributes)
        self.field = FieldAccessor(self._attribute("field"))
        self.from_field = FieldAccessor(self._attribute("from-field"))
        self.value = StringExpander(self._attribute("value"))
        self.default_value = StringExpander(self._attribute("default-value"))
        self.global_flag = StringExpander(self._attribute("global"))
        self.type = self._attribute("type")
        self.to_scope = self._attribute("to-scope")
        self.from_scope = self._attribute("from-scope")

        if self.field.is_empty():
            raise ActionConfigError("The set action requires a field")
        if not self.from_field.is_empty() and not self.value.is_empty():
            raise ActionConfigError(
                f"Cannot specify a from-field [{self.from_field}] and a value "
                f"[{self.value}] on the set action in a screen widget"
            )

    def execute(self, action_context: ActionContext) -> ActionResult:
        """Execute set action."""
        context = action_context.context
        is_global = self.global_flag.expand_string(context) == "true"

        new_value = self._source_value(action_context)

        if is_empty(new_value) and not self.default_value.is_empty():
            new_value = self.default_value.expand_string(context)

        if self.type:
            try:
                new_value = simple_type_convert(
                    new_value, self.type, context.get(TIME_ZONE), context.get(LOCALE)
                )
            except ConversionError as e:
                message = (
                    f"Could not convert field value for the field: [{self.field}] to the "
                    f"[{self.type}] type for the value [{new_value}]: {e}"
                )
                logger.error("Set action type conversion failed", field=str(self.field), type=self.type, error=str(e))
                raise ActionError(message, tag=self.tag) from e

        if self.to_scope in (USER_SCOPE, APPLICATION_SCOPE):
            store = self._store(action_context, self.to_scope)
            key = trail_key(context.get(WIDGET_TRAIL), self.field.original_name)
            store.set_attribute(key, new_value)
            logger.debug("Set scoped field", scope=self.to_scope, key=key)
        elif not is_global:
            # a global set goes ONLY to the global context
            self.field.put(context, new_value)
            logger.debug("Set screen field", field=str(self.field))

        if is_global:
            global_context = context.get(GLOBAL_CONTEXT)
            if isinstance(global_context, MutableMapping):
                self.field.put(global_context, new_value)
            else:
                self.field.put(context, new_value)
            logger.debug("Set global field", field=str(self.field), has_global_context=global_context is not None)

        # legacy page map
        page = context.get(PAGE)
        if isinstance(page, MutableMapping):
            self.field.put(page, new_value)

        return self._result(f"Set field [{self.field}]", field=str(self.field), scope=self.to_scope or "screen")

    def _source_value(self, action_context: ActionContext) -> Any:
        context = action_context.context
        if not self.from_field.is_empty():
            if self.from_scope in (USER_SCOPE, APPLICATION_SCOPE):
                store = self._store(action_context, self.from_scope)
                value = find_in_trail(store, context.get(WIDGET_TRAIL), self.from_field.original_name)
            else:
                value = self.from_field.get(context)
            logger.debug(
                "Read set source field",
                scope=self.from_scope or "screen",
                from_field=str(self.from_field),
                found=value is not None,
            )
            return value
        if not self.value.is_empty():
            return self.value.expand_string(context)
        return None

    def _store(self, action_context: ActionContext, scope: str) -> ScopedStore:
        store: Optional[ScopedStore]
        if scope == USER_SCOPE:
            store = action_context.session_store()
        else:
            store = action_context.application_store()
        if store is None:
            raise ActionError(
                f"No {scope} scope store available for field [{self.field}]", tag=self.tag
            )
        return store
