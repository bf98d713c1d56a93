"""Built-in actions for localized property resources."""

from collections.abc import Mapping, MutableMapping, Sequence
from typing import Any, Optional

import structlog

from ...context.accessor import FieldAccessor
from ...context.expander import StringExpander, expand_string
from ...context.stack import GLOBAL_CONTEXT, LOCALE
from ...errors import ActionConfigError
from ...resources import PropertyLoader, ResourceBundleMap, format_message
from ..base import ActionContext, ActionResult, ScreenAction
from ..registry import register_action


logger = structlog.get_logger(__name__)


def _install_bundle(
    accessor: FieldAccessor,
    target: MutableMapping[str, Any],
    loader: PropertyLoader,
    resource: str,
    locale: Optional[str],
) -> Any:
    """Put a new bundle map under ``accessor`` or layer ``resource`` beneath the existing one."""
    existing = accessor.get(target)
    if existing is None:
        bundle_map = ResourceBundleMap(loader, resource, locale)
        accessor.put(target, bundle_map)
        return bundle_map
    if not isinstance(existing, ResourceBundleMap):
        raise TypeError(f"Field [{accessor}] already holds a {type(existing).__name__}, not a resource map")
    existing.add_bottom_resource_bundle(resource)
    return existing


@register_action("property-map", "Expose a localized resource bundle as a map")
class PropertyMapAction(ScreenAction):
    """Installs or extends a layered resource bundle map."""

    def __init__(self, tag: str, attributes: Mapping[str, Any]) -> None:
        """Initialize the property map action."""
        super().__init__(tag, attributes)
        self.resource = StringExpander(self._attribute("resource"))
        self.map_name = FieldAccessor(self._attribute("map-name"))
        self.global_flag = StringExpander(self._attribute("global"))

        if self.resource.is_empty() or self.map_name.is_empty():
            raise ActionConfigError("The property-map action requires a resource and a map-name")

    def execute(self, action_context: ActionContext) -> ActionResult:
        """Execute property map action."""
        context = action_context.context
        loader = action_context.require("properties", self.tag)
        is_global = self.global_flag.expand_string(context) == "true"
        locale = context.get(LOCALE)
        resource = self.resource.expand_string(context, locale)

        local_map = _install_bundle(self.map_name, context, loader, resource, locale)

        if is_global:
            global_context = context.get(GLOBAL_CONTEXT)
            if isinstance(global_context, MutableMapping):
                # the identical map object already carries the resource
                if self.map_name.get(global_context) is not local_map:
                    _install_bundle(self.map_name, global_context, loader, resource, locale)

        logger.debug("Loaded property map", resource=resource, map_name=str(self.map_name), is_global=is_global)
        return self._result(
            f"Loaded resource [{resource}] into [{self.map_name}]",
            resource=resource,
            resources=list(local_map.resources),
        )


@register_action("property-to-field", "Copy a localized message into a field")
class PropertyToFieldAction(ScreenAction):
    """Resolves one message, expands and formats it, and stores it."""

    def __init__(self, tag: str, attributes: Mapping[str, Any]) -> None:
        """Initialize the property to field action."""
        super().__init__(tag, attributes)
        self.resource = StringExpander(self._attribute("resource"))
        self.property = StringExpander(self._attribute("property"))
        self.field = FieldAccessor(self._attribute("field"))
        self.default = StringExpander(self._attribute("default"))
        self.no_locale = self._flag("no-locale")
        self.arg_list = FieldAccessor(self._attribute("arg-list-name"))

        if self.field.is_empty():
            raise ActionConfigError("The property-to-field action requires a field")

    def execute(self, action_context: ActionContext) -> ActionResult:
        """Execute property to field action."""
        context = action_context.context
        loader = action_context.require("properties", self.tag)
        locale = context.get(LOCALE)
        resource = self.resource.expand_string(context, locale)
        property_name = self.property.expand_string(context, locale)

        if self.no_locale:
            value = loader.get_property_value(resource, property_name)
        else:
            value = loader.get_message(resource, property_name, locale)
        if not value:
            value = self.default.expand_string(context)

        # expands both the resource string and the default
        value = expand_string(value, context)

        if not self.arg_list.is_empty():
            arguments = self.arg_list.get(context)
            if isinstance(arguments, Sequence) and not isinstance(arguments, str) and arguments:
                value = format_message(value, arguments)

        self.field.put(context, value)
        return self._result(
            f"Set field [{self.field}] from [{resource}#{property_name}]",
            field=str(self.field),
        )
