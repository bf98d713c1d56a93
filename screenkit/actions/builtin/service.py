"""Built-in action for invoking services."""

from collections.abc import Mapping
from typing import Any, Dict, Optional

import structlog
from pydantic import ValidationError

from ...context.accessor import FieldAccessor
from ...context.expander import StringExpander
from ...context.stack import PARAMETERS
from ...entity.util import expand_field_map_to_context, make_field_map
from ...errors import ActionConfigError, ActionError
from ...services import IN_PARAM, ServiceDispatcher, ServiceError
from ..base import ActionContext, ActionResult, ScreenAction
from ..registry import register_action


logger = structlog.get_logger(__name__)

# result entries promoted into the context when a result-map-name is used
QUERY_STRING = "queryString"
QUERY_STRING_MAP = "queryStringMap"
QUERY_STRING_ENCODED = "queryStringEncoded"


@register_action("service", "Invoke a service synchronously")
class ServiceAction(ScreenAction):
    """Builds a service input map, runs the service and stores its result."""

    def __init__(self, tag: str, attributes: Mapping[str, Any]) -> None:
        """Initialize the service action."""
        super().__init__(tag, attributes)
        self.service_name = StringExpander(self._attribute("service-name"))
        result_map_name = self._attribute("result-map-name")
        self.result_map: Optional[FieldAccessor] = FieldAccessor(result_map_name) if result_map_name else None
        self.auto_field_map = StringExpander(self._attribute("auto-field-map"))
        try:
            self.field_map = make_field_map(attributes.get("field-map"))
        except ValidationError as e:
            raise ActionConfigError(f"Invalid field-map on service action: {e}") from e

    def build_service_context(
        self, service_name: str, context: Mapping[str, Any], dispatcher: ServiceDispatcher
    ) -> Dict[str, Any]:
        """Assemble the service input map.

        Automatic projection of valid IN parameters comes first; explicit
        field-map entries are layered on top.

        Raises:
            ServiceError: If the service model cannot be resolved or a value does not convert
        """
        auto_field_map = self.auto_field_map.expand_string(context)
        service_context: Optional[Dict[str, Any]] = None

        if auto_field_map == "true":
            # parameters first so values from the main context override them
            combined: Dict[str, Any] = {}
            parameters = context.get(PARAMETERS)
            if isinstance(parameters, Mapping):
                combined.update(parameters)
            combined.update(context)
            model = dispatcher.get_model_service(service_name)
            service_context = model.make_valid_context(IN_PARAM, combined)
        elif auto_field_map and auto_field_map != "false":
            source = FieldAccessor(auto_field_map).get(context)
            if isinstance(source, Mapping):
                model = dispatcher.get_model_service(service_name)
                service_context = model.make_valid_context(IN_PARAM, source)

        if service_context is None:
            service_context = {}

        expand_field_map_to_context(self.field_map, context, service_context)
        return service_context

    def execute(self, action_context: ActionContext) -> ActionResult:
        """Execute service action."""
        context = action_context.context
        service_name = self.service_name.expand_string(context)
        if not service_name:
            raise ActionError(
                f"Service name was empty, expanded from: {self.service_name}", tag=self.tag
            )
        dispatcher: ServiceDispatcher = action_context.require("dispatcher", self.tag)

        try:
            service_context = self.build_service_context(service_name, context, dispatcher)
            logger.info("Calling service", service=service_name, inputs=sorted(service_context))
            result = dispatcher.run_sync(service_name, service_context)
        except ServiceError as e:
            message = f"Error calling service with name {service_name}: {e}"
            logger.error("Service call failed", service=service_name, error=str(e))
            raise ActionError(message, tag=self.tag) from e

        result = result or {}
        if self.result_map is not None:
            self.result_map.put(context, result)
            query_string = result.get(QUERY_STRING)
            context[QUERY_STRING] = query_string
            context[QUERY_STRING_MAP] = result.get(QUERY_STRING_MAP)
            if query_string:
                context[QUERY_STRING_ENCODED] = str(query_string).replace("&", "%26")
        else:
            context.update(result)

        return self._result(
            f"Called service [{service_name}]",
            service=service_name,
            result_keys=sorted(result),
        )
