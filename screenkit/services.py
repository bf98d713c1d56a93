"""Service dispatcher interface and service parameter models."""

from collections.abc import Mapping
from typing import Any, Dict, List, Optional, Protocol

import structlog
from pydantic import BaseModel, Field

from .context.convert import simple_type_convert
from .errors import ConversionError, ScreenError


logger = structlog.get_logger(__name__)

IN_PARAM = "IN"
OUT_PARAM = "OUT"
INOUT_PARAM = "INOUT"


class ServiceError(ScreenError):
    """Raised by dispatchers when a service cannot be invoked."""


class ModelParam(BaseModel):
    """A declared service parameter."""

    name: str
    mode: str = Field(default=IN_PARAM, pattern="^(IN|OUT|INOUT)$")
    type: Optional[str] = None
    optional: bool = True

    def is_in(self) -> bool:
        return self.mode in (IN_PARAM, INOUT_PARAM)

    def is_out(self) -> bool:
        return self.mode in (OUT_PARAM, INOUT_PARAM)


class ModelService(BaseModel):
    """Declared signature of a service."""

    name: str
    parameters: List[ModelParam] = Field(default_factory=list)

    def param_names(self, mode: str) -> List[str]:
        if mode == IN_PARAM:
            return [p.name for p in self.parameters if p.is_in()]
        if mode == OUT_PARAM:
            return [p.name for p in self.parameters if p.is_out()]
        return [p.name for p in self.parameters]

    def make_valid_context(self, mode: str, source: Mapping[str, Any]) -> Dict[str, Any]:
        """Project ``source`` onto the parameters valid for ``mode``.

        Values of typed parameters are converted to the declared type.

        Raises:
            ServiceError: If a value cannot be converted
        """
        valid: Dict[str, Any] = {}
        for param in self.parameters:
            if param.name not in self.param_names(mode) or param.name not in source:
                continue
            value = source[param.name]
            if param.type and value is not None:
                try:
                    value = simple_type_convert(value, param.type)
                except ConversionError as e:
                    raise ServiceError(
                        f"Type conversion of field [{param.name}] to type [{param.type}] "
                        f"failed for service [{self.name}]: {e}"
                    ) from e
            valid[param.name] = value
        return valid


class ServiceDispatcher(Protocol):
    """Synchronous service invocation supplied by the hosting framework."""

    def get_model_service(self, service_name: str) -> ModelService:
        ...

    def run_sync(self, service_name: str, context: Dict[str, Any]) -> Dict[str, Any]:
        ...
