"""Configuration models using Pydantic."""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings


def normalize_attribute(value: Any) -> Any:
    """Turn scalar attribute values into strings, recursing into containers."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, dict):
        return {str(k): normalize_attribute(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [normalize_attribute(v) for v in value]
    return value


class ActionDefinition(BaseModel):
    """Declarative definition of a single screen action."""

    tag: str = Field(
        min_length=1,
        description="Action kind, e.g. set, service or entity-one"
    )
    attributes: Dict[str, Any] = Field(
        default_factory=dict,
        description="Action attributes; nested lists and maps for field maps and conditions"
    )

    @field_validator("attributes", mode="before")
    @classmethod
    def _normalize_attributes(cls, value: Any) -> Any:
        if value is None:
            return {}
        return normalize_attribute(value)

    @classmethod
    def from_node(cls, node: Any) -> "ActionDefinition":
        """Build a definition from a ``{tag: {attributes}}`` node.

        Args:
            node: Single-key mapping, ``{"tag": ..., "attributes": ...}``
                mapping, or an existing definition

        Returns:
            Validated action definition
        """
        if isinstance(node, ActionDefinition):
            return node
        if isinstance(node, dict) and "tag" in node:
            return cls.model_validate(node)
        if isinstance(node, dict) and len(node) == 1:
            tag, attributes = next(iter(node.items()))
            return cls(tag=str(tag), attributes=attributes)
        raise ValueError(f"Action node must be a single-key mapping, got: {node!r}")


class ScreenDefinition(BaseModel):
    """Configuration for a screen: its actions and the template it renders."""

    name: str = Field(
        min_length=1,
        description="Screen name, unique within its resource"
    )
    actions: List[ActionDefinition] = Field(
        default_factory=list,
        description="Actions run in order before rendering"
    )
    template: Optional[str] = Field(
        default=None,
        description="Template rendered with the populated context"
    )

    @model_validator(mode="before")
    @classmethod
    def _read_action_nodes(cls, data: Any) -> Any:
        if isinstance(data, dict) and isinstance(data.get("actions"), list):
            data = dict(data)
            data["actions"] = [ActionDefinition.from_node(node) for node in data["actions"]]
        return data


class ScreenSettings(BaseSettings):
    """Global screen rendering configuration settings."""

    # Logging configuration
    log_level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    log_format: str = Field(
        default="json",
        description="Log format (json, plain)"
    )

    # Definition and template lookup
    screen_dirs: List[str] = Field(
        default_factory=lambda: ["."],
        description="Directories searched for screen definition files"
    )
    template_dirs: List[str] = Field(
        default_factory=lambda: ["."],
        description="Directories searched for templates"
    )
    script_dirs: List[str] = Field(
        default_factory=lambda: ["."],
        description="Directories searched for script actions"
    )
    resource_dirs: List[str] = Field(
        default_factory=lambda: ["."],
        description="Directories searched for property resource bundles"
    )

    # Request defaults
    default_locale: str = Field(
        default="en_US",
        description="Locale used when a request does not specify one"
    )
    default_time_zone: str = Field(
        default="UTC",
        description="Time zone used when a request does not specify one"
    )

    # FO view configuration
    default_content_type: str = Field(
        default="application/pdf",
        description="Output type when a view request does not name one"
    )
    error_screen: str = Field(
        default="CommonScreens.yaml#FoError",
        description="Screen rendered when transforming a view fails"
    )
    fop_command: str = Field(
        default="fop",
        description="Formatting engine executable"
    )
    fop_timeout: int = Field(
        default=120,
        ge=1,
        le=600,
        description="Formatting engine timeout in seconds"
    )

    # Metrics configuration
    metrics_enabled: bool = Field(
        default=True,
        description="Record Prometheus metrics"
    )

    class Config:
        """Pydantic configuration."""
        env_prefix = "SCREENKIT_"
        case_sensitive = False
        validate_assignment = True
