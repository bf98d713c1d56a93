"""``${...}`` string expansion against a context."""

from collections.abc import Mapping
from typing import Any, Optional

import jinja2
import structlog

from ..errors import ActionConfigError


logger = structlog.get_logger(__name__)


class _ExpressionEnvironment(jinja2.Environment):
    """Environment where ``a.b`` on a mapping is always a key lookup."""

    def getattr(self, obj: Any, attribute: str) -> Any:
        if isinstance(obj, Mapping):
            try:
                return obj[attribute]
            except (KeyError, TypeError):
                return self.undefined(obj=obj, name=attribute)
        return super().getattr(obj, attribute)


# Only ${...} is syntax; block and comment markers can never match
_environment = _ExpressionEnvironment(
    variable_start_string="${",
    variable_end_string="}",
    block_start_string="\x00{%",
    block_end_string="%}\x00",
    comment_start_string="\x00{#",
    comment_end_string="#}\x00",
    line_statement_prefix=None,
    line_comment_prefix=None,
    undefined=jinja2.ChainableUndefined,
    finalize=lambda value: "" if value is None else value,
    autoescape=False,
    keep_trailing_newline=True,
)


class StringExpander:
    """Compiled ``${...}`` expression over a context mapping."""

    def __init__(self, original: Optional[str]) -> None:
        self.original = original or ""
        self._template: Optional[jinja2.Template] = None
        if "${" in self.original:
            try:
                self._template = _environment.from_string(self.original)
            except jinja2.TemplateSyntaxError as e:
                raise ActionConfigError(
                    f"Invalid expression [{self.original}]: {e}"
                ) from e

    def is_empty(self) -> bool:
        return not self.original

    def expand_string(self, context: Mapping[str, Any], locale: Optional[str] = None) -> str:
        """Expand the expression; missing names expand to an empty string."""
        if self._template is None:
            return self.original
        variables = dict(context)
        if locale is not None:
            variables.setdefault("locale", locale)
        try:
            return self._template.render(variables)
        except jinja2.TemplateError as e:
            logger.error(
                "Could not expand expression", expression=self.original, error=str(e)
            )
            return ""

    def __str__(self) -> str:
        return self.original

    def __repr__(self) -> str:
        return f"StringExpander({self.original!r})"


def expand_string(original: Optional[str], context: Mapping[str, Any]) -> str:
    """Expand a one-off expression."""
    return StringExpander(original).expand_string(context)
