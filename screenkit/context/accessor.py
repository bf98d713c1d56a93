"""Name-path accessors for nested context lookups."""

import re
from collections.abc import Mapping, MutableMapping, MutableSequence, Sequence
from typing import Any, List, Optional, Tuple

from ..errors import ActionConfigError
from .expander import StringExpander


_TOKEN_PATTERN = re.compile(r"([^.\[\]]+)|\[(\d*)\]|(\.)")

KEY = "key"
INDEX = "index"
APPEND = "append"


def parse_name_path(name: str) -> List[Tuple[str, Any]]:
    """Split ``a.b[0].c`` / ``list[]`` into key, index and append tokens."""
    tokens: List[Tuple[str, Any]] = []
    position = 0
    for match in _TOKEN_PATTERN.finditer(name):
        if match.start() != position:
            raise ActionConfigError(f"Invalid field name [{name}]")
        position = match.end()
        key, index, dot = match.groups()
        if dot:
            continue
        if key is not None:
            tokens.append((KEY, key.strip()))
        elif index:
            tokens.append((INDEX, int(index)))
        else:
            tokens.append((APPEND, None))
    if position != len(name) or not tokens or tokens[0][0] != KEY:
        raise ActionConfigError(f"Invalid field name [{name}]")
    return tokens


class FieldAccessor:
    """Reads and writes a value addressed by a name path.

    Names may embed ``${...}`` expressions, which are expanded against the
    context before the path is resolved.
    """

    def __init__(self, original: Optional[str]) -> None:
        self.original_name = (original or "").strip()
        self._expander: Optional[StringExpander] = None
        self._tokens: List[Tuple[str, Any]] = []
        if "${" in self.original_name:
            self._expander = StringExpander(self.original_name)
        elif self.original_name:
            self._tokens = parse_name_path(self.original_name)

    def is_empty(self) -> bool:
        return not self.original_name

    def _resolve_tokens(self, context: Mapping[str, Any]) -> List[Tuple[str, Any]]:
        if self._expander is None:
            return self._tokens
        return parse_name_path(self._expander.expand_string(context))

    def get(self, context: Mapping[str, Any]) -> Any:
        """Return the addressed value, or None when any step is missing."""
        if self.is_empty():
            return None
        current: Any = context
        for kind, token in self._resolve_tokens(context):
            if kind == KEY:
                if not isinstance(current, Mapping):
                    return None
                current = current.get(token)
            elif kind == INDEX:
                if not isinstance(current, Sequence) or isinstance(current, str):
                    return None
                if token >= len(current):
                    return None
                current = current[token]
            else:
                return None
            if current is None:
                return None
        return current

    def put(self, context: MutableMapping[str, Any], value: Any) -> None:
        """Store a value, creating intermediate maps and lists as needed."""
        if self.is_empty():
            return
        tokens = self._resolve_tokens(context)
        current: Any = context
        for position, (kind, token) in enumerate(tokens[:-1]):
            next_kind = tokens[position + 1][0]
            child = self._child(current, kind, token)
            if child is None:
                child = {} if next_kind == KEY else []
                self._assign(current, kind, token, child)
            current = child
        kind, token = tokens[-1]
        self._assign(current, kind, token, value)

    def _child(self, container: Any, kind: str, token: Any) -> Any:
        if kind == KEY:
            return container.get(token) if isinstance(container, Mapping) else None
        if kind == INDEX and isinstance(container, Sequence) and token < len(container):
            return container[token]
        return None

    def _assign(self, container: Any, kind: str, token: Any, value: Any) -> None:
        if kind == KEY:
            if not isinstance(container, MutableMapping):
                raise TypeError(
                    f"Cannot set [{token}] of field [{self.original_name}] on a "
                    f"{type(container).__name__}"
                )
            container[token] = value
            return
        if not isinstance(container, MutableSequence):
            raise TypeError(
                f"Field [{self.original_name}] does not address a list"
            )
        if kind == INDEX and token < len(container):
            container[token] = value
        else:
            container.append(value)

    def __str__(self) -> str:
        return self.original_name

    def __repr__(self) -> str:
        return f"FieldAccessor({self.original_name!r})"

    def __eq__(self, other: object) -> bool:
        return isinstance(other, FieldAccessor) and other.original_name == self.original_name

    def __hash__(self) -> int:
        return hash(self.original_name)
