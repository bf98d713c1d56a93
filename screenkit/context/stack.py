"""Layered request context."""

from collections.abc import Iterator, MutableMapping
from typing import Any, Dict, List, Optional
from zoneinfo import ZoneInfo

import structlog


logger = structlog.get_logger(__name__)

# Reserved context keys
WIDGET_TRAIL = "_WIDGETTRAIL_"
LOCALE = "locale"
TIME_ZONE = "timeZone"
SESSION = "session"
APPLICATION = "application"
GLOBAL_CONTEXT = "globalContext"
PAGE = "page"
PARAMETERS = "parameters"


class MapStack(MutableMapping):
    """A stack of dicts read top-down and written at the top.

    The bottom layer is the global scope of a screen render; each nested
    screen pushes its own layer so local writes do not leak upwards.
    """

    def __init__(self, initial: Optional[Dict[str, Any]] = None) -> None:
        self._stack: List[Dict[str, Any]] = [initial if initial is not None else {}]

    def push(self, layer: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Push a new writable layer and return it."""
        layer = layer if layer is not None else {}
        self._stack.append(layer)
        return layer

    def pop_layer(self) -> Dict[str, Any]:
        """Remove and return the top layer; the bottom layer is never removed."""
        if len(self._stack) == 1:
            raise IndexError("Cannot pop the bottom layer of a MapStack")
        return self._stack.pop()

    @property
    def depth(self) -> int:
        return len(self._stack)

    @property
    def top(self) -> Dict[str, Any]:
        return self._stack[-1]

    @property
    def bottom(self) -> Dict[str, Any]:
        return self._stack[0]

    def __getitem__(self, key: str) -> Any:
        for layer in reversed(self._stack):
            if key in layer:
                return layer[key]
        raise KeyError(key)

    def __setitem__(self, key: str, value: Any) -> None:
        self._stack[-1][key] = value

    def __delitem__(self, key: str) -> None:
        del self._stack[-1][key]

    def __contains__(self, key: object) -> bool:
        return any(key in layer for layer in self._stack)

    def __iter__(self) -> Iterator[str]:
        seen = set()
        for layer in reversed(self._stack):
            for key in layer:
                if key not in seen:
                    seen.add(key)
                    yield key

    def __len__(self) -> int:
        return sum(1 for _ in self)

    def __repr__(self) -> str:
        return f"MapStack(depth={len(self._stack)}, keys={sorted(self.top)})"


def create_screen_context(
    parameters: Optional[Dict[str, Any]] = None,
    locale: str = "en_US",
    time_zone: str = "UTC",
    session: Any = None,
    application: Any = None,
    page: Optional[Dict[str, Any]] = None,
    widget_trail: Optional[List[str]] = None,
    **attributes: Any,
) -> MapStack:
    """Create the context for one render request.

    The bottom layer doubles as the global scope and is exposed under
    ``globalContext``; a fresh local layer is pushed on top of it.

    Args:
        parameters: Request parameters, exposed as ``parameters``
        locale: Locale identifier such as ``en_US``
        time_zone: IANA time zone name
        session: Session-scoped store
        application: Application-scoped store
        page: Legacy page map mirrored by set actions
        widget_trail: Names of the enclosing widgets
        **attributes: Extra entries for the global layer

    Returns:
        Populated MapStack
    """
    global_layer: Dict[str, Any] = dict(attributes)
    global_layer.update(
        {
            PARAMETERS: dict(parameters or {}),
            LOCALE: locale,
            TIME_ZONE: ZoneInfo(time_zone),
            SESSION: session,
            APPLICATION: application,
            WIDGET_TRAIL: list(widget_trail or []),
        }
    )
    if page is not None:
        global_layer[PAGE] = page

    context = MapStack(global_layer)
    global_layer[GLOBAL_CONTEXT] = global_layer
    context.push()

    logger.debug(
        "Created screen context",
        locale=locale,
        time_zone=time_zone,
        parameters=sorted(global_layer[PARAMETERS]),
    )
    return context
