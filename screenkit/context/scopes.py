"""Session and application scoped stores keyed by widget trail."""

import threading
from typing import Any, Dict, List, Optional, Protocol, Sequence, runtime_checkable

import structlog


logger = structlog.get_logger(__name__)

TRAIL_SEPARATOR = "|"


@runtime_checkable
class ScopedStore(Protocol):
    """Attribute store shared beyond a single request (session, application)."""

    def get_attribute(self, key: str) -> Any:
        ...

    def set_attribute(self, key: str, value: Any) -> None:
        ...


class InMemoryScopedStore:
    """Dict-backed scoped store safe to share across request threads."""

    def __init__(self, name: str = "store", initial: Optional[Dict[str, Any]] = None) -> None:
        self.name = name
        self._attributes: Dict[str, Any] = dict(initial or {})
        self._lock = threading.RLock()

        logger.debug("Initialized InMemoryScopedStore", store=name)

    def get_attribute(self, key: str) -> Any:
        with self._lock:
            return self._attributes.get(key)

    def set_attribute(self, key: str, value: Any) -> None:
        with self._lock:
            self._attributes[key] = value

    def remove_attribute(self, key: str) -> bool:
        """Remove an attribute.

        Returns:
            True if the attribute was removed, False if not found
        """
        with self._lock:
            if key in self._attributes:
                del self._attributes[key]
                return True
            return False

    def attribute_names(self) -> List[str]:
        with self._lock:
            return list(self._attributes)

    def get_stats(self) -> Dict[str, Any]:
        return {"store": self.name, "attributes": len(self._attributes)}


def trail_key(widget_trail: Optional[Sequence[str]], name: str) -> str:
    """Build the store key for ``name`` under the given widget trail."""
    prefix = TRAIL_SEPARATOR.join(widget_trail or [])
    if prefix:
        return prefix + TRAIL_SEPARATOR + name
    return name


def find_in_trail(
    store: ScopedStore, widget_trail: Optional[Sequence[str]], name: str
) -> Any:
    """Look ``name`` up under progressively shorter trail prefixes.

    The full trail is tried first and the bare name last; the first
    non-None value wins.
    """
    trail = list(widget_trail or [])
    for length in range(len(trail), -1, -1):
        key = trail_key(trail[:length], name)
        value = store.get_attribute(key)
        if value is not None:
            logger.debug("Found scoped value", key=key)
            return value
    return None
