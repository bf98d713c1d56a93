"""Request context, name-path accessors, expansion and scoped stores."""

from .accessor import FieldAccessor
from .convert import is_empty, simple_type_convert
from .expander import StringExpander, expand_string
from .scopes import InMemoryScopedStore, ScopedStore, find_in_trail, trail_key
from .stack import MapStack, create_screen_context

__all__ = [
    "FieldAccessor",
    "InMemoryScopedStore",
    "MapStack",
    "ScopedStore",
    "StringExpander",
    "create_screen_context",
    "expand_string",
    "find_in_trail",
    "is_empty",
    "simple_type_convert",
    "trail_key",
]
