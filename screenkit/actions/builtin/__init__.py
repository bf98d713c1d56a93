"""Built-in screen actions."""

# Import all built-in actions to register them
from . import entity, property_map, related, script, service, set_field

__all__ = []
