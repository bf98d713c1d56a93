"""Utility functions and helpers."""

from .logging import setup_logging
from .metrics import record_action, record_view, set_metrics_enabled

__all__ = ["setup_logging", "record_action", "record_view", "set_metrics_enabled"]
