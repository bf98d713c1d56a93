"""Prometheus metrics for action execution and view rendering."""

from prometheus_client import Counter, Histogram


ACTIONS_EXECUTED = Counter(
    "screenkit_actions_total",
    "Screen actions executed",
    ["tag", "status"],
)

ACTION_DURATION = Histogram(
    "screenkit_action_duration_seconds",
    "Time spent running a screen action",
    ["tag"],
)

VIEWS_RENDERED = Counter(
    "screenkit_views_total",
    "FO views rendered",
    ["content_type", "status"],
)

_enabled = True


def set_metrics_enabled(enabled: bool) -> None:
    global _enabled
    _enabled = enabled


def record_action(tag: str, status: str, duration_seconds: float) -> None:
    if not _enabled:
        return
    ACTIONS_EXECUTED.labels(tag=tag, status=status).inc()
    ACTION_DURATION.labels(tag=tag).observe(duration_seconds)


def record_view(content_type: str, status: str) -> None:
    if not _enabled:
        return
    VIEWS_RENDERED.labels(content_type=content_type, status=status).inc()
