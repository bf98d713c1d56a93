"""Loading and caching of screen definitions."""

import threading
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

import structlog
import yaml
from pydantic import ValidationError

from ..actions import ActionRegistry
from ..config.settings import ScreenDefinition
from ..errors import ActionConfigError, ScreenNotFoundError
from ..scripting import split_combined
from .model import ModelScreen


logger = structlog.get_logger(__name__)


class ScreenFactory:
    """Resolves ``resource#name`` locations to screens.

    A resource is a YAML file found in one of the screen directories, with
    a top-level ``screens`` mapping of screen name to definition. Each
    resource is parsed once; the cache is shared by concurrent renders.
    """

    def __init__(
        self,
        screen_dirs: Sequence[str],
        registry: Optional[ActionRegistry] = None,
    ) -> None:
        self.screen_dirs = [Path(d) for d in screen_dirs]
        self.registry = registry
        self._cache: Dict[str, Dict[str, ModelScreen]] = {}
        self._lock = threading.Lock()

    def _find_resource(self, resource: str) -> Path:
        candidate = Path(resource)
        if candidate.is_absolute() and candidate.is_file():
            return candidate
        for directory in self.screen_dirs:
            path = directory / resource
            if path.is_file():
                return path
        raise ScreenNotFoundError(
            f"Could not find screen file [{resource}] in {[str(d) for d in self.screen_dirs]}"
        )

    def _read_resource(self, resource: str) -> Dict[str, ModelScreen]:
        path = self._find_resource(resource)
        try:
            document = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as e:
            raise ActionConfigError(f"Could not parse screen file [{path}]: {e}") from e

        raw_screens: Any = document.get("screens") if isinstance(document, dict) else None
        if not isinstance(raw_screens, dict):
            raise ActionConfigError(f"Screen file [{path}] has no screens mapping")

        screens = {}
        for name, body in raw_screens.items():
            try:
                definition = ScreenDefinition(name=str(name), **(body or {}))
            except ValidationError as e:
                raise ActionConfigError(f"Invalid screen [{resource}#{name}]: {e}") from e
            screens[str(name)] = ModelScreen(definition, resource, self.registry)

        logger.info("Loaded screen file", resource=resource, path=str(path), screens=sorted(screens))
        return screens

    def get_screen(self, location: str) -> ModelScreen:
        """Return the screen at a ``resource#name`` location.

        Raises:
            ScreenNotFoundError: If the resource or the screen does not exist
            ActionConfigError: If the resource holds an invalid definition
        """
        resource, name = split_combined(location)
        if not resource or not name:
            raise ScreenNotFoundError(f"Screen location must be of the form resource#name: {location}")

        with self._lock:
            screens = self._cache.get(resource)
            if screens is None:
                screens = self._read_resource(resource)
                self._cache[resource] = screens

        screen = screens.get(name)
        if screen is None:
            raise ScreenNotFoundError(f"Could not find screen with name [{name}] in [{resource}]")
        return screen

    def clear_cache(self) -> None:
        with self._lock:
            self._cache.clear()
