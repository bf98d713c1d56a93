"""Script executors keyed by script kind."""

import runpy
from collections.abc import Mapping, MutableMapping
from pathlib import Path, PurePosixPath
from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple

import structlog

from .errors import ScreenError


logger = structlog.get_logger(__name__)

COMBINED_SEPARATOR = "#"


class ScriptError(ScreenError):
    """Raised when a script cannot be found or fails while running."""


class ScriptExecutor(Protocol):
    """Runs the script at ``location`` against ``context``."""

    def run(self, location: str, context: MutableMapping[str, Any]) -> None:
        ...


class SimpleMethodRunner(Protocol):
    """Mini-language method engine supplied by the hosting framework."""

    def run_simple_method(
        self, resource: str, method_name: str, context: Dict[str, Any]
    ) -> Mapping[str, Any]:
        ...


def split_combined(location: str) -> Tuple[str, str]:
    """Split ``resource#name`` into its resource and name parts."""
    resource, _, name = location.partition(COMBINED_SEPARATOR)
    return resource, name


def script_kind(location: str) -> str:
    """Kind identifier: the file suffix, plus ``#`` for combined addresses."""
    if COMBINED_SEPARATOR in location:
        resource, _ = split_combined(location)
        return PurePosixPath(resource).suffix + COMBINED_SEPARATOR
    return PurePosixPath(location).suffix


class PythonScriptExecutor:
    """Runs a Python file with the live context bound to ``context``."""

    def __init__(self, search_dirs: Optional[Sequence[str]] = None) -> None:
        self.search_dirs = [Path(d) for d in search_dirs or []]

    def resolve(self, location: str) -> Path:
        path = Path(location)
        if path.is_file():
            return path
        for directory in self.search_dirs:
            candidate = directory / location
            if candidate.is_file():
                return candidate
        raise ScriptError(f"Script not found at location [{location}]")

    def run(self, location: str, context: MutableMapping[str, Any]) -> None:
        path = self.resolve(location)
        logger.debug("Running Python script", location=location, path=str(path))
        try:
            runpy.run_path(str(path), init_globals={"context": context}, run_name="__screen_script__")
        except Exception as e:
            raise ScriptError(f"Error running Python script at location [{location}]: {e}") from e


class SimpleMethodExecutor:
    """Runs a ``resource#method`` simple method on a copy of the context.

    Only the results returned by the method are merged back, so local
    assignments made by the method stay isolated.
    """

    def __init__(self, runner: SimpleMethodRunner) -> None:
        self.runner = runner

    def run(self, location: str, context: MutableMapping[str, Any]) -> None:
        resource, method_name = split_combined(location)
        if not resource or not method_name:
            raise ScriptError(f"Invalid simple method location [{location}]")
        local_context = dict(context)
        logger.debug("Running simple method", resource=resource, method=method_name)
        try:
            results = self.runner.run_simple_method(resource, method_name, local_context)
        except Exception as e:
            raise ScriptError(f"Error running simple method at location [{location}]: {e}") from e
        context.update(results or {})


class ScriptRegistry:
    """Registry of script executors by kind (``.py``, ``.xml#`` ...)."""

    def __init__(self) -> None:
        self._executors: Dict[str, ScriptExecutor] = {}

    def register(self, kind: str, executor: ScriptExecutor) -> None:
        if kind in self._executors:
            logger.warning("Overriding existing script executor", kind=kind)
        self._executors[kind] = executor
        logger.debug("Registered script executor", kind=kind, executor=type(executor).__name__)

    def resolve(self, location: str) -> Optional[ScriptExecutor]:
        return self._executors.get(script_kind(location))

    def kinds(self) -> List[str]:
        return sorted(self._executors)

    @classmethod
    def with_defaults(
        cls,
        search_dirs: Optional[Sequence[str]] = None,
        simple_method_runner: Optional[SimpleMethodRunner] = None,
    ) -> "ScriptRegistry":
        """Registry with the Python executor and, if given, simple methods."""
        registry = cls()
        registry.register(".py", PythonScriptExecutor(search_dirs))
        if simple_method_runner is not None:
            registry.register(".xml" + COMBINED_SEPARATOR, SimpleMethodExecutor(simple_method_runner))
        return registry
