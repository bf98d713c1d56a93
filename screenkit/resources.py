"""Localized resource bundles and message formatting."""

import re
import threading
from collections import ChainMap
from collections.abc import Iterator, Mapping
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Sequence

import structlog
import yaml

from .errors import ScreenError


logger = structlog.get_logger(__name__)

_MESSAGE_ARGUMENT = re.compile(r"\{(\d+)(?:,[^{}]*)?\}")


class ResourceNotFoundError(ScreenError):
    """Raised when no bundle exists for a resource name."""


class PropertyLoader(Protocol):
    """Source of localized property bundles."""

    def get_resource_bundle(self, resource: str, locale: Optional[str]) -> Mapping[str, str]:
        ...

    def get_message(self, resource: str, key: str, locale: Optional[str]) -> Optional[str]:
        ...

    def get_property_value(self, resource: str, key: str) -> Optional[str]:
        ...


def locale_candidates(locale: Optional[str]) -> List[str]:
    """Most specific first: ``en_US`` -> ``["en_US", "en", ""]``."""
    candidates: List[str] = []
    if locale:
        parts = str(locale).replace("-", "_").split("_")
        for length in range(len(parts), 0, -1):
            candidates.append("_".join(parts[:length]))
    candidates.append("")
    return candidates


class FilesystemPropertyLoader:
    """Loads YAML bundles ``<resource>[_<locale>].yaml`` from search directories.

    Locale variants overlay the base bundle the way a resource bundle parent
    chain does. Loaded bundles are cached per (resource, locale).
    """

    def __init__(self, search_dirs: Sequence[str]) -> None:
        self.search_dirs = [Path(d) for d in search_dirs]
        self._cache: Dict[tuple, Dict[str, str]] = {}
        self._lock = threading.Lock()

        logger.info("Initialized FilesystemPropertyLoader", search_dirs=[str(d) for d in self.search_dirs])

    def _find_file(self, resource: str, suffix: str) -> Optional[Path]:
        file_name = f"{resource}_{suffix}.yaml" if suffix else f"{resource}.yaml"
        for directory in self.search_dirs:
            candidate = directory / file_name
            if candidate.is_file():
                return candidate
        return None

    def _read_bundle(self, path: Path) -> Dict[str, str]:
        with open(path, "rt", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
        if not isinstance(data, dict):
            raise ResourceNotFoundError(f"Resource file [{path}] does not contain a mapping")
        return {str(key): "" if value is None else str(value) for key, value in data.items()}

    def get_resource_bundle(self, resource: str, locale: Optional[str]) -> Mapping[str, str]:
        cache_key = (resource, str(locale or ""))
        with self._lock:
            cached = self._cache.get(cache_key)
        if cached is not None:
            return cached

        bundle: Dict[str, str] = {}
        found = False
        for suffix in reversed(locale_candidates(locale)):
            path = self._find_file(resource, suffix)
            if path is not None:
                bundle.update(self._read_bundle(path))
                found = True
        if not found:
            raise ResourceNotFoundError(
                f"Resource bundle [{resource}] not found for locale [{locale}]"
            )

        with self._lock:
            self._cache[cache_key] = bundle
        logger.debug("Loaded resource bundle", resource=resource, locale=locale, keys=len(bundle))
        return bundle

    def get_message(self, resource: str, key: str, locale: Optional[str]) -> Optional[str]:
        try:
            return self.get_resource_bundle(resource, locale).get(key)
        except ResourceNotFoundError as e:
            logger.warning("Could not load resource for message", resource=resource, key=key, error=str(e))
            return None

    def get_property_value(self, resource: str, key: str) -> Optional[str]:
        return self.get_message(resource, key, None)

    def clear_cache(self) -> None:
        with self._lock:
            self._cache.clear()


class ResourceBundleMap(Mapping):
    """Read view over one or more layered resource bundles.

    The first bundle has the highest priority; bundles added later sit
    underneath as fallbacks. Lookups of unknown keys return the key itself
    so that missing labels stay visible in rendered output.
    """

    def __init__(self, loader: PropertyLoader, resource: str, locale: Optional[str]) -> None:
        self.loader = loader
        self.locale = locale
        self.resources: List[str] = [resource]
        self._chain: ChainMap = ChainMap(dict(loader.get_resource_bundle(resource, locale)))

    def add_bottom_resource_bundle(self, resource: str) -> bool:
        """Append a bundle as the lowest-priority layer.

        Returns:
            False if the resource is already layered into this map
        """
        if resource in self.resources:
            return False
        self._chain.maps.append(dict(self.loader.get_resource_bundle(resource, self.locale)))
        self.resources.append(resource)
        return True

    def __getitem__(self, key: str) -> str:
        try:
            return self._chain[key]
        except KeyError:
            return key

    def get(self, key: str, default: Any = None) -> Any:
        return self._chain.get(key, default)

    def __contains__(self, key: object) -> bool:
        return key in self._chain

    def __iter__(self) -> Iterator[str]:
        return iter(self._chain)

    def __len__(self) -> int:
        return len(self._chain)

    def __repr__(self) -> str:
        return f"ResourceBundleMap(resources={self.resources}, locale={self.locale!r})"


def format_message(pattern: str, arguments: Sequence[Any]) -> str:
    """Substitute ``{0}``, ``{1}`` ... placeholders positionally.

    Format styles such as ``{0,number}`` are accepted and ignored;
    placeholders without a matching argument are left untouched.
    """

    def substitute(match: "re.Match[str]") -> str:
        position = int(match.group(1))
        if position < len(arguments):
            return str(arguments[position])
        return match.group(0)

    return _MESSAGE_ARGUMENT.sub(substitute, pattern).replace("''", "'")
