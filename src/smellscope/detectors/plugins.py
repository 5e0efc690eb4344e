from __future__ import annotations

import importlib
import logging
from collections.abc import Iterable
from types import ModuleType
from typing import Any

from smellscope.detectors.base import SmellDetector

logger = logging.getLogger(__name__)


class PluginLoadError(RuntimeError):
    """Raised when a configured plugin cannot be imported or doesn't expose detectors."""


def load_plugin_detectors(plugin_specs: Iterable[str]) -> list[type[SmellDetector]]:
    """
    Import detector classes from `module` or `module:attribute` specs.

    A module must expose `smellscope_detectors` (a callable or a sequence)
    or `DETECTORS`.
    """

    detectors: list[type[SmellDetector]] = []
    for raw_spec in plugin_specs:
        spec = raw_spec.strip()
        if not spec:
            continue
        loaded = _load_one(spec)
        logger.debug("plugin %s: %d detector(s)", spec, len(loaded))
        detectors.extend(loaded)
    return detectors


def _load_one(spec: str) -> list[type[SmellDetector]]:
    module_name, sep, attr = spec.partition(":")
    try:
        module = importlib.import_module(module_name)
    except Exception as exc:  # noqa: BLE001
        raise PluginLoadError(f"Failed to import plugin module {module_name!r}: {exc}") from exc

    if sep:
        try:
            obj: Any = getattr(module, attr)
        except AttributeError as exc:
            raise PluginLoadError(f"Plugin module {module_name!r} has no attribute {attr!r}") from exc
    else:
        obj = module
    return list(_extract_detectors(obj))


def _extract_detectors(obj: Any) -> Iterable[type[SmellDetector]]:
    if isinstance(obj, ModuleType):
        if hasattr(obj, "smellscope_detectors"):
            return _extract_detectors(obj.smellscope_detectors)
        if hasattr(obj, "DETECTORS"):
            return _extract_detectors(obj.DETECTORS)
        raise PluginLoadError("Plugin module must define `smellscope_detectors()` or `DETECTORS`.")

    if isinstance(obj, type):
        if issubclass(obj, SmellDetector):
            return [obj]
        raise PluginLoadError(f"Plugin detectors must be SmellDetector subclasses, got: {obj.__name__}")

    if callable(obj):
        return _extract_detectors(obj())

    if isinstance(obj, list | tuple):
        out: list[type[SmellDetector]] = []
        for item in obj:
            if not isinstance(item, type) or not issubclass(item, SmellDetector):
                raise PluginLoadError(f"Plugin detectors must be SmellDetector subclasses, got: {item!r}")
            out.append(item)
        return out

    raise PluginLoadError(f"Unsupported plugin export type: {type(obj).__name__}")
