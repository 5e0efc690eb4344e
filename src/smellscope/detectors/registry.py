from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from functools import lru_cache
from types import MappingProxyType
from typing import Any

from smellscope.detectors.base import SmellDetector
from smellscope.detectors.cohesion import builtin_cohesion_detectors
from smellscope.detectors.duplication import builtin_duplication_detectors
from smellscope.detectors.naming import builtin_naming_detectors
from smellscope.detectors.size import builtin_size_detectors

_DETECTOR_ID_RE = re.compile(r"^[A-Z][A-Za-z0-9]+$")
_EXTRA_DETECTORS: dict[str, type[SmellDetector]] = {}
_EXTRA_GENERATION = 0


class RegistryError(RuntimeError):
    """Raised when detector classes cannot be registered."""


def _check_detector(cls: Any) -> str:
    if not isinstance(cls, type) or not issubclass(cls, SmellDetector):
        raise RegistryError(f"Detectors must be SmellDetector subclasses, got: {cls!r}")
    meta = getattr(cls, "meta", None)
    if meta is None:
        raise RegistryError(f"Detector {cls.__name__} does not declare `meta`")
    detector_id = meta.detector_id
    if not _DETECTOR_ID_RE.match(detector_id):
        raise RegistryError(f"Detector id must match {_DETECTOR_ID_RE.pattern}: {detector_id!r}")
    return detector_id


@lru_cache(maxsize=1)
def builtin_detectors() -> tuple[type[SmellDetector], ...]:
    detectors: list[type[SmellDetector]] = []
    detectors.extend(builtin_cohesion_detectors())
    detectors.extend(builtin_size_detectors())
    detectors.extend(builtin_naming_detectors())
    detectors.extend(builtin_duplication_detectors())

    by_id: dict[str, type[SmellDetector]] = {}
    for cls in detectors:
        detector_id = _check_detector(cls)
        if detector_id in by_id:  # pragma: no cover
            raise RegistryError(f"Duplicate detector id: {detector_id}")
        by_id[detector_id] = cls

    return tuple(by_id[k] for k in sorted(by_id))


def set_extra_detectors(detectors: Iterable[type[SmellDetector]]) -> None:
    """
    Register extra (plugin) detectors for this process.

    Sessions created afterwards instantiate them next to the built-in ones;
    sessions that already exist keep the catalog they were created with.
    """

    global _EXTRA_DETECTORS, _EXTRA_GENERATION  # noqa: PLW0603

    builtin_ids = {cls.meta.detector_id for cls in builtin_detectors()}
    by_id: dict[str, type[SmellDetector]] = {}
    for cls in detectors:
        detector_id = _check_detector(cls)
        if detector_id in builtin_ids:
            raise RegistryError(f"Plugin detector id conflicts with built-in detector id: {detector_id}")
        if detector_id in by_id:
            raise RegistryError(f"Duplicate plugin detector id: {detector_id}")
        by_id[detector_id] = cls

    _EXTRA_DETECTORS = by_id
    _EXTRA_GENERATION += 1


def all_detectors() -> tuple[type[SmellDetector], ...]:
    return _all_detectors(_EXTRA_GENERATION)


@lru_cache(maxsize=4)
def _all_detectors(extra_generation: int) -> tuple[type[SmellDetector], ...]:
    _ = extra_generation
    by_id = {cls.meta.detector_id: cls for cls in builtin_detectors()}
    by_id.update(_EXTRA_DETECTORS)
    return tuple(by_id[k] for k in sorted(by_id))


def detector_ids() -> tuple[str, ...]:
    return tuple(cls.meta.detector_id for cls in all_detectors())


def detector_class_by_id(detector_id: str) -> type[SmellDetector] | None:
    return _detector_by_id_map(_EXTRA_GENERATION).get(detector_id)


@lru_cache(maxsize=4)
def _detector_by_id_map(extra_generation: int) -> Mapping[str, type[SmellDetector]]:
    _ = extra_generation
    return MappingProxyType({cls.meta.detector_id: cls for cls in all_detectors()})


def default_configs() -> Mapping[str, Mapping[str, Any]]:
    """Default configuration per detector id; the schema for override tables."""

    return MappingProxyType({cls.meta.detector_id: cls.meta.default_config for cls in all_detectors()})


def create_detectors(source: str = "") -> list[SmellDetector]:
    return [cls(source) for cls in all_detectors()]
