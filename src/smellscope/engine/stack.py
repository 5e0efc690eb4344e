from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping
from contextlib import contextmanager
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from smellscope.config import ENABLED_KEY, EXCLUDE_KEY, FORCE_KEY, ConfigLayer
from smellscope.engine.types import SmellWarning, TextPattern

if TYPE_CHECKING:
    from smellscope.detectors.base import SmellDetector
    from smellscope.engine.context import CodeContext

logger = logging.getLogger(__name__)


class StackOrderError(RuntimeError):
    """Raised when layers are popped out of order."""


class DetectorStack:
    """
    One detector plus the configuration layers that apply at the current
    point of the walk.

    Layers are kept innermost last. Resolution never mutates anything, so
    the effective configuration is a pure function of the pushed layers.
    """

    def __init__(self, detector: SmellDetector, layers: Iterable[ConfigLayer] = ()) -> None:
        self.detector = detector
        self._defaults = detector.meta.default_config
        self._layers: list[ConfigLayer] = list(layers)
        self._base_depth = len(self._layers)
        self._warnings: list[SmellWarning] = []

    @property
    def detector_id(self) -> str:
        return self.detector.meta.detector_id

    @property
    def depth(self) -> int:
        return len(self._layers)

    def push(self, layer: ConfigLayer) -> None:
        logger.debug("%s: push layer %s", self.detector_id, layer.pattern or "<global>")
        self._layers.append(layer)

    def pop(self, layer: ConfigLayer) -> None:
        if len(self._layers) <= self._base_depth or self._layers[-1] is not layer:
            raise StackOrderError(f"{self.detector_id}: configuration layers popped out of order")
        self._layers.pop()

    @contextmanager
    def pushed(self, layers: Iterable[ConfigLayer]) -> Iterator[None]:
        """Push `layers` (outermost first) for the duration of the block."""

        entered: list[ConfigLayer] = []
        try:
            for layer in layers:
                self.push(layer)
                entered.append(layer)
            yield
        finally:
            for layer in reversed(entered):
                self.pop(layer)

    def value(self, key: str) -> Any:
        for layer in reversed(self._layers):
            if key in layer:
                return layer.get(key)
        return self._defaults.get(key)

    def effective_config(self) -> Mapping[str, Any]:
        merged = dict(self._defaults)
        for layer in self._layers:
            merged.update(layer.values)
        return MappingProxyType(merged)

    def is_excluded(self) -> bool:
        detector_id = self.detector_id
        for layer in reversed(self._layers):
            if detector_id in layer.names_in(FORCE_KEY):
                return False
            if detector_id in layer.names_in(EXCLUDE_KEY):
                return True
        return False

    def is_active(self) -> bool:
        return bool(self.value(ENABLED_KEY)) and not self.is_excluded()

    def examine(self, context: CodeContext) -> list[SmellWarning]:
        if not self.is_active():
            return []
        found = self.detector.examine(context, self.effective_config())
        self._warnings.extend(found)
        return found

    def notify_enter(self, context: CodeContext) -> None:
        if self.is_active():
            self.detector.on_enter(context, self.effective_config())

    def notify_exit(self, context: CodeContext) -> None:
        if self.is_active():
            self.detector.on_exit(context, self.effective_config())

    def finalize(self) -> None:
        if self.detector.meta.aggregating:
            self._warnings.extend(self.detector.finalize())

    @property
    def warnings(self) -> tuple[SmellWarning, ...]:
        return tuple(self._warnings)

    def smelly(self) -> bool:
        return bool(self._warnings)

    def num_smells(self) -> int:
        return len(self._warnings)

    def has_smell(self, patterns: Iterable[TextPattern] = ()) -> bool:
        pats = tuple(patterns)
        return any(w.matches(pats) for w in self._warnings)
