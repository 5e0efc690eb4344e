from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, ClassVar

from smellscope.config import BASE_CONFIG
from smellscope.engine.context import CodeContext
from smellscope.engine.types import CONTEXT_KINDS, ContextKind, SmellWarning


class NotFinalizedError(RuntimeError):
    """Raised when an aggregating detector is queried before the walk completed."""


@dataclass(frozen=True, slots=True)
class DetectorMeta:
    detector_id: str
    category: str
    contexts: tuple[ContextKind, ...]
    description: str
    options: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    aggregating: bool = False
    default_config: Mapping[str, Any] = field(init=False, compare=False, repr=False)

    def __post_init__(self) -> None:
        unknown = set(self.contexts) - set(CONTEXT_KINDS)
        if unknown:
            raise ValueError(f"{self.detector_id}: unknown context kinds {sorted(unknown)}")
        options = {k: tuple(v) if isinstance(v, list) else v for k, v in self.options.items()}
        object.__setattr__(self, "contexts", tuple(self.contexts))
        object.__setattr__(self, "options", MappingProxyType(options))
        object.__setattr__(self, "default_config", MappingProxyType({**BASE_CONFIG, **options}))


class SmellDetector(ABC):
    """
    Base class for detectors.

    A detector is instantiated once per analysis session. `examine` is
    called with each context of a subscribed kind when the walk leaves it,
    together with the configuration in effect for that scope.
    """

    meta: ClassVar[DetectorMeta]

    def __init__(self, source: str = "") -> None:
        self.source = source

    def examine(self, context: CodeContext, config: Mapping[str, Any] | None = None) -> list[SmellWarning]:
        if context.kind not in self.meta.contexts:
            return []
        return self.examine_context(context, config if config is not None else self.meta.default_config)

    @abstractmethod
    def examine_context(self, context: CodeContext, config: Mapping[str, Any]) -> list[SmellWarning]: ...

    def on_enter(self, context: CodeContext, config: Mapping[str, Any]) -> None:
        return None

    def on_exit(self, context: CodeContext, config: Mapping[str, Any]) -> None:
        return None

    def finalize(self) -> list[SmellWarning]:
        return []

    def _warning(
        self,
        context: CodeContext,
        *,
        message: str,
        lines: Iterable[int | None] | None = None,
        parameters: Mapping[str, Any] | None = None,
    ) -> SmellWarning:
        raw_lines = lines if lines is not None else (context.line,)
        return SmellWarning(
            smell_type=self.meta.detector_id,
            category=self.meta.category,
            context=context.full_name,
            lines=tuple(line for line in raw_lines if line is not None),
            message=message,
            parameters=dict(parameters or {}),
            source=self.source,
        )


class AggregatingDetector(SmellDetector):
    """
    A detector whose findings need more than one context.

    It sees every context on entry and exit, keeps its own state for the
    whole walk, and only produces warnings from `finalize()`.
    """

    def __init__(self, source: str = "") -> None:
        super().__init__(source)
        self._finalized: tuple[SmellWarning, ...] | None = None

    def examine_context(self, context: CodeContext, config: Mapping[str, Any]) -> list[SmellWarning]:
        return []

    def on_exit(self, context: CodeContext, config: Mapping[str, Any]) -> None:
        if self._finalized is not None:
            raise RuntimeError(f"{self.meta.detector_id}: already finalized")
        self.record(context, config)

    @abstractmethod
    def record(self, context: CodeContext, config: Mapping[str, Any]) -> None: ...

    @abstractmethod
    def collect(self) -> list[SmellWarning]: ...

    def finalize(self) -> list[SmellWarning]:
        if self._finalized is None:
            self._finalized = tuple(self.collect())
        return list(self._finalized)

    @property
    def is_finalized(self) -> bool:
        return self._finalized is not None

    @property
    def warnings(self) -> tuple[SmellWarning, ...]:
        if self._finalized is None:
            raise NotFinalizedError(f"{self.meta.detector_id}: results are not available until the walk completes")
        return self._finalized
