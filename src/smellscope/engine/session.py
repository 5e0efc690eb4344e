from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from collections import defaultdict
from collections.abc import Iterable, Iterator, Sequence
from concurrent.futures import ThreadPoolExecutor
from contextlib import ExitStack, contextmanager
from itertools import chain

from smellscope.config import EXCLUDE_KEY, FORCE_KEY, ConfigError, ConfigLayer, SmellConfig, expand_detector_ids
from smellscope.detectors.base import SmellDetector
from smellscope.detectors.registry import all_detectors
from smellscope.engine.context import CodeContext, SourceUnit
from smellscope.engine.nodes import dress
from smellscope.engine.stack import DetectorStack
from smellscope.engine.types import ContextKind, SmellWarning, TextPattern
from smellscope.engine.walker import ScopeTreeBuilder

logger = logging.getLogger(__name__)


class SmellSource(ABC):
    """
    Query surface shared by a single analyzed unit and a composite of units.

    Reporters and the CLI only talk to this interface, so "one file" and "a
    whole project" are handled the same way.
    """

    desc: str

    @abstractmethod
    def warnings(self) -> tuple[SmellWarning, ...]: ...

    @abstractmethod
    def has_smells(self) -> bool: ...

    @abstractmethod
    def smell_count(self) -> int: ...

    @abstractmethod
    def has_smell(self, detector_id: str, patterns: Iterable[TextPattern] = ()) -> bool:
        """True if a warning from `detector_id` matches every pattern."""

    @abstractmethod
    def sessions(self) -> tuple[AnalysisSession, ...]: ...


class AnalysisSession(SmellSource):
    """
    Binds one source unit to a fresh set of detectors.

    The walk happens on the first query and is memoized; later queries
    return the cached warnings. A detector that raises aborts the walk and
    the same error is raised again on every later query.
    """

    def __init__(
        self,
        source: SourceUnit,
        *,
        config: SmellConfig | None = None,
        detectors: Iterable[type[SmellDetector]] | None = None,
    ) -> None:
        self.desc = source.desc
        self._source = source
        self._config = config or SmellConfig()
        detector_classes = tuple(detectors) if detectors is not None else all_detectors()

        self._stacks: dict[str, DetectorStack] = {}
        for cls in detector_classes:
            detector_id = cls.meta.detector_id
            self._stacks[detector_id] = DetectorStack(cls(source.desc), self._config.global_layers(detector_id))

        self._listeners: dict[ContextKind, list[DetectorStack]] = defaultdict(list)
        self._aggregators: list[DetectorStack] = []
        for stack in self._stacks.values():
            meta = stack.detector.meta
            if meta.aggregating:
                self._aggregators.append(stack)
                continue
            for kind in meta.contexts:
                self._listeners[kind].append(stack)

        self._lock = threading.Lock()
        self._result: tuple[SmellWarning, ...] | None = None
        self._error: BaseException | None = None
        self._root: CodeContext | None = None

    def __repr__(self) -> str:
        return f"<AnalysisSession {self.desc!r}>"

    @contextmanager
    def scope(self, context: CodeContext) -> Iterator[None]:
        directive = self._directive_layer(context)
        with ExitStack() as layers:
            for stack in self._stacks.values():
                scoped = self._config.scope_layers(context.full_name, stack.detector_id)
                if directive is not None:
                    scoped.append(directive)
                if scoped:
                    layers.enter_context(stack.pushed(scoped))
            for stack in self._aggregators:
                stack.notify_enter(context)
            yield
            for stack in self._listeners.get(context.kind, ()):
                stack.examine(context)
            for stack in self._aggregators:
                stack.notify_exit(context)

    def _directive_layer(self, context: CodeContext) -> ConfigLayer | None:
        suppressions = self._source.suppressions
        if not suppressions:
            return None
        disabled = set(suppressions.disabled_at(context.line))
        if context.parent is None:
            disabled.update(suppressions.disabled_in_file)
        forced = suppressions.forced_at(context.line)
        if not disabled and not forced:
            return None

        values: dict[str, tuple[str, ...]] = {}
        if disabled:
            values[EXCLUDE_KEY] = self._resolve_ids(disabled, line=context.line)
        if forced:
            values[FORCE_KEY] = self._resolve_ids(forced, line=context.line)
        return ConfigLayer(values, pattern=context.full_name or None, origin=f"{self.desc}:{context.line or 1}")

    def _resolve_ids(self, ids: Iterable[str], *, line: int | None) -> tuple[str, ...]:
        resolved: list[str] = []
        for raw_id in sorted(ids):
            try:
                resolved.extend(expand_detector_ids((raw_id,), known=self._stacks, field_name="directive"))
            except ConfigError:
                logger.warning("%s:%s: unknown detector in directive: %s", self.desc, line or 1, raw_id)
        return tuple(resolved)

    def _analyze(self) -> tuple[SmellWarning, ...]:
        if self._result is not None:
            return self._result
        with self._lock:
            if self._error is not None:
                raise self._error
            if self._result is None:
                try:
                    self._root = ScopeTreeBuilder(self).build(dress(self._source.syntax_tree))
                    for stack in self._stacks.values():
                        stack.finalize()
                except Exception as exc:
                    self._error = exc
                    raise
                found = chain.from_iterable(stack.warnings for stack in self._stacks.values())
                self._result = tuple(sorted(found, key=SmellWarning.sort_key))
                logger.debug("%s: %d smell(s)", self.desc, len(self._result))
        return self._result

    def root_context(self) -> CodeContext:
        self._analyze()
        assert self._root is not None
        return self._root

    def detector_stack(self, detector_id: str) -> DetectorStack:
        try:
            return self._stacks[detector_id]
        except KeyError:
            raise KeyError(f"unknown detector: {detector_id}") from None

    def warnings(self) -> tuple[SmellWarning, ...]:
        return self._analyze()

    def has_smells(self) -> bool:
        return bool(self._analyze())

    def smell_count(self) -> int:
        return len(self._analyze())

    def has_smell(self, detector_id: str, patterns: Iterable[TextPattern] = ()) -> bool:
        stack = self.detector_stack(detector_id)
        self._analyze()
        return stack.has_smell(patterns)

    def sessions(self) -> tuple[AnalysisSession, ...]:
        return (self,)


class SessionSet(SmellSource):
    """A composite making many sources behave like a single one."""

    def __init__(self, members: Iterable[SmellSource], desc: str = "") -> None:
        self.members: tuple[SmellSource, ...] = tuple(members)
        self.desc = desc

    def __repr__(self) -> str:
        return f"<SessionSet {self.desc!r} members={len(self.members)}>"

    def __len__(self) -> int:
        return len(self.members)

    def analyze(self, *, workers: int = 1) -> SessionSet:
        """
        Run every member session, optionally on a thread pool.

        Sessions share no state, so the order they run in does not matter;
        query results are still combined in member order.
        """

        leaves = self.sessions()
        if workers <= 1 or len(leaves) <= 1:
            for session in leaves:
                session.warnings()
            return self

        with ThreadPoolExecutor(max_workers=min(workers, len(leaves))) as executor:
            # list() re-raises the first detector error from the pool.
            list(executor.map(_analyze_session, leaves))
        return self

    def warnings(self) -> tuple[SmellWarning, ...]:
        return tuple(chain.from_iterable(m.warnings() for m in self.members))

    def has_smells(self) -> bool:
        return any(m.has_smells() for m in self.members)

    def smell_count(self) -> int:
        return sum(m.smell_count() for m in self.members)

    def has_smell(self, detector_id: str, patterns: Iterable[TextPattern] = ()) -> bool:
        pats: Sequence[TextPattern] = tuple(patterns)
        return any(m.has_smell(detector_id, pats) for m in self.members)

    def sessions(self) -> tuple[AnalysisSession, ...]:
        return tuple(chain.from_iterable(m.sessions() for m in self.members))


def _analyze_session(session: AnalysisSession) -> int:
    return session.smell_count()
