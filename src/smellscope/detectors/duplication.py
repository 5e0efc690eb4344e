from __future__ import annotations

from collections import defaultdict
from collections.abc import Mapping
from typing import Any

from smellscope.detectors.base import AggregatingDetector, DetectorMeta, SmellDetector
from smellscope.engine.context import CodeContext
from smellscope.engine.nodes import ScopeNode
from smellscope.engine.types import CONTEXT_KINDS, METHOD_KINDS, SmellWarning

MIN_STATEMENTS_KEY = "min_statements"
DEFAULT_MIN_STATEMENTS = 3


class DuplicateMethodBody(AggregatingDetector):
    """
    Methods and functions anywhere in one unit whose bodies are structurally
    identical.

    Bodies are compared by shape (tags and literals, not positions), ignoring
    docstrings and `pass`. One warning is produced per group of duplicates,
    anchored on the first definition in source order.
    """

    meta = DetectorMeta(
        detector_id="DuplicateMethodBody",
        category="Duplication",
        contexts=CONTEXT_KINDS,
        description="Identical method or function bodies in one unit.",
        options={MIN_STATEMENTS_KEY: DEFAULT_MIN_STATEMENTS},
        aggregating=True,
    )

    def __init__(self, source: str = "") -> None:
        super().__init__(source)
        self._bodies: dict[tuple[Any, ...], list[CodeContext]] = defaultdict(list)

    def record(self, context: CodeContext, config: Mapping[str, Any]) -> None:
        if context.kind not in METHOD_KINDS or not isinstance(context.exp, ScopeNode):
            return
        if context.num_statements < config[MIN_STATEMENTS_KEY]:
            return
        shape = tuple(stmt.structure() for stmt in context.exp.body.items if not stmt.is_null_statement)
        self._bodies[shape].append(context)

    def collect(self) -> list[SmellWarning]:
        warnings = []
        for group in self._bodies.values():
            if len(group) < 2:
                continue
            ordered = sorted(group, key=lambda c: c.line or 0)
            first, others = ordered[0], ordered[1:]
            other_names = [c.full_name for c in others]
            warnings.append(
                self._warning(
                    first,
                    message=f"has the same body as {', '.join(other_names)}",
                    lines=[c.line for c in ordered],
                    parameters={"name": first.full_name, "duplicates": other_names, "count": len(ordered)},
                )
            )
        return warnings


def builtin_duplication_detectors() -> list[type[SmellDetector]]:
    return [DuplicateMethodBody]
