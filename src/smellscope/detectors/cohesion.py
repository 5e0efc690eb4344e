from __future__ import annotations

from collections.abc import Mapping
from itertools import combinations
from typing import Any

from smellscope.detectors.base import DetectorMeta, SmellDetector
from smellscope.engine.context import CodeContext
from smellscope.engine.types import SmellWarning

# Maximum number of calls a method may make on other objects before it is
# considered a candidate utility function.
HELPER_CALLS_LIMIT_KEY = "max_helper_calls"
DEFAULT_HELPER_CALLS_LIMIT = 0

MAX_COPIES_KEY = "max_copies"
DEFAULT_MAX_COPIES = 2
MIN_CLUMP_SIZE_KEY = "min_clump_size"
DEFAULT_MIN_CLUMP_SIZE = 2


class UtilityFunction(SmellDetector):
    """
    A Utility Function is an instance method with no dependency on the state
    of the instance.

    A method is reported when it is non-empty, never touches its receiver
    (no attribute access, no call to its own methods, no `super()`), and
    makes more than `max_helper_calls` calls. Such a method usually belongs
    on one of the objects it manipulates, or is a function in disguise.
    """

    meta = DetectorMeta(
        detector_id="UtilityFunction",
        category="LowCohesion",
        contexts=("method",),
        description="Instance method that does not depend on instance state.",
        options={HELPER_CALLS_LIMIT_KEY: DEFAULT_HELPER_CALLS_LIMIT},
    )

    def examine_context(self, context: CodeContext, config: Mapping[str, Any]) -> list[SmellWarning]:
        if context.num_statements == 0:
            return []
        if context.references_self:
            return []
        if self._num_helper_calls(context) <= config[HELPER_CALLS_LIMIT_KEY]:
            return []

        return [
            self._warning(
                context,
                message="doesn't depend on instance state",
                parameters={"name": context.full_name},
            )
        ]

    @staticmethod
    def _num_helper_calls(context: CodeContext) -> int:
        return len(context.local_calls())


class DataClump(SmellDetector):
    """
    The same group of parameters passed to several methods of one class
    suggests a missing object.
    """

    meta = DetectorMeta(
        detector_id="DataClump",
        category="DataClump",
        contexts=("class",),
        description="Group of parameters repeated across several methods of a class.",
        options={MAX_COPIES_KEY: DEFAULT_MAX_COPIES, MIN_CLUMP_SIZE_KEY: DEFAULT_MIN_CLUMP_SIZE},
    )

    def examine_context(self, context: CodeContext, config: Mapping[str, Any]) -> list[SmellWarning]:
        max_copies = config[MAX_COPIES_KEY]
        min_size = config[MIN_CLUMP_SIZE_KEY]

        candidates = [
            (method, frozenset(method.parameter_names))
            for method in context.method_contexts()
            if len(method.parameter_names) >= min_size
        ]
        clumps: set[frozenset[str]] = set()
        for (_, first), (_, second) in combinations(candidates, 2):
            common = first & second
            if len(common) >= min_size:
                clumps.add(common)

        found: list[tuple[frozenset[str], list[CodeContext]]] = []
        for clump in clumps:
            methods = [method for method, params in candidates if clump <= params]
            if len(methods) > max_copies:
                found.append((clump, methods))

        warnings = []
        for clump, methods in sorted(found, key=lambda item: sorted(item[0])):
            if _subsumed(clump, methods, found):
                continue
            names = sorted(clump)
            warnings.append(
                self._warning(
                    context,
                    message=f"takes parameters [{', '.join(names)}] to {len(methods)} methods",
                    lines=[m.line for m in methods],
                    parameters={"parameters": names, "count": len(methods), "methods": [m.full_name for m in methods]},
                )
            )
        return warnings


def _subsumed(
    clump: frozenset[str],
    methods: list[CodeContext],
    found: list[tuple[frozenset[str], list[CodeContext]]],
) -> bool:
    # A smaller clump shared by exactly the same methods adds no information.
    return any(clump < other and methods == other_methods for other, other_methods in found)


def builtin_cohesion_detectors() -> list[type[SmellDetector]]:
    return [UtilityFunction, DataClump]
