from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from smellscope.detectors.base import DetectorMeta, SmellDetector
from smellscope.engine.context import CodeContext
from smellscope.engine.types import METHOD_KINDS, SmellWarning

MAX_PARAMS_KEY = "max_params"
DEFAULT_MAX_PARAMS = 3

MAX_STATEMENTS_KEY = "max_statements"
DEFAULT_MAX_STATEMENTS = 5

MAX_METHODS_KEY = "max_methods"
DEFAULT_MAX_METHODS = 25


class LongParameterList(SmellDetector):
    """A method or function taking more than `max_params` parameters (receiver not counted)."""

    meta = DetectorMeta(
        detector_id="LongParameterList",
        category="LongParameterList",
        contexts=METHOD_KINDS,
        description="Method or function with too many parameters.",
        options={MAX_PARAMS_KEY: DEFAULT_MAX_PARAMS},
    )

    def examine_context(self, context: CodeContext, config: Mapping[str, Any]) -> list[SmellWarning]:
        count = len(context.parameter_names)
        if count <= config[MAX_PARAMS_KEY]:
            return []
        return [self._warning(context, message=f"has {count} parameters", parameters={"count": count})]


class TooManyStatements(SmellDetector):
    """
    A method or function whose body holds more than `max_statements`
    statements.

    Statements inside `if`/`for`/`try` blocks count too; `pass`, docstrings
    and nested definitions' bodies do not.
    """

    meta = DetectorMeta(
        detector_id="TooManyStatements",
        category="LongMethod",
        contexts=METHOD_KINDS,
        description="Method or function with too many statements.",
        options={MAX_STATEMENTS_KEY: DEFAULT_MAX_STATEMENTS},
    )

    def examine_context(self, context: CodeContext, config: Mapping[str, Any]) -> list[SmellWarning]:
        count = context.num_statements
        if count <= config[MAX_STATEMENTS_KEY]:
            return []
        return [self._warning(context, message=f"has approx {count} statements", parameters={"count": count})]


class TooManyMethods(SmellDetector):
    meta = DetectorMeta(
        detector_id="TooManyMethods",
        category="LargeClass",
        contexts=("class",),
        description="Class defining too many methods.",
        options={MAX_METHODS_KEY: DEFAULT_MAX_METHODS},
    )

    def examine_context(self, context: CodeContext, config: Mapping[str, Any]) -> list[SmellWarning]:
        count = len(context.method_contexts())
        if count <= config[MAX_METHODS_KEY]:
            return []
        return [self._warning(context, message=f"has at least {count} methods", parameters={"count": count})]


def builtin_size_detectors() -> list[type[SmellDetector]]:
    return [LongParameterList, TooManyStatements, TooManyMethods]
