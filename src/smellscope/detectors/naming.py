from __future__ import annotations

import re
from collections.abc import Mapping
from functools import lru_cache
from typing import Any

from smellscope.detectors.base import DetectorMeta, SmellDetector
from smellscope.engine.context import CodeContext
from smellscope.engine.nodes import ScopeNode
from smellscope.engine.types import METHOD_KINDS, SmellWarning

REJECT_KEY = "reject"
ACCEPT_KEY = "accept"


@lru_cache(maxsize=64)
def _compile(patterns: tuple[str, ...]) -> tuple[re.Pattern[str], ...]:
    return tuple(re.compile(p) for p in patterns)


def _is_uncommunicative(name: str, config: Mapping[str, Any]) -> bool:
    if name in config[ACCEPT_KEY]:
        return False
    return any(p.search(name) for p in _compile(tuple(config[REJECT_KEY])))


def _declared_name(context: CodeContext) -> str:
    # context.name may carry a "#2" suffix for redefinitions.
    return context.exp.declared_name if isinstance(context.exp, ScopeNode) else context.name


class UncommunicativeMethodName(SmellDetector):
    """
    Method names that say nothing about what the method does: single
    letters, trailing digits, or CamelCase in a snake_case world.
    """

    meta = DetectorMeta(
        detector_id="UncommunicativeMethodName",
        category="UncommunicativeName",
        contexts=METHOD_KINDS,
        description="Method or function name that communicates no intent.",
        options={REJECT_KEY: (r"^[a-z]$", r"[0-9]$", r"[A-Z]"), ACCEPT_KEY: ()},
    )

    def examine_context(self, context: CodeContext, config: Mapping[str, Any]) -> list[SmellWarning]:
        name = _declared_name(context)
        if not _is_uncommunicative(name, config):
            return []
        return [self._warning(context, message=f"has the name '{name}'", parameters={"name": name})]


class UncommunicativeModuleName(SmellDetector):
    meta = DetectorMeta(
        detector_id="UncommunicativeModuleName",
        category="UncommunicativeName",
        contexts=("class",),
        description="Class name that communicates no intent.",
        options={REJECT_KEY: (r"^.$", r"[0-9]$"), ACCEPT_KEY: ()},
    )

    def examine_context(self, context: CodeContext, config: Mapping[str, Any]) -> list[SmellWarning]:
        name = _declared_name(context)
        if not _is_uncommunicative(name, config):
            return []
        return [self._warning(context, message=f"has the name '{name}'", parameters={"name": name})]


class IrresponsibleModule(SmellDetector):
    """A class without a docstring explaining what it is responsible for."""

    meta = DetectorMeta(
        detector_id="IrresponsibleModule",
        category="IrresponsibleModule",
        contexts=("class",),
        description="Class without a descriptive docstring.",
    )

    def examine_context(self, context: CodeContext, config: Mapping[str, Any]) -> list[SmellWarning]:
        docstring = context.docstring
        if docstring is not None and docstring.strip():
            return []
        return [self._warning(context, message="has no descriptive comment", parameters={"name": context.full_name})]


def builtin_naming_detectors() -> list[type[SmellDetector]]:
    return [UncommunicativeMethodName, UncommunicativeModuleName, IrresponsibleModule]
