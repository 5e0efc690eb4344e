from __future__ import annotations

import textwrap
from collections.abc import Mapping
from typing import Any

from smellscope.config import SmellConfig, parse_smell_config
from smellscope.detectors.base import SmellDetector
from smellscope.detectors.registry import default_configs
from smellscope.engine.context import CodeContext, SourceUnit
from smellscope.engine.nodes import DecoratedNode, dress
from smellscope.engine.session import AnalysisSession
from smellscope.engine.types import SmellWarning
from smellscope.engine.walker import ScopeTreeBuilder


def make_unit(src: str, *, desc: str = "string") -> SourceUnit:
    return SourceUnit.from_text(textwrap.dedent(src), desc=desc)


def make_config(raw: Mapping[str, Any] | None) -> SmellConfig:
    return parse_smell_config(raw, catalog=default_configs())


def analyze(
    src: str,
    *detectors: type[SmellDetector],
    config: Mapping[str, Any] | None = None,
    desc: str = "string",
) -> AnalysisSession:
    return AnalysisSession(
        make_unit(src, desc=desc),
        config=make_config(config),
        detectors=detectors or None,
    )


def smells_of(session: AnalysisSession, detector_id: str) -> list[SmellWarning]:
    return [w for w in session.warnings() if w.smell_type == detector_id]


def decorated_module(src: str) -> DecoratedNode:
    return dress(make_unit(src).syntax_tree)


def scope_tree(src: str) -> CodeContext:
    return ScopeTreeBuilder().build(decorated_module(src))


def contexts_by_name(src: str) -> dict[str, CodeContext]:
    return {ctx.full_name: ctx for ctx in scope_tree(src).walk()}
