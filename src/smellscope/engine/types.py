from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Literal

ContextKind = Literal["module", "class", "method", "singleton_method", "function"]

CONTEXT_KINDS: tuple[ContextKind, ...] = ("module", "class", "method", "singleton_method", "function")
METHOD_KINDS: tuple[ContextKind, ...] = ("method", "singleton_method", "function")

TextPattern = str | re.Pattern[str]


@dataclass(frozen=True, slots=True)
class SmellWarning:
    """
    One occurrence of a smell.

    This record is the stable contract consumed by reporters: everything a
    renderer shows comes from these fields, never from the syntax tree.
    `parameters` is frozen all the way down: lists become tuples, sets
    become frozensets and nested mappings become read-only proxies.
    """

    smell_type: str
    category: str
    context: str
    lines: tuple[int, ...]
    message: str
    parameters: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    source: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "lines", tuple(self.lines))
        object.__setattr__(self, "parameters", _freeze(self.parameters))

    def __hash__(self) -> int:
        fields = (self.smell_type, self.category, self.context, self.lines, self.message, self.source)
        return hash((*fields, _hashable(self.parameters)))

    @property
    def report(self) -> str:
        return f"{self.context} {self.message} ({self.smell_type})"

    def matches(self, patterns: Iterable[TextPattern]) -> bool:
        text = self.report
        for pattern in patterns:
            if isinstance(pattern, re.Pattern):
                if pattern.search(text) is None:
                    return False
            elif pattern not in text:
                return False
        return True

    def sort_key(self) -> tuple[str, int, str, str]:
        first_line = self.lines[0] if self.lines else 0
        return self.source, first_line, self.smell_type, self.context


def _freeze(value: Any) -> Any:
    if isinstance(value, Mapping):
        return MappingProxyType({k: _freeze(v) for k, v in value.items()})
    if isinstance(value, set | frozenset):
        return frozenset(_freeze(v) for v in value)
    if isinstance(value, list | tuple):
        return tuple(_freeze(v) for v in value)
    return value


def _hashable(value: Any) -> Any:
    if isinstance(value, Mapping):
        return tuple(sorted(((str(k), _hashable(v)) for k, v in value.items()), key=lambda item: item[0]))
    if isinstance(value, tuple):
        return tuple(_hashable(v) for v in value)
    return value
