from __future__ import annotations

import ast
import re
from dataclasses import dataclass, field
from typing import Any

# Either a nested SyntaxNode or a primitive literal (str, int, None, ...).
Child = Any

SEQUENCE_TYPE = "seq"

# Fields that only carry load/store markers; they add noise without meaning here.
_DROPPED_FIELDS = frozenset({"ctx"})

_CAMEL_BOUNDARY_RE = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


@dataclass(frozen=True, slots=True)
class SourceRange:
    start_line: int | None = None  # 1-based
    start_col: int | None = None  # 1-based
    end_line: int | None = None  # 1-based
    end_col: int | None = None  # 1-based


@dataclass(frozen=True, slots=True)
class SyntaxNode:
    """
    Generic, language-agnostic syntax tree node produced by a parser adapter.

    `fields` optionally labels each position in `children`; adapters that do
    not know field names leave it empty.
    """

    type: str
    children: tuple[Child, ...] = ()
    location: SourceRange = field(default_factory=SourceRange)
    fields: tuple[str, ...] = ()

    def child(self, name: str, default: Child = None) -> Child:
        try:
            return self.children[self.fields.index(name)]
        except (ValueError, IndexError):
            return default


def type_tag_for(node_class: type[ast.AST]) -> str:
    """Map an `ast` class name to its tag: `AsyncFunctionDef` -> `async_function_def`."""

    return _CAMEL_BOUNDARY_RE.sub("_", node_class.__name__).lower()


def from_python_ast(node: ast.AST) -> SyntaxNode:
    """
    Convert a standard-library `ast` tree into `SyntaxNode`s.

    List-valued fields become `seq` nodes so every child position stays a
    single value; `ctx` markers are dropped. The conversion runs on an
    explicit stack, so long operator chains do not hit the recursion limit.
    """

    converted: dict[int, SyntaxNode] = {}
    pending: list[tuple[ast.AST | list[Any], ast.AST, bool]] = [(node, node, False)]
    while pending:
        value, owner, ready = pending.pop()
        if ready:
            converted[id(value)] = _build(value, owner, converted)
            continue
        pending.append((value, owner, True))
        if isinstance(value, ast.AST):
            nested = [v for name, v in ast.iter_fields(value) if name not in _DROPPED_FIELDS]
            owner = value
        else:
            nested = value
        pending.extend((v, owner, False) for v in nested if isinstance(v, ast.AST | list))
    return converted[id(node)]


def _build(value: ast.AST | list[Any], owner: ast.AST, converted: dict[int, SyntaxNode]) -> SyntaxNode:
    def convert(child: Any) -> Child:
        return converted[id(child)] if isinstance(child, ast.AST | list) else child

    if isinstance(value, list):
        # Sequences carry their owner's position.
        return SyntaxNode(type=SEQUENCE_TYPE, children=tuple(convert(v) for v in value), location=_location_of(owner))

    names: list[str] = []
    children: list[Child] = []
    for name, field_value in ast.iter_fields(value):
        if name in _DROPPED_FIELDS:
            continue
        names.append(name)
        children.append(convert(field_value))
    return SyntaxNode(
        type=type_tag_for(type(value)),
        children=tuple(children),
        location=_location_of(value),
        fields=tuple(names),
    )


def _location_of(node: ast.AST) -> SourceRange:
    line = getattr(node, "lineno", None)
    if line is None:
        return SourceRange()
    col = getattr(node, "col_offset", None)
    end_col = getattr(node, "end_col_offset", None)
    return SourceRange(
        start_line=line,
        start_col=col + 1 if col is not None else None,
        end_line=getattr(node, "end_lineno", None),
        end_col=end_col + 1 if end_col is not None else None,
    )
