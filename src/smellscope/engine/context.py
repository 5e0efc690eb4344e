from __future__ import annotations

import ast
from collections.abc import Iterator
from dataclasses import dataclass, field
from functools import cached_property
from pathlib import Path

from smellscope.engine.nodes import CallNode, ClassNode, DecoratedNode, FunctionNode, ScopeNode
from smellscope.engine.syntax import SyntaxNode, from_python_ast
from smellscope.engine.types import ContextKind
from smellscope.suppressions import Suppressions, parse_suppressions


class SourceError(ValueError):
    """Raised when a source unit cannot be turned into a syntax tree."""


@dataclass(frozen=True, slots=True)
class SourceUnit:
    """One analyzable unit: a description (usually a path) and its syntax tree."""

    desc: str
    syntax_tree: SyntaxNode
    suppressions: Suppressions = field(default_factory=lambda: parse_suppressions(()))

    @classmethod
    def from_text(cls, text: str, desc: str = "string") -> SourceUnit:
        try:
            tree = ast.parse(text, filename=desc)
        except SyntaxError as exc:
            raise SourceError(f"{desc}: cannot parse: {exc.msg} (line {exc.lineno})") from exc
        except (RecursionError, ValueError) as exc:
            # Nesting deeper than the parser supports, or NUL bytes in the text.
            raise SourceError(f"{desc}: cannot parse: {exc}") from exc
        return cls(
            desc=desc,
            syntax_tree=from_python_ast(tree),
            suppressions=parse_suppressions(text.splitlines()),
        )

    @classmethod
    def from_path(cls, path: Path, desc: str | None = None) -> SourceUnit:
        try:
            text = path.read_text(encoding="utf-8", errors="replace")
        except OSError as exc:
            raise SourceError(f"{path}: cannot read: {exc}") from exc
        return cls.from_text(text, desc=desc or path.as_posix())


class CodeContext:
    """
    A scope reconstructed from the syntax tree: the module, a class, or a
    method/function body.

    Children are appended by the scope tree builder while the walk is inside
    this context, so facts that depend on them are only complete on exit.
    """

    def __init__(self, kind: ContextKind, exp: DecoratedNode, parent: CodeContext | None = None, name: str = "") -> None:
        self.kind: ContextKind = kind
        self.exp = exp
        self.parent = parent
        self.name = name
        self.children: list[CodeContext] = []

    def __repr__(self) -> str:
        return f"<CodeContext {self.kind} {self.full_name!r}>"

    @cached_property
    def full_name(self) -> str:
        if self.parent is None or not self.parent.full_name:
            return self.name
        return f"{self.parent.full_name}.{self.name}"

    @property
    def line(self) -> int | None:
        return self.exp.line

    @property
    def depth(self) -> int:
        return 0 if self.parent is None else self.parent.depth + 1

    @cached_property
    def num_statements(self) -> int:
        if isinstance(self.exp, ScopeNode):
            return self.exp.count_statements()
        return 0

    @cached_property
    def receiver_name(self) -> str | None:
        if self.kind not in ("method", "singleton_method") or not isinstance(self.exp, FunctionNode):
            return None
        return self.exp.receiver_name()

    @cached_property
    def references_self(self) -> bool:
        """True if the body uses the receiver (fields, own methods, `super()`)."""

        receiver = self.receiver_name
        if receiver is None or not isinstance(self.exp, ScopeNode):
            return False
        body = self.exp.body
        if body.references(receiver):
            return True
        return any(call.method_name == "super" and call.receiver is None for call in self.local_calls())

    def local_nodes(self, *types: str) -> list[DecoratedNode]:
        if not isinstance(self.exp, ScopeNode):
            return []
        return self.exp.body.local_nodes(types)

    def local_calls(self) -> list[CallNode]:
        return [n for n in self.local_nodes("call") if isinstance(n, CallNode)]

    @property
    def parameter_names(self) -> tuple[str, ...]:
        if not isinstance(self.exp, FunctionNode):
            return ()
        names = self.exp.parameter_names
        if self.receiver_name is not None and names and names[0] == self.receiver_name:
            return names[1:]
        return names

    @property
    def docstring(self) -> str | None:
        if isinstance(self.exp, ScopeNode):
            return self.exp.docstring
        return None

    def method_contexts(self) -> list[CodeContext]:
        return [c for c in self.children if c.kind in ("method", "singleton_method")]

    def walk(self) -> Iterator[CodeContext]:
        """Pre-order iteration over this context and all nested contexts."""

        yield self
        for c in self.children:
            yield from c.walk()


def context_kind_for(node: DecoratedNode, parent: CodeContext | None) -> ContextKind | None:
    if not node.is_scope_opening:
        return None
    if isinstance(node, ClassNode):
        return "class"
    if isinstance(node, FunctionNode):
        if parent is not None and parent.kind == "class":
            return "singleton_method" if node.is_singleton else "method"
        return "function"
    return "module"
