from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Iterator
from contextlib import AbstractContextManager, nullcontext
from typing import Protocol

from smellscope.engine.context import CodeContext, context_kind_for
from smellscope.engine.nodes import DecoratedNode, ScopeNode

logger = logging.getLogger(__name__)


class ScopeListener(Protocol):
    """
    Receives scope boundaries in source order.

    `scope(context)` is entered when the walk enters `context` and exited
    when it leaves it, so listeners can hold resources (configuration
    layers) for exactly the lifetime of the scope.
    """

    def scope(self, context: CodeContext) -> AbstractContextManager[None]: ...


class _NullListener:
    def scope(self, context: CodeContext) -> AbstractContextManager[None]:
        return nullcontext()


class ScopeTreeBuilder:
    """
    Rebuilds the module/class/method nesting from a decorated tree.

    Only scope-opening nodes create contexts; every other node is walked
    through to find scopes nested below it.
    """

    def __init__(self, listener: ScopeListener | None = None) -> None:
        self._listener: ScopeListener = listener or _NullListener()

    def build(self, root: DecoratedNode, *, name: str = "") -> CodeContext:
        kind = context_kind_for(root, None) or "module"
        context = CodeContext(kind, root, parent=None, name=name or _declared_name(root))
        logger.debug("walk start: %s", context.full_name or "<module>")
        with self._listener.scope(context):
            self._process(root, context)
        logger.debug("walk done: %s", context.full_name or "<module>")
        return context

    def _process(self, node: DecoratedNode, context: CodeContext) -> None:
        names = _SiblingNames(context)
        for child in _scope_children(node):
            self._open_scope(child, context, names)

    def _open_scope(self, node: DecoratedNode, parent: CodeContext, names: _SiblingNames) -> None:
        kind = context_kind_for(node, parent)
        if kind is None:  # pragma: no cover
            return
        context = CodeContext(kind, node, parent=parent, name=names.claim(_declared_name(node)))
        parent.children.append(context)
        with self._listener.scope(context):
            self._process(node, context)


class _SiblingNames:
    """Keeps qualified names unique when a scope redefines a name (e.g. property setters)."""

    def __init__(self, parent: CodeContext) -> None:
        self._seen: Counter[str] = Counter(c.name for c in parent.children)

    def claim(self, name: str) -> str:
        self._seen[name] += 1
        count = self._seen[name]
        return name if count == 1 else f"{name}#{count}"


def _declared_name(node: DecoratedNode) -> str:
    return node.declared_name if isinstance(node, ScopeNode) else ""


def _scope_children(node: DecoratedNode) -> Iterator[DecoratedNode]:
    """Yield the nearest scope-opening descendants of `node`, in source order."""

    stack = list(reversed(tuple(node.iter_child_nodes())))
    while stack:
        current = stack.pop()
        if current.is_scope_opening:
            yield current
            continue
        stack.extend(reversed(tuple(current.iter_child_nodes())))
