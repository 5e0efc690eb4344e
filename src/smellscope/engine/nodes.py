from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from functools import lru_cache
from types import MappingProxyType
from typing import Any, ClassVar

from smellscope.engine.syntax import SEQUENCE_TYPE, Child, SourceRange, SyntaxNode


class DecoratedNode:
    """
    A `SyntaxNode` seen through the queries registered for its type tag.

    The base class only knows generic tree operations; subclasses in the
    dispatch table below add construct-specific questions ("who receives this
    call?", "what parameters does this method take?").
    """

    __slots__ = ("raw", "_children")

    is_scope_opening: ClassVar[bool] = False
    is_null_statement: ClassVar[bool] = False

    def __init__(self, raw: SyntaxNode) -> None:
        self.raw = raw
        self._children: tuple[Any, ...] | None = None

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.type} line={self.line}>"

    @property
    def type(self) -> str:
        return self.raw.type

    @property
    def location(self) -> SourceRange:
        return self.raw.location

    @property
    def line(self) -> int | None:
        return self.raw.location.start_line

    @property
    def children(self) -> tuple[Any, ...]:
        if self._children is None:
            self._children = tuple(_dress_child(c) for c in self.raw.children)
        return self._children

    def child(self, name: str) -> Any:
        fields = self.raw.fields
        if name not in fields:
            return None
        return self.children[fields.index(name)]

    def iter_child_nodes(self) -> Iterator[DecoratedNode]:
        for c in self.children:
            if isinstance(c, DecoratedNode):
                yield c

    def iter_nodes(self, types: Iterable[str], *, ignoring: Iterable[str] = ()) -> Iterator[DecoratedNode]:
        """
        Yield descendants whose tag is in `types`, in source order.

        Nodes tagged with one of `ignoring` may still be yielded, but their
        subtrees are not entered.
        """

        wanted = frozenset(types)
        skipped = frozenset(ignoring)
        stack = list(reversed(tuple(self.iter_child_nodes())))
        while stack:
            node = stack.pop()
            if node.type in wanted:
                yield node
            if node.type not in skipped:
                stack.extend(reversed(tuple(node.iter_child_nodes())))

    def local_nodes(self, types: Iterable[str]) -> list[DecoratedNode]:
        return list(self.iter_nodes(types, ignoring=SCOPE_OPENING_TYPES))

    def references(self, name: str) -> bool:
        """True if a `name` node inside this subtree (not crossing scopes) is `name`."""

        return any(n.identifier == name for n in self.iter_nodes(("name",), ignoring=SCOPE_OPENING_TYPES))

    def structure(self) -> tuple[Any, ...]:
        """
        Location-free shape of the subtree; equal for structurally identical code.

        The shape is a flat pre-order listing: each node contributes its tag and
        child count, each primitive child its value.
        """

        shape: list[Any] = []
        pending: list[Any] = [self]
        while pending:
            item = pending.pop()
            if isinstance(item, DecoratedNode):
                children = item.children
                shape.append((item.type, len(children)))
                pending.extend(reversed(children))
            else:
                shape.append(item)
        return tuple(shape)

    def nested_blocks(self) -> tuple[SeqNode, ...]:
        return ()


class SeqNode(DecoratedNode):
    __slots__ = ()

    @property
    def items(self) -> tuple[DecoratedNode, ...]:
        return tuple(self.iter_child_nodes())

    def count_statements(self) -> int:
        total = 0
        for stmt in self.items:
            if stmt.is_null_statement:
                continue
            total += 1
            if stmt.is_scope_opening:
                continue
            for block in stmt.nested_blocks():
                total += block.count_statements()
        return total


class ScopeNode(DecoratedNode):
    __slots__ = ()

    is_scope_opening = True

    @property
    def declared_name(self) -> str:
        return ""

    @property
    def body(self) -> SeqNode:
        return _as_seq(self.child("body"))

    @property
    def docstring(self) -> str | None:
        items = self.body.items
        if not items or items[0].type != "expr":
            return None
        value = items[0].child("value")
        if isinstance(value, ConstantNode) and isinstance(value.value, str):
            return value.value
        return None

    def count_statements(self) -> int:
        return self.body.count_statements()


class ModuleNode(ScopeNode):
    __slots__ = ()


class ClassNode(ScopeNode):
    __slots__ = ()

    @property
    def declared_name(self) -> str:
        return str(self.child("name"))

    @property
    def base_names(self) -> tuple[str, ...]:
        bases = _as_seq(self.child("bases"))
        return tuple(_dotted_name(b) for b in bases.items)


class FunctionNode(ScopeNode):
    __slots__ = ()

    SINGLETON_DECORATORS: ClassVar[frozenset[str]] = frozenset({"staticmethod", "classmethod"})

    @property
    def declared_name(self) -> str:
        return str(self.child("name"))

    @property
    def arguments(self) -> ArgumentsNode | None:
        args = self.child("args")
        return args if isinstance(args, ArgumentsNode) else None

    @property
    def parameter_names(self) -> tuple[str, ...]:
        args = self.arguments
        return args.names if args is not None else ()

    @property
    def decorator_names(self) -> tuple[str, ...]:
        decorators = _as_seq(self.child("decorator_list"))
        names = []
        for d in decorators.items:
            target = d.child("func") if isinstance(d, CallNode) else d
            names.append(_dotted_name(target))
        return tuple(names)

    @property
    def is_singleton(self) -> bool:
        return any(name in self.SINGLETON_DECORATORS for name in self.decorator_names)

    @property
    def is_static(self) -> bool:
        return "staticmethod" in self.decorator_names

    def receiver_name(self) -> str | None:
        """Name of the first positional parameter, which binds the receiver in a method."""

        if self.is_static:
            return None
        args = self.arguments
        if args is None or not args.positional_names:
            return None
        return args.positional_names[0]


class ArgumentsNode(DecoratedNode):
    __slots__ = ()

    @property
    def positional_names(self) -> tuple[str, ...]:
        names: list[str] = []
        for field_name in ("posonlyargs", "args"):
            names.extend(a.name for a in _as_seq(self.child(field_name)).items if isinstance(a, ArgNode))
        return tuple(names)

    @property
    def names(self) -> tuple[str, ...]:
        names = list(self.positional_names)
        vararg = self.child("vararg")
        if isinstance(vararg, ArgNode):
            names.append(vararg.name)
        names.extend(a.name for a in _as_seq(self.child("kwonlyargs")).items if isinstance(a, ArgNode))
        kwarg = self.child("kwarg")
        if isinstance(kwarg, ArgNode):
            names.append(kwarg.name)
        return tuple(names)


class ArgNode(DecoratedNode):
    __slots__ = ()

    @property
    def name(self) -> str:
        return str(self.child("arg"))


class CallNode(DecoratedNode):
    __slots__ = ()

    @property
    def func(self) -> DecoratedNode | None:
        return self.child("func")

    @property
    def receiver(self) -> DecoratedNode | None:
        func = self.func
        if isinstance(func, AttributeNode):
            return func.value
        return None

    @property
    def method_name(self) -> str | None:
        func = self.func
        if isinstance(func, AttributeNode):
            return func.attr
        if isinstance(func, NameNode):
            return func.identifier
        return None

    @property
    def arg_count(self) -> int:
        return len(_as_seq(self.child("args")).items) + len(_as_seq(self.child("keywords")).items)


class AttributeNode(DecoratedNode):
    __slots__ = ()

    @property
    def value(self) -> DecoratedNode | None:
        return self.child("value")

    @property
    def attr(self) -> str:
        return str(self.child("attr"))

    def is_on(self, name: str) -> bool:
        value = self.value
        return isinstance(value, NameNode) and value.identifier == name


class NameNode(DecoratedNode):
    __slots__ = ()

    @property
    def identifier(self) -> str:
        return str(self.child("id"))


class ConstantNode(DecoratedNode):
    __slots__ = ()

    @property
    def value(self) -> Any:
        return self.child("value")


class ExprNode(DecoratedNode):
    __slots__ = ()

    @property
    def is_null_statement(self) -> bool:  # type: ignore[override]
        # Bare strings (docstrings) and `...` placeholders do no work.
        value = self.child("value")
        return isinstance(value, ConstantNode) and (isinstance(value.value, str) or value.value is Ellipsis)


class PassNode(DecoratedNode):
    __slots__ = ()

    is_null_statement = True


class CompoundStatementNode(DecoratedNode):
    __slots__ = ()

    _BLOCK_FIELDS: ClassVar[tuple[str, ...]] = ("body", "orelse", "finalbody")
    _CLAUSE_FIELDS: ClassVar[tuple[str, ...]] = ("handlers", "cases")

    def nested_blocks(self) -> tuple[SeqNode, ...]:
        blocks: list[SeqNode] = []
        for field_name in self._BLOCK_FIELDS:
            block = self.child(field_name)
            if isinstance(block, SeqNode):
                blocks.append(block)
        for field_name in self._CLAUSE_FIELDS:
            for clause in _as_seq(self.child(field_name)).items:
                blocks.append(_as_seq(clause.child("body")))
        return tuple(blocks)


_COMPOUND_STATEMENT_TYPES = (
    "if",
    "for",
    "async_for",
    "while",
    "with",
    "async_with",
    "try",
    "try_star",
    "match",
)

_NODE_CLASSES: Mapping[str, type[DecoratedNode]] = MappingProxyType(
    {
        "module": ModuleNode,
        "class_def": ClassNode,
        "function_def": FunctionNode,
        "async_function_def": FunctionNode,
        "arguments": ArgumentsNode,
        "arg": ArgNode,
        "call": CallNode,
        "attribute": AttributeNode,
        "name": NameNode,
        "constant": ConstantNode,
        "expr": ExprNode,
        "pass": PassNode,
        SEQUENCE_TYPE: SeqNode,
        **{tag: CompoundStatementNode for tag in _COMPOUND_STATEMENT_TYPES},
    }
)

SCOPE_OPENING_TYPES: frozenset[str] = frozenset(tag for tag, cls in _NODE_CLASSES.items() if cls.is_scope_opening)

_GENERIC_NAMES = frozenset(name for name in dir(DecoratedNode) if not name.startswith("_"))


@lru_cache(maxsize=None)
def node_class_for(type_tag: str) -> type[DecoratedNode]:
    return _NODE_CLASSES.get(type_tag, DecoratedNode)


@lru_cache(maxsize=None)
def capabilities_for(type_tag: str) -> frozenset[str]:
    """Public query names a tag adds on top of the generic node operations."""

    cls = node_class_for(type_tag)
    return frozenset(name for name in dir(cls) if not name.startswith("_") and name not in _GENERIC_NAMES)


def dress(node: SyntaxNode) -> DecoratedNode:
    return node_class_for(node.type)(node)


def _dress_child(value: Child) -> Any:
    if isinstance(value, SyntaxNode):
        return dress(value)
    return value


_EMPTY_SEQ = SeqNode(SyntaxNode(type=SEQUENCE_TYPE))


def _as_seq(value: Any) -> SeqNode:
    return value if isinstance(value, SeqNode) else _EMPTY_SEQ


def _dotted_name(node: Any) -> str:
    if isinstance(node, NameNode):
        return node.identifier
    if isinstance(node, AttributeNode):
        prefix = _dotted_name(node.value)
        return f"{prefix}.{node.attr}" if prefix else node.attr
    return ""
