"""
AST node definitions for biroute patterns.

These nodes represent the parsed structure of a route pattern. Every node is
immutable; composition always builds new nodes.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar, Dict, List, Optional, Tuple, Union

# Unnamed captures are keyed by position, named captures by name.
ParamKey = Union[str, int]
ParamValue = Union[str, List[str]]
ParamMap = Dict[ParamKey, ParamValue]


class NodeKind(str, Enum):
    """Kind of pattern node."""
    LITERAL = "literal"
    PARAM = "param"
    UNNAMED_PARAM = "unnamed_param"
    OPTIONAL = "optional"
    ZERO_OR_MORE = "zero_or_more"
    ONE_OR_MORE = "one_or_more"
    PREFIX = "prefix"
    CONCAT = "concat"
    QUERY_PARAMS = "query_params"
    QUERY_PARAM = "query_param"
    WITH_SCHEMA = "with_schema"


@dataclass(frozen=True)
class Span:
    """Source span inside a pattern string, for diagnostics."""
    start: int
    end: int
    line: int = 1
    column: int = 1

    def __repr__(self) -> str:
        return f"Line {self.line}:{self.column} (pos {self.start}-{self.end})"


class PatternNode:
    """Base class for all pattern nodes."""
    kind: ClassVar[NodeKind]

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind.value}


@dataclass(frozen=True)
class LiteralNode(PatternNode):
    """Exact fixed text."""
    text: str
    kind: ClassVar[NodeKind] = NodeKind.LITERAL

    def to_dict(self) -> Dict[str, Any]:
        return {**super().to_dict(), "text": self.text}


@dataclass(frozen=True)
class ParamNode(PatternNode):
    """Named single-value capture."""
    name: str
    kind: ClassVar[NodeKind] = NodeKind.PARAM

    def to_dict(self) -> Dict[str, Any]:
        return {**super().to_dict(), "name": self.name}


@dataclass(frozen=True)
class UnnamedParamNode(PatternNode):
    """Positional capture; its integer key is assigned at compile time."""
    kind: ClassVar[NodeKind] = NodeKind.UNNAMED_PARAM


@dataclass(frozen=True)
class OptionalNode(PatternNode):
    """Zero-or-one occurrence of the inner node."""
    inner: PatternNode
    kind: ClassVar[NodeKind] = NodeKind.OPTIONAL

    def to_dict(self) -> Dict[str, Any]:
        return {**super().to_dict(), "inner": self.inner.to_dict()}


@dataclass(frozen=True)
class ZeroOrMoreNode(PatternNode):
    """Zero-or-more occurrences, captured as a list."""
    inner: PatternNode
    kind: ClassVar[NodeKind] = NodeKind.ZERO_OR_MORE

    def to_dict(self) -> Dict[str, Any]:
        return {**super().to_dict(), "inner": self.inner.to_dict()}


@dataclass(frozen=True)
class OneOrMoreNode(PatternNode):
    """One-or-more occurrences, captured as a list."""
    inner: PatternNode
    kind: ClassVar[NodeKind] = NodeKind.ONE_OR_MORE

    def to_dict(self) -> Dict[str, Any]:
        return {**super().to_dict(), "inner": self.inner.to_dict()}


@dataclass(frozen=True)
class PrefixNode(PatternNode):
    """Text glued directly before the inner node's value."""
    text: str
    inner: PatternNode
    kind: ClassVar[NodeKind] = NodeKind.PREFIX

    def to_dict(self) -> Dict[str, Any]:
        return {**super().to_dict(), "text": self.text, "inner": self.inner.to_dict()}


@dataclass(frozen=True)
class ConcatNode(PatternNode):
    """
    Ordered composition of two nodes.

    ``joined`` marks two parts of the same raw path segment; a plain concat
    places a segment separator between its sides.
    """
    left: PatternNode
    right: PatternNode
    joined: bool = False
    kind: ClassVar[NodeKind] = NodeKind.CONCAT

    def to_dict(self) -> Dict[str, Any]:
        return {
            **super().to_dict(),
            "left": self.left.to_dict(),
            "right": self.right.to_dict(),
            "joined": self.joined,
        }


@dataclass(frozen=True)
class QueryParamNode(PatternNode):
    """One declared query key and its value pattern."""
    key: str
    inner: PatternNode
    kind: ClassVar[NodeKind] = NodeKind.QUERY_PARAM

    def to_dict(self) -> Dict[str, Any]:
        return {**super().to_dict(), "key": self.key, "inner": self.inner.to_dict()}


@dataclass(frozen=True)
class QueryParamsNode(PatternNode):
    """Trailing query block. Always the outermost node of a pattern."""
    previous: PatternNode
    params: Tuple[QueryParamNode, ...] = ()
    kind: ClassVar[NodeKind] = NodeKind.QUERY_PARAMS

    def to_dict(self) -> Dict[str, Any]:
        return {
            **super().to_dict(),
            "previous": self.previous.to_dict(),
            "params": [p.to_dict() for p in self.params],
        }


@dataclass(frozen=True)
class WithSchemaNode(PatternNode):
    """Attaches a value schema to the inner node. Invisible to matching."""
    inner: PatternNode
    schema: Any
    kind: ClassVar[NodeKind] = NodeKind.WITH_SCHEMA

    def to_dict(self) -> Dict[str, Any]:
        return {
            **super().to_dict(),
            "inner": self.inner.to_dict(),
            "schema": getattr(self.schema, "name", type(self.schema).__name__),
        }


ROOT = LiteralNode("/")

CAPTURE_TAIL_RE = re.compile(r"(?::[A-Za-z_][A-Za-z0-9_]*|\*)")


def reads_as_modifier(segment: str, following: str) -> bool:
    """
    Whether a "?" between ``segment`` and ``following`` is a capture modifier.

    Only a "?" that closes a bare capture segment is a modifier. Any other
    "?" is the query separator.
    """
    return bool(CAPTURE_TAIL_RE.fullmatch(segment)) and following[:1] in ("", "/", "{", "?")

# Nodes that wrap a single inner node and change its cardinality.
MODIFIERS = {
    OptionalNode: "?",
    ZeroOrMoreNode: "*",
    OneOrMoreNode: "+",
}


# ============================================================================
# Concatenation
# ============================================================================

def is_empty_literal(node: PatternNode) -> bool:
    """True for the root separator and the empty literal."""
    return isinstance(node, LiteralNode) and node.text.strip("/") == ""


def _merge(left: PatternNode, right: PatternNode) -> PatternNode:
    if is_empty_literal(right):
        return left
    if is_empty_literal(left):
        return right
    return ConcatNode(left, right)


def concat(left: PatternNode, right: PatternNode) -> PatternNode:
    """
    Concatenate two patterns.

    Keeps a single query block as the outermost node. When both sides
    declare the same query key the right-hand definition wins; declared
    order is left-only keys first, then every right-hand key.
    """
    if isinstance(left, QueryParamsNode):
        if isinstance(right, QueryParamsNode):
            right_keys = {p.key for p in right.params}
            params = tuple(p for p in left.params if p.key not in right_keys) + right.params
            return QueryParamsNode(_merge(left.previous, right.previous), params)
        return QueryParamsNode(_merge(left.previous, right), left.params)

    if isinstance(right, QueryParamsNode):
        return QueryParamsNode(_merge(left, right.previous), right.params)

    return ConcatNode(left, right)


def concat_all(nodes: List[PatternNode]) -> PatternNode:
    """Left fold of :func:`concat`."""
    result = nodes[0]
    for node in nodes[1:]:
        result = concat(result, node)
    return result


# ============================================================================
# Path rendering
# ============================================================================

def path_join(*parts: str) -> str:
    """Join path parts with single slashes. Returns "" when all are empty."""
    stripped = [part.strip("/") for part in parts if part]
    stripped = [part for part in stripped if part]
    if not stripped:
        return ""
    return "/" + "/".join(stripped)


def _with_modifier(path: str, modifier: str) -> str:
    # Modifiers of a prefixed capture live inside its braces.
    if path.endswith("}"):
        return path[:-1] + modifier + "}"
    return path + modifier


def _to_path(node: PatternNode) -> str:
    if isinstance(node, LiteralNode):
        return node.text
    if isinstance(node, UnnamedParamNode):
        return "*"
    if isinstance(node, ParamNode):
        return f":{node.name}"
    if isinstance(node, (OptionalNode, ZeroOrMoreNode, OneOrMoreNode)):
        return _with_modifier(_to_path(node.inner), MODIFIERS[type(node)])
    if isinstance(node, PrefixNode):
        inner = _to_path(node.inner)
        if not inner.startswith(":"):
            inner = f":{inner}"
        return f"{{{node.text}{inner}}}"
    if isinstance(node, ConcatNode):
        if node.joined:
            return _to_path(node.left) + _to_path(node.right)
        return path_join(_to_path(node.left), _to_path(node.right))
    if isinstance(node, WithSchemaNode):
        return _to_path(node.inner)
    if isinstance(node, QueryParamsNode):
        query = "&".join(f"{p.key}={_to_path(p.inner)}" for p in node.params)
        path = path_join(_to_path(node.previous)) or "/"
        separator = "\\?" if reads_as_modifier(path.rsplit("/", 1)[-1], query) else "?"
        return path + separator + query
    raise TypeError(f"Unknown pattern node: {node!r}")


def to_path(node: PatternNode) -> str:
    """Render the canonical pattern string of an AST."""
    if isinstance(get_query_params(node), QueryParamsNode):
        return _to_path(node)
    return path_join(_to_path(node)) or "/"


# ============================================================================
# Structural queries
# ============================================================================

def get_query_params(node: PatternNode) -> Optional[QueryParamsNode]:
    """Find the query block of a pattern, if any."""
    if isinstance(node, QueryParamsNode):
        return node
    if isinstance(node, ConcatNode):
        return get_query_params(node.right)
    if isinstance(node, WithSchemaNode):
        return get_query_params(node.inner)
    return None


def is_optional(node: PatternNode) -> bool:
    """True when a node may match without any input."""
    if isinstance(node, (OptionalNode, ZeroOrMoreNode)):
        return True
    if isinstance(node, ConcatNode):
        return is_optional(node.left) and is_optional(node.right)
    if isinstance(node, (WithSchemaNode, PrefixNode)):
        return is_optional(node.inner)
    if isinstance(node, QueryParamsNode):
        return is_optional(node.previous) and all(is_optional(p.inner) for p in node.params)
    return False


def get_optional_query_params(node: PatternNode) -> List[QueryParamNode]:
    """Declared query params that may be omitted."""
    query = get_query_params(node)
    if query is None:
        return []
    return [p for p in query.params if is_optional(p.inner)]


def is_repetition(node: PatternNode) -> bool:
    """True when a node captures a list of values."""
    if isinstance(node, (ZeroOrMoreNode, OneOrMoreNode)):
        return True
    if isinstance(node, (OptionalNode, PrefixNode, WithSchemaNode)):
        return is_repetition(node.inner)
    return False


# ============================================================================
# Group decomposition
# ============================================================================

Group = Tuple[PatternNode, ...]


def split_groups(node: PatternNode) -> List[Group]:
    """
    Decompose a pattern into groups, each matched against one path segment.

    Parts of one raw segment (joined concats) share a group; a query block
    is always the last group, on its own.
    """
    groups: List[Group] = []
    current: List[PatternNode] = []

    def flush():
        if current:
            groups.append(tuple(current))
            current.clear()

    def visit(part: PatternNode, joined: bool = False):
        if isinstance(part, ConcatNode):
            visit(part.left, joined)
            visit(part.right, part.joined)
        elif isinstance(part, WithSchemaNode):
            visit(part.inner, joined)
        elif isinstance(part, QueryParamsNode):
            flush()
            visit(part.previous)
            flush()
            groups.append((part,))
        elif is_empty_literal(part):
            flush()
        else:
            if not joined:
                flush()
            current.append(part)

    visit(node)
    flush()
    return groups


def segment_nodes(node: PatternNode) -> List[PatternNode]:
    """Flatten a query value pattern into its sequential nodes."""
    if isinstance(node, ConcatNode):
        return segment_nodes(node.left) + segment_nodes(node.right)
    if isinstance(node, WithSchemaNode):
        return segment_nodes(node.inner)
    return [node]


def unwrap(node: PatternNode) -> Tuple[PatternNode, bool, bool]:
    """
    Strip cardinality modifiers and schema attachments.

    Returns the core node plus the accumulated (optional, multiple) flags.
    """
    optional = False
    multiple = False
    while True:
        if isinstance(node, OptionalNode):
            optional = True
        elif isinstance(node, OneOrMoreNode):
            multiple = True
        elif isinstance(node, ZeroOrMoreNode):
            optional = True
            multiple = True
        elif not isinstance(node, WithSchemaNode):
            return node, optional, multiple
        node = node.inner


# ============================================================================
# Capture resolution
# ============================================================================

@dataclass(frozen=True)
class Part:
    """A resolved leaf of a group: either literal text or a capture."""
    key: Optional[ParamKey] = None
    literal: Optional[str] = None
    prefix: str = ""
    optional: bool = False
    multiple: bool = False

    @property
    def is_literal(self) -> bool:
        return self.key is None


class KeyCounter:
    """Left-to-right counter assigning integer keys to unnamed captures."""

    def __init__(self, start: int = 0):
        self.value = start

    def next(self) -> int:
        key = self.value
        self.value += 1
        return key


def resolve_part(node: PatternNode, counter: KeyCounter) -> Optional[Part]:
    """
    Resolve a group member into a Part.

    Returns None for composite nodes (a modifier or schema around a
    multi-segment pattern), which callers compile as nested sequences.
    """
    core, optional, multiple = unwrap(node)
    prefix = ""
    if isinstance(core, PrefixNode):
        prefix = core.text
        core, inner_optional, inner_multiple = unwrap(core.inner)
        optional = optional or inner_optional
        multiple = multiple or inner_multiple

    if isinstance(core, LiteralNode):
        return Part(literal=prefix + core.text, optional=optional)
    if isinstance(core, ParamNode):
        return Part(key=core.name, prefix=prefix, optional=optional, multiple=multiple)
    if isinstance(core, UnnamedParamNode):
        return Part(key=counter.next(), prefix=prefix, optional=optional, multiple=multiple)
    return None


def walk_captures(
    node: PatternNode,
    counter: Optional[KeyCounter] = None,
    optional: bool = False,
):
    """
    Yield (part, in_query) for every capture of a pattern, in key order.

    The order is the left-to-right order both compilers assign unnamed keys
    in.
    """
    if counter is None:
        counter = KeyCounter()

    if isinstance(node, ConcatNode):
        yield from walk_captures(node.left, counter, optional)
        yield from walk_captures(node.right, counter, optional)
    elif isinstance(node, QueryParamsNode):
        yield from walk_captures(node.previous, counter, optional)
        for param in node.params:
            for part, _ in walk_captures(param.inner, counter, optional):
                yield part, True
    else:
        part = resolve_part(node, counter)
        if part is not None:
            if not part.is_literal:
                if optional and not part.optional:
                    part = Part(key=part.key, prefix=part.prefix, optional=True,
                                multiple=part.multiple)
                yield part, False
            return
        core, core_optional, _ = unwrap(node)
        if isinstance(core, PrefixNode):
            core = core.inner
        yield from walk_captures(core, counter, optional or core_optional)
