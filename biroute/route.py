"""
Route - a pattern AST plus lazily compiled matcher, interpolator and schema.

Routes are immutable values. Every combinator returns a new Route; the
derived artifacts of a Route are computed on first use and cached for its
lifetime.

Example:
    ```python
    from biroute import route

    users = route.parse("/users")
    user = route.concat(users, route.integer("id"))

    user.match("/users/42")        # {"id": "42"}
    user.decode("/users/42")       # {"id": 42}
    user.encode({"id": 42})        # "/users/42"
    ```
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from .compiler.ast_nodes import (
    PatternNode,
    LiteralNode,
    ParamNode,
    UnnamedParamNode,
    OptionalNode,
    ZeroOrMoreNode,
    OneOrMoreNode,
    PrefixNode,
    ConcatNode,
    QueryParamNode,
    QueryParamsNode,
    WithSchemaNode,
    ROOT,
    concat as concat_ast,
    to_path,
    get_query_params,
    get_optional_query_params,
)
from .compiler.parser import parse_pattern
from .compiler.matcher import CompiledMatcher, compile_matcher
from .compiler.interpolator import Interpolator, compile_interpolator, interpolate as apply_interpolator
from .compiler.specificity import sort_routes, route_order_key
from .datastructures import MultiDict, parse_target
from .diagnostics.errors import InterpolationError
from .faults import RouteDecodeError, RouteEncodeError, RouteNotMatched
from .schema.codecs import Codec, get_codec
from .schema.issues import Issue, IssueKind, SchemaError
from .schema.route_schema import RouteSchema
from .schema.struct import ParamSchema, Struct, Transform, tagged

logger = logging.getLogger("biroute.route")

_UNSET = object()

# Right-hand nodes that only refine the left route keep its end flag.
_REFINEMENT_NODES = (WithSchemaNode, QueryParamsNode, QueryParamNode)


class Route:
    """
    Typed route built from a pattern AST.

    Attributes:
        ast: Root pattern node
        end: Whether a match must consume the whole path
    """

    def __init__(self, ast: PatternNode, end: bool = False):
        self.ast = ast
        self.end = end
        self._lock = threading.RLock()
        self._cells: Dict[str, Any] = {}

    def _memoized(self, name: str, factory: Callable[[], Any]) -> Any:
        value = self._cells.get(name, _UNSET)
        if value is _UNSET:
            with self._lock:
                value = self._cells.get(name, _UNSET)
                if value is _UNSET:
                    value = factory()
                    self._cells[name] = value
        return value

    # ------------------------------------------------------------------
    # Derived artifacts
    # ------------------------------------------------------------------

    @property
    def path(self) -> str:
        """Canonical pattern string."""
        return self._memoized("path", lambda: to_path(self.ast))

    @property
    def matcher(self) -> CompiledMatcher:
        return self._memoized("matcher", lambda: compile_matcher(self.ast, self.end))

    @property
    def interpolator(self) -> Interpolator:
        return self._memoized("interpolator", lambda: compile_interpolator(self.ast))

    @property
    def schema(self) -> RouteSchema:
        return self._memoized("schema", lambda: RouteSchema.from_ast(self.ast))

    @property
    def query_params(self) -> Optional[QueryParamsNode]:
        return get_query_params(self.ast)

    @property
    def optional_query_params(self) -> List[QueryParamNode]:
        """Query entries whose value may be absent."""
        return get_optional_query_params(self.ast)

    # ------------------------------------------------------------------
    # Matching and rendering
    # ------------------------------------------------------------------

    def match(self, path: str) -> Optional[Dict[Any, Any]]:
        """Structurally match a raw "path?query" string."""
        segments, query = parse_target(path)
        return self.matcher(segments, query)

    def match_parts(self, segments, query: Optional[MultiDict] = None) -> Optional[Dict[Any, Any]]:
        """Match pre-split path segments and a query multimap."""
        return self.matcher(segments, query)

    def interpolate(self, params: Optional[Mapping[Any, Any]] = None) -> str:
        """Render a concrete path; raises InterpolationError on a bad map."""
        return apply_interpolator(self.interpolator, params)

    def decode(self, path: str) -> Union[Any, RouteNotMatched, RouteDecodeError]:
        """Match and decode; returns a fault value on failure."""
        params = self.match(path)
        if params is None:
            logger.debug("%r did not match %r", path, self.path)
            return RouteNotMatched(self, path)
        try:
            return self.schema.decode(params)
        except SchemaError as exc:
            logger.debug("Decoding %r against %r failed: %s", path, self.path, exc)
            return RouteDecodeError(self, exc.issues)

    def encode(self, value: Any) -> Union[str, RouteEncodeError]:
        """Encode and interpolate; returns a fault value on failure."""
        try:
            params = self.schema.encode(value)
        except SchemaError as exc:
            logger.debug("Encoding for %r failed: %s", self.path, exc)
            return RouteEncodeError(self, exc.issues)
        try:
            return self.interpolate(params)
        except InterpolationError as exc:
            return RouteEncodeError(self, [Issue(IssueKind.INVALID, (exc.key,), exc.message)])

    # ------------------------------------------------------------------
    # Combinators
    # ------------------------------------------------------------------

    def concat(self, *others: "Route") -> "Route":
        result = self
        for other in others:
            end = result.end if isinstance(other.ast, _REFINEMENT_NODES) else other.end
            result = Route(concat_ast(result.ast, other.ast), end)
        return result

    def optional(self) -> "Route":
        return Route(OptionalNode(self.ast), self.end)

    def one_or_more(self) -> "Route":
        return Route(OneOrMoreNode(self.ast), self.end)

    def zero_or_more(self) -> "Route":
        return Route(ZeroOrMoreNode(self.ast), self.end)

    def prefix(self, text: str) -> "Route":
        return Route(PrefixNode(text, self.ast), self.end)

    def with_schema(self, schema: ParamSchema) -> "Route":
        return Route(WithSchemaNode(self.ast, schema), self.end)

    def transform(self, decode: Callable[[Any], Any], encode: Callable[[Any], Any]) -> "Route":
        """Map decoded values through ``decode`` and encoded values through ``encode``."""
        return self.with_schema(Transform(self.schema, decode, encode))

    def add_tag(self, tag: str, key: str = "_tag") -> "Route":
        """Add a constant discriminator key to decoded values."""
        return self.with_schema(tagged(self.schema, tag, key))

    def with_end(self, end: bool = True) -> "Route":
        return Route(self.ast, end)

    # ------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        return {"path": self.path, "end": self.end, "ast": self.ast.to_dict()}

    def __repr__(self) -> str:
        return f"Route({self.path!r}, end={self.end})"

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, Route):
            return NotImplemented
        return self.ast == other.ast and self.end == other.end

    def __hash__(self) -> int:
        return hash((self.ast, self.end))


# ============================================================================
# Constructors
# ============================================================================

def parse(pattern: str, end: bool = False) -> Route:
    """Build a route from a pattern string."""
    return Route(parse_pattern(pattern), end)


def literal(text: str, end: bool = False) -> Route:
    """Route of fixed segments; "/a/b" becomes two literal segments."""
    segments = [segment for segment in text.split("/") if segment]
    if not segments:
        return Route(ROOT, end)
    node: PatternNode = LiteralNode(segments[0])
    for segment in segments[1:]:
        node = ConcatNode(node, LiteralNode(segment))
    return Route(node, end)


def param(name: str, end: bool = False) -> Route:
    return Route(ParamNode(name), end)


def param_with_schema(name: str, codec: Union[Codec, str], end: bool = False) -> Route:
    """Named capture decoded through a codec."""
    if isinstance(codec, str):
        codec = get_codec(codec)
    return Route(WithSchemaNode(ParamNode(name), Struct({name: codec}, name=codec.name)), end)


def string(name: str, end: bool = False) -> Route:
    return param_with_schema(name, "str", end)


def number(name: str, end: bool = False) -> Route:
    return param_with_schema(name, "float", end)


def integer(name: str, end: bool = False) -> Route:
    return param_with_schema(name, "int", end)


def decimal(name: str, end: bool = False) -> Route:
    return param_with_schema(name, "decimal", end)


def boolean(name: str, end: bool = False) -> Route:
    return param_with_schema(name, "bool", end)


def uuid(name: str, end: bool = False) -> Route:
    return param_with_schema(name, "uuid", end)


def ulid(name: str, end: bool = False) -> Route:
    return param_with_schema(name, "ulid", end)


def date(name: str, end: bool = False) -> Route:
    return param_with_schema(name, "date", end)


def base64url(name: str, end: bool = False) -> Route:
    return param_with_schema(name, "base64url", end)


unnamed = Route(UnnamedParamNode())
separator = Route(ROOT)
home = Route(ROOT, end=True)


def query_params(params: Mapping[str, Union[Route, str]], end: bool = False) -> Route:
    """
    Route made only of a query block.

    Values are routes or pattern strings describing each value.
    """
    nodes = []
    for key, value in params.items():
        node = value.ast if isinstance(value, Route) else parse_pattern(value)
        nodes.append(QueryParamNode(key, node))
    return Route(QueryParamsNode(ROOT, tuple(nodes)), end)


# ============================================================================
# Functional API
# ============================================================================

def concat(first: Route, *others: Route) -> Route:
    return first.concat(*others)


def optional(route: Route) -> Route:
    return route.optional()


def one_or_more(route: Route) -> Route:
    return route.one_or_more()


def zero_or_more(route: Route) -> Route:
    return route.zero_or_more()


def prefix(text: str, route: Route) -> Route:
    return route.prefix(text)


def with_schema(route: Route, schema: ParamSchema) -> Route:
    return route.with_schema(schema)


def transform(route: Route, decode: Callable[[Any], Any], encode: Callable[[Any], Any]) -> Route:
    return route.transform(decode, encode)


def add_tag(route: Route, tag: str, key: str = "_tag") -> Route:
    return route.add_tag(tag, key)


def get_path(route: Route) -> str:
    return route.path


def is_route(value: Any) -> bool:
    return isinstance(value, Route)


def decode(route: Route, raw: str):
    """Decode a raw "path?query" string against a route."""
    return route.decode(raw)


def encode(route: Route, value: Any):
    """Encode a typed value into a concrete path."""
    return route.encode(value)


__all__ = [
    "Route",
    "parse",
    "literal",
    "param",
    "param_with_schema",
    "string",
    "number",
    "integer",
    "decimal",
    "boolean",
    "uuid",
    "ulid",
    "date",
    "base64url",
    "unnamed",
    "separator",
    "home",
    "query_params",
    "concat",
    "optional",
    "one_or_more",
    "zero_or_more",
    "prefix",
    "with_schema",
    "transform",
    "add_tag",
    "get_path",
    "is_route",
    "decode",
    "encode",
    "sort_routes",
    "route_order_key",
]
