"""
biroute - bidirectional route patterns.

Match concrete paths against declarative patterns and render concrete paths
back from parameter maps.
"""

__version__ = "0.1.0"

from .compiler import (
    PatternNode,
    parse_pattern,
    compile_matcher,
    compile_interpolator,
    compare_paths,
    sort_routes,
    route_order_key,
    to_path,
)
from .diagnostics import (
    PatternDiagnostic,
    PatternSyntaxError,
    PatternSemanticError,
    InterpolationError,
)
from .datastructures import MultiDict
from .faults import Fault, FaultDomain, Severity, RouteNotMatched, RouteDecodeError, RouteEncodeError
from .schema import Codec, CodecRegistry, Issue, SchemaError, Struct, Transform
from .route import Route, parse, decode, encode
from .cache import RouteCache, compile_route, get_global_cache, set_global_cache
from . import route

__all__ = [
    "__version__",
    "PatternNode",
    "parse_pattern",
    "compile_matcher",
    "compile_interpolator",
    "compare_paths",
    "sort_routes",
    "route_order_key",
    "to_path",
    "PatternDiagnostic",
    "PatternSyntaxError",
    "PatternSemanticError",
    "InterpolationError",
    "MultiDict",
    "Fault",
    "FaultDomain",
    "Severity",
    "RouteNotMatched",
    "RouteDecodeError",
    "RouteEncodeError",
    "Codec",
    "CodecRegistry",
    "Issue",
    "SchemaError",
    "Struct",
    "Transform",
    "Route",
    "parse",
    "decode",
    "encode",
    "RouteCache",
    "compile_route",
    "get_global_cache",
    "set_global_cache",
    "route",
]
