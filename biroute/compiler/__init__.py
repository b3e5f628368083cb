"""Compiler package for biroute patterns."""

from .ast_nodes import *
from .parser import PatternParser, parse_pattern
from .matcher import CompiledMatcher, SegmentCursor, compile_matcher, match_text
from .interpolator import compile_interpolator, interpolate
from .specificity import compare_paths, compare_routes, route_order_key, sort_routes

__all__ = [
    "PatternParser",
    "parse_pattern",
    "CompiledMatcher",
    "SegmentCursor",
    "compile_matcher",
    "match_text",
    "compile_interpolator",
    "interpolate",
    "compare_paths",
    "compare_routes",
    "route_order_key",
    "sort_routes",
]
