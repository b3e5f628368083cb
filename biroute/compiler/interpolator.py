"""
Interpolator compiler: AST -> constant string or callable(params) -> string.
"""

import logging
from typing import Any, Callable, List, Mapping, Optional, Union

from .ast_nodes import (
    PatternNode,
    QueryParamsNode,
    Part,
    KeyCounter,
    resolve_part,
    split_groups,
    segment_nodes,
    unwrap,
    walk_captures,
    path_join,
    to_path,
)
from ..diagnostics.errors import InterpolationError, PatternSemanticError

logger = logging.getLogger("biroute.compiler")

Renderer = Callable[[Mapping[Any, Any]], str]
Interpolator = Union[str, Renderer]


def _render_part(part: Part, params: Mapping[Any, Any]) -> str:
    if part.is_literal:
        return part.literal

    value = params.get(part.key)
    if part.multiple:
        if value is None:
            value = []
        if not isinstance(value, (list, tuple)):
            raise InterpolationError(
                f"Parameter {part.key!r} expects a list of values, got {type(value).__name__}",
                key=part.key,
            )
        values = [str(item) for item in value if item is not None and str(item) != ""]
        if not values:
            if part.optional:
                return ""
            raise InterpolationError(
                f"Parameter {part.key!r} requires at least one value", key=part.key
            )
        return part.prefix + "/".join(values)

    if isinstance(value, (list, tuple)):
        raise InterpolationError(
            f"Parameter {part.key!r} expects a single value, got a list", key=part.key
        )
    if value is None or str(value) == "":
        if part.optional:
            return ""
        raise InterpolationError(f"Missing required parameter {part.key!r}", key=part.key)
    return part.prefix + str(value)


def _parts_renderer(parts: List[Part]) -> Renderer:
    def render(params: Mapping[Any, Any]) -> str:
        return "".join(_render_part(part, params) for part in parts)

    return render


def _query_renderer(node: QueryParamsNode, counter: KeyCounter) -> Renderer:
    entries = []
    for param in node.params:
        parts = [resolve_part(n, counter) for n in segment_nodes(param.inner)]
        if any(part is None for part in parts):
            raise PatternSemanticError(
                f"Query value for '{param.key}' must be a single segment pattern"
            )
        entries.append((param.key, parts))

    def render(params: Mapping[Any, Any]) -> str:
        pieces = []
        for key, parts in entries:
            if len(parts) == 1 and parts[0].multiple:
                part = parts[0]
                # Validates the shape; each item renders as its own entry.
                if _render_part(part, params):
                    pieces.extend(
                        f"{key}={part.prefix}{item}"
                        for item in params[part.key]
                        if item is not None and str(item) != ""
                    )
                continue
            rendered = "".join(_render_part(part, params) for part in parts)
            if rendered:
                pieces.append(f"{key}={rendered}")
        return "&".join(pieces)

    return render


def _composite_renderer(node: PatternNode, counter: KeyCounter) -> Renderer:
    core, optional, multiple = unwrap(node)
    if multiple:
        raise PatternSemanticError(
            f"Repetition of a multi-segment pattern '{to_path(core)}' is not supported"
        )
    render_inner = _sequence_renderer(core, counter)
    if not optional:
        return render_inner

    def render(params: Mapping[Any, Any]) -> str:
        try:
            return render_inner(params)
        except InterpolationError:
            return ""

    return render


def _sequence_renderer(ast: PatternNode, counter: KeyCounter) -> Renderer:
    path_renderers: List[Renderer] = []
    query_renderer: Optional[Renderer] = None

    for group in split_groups(ast):
        if isinstance(group[0], QueryParamsNode):
            query_renderer = _query_renderer(group[0], counter)
            continue
        parts = [resolve_part(node, counter) for node in group]
        if len(group) == 1 and parts[0] is None:
            path_renderers.append(_composite_renderer(group[0], counter))
        elif any(part is None for part in parts):
            raise PatternSemanticError(
                "Compound segments may only contain literals, prefixes and captures"
            )
        else:
            path_renderers.append(_parts_renderer(parts))

    def render(params: Mapping[Any, Any]) -> str:
        path = path_join(*(renderer(params) for renderer in path_renderers))
        if query_renderer is not None:
            query = query_renderer(params)
            if query:
                return (path or "/") + "?" + query
        return path

    return render


def compile_interpolator(ast: PatternNode) -> Interpolator:
    """
    Compile a pattern AST into an interpolator.

    Returns the rendered string itself when the pattern has no captures.
    """
    render = _sequence_renderer(ast, KeyCounter())

    def render_path(params: Mapping[Any, Any]) -> str:
        return render(params) or "/"

    if not any(True for _ in walk_captures(ast)):
        constant = render_path({})
        logger.debug("Compiled constant interpolator %r", constant)
        return constant

    logger.debug("Compiled interpolator for %r", to_path(ast))
    return render_path


def interpolate(interpolator: Interpolator, params: Optional[Mapping[Any, Any]] = None) -> str:
    """Apply a compiled interpolator to a parameter map."""
    if isinstance(interpolator, str):
        return interpolator
    return interpolator(params or {})
