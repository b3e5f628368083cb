"""
Matcher compiler: AST -> callable(segments, query) -> parameter map.

Matching is structural and greedy. Every group consumes path segments from
an immutable cursor; there is no backtracking.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from .ast_nodes import (
    PatternNode,
    ParamMap,
    QueryParamsNode,
    QueryParamNode,
    PrefixNode,
    Part,
    KeyCounter,
    resolve_part,
    split_groups,
    segment_nodes,
    unwrap,
    to_path,
)
from ..datastructures import MultiDict
from ..diagnostics.errors import PatternSemanticError

logger = logging.getLogger("biroute.compiler")


@dataclass(frozen=True)
class SegmentCursor:
    """
    Immutable position inside a sequence of path segments.

    ``offset`` counts characters already consumed from the head segment
    (by a prefix strip).
    """
    segments: Tuple[str, ...]
    index: int = 0
    offset: int = 0

    @property
    def head(self) -> Optional[str]:
        if self.index >= len(self.segments):
            return None
        return self.segments[self.index][self.offset:]

    @property
    def remaining(self) -> Tuple[str, ...]:
        if self.exhausted:
            return ()
        return (self.head,) + self.segments[self.index + 1:]

    @property
    def exhausted(self) -> bool:
        return self.index >= len(self.segments)

    def advance(self, count: int = 1) -> "SegmentCursor":
        return SegmentCursor(self.segments, min(self.index + count, len(self.segments)), 0)

    def strip(self, length: int) -> "SegmentCursor":
        return SegmentCursor(self.segments, self.index, self.offset + length)

    def exhaust(self) -> "SegmentCursor":
        return SegmentCursor(self.segments, len(self.segments), 0)


Step = Callable[[SegmentCursor, MultiDict], Optional[Tuple[ParamMap, SegmentCursor]]]


# ============================================================================
# Text matching (compound groups and query values)
# ============================================================================

def _leading_text(parts: Sequence[Part]) -> str:
    if not parts:
        return ""
    first = parts[0]
    return first.literal if first.is_literal else first.prefix


def match_text(parts: Sequence[Part], text: str) -> Optional[ParamMap]:
    """
    Match a sequence of parts against one piece of text.

    A capture stops at the first occurrence of the next part's leading
    literal or prefix text. All text must be consumed.
    """
    params: ParamMap = {}
    for i, part in enumerate(parts):
        if part.is_literal:
            if text.startswith(part.literal):
                text = text[len(part.literal):]
            elif not part.optional:
                return None
            continue

        if not text.startswith(part.prefix):
            if part.optional:
                continue
            return None
        text = text[len(part.prefix):]

        stop = _leading_text(parts[i + 1:])
        end = text.find(stop, 1) if stop else -1
        if end < 0:
            value, text = text, ""
        else:
            value, text = text[:end], text[end:]

        if not value:
            if part.optional:
                continue
            return None
        params[part.key] = [value] if part.multiple else value

    if text:
        return None
    return params


# ============================================================================
# Step compilation
# ============================================================================

def _part_step(part: Part) -> Step:
    """Single-node group: consumes one segment, or all for repetition."""

    def step(cursor: SegmentCursor, query: MultiDict):
        head = cursor.head
        if part.is_literal:
            if head == part.literal:
                return {}, cursor.advance()
            return ({}, cursor) if part.optional else None

        if head is None or not head.startswith(part.prefix):
            if not part.optional:
                return None
            return ({part.key: []} if part.multiple else {}), cursor

        stripped = cursor.strip(len(part.prefix))
        if part.multiple:
            values = [value for value in stripped.remaining if value]
            if not values and not part.optional:
                return None
            return {part.key: values}, stripped.exhaust()

        value = stripped.head
        if not value:
            return ({}, stripped.advance()) if part.optional else None
        return {part.key: value}, stripped.advance()

    return step


def _compound_step(parts: List[Part]) -> Step:
    """Compound group: several parts sharing exactly one segment."""
    all_optional = all(part.optional for part in parts)

    def step(cursor: SegmentCursor, query: MultiDict):
        head = cursor.head
        if head is None:
            return ({}, cursor) if all_optional else None
        params = match_text(parts, head)
        if params is None:
            return None
        return params, cursor.advance()

    return step


def _query_values_matcher(param: QueryParamNode, counter: KeyCounter):
    nodes = segment_nodes(param.inner)
    parts = [resolve_part(node, counter) for node in nodes]
    if any(part is None for part in parts):
        raise PatternSemanticError(
            f"Query value for '{param.key}' must be a single segment pattern"
        )

    if len(parts) > 1:
        all_optional = all(part.optional for part in parts)

        def match_compound(values: List[str]) -> Optional[ParamMap]:
            if not values:
                return {} if all_optional else None
            return match_text(parts, values[0])

        return match_compound

    part = parts[0]

    def match_values(values: List[str]) -> Optional[ParamMap]:
        if part.is_literal:
            if values:
                return {} if values[0] == part.literal else None
            return {} if part.optional else None

        if part.prefix:
            if not all(value.startswith(part.prefix) for value in values):
                return None
            values = [value[len(part.prefix):] for value in values]
        values = [value for value in values if value]

        if part.multiple:
            if not values and not part.optional:
                return None
            return {part.key: values}
        if not values:
            return {} if part.optional else None
        return {part.key: values[0]}

    return match_values


def _query_step(node: QueryParamsNode, counter: KeyCounter) -> Step:
    matchers = [(param.key, _query_values_matcher(param, counter)) for param in node.params]

    def step(cursor: SegmentCursor, query: MultiDict):
        params: ParamMap = {}
        for key, match_values in matchers:
            result = match_values(query.get_all(key))
            if result is None:
                return None
            params.update(result)
        return params, cursor

    return step


def _sequence_step(steps: List[Step]) -> Step:
    def step(cursor: SegmentCursor, query: MultiDict):
        params: ParamMap = {}
        for inner in steps:
            result = inner(cursor, query)
            if result is None:
                return None
            matched, cursor = result
            params.update(matched)
        return params, cursor

    return step


def _composite_step(node: PatternNode, counter: KeyCounter) -> Step:
    """A modifier or schema around a multi-segment pattern."""
    core, optional, multiple = unwrap(node)
    if multiple:
        raise PatternSemanticError(
            f"Repetition of a multi-segment pattern '{to_path(core)}' is not supported",
            suggestions=["Repeat a single capture instead, e.g. /files/:path+"],
        )
    if isinstance(core, (PrefixNode, QueryParamNode)):
        raise PatternSemanticError(
            f"Unsupported pattern node inside a group: {core.kind.value}"
        )

    inner = _sequence_step(compile_steps(core, counter))
    if not optional:
        return inner

    def step(cursor: SegmentCursor, query: MultiDict):
        result = inner(cursor, query)
        if result is None:
            return {}, cursor
        return result

    return step


def compile_steps(ast: PatternNode, counter: Optional[KeyCounter] = None) -> List[Step]:
    """Compile every group of a pattern into a matching step, in order."""
    if counter is None:
        counter = KeyCounter()

    steps: List[Step] = []
    groups = split_groups(ast)
    path_groups = [g for g in groups if not isinstance(g[0], QueryParamsNode)]

    for group in groups:
        if isinstance(group[0], QueryParamsNode):
            steps.append(_query_step(group[0], counter))
            continue

        parts = [resolve_part(node, counter) for node in group]
        if len(group) == 1:
            part = parts[0]
            steps.append(_composite_step(group[0], counter) if part is None else _part_step(part))
        elif any(part is None for part in parts):
            raise PatternSemanticError(
                "Compound segments may only contain literals, prefixes and captures"
            )
        else:
            steps.append(_compound_step(parts))

        if len(group) == 1 and parts[0] is not None and parts[0].multiple and group is not path_groups[-1]:
            logger.warning(
                "Repetition %r in %r is not the last segment; it consumes every "
                "remaining segment and later segments can never match",
                to_path(group[0]),
                to_path(ast),
            )

    return steps


# ============================================================================
# Public API
# ============================================================================

class CompiledMatcher:
    """Structural matcher compiled from a pattern AST."""

    def __init__(self, ast: PatternNode, end: bool = False):
        self.ast = ast
        self.end = end
        self._step = _sequence_step(compile_steps(ast))
        logger.debug("Compiled matcher for %r (end=%s)", to_path(ast), end)

    def match_cursor(
        self,
        cursor: SegmentCursor,
        query: Optional[MultiDict] = None,
    ) -> Optional[Tuple[ParamMap, SegmentCursor]]:
        """Match from a cursor, returning the params and the cursor after them."""
        result = self._step(cursor, query if query is not None else MultiDict())
        if result is None:
            return None
        if self.end and not result[1].exhausted:
            return None
        return result

    def __call__(
        self,
        segments: Sequence[str],
        query: Optional[MultiDict] = None,
    ) -> Optional[Dict[Any, Any]]:
        result = self.match_cursor(SegmentCursor(tuple(segments)), query)
        if result is None:
            return None
        return result[0]

    def __repr__(self) -> str:
        return f"CompiledMatcher({to_path(self.ast)!r}, end={self.end})"


def compile_matcher(ast: PatternNode, end: bool = False) -> CompiledMatcher:
    """Compile a pattern AST into a structural matcher."""
    return CompiledMatcher(ast, end)
