"""
Parser for biroute patterns.

Grammar (informal):

    pattern   := path [ "?" query ]
    path      := segment { "/" segment }
    segment   := piece { piece }
    piece     := "{" prefix ":" capture "}" | capture | literal
    capture   := ":" IDENT [ modifier ] | "*" [ modifier ]
    modifier  := "?" | "*" | "+"
    query     := entry { "&" entry }
    entry     := KEY "=" segment

A "?" that closes a bare capture segment (followed by "/", "{", "?" or the
end of the pattern) is the optional modifier: ``/users/:id?/posts``. Any
other first "?" starts the query: ``/users/:id?tab=:tab``. A literal
``\\?`` always forces the query separator (``/files/:name\\?``).
"""

import re
from typing import List, Optional, Tuple

from .ast_nodes import (
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
    Span,
    reads_as_modifier,
)
from ..diagnostics.errors import PatternSyntaxError


IDENT = r"[A-Za-z_][A-Za-z0-9_]*"

PARAM_RE = re.compile(rf":({IDENT})([?*+]?)")
UNNAMED_RE = re.compile(r"\*([?*+]?)")
NAME_RE = re.compile(rf"({IDENT})([?*+]?)")
BRACE_RE = re.compile(r"\{[^{}]*\}")
SEGMENT_RE = re.compile(r"[^/]+")

ESCAPED_QUERY = "\\?"


def _apply_modifier(node: PatternNode, modifier: str) -> PatternNode:
    if modifier == "?":
        return OptionalNode(node)
    if modifier == "*":
        return ZeroOrMoreNode(node)
    if modifier == "+":
        return OneOrMoreNode(node)
    return node


class PatternParser:
    """Parses pattern strings into AST nodes."""

    def __init__(self, source: str, filename: Optional[str] = None):
        self.source = source
        self.filename = filename

    def error(
        self,
        message: str,
        start: int,
        end: Optional[int] = None,
        suggestions: Optional[List[str]] = None,
    ) -> PatternSyntaxError:
        """Create syntax error spanning source[start:end]."""
        if end is None:
            end = start + 1
        return PatternSyntaxError(
            message=message,
            span=Span(start, end, 1, start + 1),
            file=self.filename,
            suggestions=suggestions or [],
        )

    def split_query(self) -> Tuple[str, Optional[str], int]:
        """
        Split source into (path, query, query_offset).

        Query is None when the pattern has no query separator at all.
        """
        source = self.source
        escaped = source.find(ESCAPED_QUERY)
        if escaped >= 0:
            return source[:escaped], source[escaped + 2:], escaped + 2

        depth = 0
        segment_start = 0
        for i, ch in enumerate(source):
            if ch == "{":
                depth += 1
            elif ch == "}":
                depth = max(depth - 1, 0)
            elif ch == "/" and depth == 0:
                segment_start = i + 1
            elif ch == "?" and depth == 0:
                if reads_as_modifier(source[segment_start:i], source[i + 1:]):
                    continue
                return source[:i], source[i + 1:], i + 1

        return source, None, len(source)

    def parse(self) -> PatternNode:
        """Parse the whole pattern."""
        path, query, query_offset = self.split_query()
        node = self.parse_path(path)
        if query is not None:
            node = QueryParamsNode(node, self.parse_query(query, query_offset))
        return node

    def parse_path(self, path: str) -> PatternNode:
        node: Optional[PatternNode] = None
        for match in SEGMENT_RE.finditer(path):
            segment = self.parse_segment(match.group(0), match.start())
            node = segment if node is None else ConcatNode(node, segment)
        if node is None:
            return LiteralNode("/")
        return node

    def parse_segment(self, text: str, offset: int) -> PatternNode:
        """Parse one raw segment into a node, joining adjacent pieces."""
        pieces: List[PatternNode] = []
        pos = 0
        for match in BRACE_RE.finditer(text):
            if match.start() > pos:
                pieces.append(self.parse_piece(text[pos:match.start()], offset + pos))
            pieces.append(self.parse_brace(match.group(0), offset + match.start()))
            pos = match.end()
        if pos < len(text):
            pieces.append(self.parse_piece(text[pos:], offset + pos))

        node = pieces[0]
        for piece in pieces[1:]:
            node = ConcatNode(node, piece, joined=True)
        return node

    def parse_piece(self, text: str, offset: int) -> PatternNode:
        """Parse text outside of braces."""
        for ch in "{}":
            index = text.find(ch)
            if index >= 0:
                raise self.error(
                    f"Unbalanced brace '{ch}'",
                    offset + index,
                    suggestions=["Prefix groups look like {prefix:name}"],
                )

        match = PARAM_RE.fullmatch(text)
        if match:
            name, modifier = match.groups()
            return _apply_modifier(ParamNode(name), modifier)

        match = UNNAMED_RE.fullmatch(text)
        if match:
            return _apply_modifier(UnnamedParamNode(), match.group(1))

        if text.startswith(":"):
            raise self.error(
                f"Invalid capture name '{text[1:]}'",
                offset,
                offset + len(text),
                suggestions=["Capture names must match [A-Za-z_][A-Za-z0-9_]*"],
            )
        if text.startswith("*"):
            raise self.error(
                f"Invalid wildcard '{text}'",
                offset,
                offset + len(text),
                suggestions=["Wildcards are *, *?, ** or *+"],
            )

        return LiteralNode(text)

    def parse_brace(self, text: str, offset: int) -> PatternNode:
        """Parse a {prefix:capture} group."""
        body = text[1:-1]
        end = offset + len(text)
        if not body:
            raise self.error("Empty brace group", offset, end)

        prefix, sep, capture = body.partition(":")
        if not sep:
            raise self.error(
                f"Brace group '{text}' has no capture",
                offset,
                end,
                suggestions=[f"Did you mean {{{body}:name}}?"],
            )
        if not capture:
            raise self.error("Empty capture in brace group", offset, end)

        match = UNNAMED_RE.fullmatch(capture)
        if match:
            return PrefixNode(prefix, _apply_modifier(UnnamedParamNode(), match.group(1)))

        match = NAME_RE.fullmatch(capture)
        if not match:
            raise self.error(f"Invalid capture name '{capture}'", offset, end)
        name, modifier = match.groups()
        return PrefixNode(prefix, _apply_modifier(ParamNode(name), modifier))

    def parse_query(self, query: str, offset: int) -> Tuple[QueryParamNode, ...]:
        params: List[QueryParamNode] = []
        seen = set()
        pos = offset
        for entry in query.split("&"):
            start = pos
            pos += len(entry) + 1
            if not entry:
                continue

            key, sep, value = entry.partition("=")
            if not sep:
                raise self.error(
                    f"Query entry '{entry}' has no value pattern",
                    start,
                    start + len(entry),
                    suggestions=[f"{entry}=:{entry}"],
                )
            if not key:
                raise self.error("Empty query key", start, start + len(entry))
            if key in seen:
                raise self.error(f"Duplicate query key '{key}'", start, start + len(key))
            seen.add(key)

            value_node = (
                self.parse_segment(value, start + len(key) + 1) if value else LiteralNode("")
            )
            params.append(QueryParamNode(key, value_node))

        return tuple(params)


def parse_pattern(source: str, filename: Optional[str] = None) -> PatternNode:
    """Parse a route pattern into an AST."""
    return PatternParser(source, filename).parse()
