"""
Tests for pattern concatenation and query block merging.
"""

import pytest

from biroute.compiler.ast_nodes import (
    LiteralNode,
    ParamNode,
    ConcatNode,
    QueryParamsNode,
    concat,
    concat_all,
    get_query_params,
    get_optional_query_params,
    is_empty_literal,
    to_path,
)
from biroute.compiler.parser import parse_pattern


class TestPlainConcat:
    """Concatenation without query blocks."""

    def test_plain_concat(self):
        left = parse_pattern("/users")
        right = parse_pattern("/:id")
        assert concat(left, right) == ConcatNode(LiteralNode("users"), ParamNode("id"))

    def test_concat_all_folds_left(self):
        nodes = [parse_pattern("/a"), parse_pattern("/b"), parse_pattern("/c")]
        assert to_path(concat_all(nodes)) == "/a/b/c"

    @pytest.mark.parametrize("text", ["", "/", "//"])
    def test_empty_literals(self, text):
        assert is_empty_literal(LiteralNode(text))

    def test_non_empty_literal(self):
        assert not is_empty_literal(LiteralNode("a"))
        assert not is_empty_literal(ParamNode("a"))


class TestQueryMerge:
    """Concatenation keeps a single outermost query block."""

    def test_path_then_query(self):
        ast = concat(parse_pattern("/search"), parse_pattern("?q=:q"))
        assert isinstance(ast, QueryParamsNode)
        assert ast.previous == LiteralNode("search")
        assert to_path(ast) == "/search?q=:q"

    def test_query_then_path_inserts_before_block(self):
        ast = concat(parse_pattern("/search?q=:q"), parse_pattern("/results"))
        assert isinstance(ast, QueryParamsNode)
        assert to_path(ast) == "/search/results?q=:q"

    def test_query_after_capture_reparses(self):
        ast = concat(parse_pattern("/search?q=:q"), parse_pattern("/:page"))
        assert to_path(ast) == "/search/:page?q=:q"
        assert parse_pattern(to_path(ast)) == ast

    def test_query_after_optional_capture_reparses(self):
        ast = concat(parse_pattern("/search?q=:q"), parse_pattern("/:page?"))
        assert to_path(ast) == "/search/:page??q=:q"
        assert parse_pattern(to_path(ast)) == ast

    def test_root_query_then_path(self):
        """The vacuous root of a query-only pattern is dropped."""
        ast = concat(parse_pattern("?q=:q"), parse_pattern("/items"))
        assert ast.previous == LiteralNode("items")

    def test_both_queries_merge(self):
        ast = concat(parse_pattern("/a?x=:x&y=:y"), parse_pattern("/b?z=:z"))
        assert [p.key for p in ast.params] == ["x", "y", "z"]
        assert to_path(ast) == "/a/b?x=:x&y=:y&z=:z"

    def test_right_query_key_wins(self):
        """Duplicate keys keep the right definition, after left-only keys."""
        left = parse_pattern("/a?x=:x&y=:y")
        right = parse_pattern("?y=:other&w=:w")
        ast = concat(left, right)
        assert [p.key for p in ast.params] == ["x", "y", "w"]
        assert ast.params[1].inner == ParamNode("other")

    def test_only_one_query_block(self):
        ast = concat_all([
            parse_pattern("/a?x=:x"),
            parse_pattern("/b"),
            parse_pattern("?y=:y"),
        ])
        assert isinstance(ast, QueryParamsNode)
        assert not isinstance(ast.previous, QueryParamsNode)
        assert get_query_params(ast) is ast


class TestStructuralQueries:
    """Helpers inspecting the query block."""

    def test_no_query_params(self):
        assert get_query_params(parse_pattern("/a/:b")) is None
        assert get_optional_query_params(parse_pattern("/a")) == []

    def test_optional_query_params(self):
        ast = parse_pattern("/search?q=:q&page=:page?&tags=:tags*")
        assert [p.key for p in get_optional_query_params(ast)] == ["page", "tags"]
