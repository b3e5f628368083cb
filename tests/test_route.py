"""
Tests for the Route value: matching, rendering, composition and typed
decode/encode.
"""

import datetime
import threading
import uuid as uuid_lib
from decimal import Decimal

import pytest

from biroute import route
from biroute.compiler.ast_nodes import QueryParamsNode
from biroute.datastructures import MultiDict
from biroute.diagnostics.errors import InterpolationError
from biroute.faults import RouteDecodeError, RouteEncodeError, RouteNotMatched
from biroute.schema import IssueKind, Struct


class TestRouteBasics:
    """Parsing, canonical path and memoized artifacts."""

    def test_path_is_canonical(self):
        assert route.parse("/users/:id/").path == "/users/:id"

    def test_artifacts_are_memoized(self):
        r = route.parse("/users/:id")
        assert r.matcher is r.matcher
        assert r.interpolator is r.interpolator
        assert r.schema is r.schema

    def test_concurrent_first_access(self):
        r = route.parse("/users/:id")
        seen = []

        def worker():
            seen.append(r.matcher)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert all(m is seen[0] for m in seen)

    def test_equality(self):
        assert route.parse("/a/:b") == route.parse("/a/:b/")
        assert route.parse("/a") != route.parse("/a", end=True)
        assert len({route.parse("/a"), route.parse("/a")}) == 1

    def test_to_dict(self):
        data = route.parse("/users/:id", end=True).to_dict()
        assert data["path"] == "/users/:id"
        assert data["end"] is True
        assert data["ast"]["kind"] == "concat"

    def test_optional_query_params(self):
        r = route.parse("/search?q=:q&page=:page?&tag=:tags*")
        assert [p.key for p in r.optional_query_params] == ["page", "tag"]
        assert route.parse("/search").optional_query_params == []

    def test_is_route_and_get_path(self):
        r = route.parse("/x")
        assert route.is_route(r)
        assert not route.is_route("/x")
        assert route.get_path(r) == "/x"


class TestDocumentedExamples:
    """Behaviour of the documented example patterns."""

    def test_articles_end(self):
        r = route.parse("/articles/:slug", end=True)
        assert r.match("/articles/123") == {"slug": "123"}
        assert r.match("/articles/123/comments") is None

    def test_articles_no_end(self):
        r = route.parse("/articles/:slug")
        assert r.match("/articles/123/comments") == {"slug": "123"}

    def test_search_query(self):
        r = route.parse("/search?q=:query&page=:page?")
        assert r.match("/search?q=test") == {"query": "test"}
        assert r.match("/search") is None
        assert r.match("/search?q=test&page=2") == {"query": "test", "page": "2"}

    def test_prefix(self):
        r = route.parse("{user-:id}")
        assert r.match("user-123") == {"id": "123"}
        assert r.interpolate({"id": "123"}) == "/user-123"
        assert r.match("123") is None
        assert r.match("user-") is None

    def test_fragment_ignored(self):
        assert route.parse("/a/:b").match("/a/c#top") == {"b": "c"}

    def test_query_after_capture(self):
        r = route.parse("/users/:id?tab=:tab")
        assert r.path == "/users/:id?tab=:tab"
        assert r.match("/users/1?tab=x") == {"id": "1", "tab": "x"}
        assert r.interpolate({"id": 1, "tab": "x"}) == "/users/1?tab=x"

    def test_match_parts(self):
        r = route.parse("/search/:scope?q=:q")
        assert r.match_parts(["search", "all"], MultiDict({"q": "x"})) == {"scope": "all", "q": "x"}

    def test_query_values_are_decoded(self):
        r = route.parse("/search?q=:q")
        assert r.match("/search?q=hello%20world") == {"q": "hello world"}


class TestConstructors:
    """Building routes without pattern strings."""

    def test_literal_splits_segments(self):
        r = route.literal("/api/v1")
        assert r.path == "/api/v1"
        assert r.match("/api/v1") == {}

    def test_literal_root(self):
        assert route.literal("/").path == "/"

    def test_home_requires_end(self):
        assert route.home.match("/") == {}
        assert route.home.match("/x") is None

    def test_separator_is_neutral(self):
        r = route.concat(route.separator, route.literal("a"), route.separator)
        assert r.path == "/a"

    def test_param_and_unnamed(self):
        r = route.concat(route.literal("a"), route.param("x"), route.unnamed)
        assert r.path == "/a/:x/*"
        assert r.match("/a/1/2") == {"x": "1", 0: "2"}

    def test_query_params_constructor(self):
        r = route.concat(
            route.literal("search"),
            route.query_params({"q": route.param("q"), "page": ":page?"}),
        )
        assert r.path == "/search?q=:q&page=:page?"
        assert r.match("/search?q=x") == {"q": "x"}
        assert [p.key for p in r.optional_query_params] == ["page"]
        assert isinstance(r.query_params, QueryParamsNode)


class TestCombinators:
    """Composition of routes."""

    def test_concat_paths(self):
        r = route.concat(route.parse("/users"), route.parse("/:id"))
        assert r.match("/users/7") == {"id": "7"}
        assert r.interpolate({"id": 7}) == "/users/7"

    def test_concat_takes_right_end(self):
        r = route.parse("/a").concat(route.parse("/b", end=True))
        assert r.end is True

    def test_concat_keeps_end_for_query_refinement(self):
        r = route.parse("/a", end=True).concat(route.parse("?q=:q"))
        assert r.end is True

    def test_concat_is_associative_in_behaviour(self):
        a, b, c = route.parse("/x?p=:p"), route.parse("/:y"), route.parse("/z?q=:q")
        left = route.concat(route.concat(a, b), c)
        right = route.concat(a, route.concat(b, c))
        for target in ["/x/1/z?p=a&q=b", "/x/1/z?q=b", "/x/1?p=a&q=b"]:
            assert left.match(target) == right.match(target)
        params = {"p": "a", "y": "1", "q": "b"}
        assert left.interpolate(params) == right.interpolate(params)

    def test_query_merge_right_wins(self):
        r = route.concat(route.parse("/a?x=:x&y=:y"), route.parse("?y=:z"))
        assert r.match("/a?x=1&y=2") == {"x": "1", "z": "2"}

    def test_optional(self):
        r = route.concat(route.literal("a"), route.param("b").optional())
        assert r.match("/a") == {}
        assert r.path == "/a/:b?"

    def test_one_or_more(self):
        r = route.concat(route.literal("files"), route.one_or_more(route.param("path")))
        assert r.match("/files/a/b") == {"path": ["a", "b"]}

    def test_zero_or_more(self):
        r = route.concat(route.literal("files"), route.zero_or_more(route.unnamed))
        assert r.match("/files") == {0: []}

    def test_prefix(self):
        r = route.concat(route.literal("v"), route.prefix("rev-", route.param("n")))
        assert r.path == "/v/{rev-:n}"
        assert r.match("/v/rev-3") == {"n": "3"}

    def test_with_end(self):
        r = route.parse("/a").with_end()
        assert r.match("/a/b") is None


class TestInterpolate:
    """Rendering through Route.interpolate."""

    def test_missing_param_raises(self):
        with pytest.raises(InterpolationError):
            route.parse("/users/:id").interpolate({})

    def test_constant(self):
        assert route.parse("/about").interpolate() == "/about"


class TestDecodeEncode:
    """Typed decode and encode through route schemas."""

    def test_untyped_decode_passes_strings(self):
        assert route.parse("/users/:id").decode("/users/5") == {"id": "5"}

    def test_not_matched(self):
        r = route.parse("/users/:id")
        result = route.decode(r, "/posts/5")
        assert isinstance(result, RouteNotMatched)
        assert result.route is r
        assert result.to_dict()["_tag"] == "RouteNotMatched"

    def test_integer(self):
        r = route.concat(route.literal("users"), route.integer("id"))
        assert r.decode("/users/42") == {"id": 42}
        assert r.encode({"id": 42}) == "/users/42"

    def test_decode_error(self):
        r = route.concat(route.literal("users"), route.integer("id"))
        result = r.decode("/users/abc")
        assert isinstance(result, RouteDecodeError)
        assert result.issues[0].path == ("id",)
        assert result.issues[0].kind == IssueKind.INVALID

    def test_encode_error(self):
        r = route.concat(route.literal("users"), route.integer("id"))
        result = route.encode(r, {"id": "nope"})
        assert isinstance(result, RouteEncodeError)
        assert result.issues[0].path == ("id",)

    def test_encode_missing_value(self):
        r = route.concat(route.literal("users"), route.integer("id"))
        result = r.encode({})
        assert isinstance(result, RouteEncodeError)
        assert result.issues[0].kind == IssueKind.MISSING

    def test_mixed_typed_and_untyped(self):
        r = route.concat(route.param("org"), route.integer("id"), route.boolean("draft"))
        assert r.decode("/acme/3/true") == {"org": "acme", "id": 3, "draft": True}
        assert r.encode({"org": "acme", "id": 3, "draft": False}) == "/acme/3/false"

    @pytest.mark.parametrize("factory,raw,value", [
        (route.number, "1.5", 1.5),
        (route.decimal, "2.50", Decimal("2.50")),
        (route.uuid, "12345678-1234-5678-1234-567812345678",
         uuid_lib.UUID("12345678-1234-5678-1234-567812345678")),
        (route.date, "2024-02-29", datetime.date(2024, 2, 29)),
        (route.ulid, "01ARZ3NDEKTSV4RRFFQ69G5FAV", "01ARZ3NDEKTSV4RRFFQ69G5FAV"),
        (route.base64url, "aGk", b"hi"),
        (route.string, "plain", "plain"),
    ])
    def test_typed_params(self, factory, raw, value):
        r = factory("v")
        assert r.decode(f"/{raw}") == {"v": value}
        assert r.encode({"v": value}) == f"/{raw}"

    def test_repeated_typed_param(self):
        r = route.concat(route.literal("ids"), route.integer("id").one_or_more())
        assert r.decode("/ids/1/2/3") == {"id": [1, 2, 3]}
        assert r.encode({"id": [1, 2]}) == "/ids/1/2"

    def test_repeated_decode_error_has_index(self):
        r = route.integer("id").one_or_more()
        result = r.decode("/1/x")
        assert isinstance(result, RouteDecodeError)
        assert result.issues[0].path == ("id", 1)

    def test_transform(self):
        r = route.integer("id").transform(lambda v: v["id"], lambda v: {"id": v})
        assert r.decode("/9") == 9
        assert r.encode(9) == "/9"

    def test_transform_failure(self):
        r = route.param("id").transform(lambda v: int(v["id"]), lambda v: {"id": v})
        result = r.decode("/x")
        assert isinstance(result, RouteDecodeError)
        assert result.issues[0].kind == IssueKind.TRANSFORM

    def test_add_tag(self):
        r = route.integer("id").add_tag("User")
        assert r.decode("/4") == {"id": 4, "_tag": "User"}
        assert r.encode({"id": 4, "_tag": "User"}) == "/4"
        assert isinstance(r.encode({"id": 4, "_tag": "Post"}), RouteEncodeError)

    def test_with_schema_over_unnamed(self):
        """Unnamed keys inside a schema are local to it."""
        r = route.concat(
            route.unnamed,
            route.with_schema(route.unnamed, Struct({0: "int"})),
        )
        assert r.decode("/a/5") == {0: "a", 1: 5}
        assert r.encode({0: "a", 1: 5}) == "/a/5"

    def test_query_typed(self):
        r = route.concat(
            route.literal("search"),
            route.query_params({"page": route.integer("page").optional()}),
        )
        assert r.decode("/search?page=2") == {"page": 2}
        assert r.decode("/search") == {}
        assert r.encode({"page": 3}) == "/search?page=3"
