"""
Property-based tests using Hypothesis.

Tests invariants that should hold for all inputs:
- Interpolate/match round trip
- Canonical path reparses to the same AST
- Associativity of concatenation
- Sort idempotence
"""

from hypothesis import given, settings, strategies as st

from biroute import route
from biroute.compiler.parser import parse_pattern
from biroute.compiler.specificity import sort_routes


# ============================================================================
# Strategy Definitions
# ============================================================================

ident = st.text(alphabet="abcdefghijklmnopqrstuvwxyz_", min_size=1, max_size=8)

literal_text = st.text(
    alphabet="abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789-_.",
    min_size=1,
    max_size=10,
)

# Values that survive a path segment unchanged.
segment_value = st.text(
    alphabet="abcdefghijklmnopqrstuvwxyz0123456789-_.~",
    min_size=1,
    max_size=12,
)


@st.composite
def simple_patterns(draw):
    """Patterns of literals and distinct named captures."""
    names = draw(st.lists(ident, min_size=0, max_size=4, unique=True))
    literals = draw(st.lists(literal_text, min_size=len(names) + 1, max_size=len(names) + 1))
    segments = []
    for literal, name in zip(literals, names + [None]):
        segments.append(literal)
        if name is not None:
            segments.append(f":{name}")
    draw(st.randoms()).shuffle(segments)
    return "/" + "/".join(segments), names


templates = st.lists(
    st.lists(
        st.one_of(literal_text, ident.map(lambda n: f":{n}"), ident.map(lambda n: f"{{v:{n}}}")),
        min_size=0,
        max_size=4,
    ).map(lambda parts: "/" + "/".join(parts)),
    max_size=12,
)


# ============================================================================
# Properties
# ============================================================================

class TestRoundTrip:
    """Matching inverts interpolation."""

    @given(simple_patterns(), st.data())
    @settings(max_examples=100)
    def test_match_inverts_interpolate(self, pattern_and_names, data):
        pattern, names = pattern_and_names
        r = route.parse(pattern, end=True)
        params = {name: data.draw(segment_value) for name in names}
        assert r.match(r.interpolate(params)) == params

    @given(simple_patterns())
    def test_canonical_path_reparses(self, pattern_and_names):
        pattern, _ = pattern_and_names
        ast = parse_pattern(pattern)
        assert parse_pattern(route.Route(ast).path) == ast


class TestConcatProperties:
    """Concatenation behaves associatively."""

    @given(simple_patterns(), simple_patterns(), simple_patterns(), st.data())
    @settings(max_examples=50)
    def test_associative_rendering_and_matching(self, a, b, c, data):
        names = set(a[1]) | set(b[1]) | set(c[1])
        ra, rb, rc = (route.parse(p) for p, _ in (a, b, c))
        left = route.concat(route.concat(ra, rb), rc)
        right = route.concat(ra, route.concat(rb, rc))

        params = {name: data.draw(segment_value) for name in names}
        if len(names) == len(a[1]) + len(b[1]) + len(c[1]):
            rendered = left.interpolate(params)
            assert rendered == right.interpolate(params)
            assert left.match(rendered) == right.match(rendered)


class TestSortProperties:
    """Specificity sort invariants."""

    @given(templates)
    def test_sort_is_idempotent(self, paths):
        once = sort_routes(paths)
        assert sort_routes(once) == once

    @given(templates)
    def test_sort_is_permutation(self, paths):
        assert sorted(sort_routes(paths)) == sorted(paths)
