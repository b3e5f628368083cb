"""
Specificity ordering for route ranking.

Rules:
------
- Templates are compared segment by segment; equal segments are skipped.
- Segment complexity: number of ":" and "{" characters (-1 for an empty
  segment).
- At the first differing position a static segment (complexity 0) sorts
  first; otherwise the less complex segment sorts first.
- When every shared position ties, the template with more segments sorts
  first.
"""

from functools import cmp_to_key
from typing import Any, Callable, Iterable, List, TypeVar, Union

T = TypeVar("T")


def segment_complexity(segment: str) -> int:
    """Rough measure of how parametric one template segment is."""
    if segment == "":
        return -1
    return segment.count(":") + segment.count("{")


def compare_paths(a: str, b: str) -> int:
    """Compare two path templates; negative when ``a`` is more specific."""
    a_parts = a.split("/")
    b_parts = b.split("/")

    for a_part, b_part in zip(a_parts, b_parts):
        if a_part == b_part:
            continue

        a_complexity = segment_complexity(a_part)
        b_complexity = segment_complexity(b_part)
        if a_complexity == b_complexity:
            continue

        if a_complexity == 0:
            return -1
        if b_complexity == 0:
            return 1
        if b_complexity > a_complexity:
            return -1
        return 1

    if len(a_parts) == len(b_parts):
        return 0
    if len(a_parts) > len(b_parts):
        return -1
    return 1


def get_path(route: Union[str, Any]) -> str:
    """Template string of a route, or the string itself."""
    if isinstance(route, str):
        return route
    return route.path


def compare_routes(a: Any, b: Any) -> int:
    """Compare two routes (or template strings) by specificity."""
    return compare_paths(get_path(a), get_path(b))


route_order_key: Callable[[Any], Any] = cmp_to_key(compare_routes)


def sort_routes(routes: Iterable[T]) -> List[T]:
    """Stable sort of routes from most to least specific."""
    return sorted(routes, key=route_order_key)
