"""
Core data structures for biroute matching.

Provides:
- MultiDict: Multi-value dictionary for query parameters
- split_path: Raw path to segment tuple
- parse_target: Raw "path?query" string to (segments, MultiDict)
"""

from __future__ import annotations

from typing import (
    Dict, Iterator, List, Mapping, MutableMapping,
    Optional, Tuple, Union
)
from urllib.parse import parse_qsl


# ============================================================================
# MultiDict
# ============================================================================

class MultiDict(MutableMapping[str, List[str]]):
    """
    Dictionary that supports multiple values per key.

    Used for query parameters where keys can repeat.
    """

    def __init__(self, items: Optional[Union[List[Tuple[str, str]], Mapping[str, Union[str, List[str]]]]] = None):
        self._data: Dict[str, List[str]] = {}

        if items:
            if isinstance(items, list):
                for key, value in items:
                    self.add(key, value)
            elif isinstance(items, Mapping):
                for key, value in items.items():
                    if isinstance(value, list):
                        self._data[key] = list(value)
                    else:
                        self._data[key] = [value]

    def __getitem__(self, key: str) -> List[str]:
        """Get all values for a key."""
        return self._data[key]

    def __setitem__(self, key: str, value: Union[str, List[str]]) -> None:
        """Set values for a key (replaces existing)."""
        if isinstance(value, list):
            self._data[key] = value
        else:
            self._data[key] = [value]

    def __delitem__(self, key: str) -> None:
        del self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"MultiDict({dict(self._data)})"

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """Get first value for a key."""
        values = self._data.get(key)
        return values[0] if values else default

    def get_all(self, key: str) -> List[str]:
        """Get all values for a key."""
        return list(self._data.get(key, []))

    def add(self, key: str, value: str) -> None:
        """Add a value to a key (appends to list)."""
        self._data.setdefault(key, []).append(value)

    @classmethod
    def from_query_string(cls, query: str) -> "MultiDict":
        """Parse a raw query string, keeping blank values."""
        return cls(parse_qsl(query, keep_blank_values=True))


# ============================================================================
# Path splitting
# ============================================================================

def split_path(path: str) -> Tuple[str, ...]:
    """Split a raw path on "/", dropping empty segments."""
    return tuple(segment for segment in path.split("/") if segment)


def parse_target(target: str) -> Tuple[Tuple[str, ...], MultiDict]:
    """
    Split a raw "path?query#fragment" string into path segments and a query
    multimap. The fragment is discarded.

    Path segments are kept raw (no percent-decoding); query values are
    decoded by parse_qsl.
    """
    target = target.split("#", 1)[0]
    path, _, query = target.partition("?")
    return split_path(path), MultiDict.from_query_string(query)
