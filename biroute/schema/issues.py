"""
Structured validation issues raised by parameter schemas.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, Optional, Tuple

from ..faults import Fault, FaultDomain, Severity


class IssueKind(str, Enum):
    """Category of a validation issue."""
    MISSING = "missing"
    TYPE = "type"
    INVALID = "invalid"
    TRANSFORM = "transform"


@dataclass(frozen=True)
class Issue:
    """
    One field-addressable validation problem.

    ``path`` addresses the offending value: a parameter key, optionally
    followed by a list index.
    """
    kind: IssueKind
    path: Tuple[Any, ...]
    message: str

    def __str__(self) -> str:
        if not self.path:
            return self.message
        location = ".".join(str(p) for p in self.path)
        return f"{location}: {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "path": list(self.path),
            "message": self.message,
        }

    def rekeyed(self, mapping: Dict[Any, Any]) -> "Issue":
        """Issue with its leading key translated through ``mapping``."""
        if not self.path or self.path[0] not in mapping:
            return self
        return Issue(self.kind, (mapping[self.path[0]],) + self.path[1:], self.message)


class SchemaError(Fault):
    """
    Raised by a schema when decoding or encoding fails.

    Attributes:
        issues: Every problem found, in traversal order.
    """

    def __init__(
        self,
        issues: Iterable[Issue],
        *,
        message: str = "Schema validation failed",
        metadata: Optional[Dict[str, Any]] = None,
    ):
        self.issues = tuple(issues)
        meta = {"issues": [issue.to_dict() for issue in self.issues]}
        if metadata:
            meta.update(metadata)
        super().__init__(
            code="SCHEMA_INVALID",
            message=message,
            domain=FaultDomain.SCHEMA,
            severity=Severity.WARN,
            retryable=False,
            public=True,
            metadata=meta,
        )

    @classmethod
    def single(cls, kind: IssueKind, path: Tuple[Any, ...], message: str) -> "SchemaError":
        return cls([Issue(kind, path, message)])
