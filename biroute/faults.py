"""
biroute faults - structured fault values for routing.

Defines:
- Fault base class (structured fault objects)
- FaultDomain (explicit fault domains)
- Severity levels
- Routing faults returned by Route.decode / Route.encode

Routing faults are returned as values, not raised: a structural mismatch or
a validation failure is an expected outcome of decoding user input.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Iterable, Optional


# ============================================================================
# Severity & Domain
# ============================================================================

class Severity(str, Enum):
    """
    Fault severity levels.

    Defaulted per domain and carried in ``Fault.to_dict()``.
    """
    INFO = "info"
    WARN = "warn"
    ERROR = "error"
    FATAL = "fatal"


class FaultDomain:
    """
    Fault domains (taxonomy).

    Identifies the functional area where a fault occurred.
    """

    def __init__(self, name: str, description: str = ""):
        self.name = name
        self.value = name
        self.description = description

    def __str__(self) -> str:
        return self.name

    def __repr__(self) -> str:
        return f"FaultDomain(name='{self.name}')"

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, FaultDomain):
            return self.name == other.name
        return str(self) == str(other)

    def __hash__(self) -> int:
        return hash(self.name)


FaultDomain.CONFIG = FaultDomain("config", "Configuration errors")
FaultDomain.ROUTING = FaultDomain("routing", "Route matching errors")
FaultDomain.SCHEMA = FaultDomain("schema", "Parameter decoding and encoding errors")


DOMAIN_DEFAULTS = {
    FaultDomain.CONFIG: {"severity": Severity.FATAL, "retryable": False},
    FaultDomain.ROUTING: {"severity": Severity.ERROR, "retryable": False},
    FaultDomain.SCHEMA: {"severity": Severity.WARN, "retryable": False},
}


# ============================================================================
# Fault - Base Class
# ============================================================================

class Fault(Exception):
    """
    Base fault class - structured, typed fault object.

    Attributes:
        code: Stable machine-readable identifier (e.g., "ROUTE_NOT_MATCHED")
        message: Human-readable summary
        severity: Fault severity (INFO, WARN, ERROR, FATAL)
        domain: Fault domain (CONFIG, ROUTING, SCHEMA)
        retryable: Whether this fault can be retried
        public: Whether safe to expose to client
        metadata: Additional context data
    """

    def __init__(
        self,
        code: str | None = None,
        message: str | None = None,
        *,
        domain: FaultDomain | None = None,
        severity: Optional[Severity] = None,
        retryable: Optional[bool] = None,
        public: bool = False,
        metadata: Optional[dict[str, Any]] = None,
    ):
        self.code = code if code is not None else getattr(self, "code", None)
        self.message = message if message is not None else getattr(self, "message", None)
        self.domain = domain if domain is not None else getattr(self, "domain", None)

        if self.code is None or self.message is None or self.domain is None:
            raise TypeError(f"{self.__class__.__name__} missing required code, message, or domain")

        super().__init__(self.message)

        defaults = DOMAIN_DEFAULTS.get(self.domain, {"severity": Severity.ERROR, "retryable": False})
        self.severity = severity or defaults["severity"]
        self.retryable = retryable if retryable is not None else defaults["retryable"]
        self.public = public
        self.metadata = metadata or {}

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(code={self.code!r}, domain={self.domain.value}, "
            f"severity={self.severity.value}, public={self.public})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize fault to dictionary."""
        return {
            "code": self.code,
            "message": self.message,
            "domain": self.domain.value,
            "severity": self.severity.value,
            "retryable": self.retryable,
            "public": self.public,
            "metadata": self.metadata,
        }


# ============================================================================
# ROUTING Faults
# ============================================================================

class RoutingFault(Fault):
    """Base class for routing faults."""

    _tag = "RoutingFault"

    def __init__(
        self,
        code: str,
        message: str,
        *,
        route: Any = None,
        domain: FaultDomain = FaultDomain.ROUTING,
        severity: Optional[Severity] = None,
        public: bool = True,
        metadata: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            code=code,
            message=message,
            domain=domain,
            severity=severity,
            retryable=False,
            public=public,
            metadata=metadata,
        )
        self.route = route

    @property
    def route_path(self) -> Optional[str]:
        if self.route is None:
            return None
        return getattr(self.route, "path", str(self.route))

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["_tag"] = self._tag
        data["route"] = self.route_path
        return data


class RouteNotMatched(RoutingFault):
    """Input does not structurally conform to the route."""

    _tag = "RouteNotMatched"

    def __init__(self, route: Any, path: str, **kwargs):
        super().__init__(
            code="ROUTE_NOT_MATCHED",
            message=f"'{path}' does not match route '{getattr(route, 'path', route)}'",
            route=route,
            metadata={"path": path},
            **kwargs,
        )
        self.path = path

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["path"] = self.path
        return data


class _IssueFault(RoutingFault):
    """Fault carrying structured validation issues."""

    def __init__(self, code: str, message: str, route: Any, issues: Iterable[Any], **kwargs):
        self.issues = tuple(issues)
        summary = "; ".join(str(issue) for issue in self.issues)
        super().__init__(
            code=code,
            message=f"{message}: {summary}" if summary else message,
            route=route,
            domain=FaultDomain.SCHEMA,
            **kwargs,
        )

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["issues"] = [
            issue.to_dict() if hasattr(issue, "to_dict") else str(issue)
            for issue in self.issues
        ]
        return data


class RouteDecodeError(_IssueFault):
    """Structurally matched parameters failed schema validation."""

    _tag = "RouteDecodeError"

    def __init__(self, route: Any, issues: Iterable[Any], **kwargs):
        super().__init__("ROUTE_DECODE_ERROR", "Route parameters failed to decode", route, issues, **kwargs)


class RouteEncodeError(_IssueFault):
    """Typed value could not be encoded into route parameters."""

    _tag = "RouteEncodeError"

    def __init__(self, route: Any, issues: Iterable[Any], **kwargs):
        super().__init__("ROUTE_ENCODE_ERROR", "Value failed to encode", route, issues, **kwargs)
