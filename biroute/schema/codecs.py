"""
Codec registry and built-in string codecs for route parameters.

A codec converts one raw parameter string into a typed value and back.
"""

from __future__ import annotations

import base64
import datetime
import re
import uuid as uuid_lib
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict, List


SLUG_RE = re.compile(r"[A-Za-z0-9]+(?:[-_][A-Za-z0-9]+)*")
ULID_RE = re.compile(r"[0-7][0-9A-HJKMNP-TV-Z]{25}")


@dataclass(frozen=True)
class Codec:
    """Named pair of string <-> value conversions."""
    name: str
    decoder: Callable[[str], Any]
    encoder: Callable[[Any], str] = str
    openapi: Dict[str, Any] = field(default_factory=lambda: {"type": "string"})

    def decode(self, raw: str) -> Any:
        """Convert a raw string; raises ValueError/TypeError when invalid."""
        return self.decoder(raw)

    def encode(self, value: Any) -> str:
        """Convert a value back to its raw string form."""
        return self.encoder(value)


# ============================================================================
# Built-in conversions
# ============================================================================

def _decode_int(value: str) -> int:
    if not re.fullmatch(r"[+-]?\d+", value):
        raise ValueError(f"Invalid integer: {value}")
    return int(value)


def _encode_int(value: Any) -> str:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"Expected int, got {type(value).__name__}")
    return str(value)


def _decode_float(value: str) -> float:
    result = float(value)
    if result != result or result in (float("inf"), float("-inf")):
        raise ValueError(f"Invalid number: {value}")
    return result


def _encode_float(value: Any) -> str:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"Expected number, got {type(value).__name__}")
    return repr(value) if isinstance(value, float) else str(value)


def _decode_decimal(value: str) -> Decimal:
    try:
        result = Decimal(value)
    except InvalidOperation:
        raise ValueError(f"Invalid decimal: {value}") from None
    if not result.is_finite():
        raise ValueError(f"Invalid decimal: {value}")
    return result


def _encode_decimal(value: Any) -> str:
    if not isinstance(value, (Decimal, int)) or isinstance(value, bool):
        raise TypeError(f"Expected Decimal, got {type(value).__name__}")
    return str(value)


def _decode_bool(value: str) -> bool:
    lower = value.lower()
    if lower in ("true", "1", "yes", "on"):
        return True
    if lower in ("false", "0", "no", "off"):
        return False
    raise ValueError(f"Invalid boolean value: {value}")


def _encode_bool(value: Any) -> str:
    if not isinstance(value, bool):
        raise TypeError(f"Expected bool, got {type(value).__name__}")
    return "true" if value else "false"


def _encode_uuid(value: Any) -> str:
    if isinstance(value, uuid_lib.UUID):
        return str(value)
    return str(uuid_lib.UUID(str(value)))


def _decode_ulid(value: str) -> str:
    upper = value.upper()
    if not ULID_RE.fullmatch(upper):
        raise ValueError(f"Invalid ULID: {value}")
    return upper


def _encode_date(value: Any) -> str:
    if not isinstance(value, datetime.date) or isinstance(value, datetime.datetime):
        raise TypeError(f"Expected date, got {type(value).__name__}")
    return value.isoformat()


def _decode_slug(value: str) -> str:
    if not SLUG_RE.fullmatch(value):
        raise ValueError(f"Invalid slug: {value}")
    return value


def _decode_base64url(value: str) -> bytes:
    if not re.fullmatch(r"[A-Za-z0-9_-]*", value):
        raise ValueError(f"Invalid base64url: {value}")
    return base64.urlsafe_b64decode(value + "=" * (-len(value) % 4))


def _encode_base64url(value: Any) -> str:
    if isinstance(value, str):
        value = value.encode("utf-8")
    if not isinstance(value, (bytes, bytearray)):
        raise TypeError(f"Expected bytes, got {type(value).__name__}")
    return base64.urlsafe_b64encode(bytes(value)).decode("ascii").rstrip("=")


def _encode_str(value: Any) -> str:
    if not isinstance(value, str):
        raise TypeError(f"Expected str, got {type(value).__name__}")
    return value


# ============================================================================
# Registry
# ============================================================================

class CodecRegistry:
    """Registry of named codecs."""

    def __init__(self):
        self.codecs: Dict[str, Codec] = {}

    @classmethod
    def default(cls) -> "CodecRegistry":
        """Create registry with built-in codecs."""
        registry = cls()

        registry.register(Codec("str", str, _encode_str))
        registry.register(Codec("int", _decode_int, _encode_int, {"type": "integer"}))
        registry.register(Codec("float", _decode_float, _encode_float, {"type": "number"}))
        registry.register(Codec(
            "decimal", _decode_decimal, _encode_decimal, {"type": "string", "format": "decimal"}
        ))
        registry.register(Codec("bool", _decode_bool, _encode_bool, {"type": "boolean"}))
        registry.register(Codec(
            "uuid", uuid_lib.UUID, _encode_uuid, {"type": "string", "format": "uuid"}
        ))
        registry.register(Codec(
            "ulid", _decode_ulid, lambda v: _decode_ulid(_encode_str(v)),
            {"type": "string", "pattern": ULID_RE.pattern},
        ))
        registry.register(Codec(
            "date", datetime.date.fromisoformat, _encode_date, {"type": "string", "format": "date"}
        ))
        registry.register(Codec(
            "slug", _decode_slug, lambda v: _decode_slug(_encode_str(v)),
            {"type": "string", "pattern": SLUG_RE.pattern},
        ))
        registry.register(Codec(
            "base64url", _decode_base64url, _encode_base64url,
            {"type": "string", "format": "byte"},
        ))

        return registry

    def register(self, codec: Codec):
        """Register a codec, replacing any codec with the same name."""
        self.codecs[codec.name] = codec

    def get(self, name: str) -> Codec:
        """Get codec by name."""
        if name not in self.codecs:
            raise ValueError(f"Unknown codec: {name}")
        return self.codecs[name]

    def has(self, name: str) -> bool:
        return name in self.codecs

    def names(self) -> List[str]:
        return sorted(self.codecs)


default_registry = CodecRegistry.default()


def get_codec(name: str) -> Codec:
    """Look up a codec in the default registry."""
    return default_registry.get(name)


def register_codec(codec: Codec) -> Codec:
    """Register a custom codec in the default registry."""
    default_registry.register(codec)
    return codec
