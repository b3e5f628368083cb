"""
Parameter schemas: the pluggable decode/encode layer attached to routes.

Every schema is an object with ``decode(params)`` and ``encode(value)``
that raises ``SchemaError`` on failure.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Mapping, Protocol, Union, runtime_checkable

from .codecs import Codec, get_codec
from .issues import Issue, IssueKind, SchemaError


# ============================================================================
# Schema Protocol
# ============================================================================

@runtime_checkable
class ParamSchema(Protocol):
    """Decodes a parameter map into a value and encodes it back."""

    def decode(self, params: Mapping[Any, Any]) -> Any:
        """Raise ``SchemaError`` if *params* is invalid."""
        ...

    def encode(self, value: Any) -> Dict[Any, Any]:
        """Raise ``SchemaError`` if *value* cannot be encoded."""
        ...


# ============================================================================
# Struct
# ============================================================================

class Struct:
    """
    Schema decoding each declared key with a codec.

    List values are converted element by element. Absent keys are left out
    of the result; whether a key must be present is decided by the route
    shape. Undeclared keys pass through unchanged.
    """

    def __init__(self, fields: Mapping[Any, Union[Codec, str]], name: str = "Struct"):
        self.fields: Dict[Any, Codec] = {
            key: get_codec(codec) if isinstance(codec, str) else codec
            for key, codec in fields.items()
        }
        self.name = name

    def __repr__(self) -> str:
        inner = ", ".join(f"{key!r}: {codec.name}" for key, codec in self.fields.items())
        return f"{self.name}({{{inner}}})"

    def _convert(self, params: Mapping[Any, Any], method: str, verb: str) -> Dict[Any, Any]:
        result: Dict[Any, Any] = {}
        issues: List[Issue] = []

        for key, value in params.items():
            codec = self.fields.get(key)
            if codec is None or value is None:
                result[key] = value
                continue

            convert = getattr(codec, method)
            if isinstance(value, (list, tuple)):
                items = []
                for index, item in enumerate(value):
                    try:
                        items.append(convert(item))
                    except (ValueError, TypeError, ArithmeticError) as exc:
                        issues.append(Issue(
                            IssueKind.INVALID, (key, index), f"Cannot {verb} {codec.name}: {exc}"
                        ))
                result[key] = items
            else:
                try:
                    result[key] = convert(value)
                except (ValueError, TypeError, ArithmeticError) as exc:
                    issues.append(Issue(
                        IssueKind.INVALID, (key,), f"Cannot {verb} {codec.name}: {exc}"
                    ))

        if issues:
            raise SchemaError(issues)
        return result

    def decode(self, params: Mapping[Any, Any]) -> Dict[Any, Any]:
        if not isinstance(params, Mapping):
            raise SchemaError.single(IssueKind.TYPE, (), "Expected a parameter mapping")
        return self._convert(params, "decode", "decode")

    def encode(self, value: Any) -> Dict[Any, Any]:
        if not isinstance(value, Mapping):
            raise SchemaError.single(
                IssueKind.TYPE, (), f"Expected a mapping, got {type(value).__name__}"
            )
        return self._convert(value, "encode", "encode")


# ============================================================================
# Transform
# ============================================================================

class Transform:
    """Wraps a schema with a pair of value conversion functions."""

    def __init__(
        self,
        schema: ParamSchema,
        decode: Callable[[Any], Any],
        encode: Callable[[Any], Any],
        name: str = "Transform",
    ):
        self.schema = schema
        self.decode_fn = decode
        self.encode_fn = encode
        self.name = name

    def __repr__(self) -> str:
        return f"{self.name}({self.schema!r})"

    def decode(self, params: Mapping[Any, Any]) -> Any:
        value = self.schema.decode(params)
        try:
            return self.decode_fn(value)
        except SchemaError:
            raise
        except (ValueError, TypeError, KeyError) as exc:
            raise SchemaError.single(IssueKind.TRANSFORM, (), str(exc)) from exc

    def encode(self, value: Any) -> Dict[Any, Any]:
        try:
            inner = self.encode_fn(value)
        except SchemaError:
            raise
        except (ValueError, TypeError, KeyError) as exc:
            raise SchemaError.single(IssueKind.TRANSFORM, (), str(exc)) from exc
        return self.schema.encode(inner)


def tagged(schema: ParamSchema, tag: str, key: str = "_tag") -> Transform:
    """Transform adding a constant discriminator key to decoded mappings."""

    def add(value: Any) -> Any:
        if not isinstance(value, Mapping):
            raise TypeError(f"Cannot tag a {type(value).__name__} value")
        return {**value, key: tag}

    def strip(value: Any) -> Any:
        if not isinstance(value, Mapping):
            raise TypeError(f"Expected a mapping, got {type(value).__name__}")
        if key in value and value[key] != tag:
            raise ValueError(f"Expected {key}={tag!r}, got {value[key]!r}")
        return {k: v for k, v in value.items() if k != key}

    return Transform(schema, add, strip, name=f"Tagged[{tag}]")
