"""
Route schema derived from a pattern AST.

Bare captures become string fields shaped by their modifiers. Every
WithSchema node contributes its schema over the captures of its inner
pattern; unnamed keys inside it are renumbered from 0, so a schema sees
the same keys no matter where its route is concatenated.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Union

from ..compiler.ast_nodes import (
    PatternNode,
    ParamNode,
    UnnamedParamNode,
    OptionalNode,
    ZeroOrMoreNode,
    OneOrMoreNode,
    PrefixNode,
    ConcatNode,
    QueryParamsNode,
    WithSchemaNode,
    Part,
    KeyCounter,
    walk_captures,
)
from .codecs import Codec
from .issues import Issue, IssueKind, SchemaError
from .struct import Struct

logger = logging.getLogger("biroute.schema")


def _with_flags(part: Part, optional: bool, multiple: bool) -> Part:
    return Part(
        key=part.key,
        prefix=part.prefix,
        optional=part.optional or optional,
        multiple=part.multiple or multiple,
    )


@dataclass
class SchemaPart:
    """A schema attached to a sub-pattern, with its key translation."""
    schema: Any
    captures: List[Part]
    to_local: Dict[Any, Any] = field(default_factory=dict)

    @property
    def to_global(self) -> Dict[Any, Any]:
        return {local: key for key, local in self.to_local.items()}

    def localize(self, params: Mapping[Any, Any]) -> Dict[Any, Any]:
        return {local: params[key] for key, local in self.to_local.items() if key in params}

    def globalize(self, params: Mapping[Any, Any]) -> Dict[Any, Any]:
        to_global = self.to_global
        return {to_global.get(key, key): value for key, value in params.items()}

    def reraise(self, exc: SchemaError) -> SchemaError:
        to_global = self.to_global
        return SchemaError([issue.rekeyed(to_global) for issue in exc.issues])


Item = Union[Part, SchemaPart]


class RouteSchema:
    """Decodes matched parameters into values and encodes them back."""

    def __init__(self, items: List[Item], captures: List[Part]):
        self.items = items
        self.captures = captures

    @classmethod
    def from_ast(cls, ast: PatternNode) -> "RouteSchema":
        items: List[Item] = []
        captures: List[Part] = []
        counter = KeyCounter()

        def collect(node: PatternNode, optional: bool = False, multiple: bool = False):
            if isinstance(node, WithSchemaNode):
                global_parts = [p for p, _ in walk_captures(node.inner, counter)]
                local_parts = [p for p, _ in walk_captures(node.inner)]
                flagged = [_with_flags(p, optional, multiple) for p in global_parts]
                items.append(SchemaPart(
                    node.schema,
                    flagged,
                    {g.key: l.key for g, l in zip(global_parts, local_parts)},
                ))
                captures.extend(flagged)
            elif isinstance(node, ConcatNode):
                collect(node.left, optional, multiple)
                collect(node.right, optional, multiple)
            elif isinstance(node, QueryParamsNode):
                collect(node.previous, optional, multiple)
                for param in node.params:
                    collect(param.inner, optional, multiple)
            elif isinstance(node, OptionalNode):
                collect(node.inner, True, multiple)
            elif isinstance(node, ZeroOrMoreNode):
                collect(node.inner, True, True)
            elif isinstance(node, OneOrMoreNode):
                collect(node.inner, optional, True)
            elif isinstance(node, PrefixNode):
                collect(node.inner, optional, multiple)
            elif isinstance(node, (ParamNode, UnnamedParamNode)):
                key = node.name if isinstance(node, ParamNode) else counter.next()
                part = Part(key=key, optional=optional, multiple=multiple)
                items.append(part)
                captures.append(part)

        collect(ast)
        logger.debug("Derived route schema: %d parts, keys %r", len(items), [p.key for p in captures])
        return cls(items, captures)

    @property
    def keys(self) -> List[Any]:
        return [part.key for part in self.captures]

    def _single(self) -> Optional[SchemaPart]:
        if len(self.items) == 1 and isinstance(self.items[0], SchemaPart):
            return self.items[0]
        return None

    def codec_for(self, key: Any) -> Optional[Codec]:
        """Codec declared for a capture key through a Struct schema, if any."""
        for item in self.items:
            if not isinstance(item, SchemaPart) or key not in item.to_local:
                continue
            schema = item.schema
            while not isinstance(schema, (Struct, RouteSchema)) and hasattr(schema, "schema"):
                schema = schema.schema
            local = item.to_local[key]
            if isinstance(schema, RouteSchema):
                return schema.codec_for(local)
            if isinstance(schema, Struct):
                return schema.fields.get(local)
        return None

    # ------------------------------------------------------------------
    # decode
    # ------------------------------------------------------------------

    def decode(self, params: Mapping[Any, Any]) -> Any:
        single = self._single()
        if single is not None:
            try:
                return single.schema.decode(single.localize(params))
            except SchemaError as exc:
                raise single.reraise(exc) from exc

        result: Dict[Any, Any] = {}
        issues: List[Issue] = []
        for item in self.items:
            if isinstance(item, Part):
                if item.key in params:
                    result[item.key] = params[item.key]
                continue

            try:
                decoded = item.schema.decode(item.localize(params))
            except SchemaError as exc:
                issues.extend(item.reraise(exc).issues)
                continue
            if not isinstance(decoded, Mapping):
                issues.append(Issue(
                    IssueKind.TYPE,
                    (),
                    f"{item.schema!r} must decode to a mapping when combined with other parameters",
                ))
                continue
            result.update(item.globalize(decoded))

        if issues:
            raise SchemaError(issues)
        return result

    # ------------------------------------------------------------------
    # encode
    # ------------------------------------------------------------------

    def encode(self, value: Any) -> Dict[Any, Any]:
        single = self._single()
        if single is not None:
            try:
                params = single.globalize(single.schema.encode(value))
            except SchemaError as exc:
                raise single.reraise(exc) from exc
            return self.check_shape(params)

        if not isinstance(value, Mapping):
            raise SchemaError.single(
                IssueKind.TYPE, (), f"Expected a mapping, got {type(value).__name__}"
            )

        params: Dict[Any, Any] = {}
        issues: List[Issue] = []
        for item in self.items:
            if isinstance(item, Part):
                if item.key in value:
                    params[item.key] = value[item.key]
                continue
            try:
                encoded = item.schema.encode(item.localize(value))
            except SchemaError as exc:
                issues.extend(item.reraise(exc).issues)
                continue
            params.update(item.globalize(encoded))

        if issues:
            raise SchemaError(issues)
        return self.check_shape(params)

    def check_shape(self, params: Mapping[Any, Any]) -> Dict[Any, Any]:
        """
        Validate presence and cardinality of every capture.

        Returns the parameter map with values converted to strings.
        """
        result: Dict[Any, Any] = {}
        issues: List[Issue] = []

        for part in self.captures:
            value = params.get(part.key)
            if value is None or value == "" or (isinstance(value, (list, tuple)) and not value):
                if not part.optional:
                    issues.append(Issue(IssueKind.MISSING, (part.key,), "Required parameter is missing"))
                continue

            if part.multiple:
                if not isinstance(value, (list, tuple)):
                    issues.append(Issue(IssueKind.TYPE, (part.key,), "Expected a list of values"))
                    continue
                result[part.key] = [str(item) for item in value]
            else:
                if isinstance(value, (list, tuple)):
                    issues.append(Issue(IssueKind.TYPE, (part.key,), "Expected a single value"))
                    continue
                result[part.key] = str(value)

        if issues:
            raise SchemaError(issues)
        return result
