"""
OpenAPI parameter generation from routes.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

from .compiler.ast_nodes import (
    PatternNode,
    LiteralNode,
    ParamNode,
    UnnamedParamNode,
    OptionalNode,
    ZeroOrMoreNode,
    OneOrMoreNode,
    PrefixNode,
    ConcatNode,
    QueryParamsNode,
    WithSchemaNode,
    KeyCounter,
    ParamKey,
    path_join,
    walk_captures,
)
from .route import Route
from .schema.route_schema import RouteSchema


@dataclass(frozen=True)
class ParamDescription:
    """Shape of one capture of a route."""
    key: ParamKey
    location: str
    required: bool
    multiple: bool
    schema: Dict[str, Any]

    @property
    def name(self) -> str:
        return str(self.key)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "in": self.location,
            "required": self.required,
            "multiple": self.multiple,
            "schema": self.schema,
        }


def _as_route(target: Union[Route, PatternNode]) -> Route:
    return target if isinstance(target, Route) else Route(target)


def describe_params(target: Union[Route, PatternNode]) -> List[ParamDescription]:
    """Describe every capture of a route in key order."""
    route = _as_route(target)
    schema: RouteSchema = route.schema
    described = []

    for part, in_query in walk_captures(route.ast):
        codec = schema.codec_for(part.key)
        item_schema = dict(codec.openapi) if codec is not None else {"type": "string"}
        value_schema = {"type": "array", "items": item_schema} if part.multiple else item_schema
        described.append(ParamDescription(
            key=part.key,
            location="query" if in_query else "path",
            required=not part.optional,
            multiple=part.multiple,
            schema=value_schema,
        ))

    return described


def generate_openapi_params(target: Union[Route, PatternNode]) -> List[Dict[str, Any]]:
    """
    Generate OpenAPI parameter objects for a route.

    Path parameters are always required in OpenAPI; optional path captures
    are reported as required with ``allowEmptyValue``.
    """
    params = []
    for desc in describe_params(target):
        obj: Dict[str, Any] = {
            "name": desc.name,
            "in": desc.location,
            "required": True if desc.location == "path" else desc.required,
            "schema": desc.schema,
        }
        if desc.location == "path" and not desc.required:
            obj["allowEmptyValue"] = True
        if desc.location == "query" and desc.multiple:
            obj["style"] = "form"
            obj["explode"] = True
        params.append(obj)
    return params


def _template(node: PatternNode, counter: KeyCounter) -> str:
    if isinstance(node, LiteralNode):
        return node.text
    if isinstance(node, ParamNode):
        return f"{{{node.name}}}"
    if isinstance(node, UnnamedParamNode):
        return f"{{{counter.next()}}}"
    if isinstance(node, (OptionalNode, ZeroOrMoreNode, OneOrMoreNode, WithSchemaNode)):
        return _template(node.inner, counter)
    if isinstance(node, PrefixNode):
        return node.text + _template(node.inner, counter)
    if isinstance(node, ConcatNode):
        left = _template(node.left, counter)
        right = _template(node.right, counter)
        return left + right if node.joined else path_join(left, right)
    if isinstance(node, QueryParamsNode):
        return _template(node.previous, counter)
    raise TypeError(f"Unknown pattern node: {node!r}")


def generate_openapi_path(target: Union[Route, PatternNode]) -> str:
    """
    Convert a route to an OpenAPI path template.

    Example:
        /users/:id/{v:rev} -> /users/{id}/v{rev}
    """
    route = _as_route(target)
    return path_join(_template(route.ast, KeyCounter())) or "/"


def route_to_openapi_operation(
    target: Union[Route, PatternNode],
    operation_id: str,
    summary: str = "",
    tags: Optional[List[str]] = None,
) -> Dict[str, Any]:
    """Generate a minimal OpenAPI operation object for a route."""
    operation: Dict[str, Any] = {
        "operationId": operation_id,
        "parameters": generate_openapi_params(target),
        "responses": {"200": {"description": "Successful response"}},
    }
    if summary:
        operation["summary"] = summary
    if tags:
        operation["tags"] = tags
    return operation
