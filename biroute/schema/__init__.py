"""Value schema layer: codecs, structs, transforms and route schemas."""

from .issues import Issue, IssueKind, SchemaError
from .codecs import Codec, CodecRegistry, default_registry, get_codec, register_codec
from .struct import ParamSchema, Struct, Transform, tagged
from .route_schema import RouteSchema, SchemaPart

__all__ = [
    "Issue",
    "IssueKind",
    "SchemaError",
    "Codec",
    "CodecRegistry",
    "default_registry",
    "get_codec",
    "register_codec",
    "ParamSchema",
    "Struct",
    "Transform",
    "tagged",
    "RouteSchema",
    "SchemaPart",
]
