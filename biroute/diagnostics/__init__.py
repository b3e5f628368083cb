"""Diagnostics package."""

from .errors import (
    PatternDiagnostic,
    PatternSyntaxError,
    PatternSemanticError,
    InterpolationError,
)

__all__ = [
    "PatternDiagnostic",
    "PatternSyntaxError",
    "PatternSemanticError",
    "InterpolationError",
]
