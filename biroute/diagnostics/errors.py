"""
Diagnostic errors for biroute patterns.
"""

from dataclasses import dataclass
from typing import Any, List, Optional
from ..compiler.ast_nodes import Span


@dataclass(eq=False)
class PatternDiagnostic:
    """Base class for all pattern diagnostics."""
    message: str
    span: Optional[Span] = None
    file: Optional[str] = None
    suggestions: List[str] = None

    def __post_init__(self):
        if self.suggestions is None:
            self.suggestions = []

    def __str__(self) -> str:
        return self.message

    def format(self) -> str:
        """Format diagnostic for display."""
        error_type = self.__class__.__name__
        parts = [f"{error_type}: {self.message}"]

        if self.file and self.span:
            parts.append(f"  --> {self.file}:{self.span.line}:{self.span.column}")
        elif self.span:
            parts.append(f"  --> {self.span}")

        if self.suggestions:
            parts.append("\nSuggestions:")
            for i, suggestion in enumerate(self.suggestions, 1):
                parts.append(f"  {i}) {suggestion}")

        return "\n".join(parts)


class PatternSyntaxError(PatternDiagnostic, Exception):
    """Syntax error in pattern."""
    pass


class PatternSemanticError(PatternDiagnostic, Exception):
    """Semantic error in pattern."""
    pass


class InterpolationError(PatternDiagnostic, Exception):
    """Parameter map violates the interpolation contract of a pattern."""

    def __init__(self, message: str, key: Any = None, **kwargs):
        super().__init__(message, **kwargs)
        self.key = key

    def format(self) -> str:
        text = super().format()
        if self.key is not None:
            text += f"\n  parameter: {self.key!r}"
        return text
