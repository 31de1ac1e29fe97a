"""kubediag Package"""

__version__ = "0.1.0"

from .diagnostics import (
    Diagnostic,
    DiagnosticError,
    DiagnosticResult,
    Finding,
    Level,
)

__all__ = [
    "Diagnostic",
    "DiagnosticError",
    "DiagnosticResult",
    "Finding",
    "Level",
]
