"""
Diagnostics Core

The diagnostic contract, its result sink and the line scanner used to
walk streamed logs.
"""

from .models import DiagnosticError, DiagnosticResult, Finding, Level, Message
from .base import Diagnostic
from .scanner import LineScanner, ScannerError

__all__ = [
    "Diagnostic",
    "DiagnosticError",
    "DiagnosticResult",
    "Finding",
    "Level",
    "Message",
    "LineScanner",
    "ScannerError",
]
