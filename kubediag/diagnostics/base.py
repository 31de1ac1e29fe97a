"""
Diagnostic Base Class
"""

from abc import ABC, abstractmethod
from typing import Optional, Tuple

from .models import DiagnosticError, DiagnosticResult


class Diagnostic(ABC):
    """
    Base class for all diagnostics.

    A diagnostic holds only read-only configuration injected at
    construction. Callers ask ``can_run()`` first and only then call
    ``check()``, which always returns a populated ``DiagnosticResult``
    and never raises.
    """

    NAME: str = "Diagnostic"
    DESCRIPTION: str = "Base diagnostic class"

    @property
    def name(self) -> str:
        """Stable identifier, also the result's namespace."""
        return self.NAME

    @property
    def description(self) -> str:
        return self.DESCRIPTION

    @abstractmethod
    def can_run(self) -> Tuple[bool, Optional[DiagnosticError]]:
        """
        Precondition gate. Must be free of side effects.

        Returns:
            (True, None) when the diagnostic can run, otherwise
            (False, DiagnosticError) describing what is missing
        """
        pass

    @abstractmethod
    def check(self) -> DiagnosticResult:
        """Run the diagnostic and return its findings."""
        pass

    def new_result(self) -> DiagnosticResult:
        return DiagnosticResult(self.name)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"
