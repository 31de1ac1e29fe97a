"""
Diagnostics Runner

Gates each diagnostic on ``can_run()``, runs the ones that may run and
collects their results.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from .diagnostics import Diagnostic, DiagnosticError, DiagnosticResult, Level

logger = logging.getLogger(__name__)


@dataclass
class DiagnosticRun:
    """
    Outcome of running (or skipping) one diagnostic.

    Attributes:
        name: Diagnostic name
        description: Diagnostic description
        result: Findings, None when skipped
        reason: Why the diagnostic was skipped
        duration_ms: Time spent in check()
    """
    name: str
    description: str
    result: Optional[DiagnosticResult] = None
    reason: Optional[DiagnosticError] = None
    duration_ms: float = 0.0

    @property
    def skipped(self) -> bool:
        return self.result is None

    @property
    def failed(self) -> bool:
        return self.result is not None and self.result.failed

    def to_dict(self, min_level: Level = Level.DEBUG) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "skipped": self.skipped,
            "reason": self.reason.to_dict() if self.reason else None,
            "duration_ms": self.duration_ms,
            "result": self.result.to_dict(min_level) if self.result else None,
        }


def run_diagnostic(diagnostic: Diagnostic) -> DiagnosticRun:
    """Run a single diagnostic if its preconditions hold."""
    run = DiagnosticRun(name=diagnostic.name, description=diagnostic.description)

    can_run, reason = diagnostic.can_run()
    if not can_run:
        logger.info(f"Skipping diagnostic {diagnostic.name}: {reason}")
        run.reason = reason
        return run

    logger.debug(f"Running diagnostic {diagnostic.name}")
    start_time = time.time()
    try:
        result = diagnostic.check()
    except Exception as e:
        logger.exception(f"Diagnostic {diagnostic.name} raised unexpectedly")
        result = DiagnosticResult(diagnostic.name)
        result.error("DRun0001", "Diagnostic %s failed unexpectedly: (%s) %s",
                     diagnostic.name, type(e).__name__, e, err=e)
    result.close()

    run.result = result
    run.duration_ms = (time.time() - start_time) * 1000
    return run


def run_diagnostics(diagnostics: Iterable[Diagnostic]) -> List[DiagnosticRun]:
    """Run diagnostics in order and return one DiagnosticRun each."""
    return [run_diagnostic(d) for d in diagnostics]


def summarize(runs: List[DiagnosticRun]) -> Dict[str, Any]:
    """Aggregate counts across runs."""
    findings = {level.label: 0 for level in Level}
    for run in runs:
        if run.result:
            for label, count in run.result.counts().items():
                findings[label] += count

    return {
        "total": len(runs),
        "passed": sum(1 for r in runs if not r.skipped and not r.failed),
        "failed": sum(1 for r in runs if r.failed),
        "skipped": sum(1 for r in runs if r.skipped),
        "findings": findings,
    }
