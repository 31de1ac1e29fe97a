"""
Diagnostics Scheduler

Uses APScheduler to run a set of diagnostics periodically.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from . import config
from .diagnostics import Diagnostic
from .runner import DiagnosticRun, run_diagnostics, summarize

logger = logging.getLogger(__name__)


class DiagnosticScheduler:
    """
    Scheduled diagnostics runner.

    Runs the diagnostics built by ``factory`` every ``interval_seconds`` and
    keeps a bounded history of summaries.

    Example:
        scheduler = DiagnosticScheduler(lambda: [ClusterRouter(cluster)], interval_seconds=60)
        scheduler.on_failure = lambda runs: print("router is unhealthy")
        scheduler.start()
        # ...
        scheduler.stop()
    """

    def __init__(
        self,
        factory: Callable[[], List[Diagnostic]],
        interval_seconds: int = config.WATCH_INTERVAL,
        max_history: int = config.HISTORY_SIZE,
    ):
        self.factory = factory
        self.interval_seconds = interval_seconds

        self._scheduler: Optional[BackgroundScheduler] = None
        self._last_runs: Optional[List[DiagnosticRun]] = None
        self._history: List[Dict[str, Any]] = []
        self._max_history = max_history

        # Callbacks
        self.on_run_complete: Optional[Callable[[List[DiagnosticRun]], None]] = None
        self.on_failure: Optional[Callable[[List[DiagnosticRun]], None]] = None

    @property
    def is_running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    @property
    def last_runs(self) -> Optional[List[DiagnosticRun]]:
        return self._last_runs

    def start(self) -> None:
        """Start running diagnostics on the interval, beginning now."""
        if self.is_running:
            logger.warning("Diagnostic scheduler is already running")
            return

        self._scheduler = BackgroundScheduler()
        self._scheduler.add_job(
            self._run,
            trigger=IntervalTrigger(seconds=self.interval_seconds),
            id="diagnostics",
            name="Periodic Diagnostics",
            replace_existing=True,
            max_instances=1,
            next_run_time=datetime.now(timezone.utc),
        )
        self._scheduler.start()
        logger.info(f"Diagnostic scheduler started (interval={self.interval_seconds}s)")

    def stop(self) -> None:
        if self._scheduler and self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            logger.info("Diagnostic scheduler stopped")

        self._scheduler = None

    def run_now(self) -> List[DiagnosticRun]:
        """Run the diagnostics immediately, outside of the schedule."""
        return self._run()

    def _run(self) -> List[DiagnosticRun]:
        logger.debug("Running scheduled diagnostics")

        try:
            runs = run_diagnostics(self.factory())
        except Exception as e:
            logger.error(f"Building diagnostics failed: {e}")
            return []

        summary = summarize(runs)
        self._store(summary)

        if self.on_run_complete:
            self.on_run_complete(runs)

        if summary["failed"]:
            failed = [r.name for r in runs if r.failed]
            logger.warning(f"Diagnostics failed: {', '.join(failed)}")
            if self.on_failure:
                self.on_failure(runs)

        self._last_runs = runs
        return runs

    def _store(self, summary: Dict[str, Any]) -> None:
        entry = dict(summary, timestamp=datetime.now(timezone.utc).isoformat())
        self._history.append(entry)

        # Trim history
        if len(self._history) > self._max_history:
            self._history = self._history[-self._max_history:]

    def get_history(self, limit: int = 10) -> List[Dict[str, Any]]:
        return self._history[-limit:]

    def get_status(self) -> Dict[str, Any]:
        return {
            "running": self.is_running,
            "interval_seconds": self.interval_seconds,
            "last_run": [r.to_dict() for r in self._last_runs] if self._last_runs else None,
            "history_count": len(self._history),
        }
