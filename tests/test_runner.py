"""
Tests for the diagnostics runner, reporting and scheduler
"""

import json
from unittest.mock import Mock

import pytest
from rich.console import Console

from kubediag.diagnostics import Diagnostic, DiagnosticError, Level
from kubediag.report import render_catalog, render_json, render_text
from kubediag.runner import run_diagnostic, run_diagnostics, summarize
from kubediag.scheduler import DiagnosticScheduler


class FakeDiagnostic(Diagnostic):
    """Configurable diagnostic for runner tests."""

    def __init__(self, name="Fake", runnable=True, level=None, raises=None):
        self.NAME = name
        self.DESCRIPTION = f"{name} description"
        self.runnable = runnable
        self.level = level
        self.raises = raises
        self.check_calls = 0

    def can_run(self):
        if self.runnable:
            return True, None
        return False, DiagnosticError("F0", f"{self.NAME} is not configured")

    def check(self):
        self.check_calls += 1
        if self.raises:
            raise self.raises
        r = self.new_result()
        r.debug("F1", "starting")
        if self.level == Level.ERROR:
            r.error("F2", "broken: %s", "disk full")
        elif self.level == Level.WARNING:
            r.warn("F3", "odd")
        return r


class TestRunner:
    """Tests for run_diagnostic(s)."""

    def test_skips_when_cannot_run(self):
        """check() is never called when the gate says no."""
        d = FakeDiagnostic(runnable=False)

        run = run_diagnostic(d)

        assert run.skipped
        assert not run.failed
        assert run.result is None
        assert run.reason.code == "F0"
        assert d.check_calls == 0

    def test_runs_and_closes_result(self):
        run = run_diagnostic(FakeDiagnostic(level=Level.WARNING))

        assert not run.skipped
        assert not run.failed
        assert run.result.closed
        assert [f.code for f in run.result.findings] == ["F1", "F3"]

    def test_failed(self):
        run = run_diagnostic(FakeDiagnostic(level=Level.ERROR))

        assert run.failed

    def test_unexpected_exception_becomes_finding(self):
        run = run_diagnostic(FakeDiagnostic(raises=RuntimeError("kaboom")))

        assert run.failed
        finding = run.result.errors[0]
        assert finding.code == "DRun0001"
        assert isinstance(finding.error, RuntimeError)
        assert "kaboom" in finding.text

    def test_runs_in_order(self):
        runs = run_diagnostics([FakeDiagnostic("A"), FakeDiagnostic("B", runnable=False), FakeDiagnostic("C")])

        assert [r.name for r in runs] == ["A", "B", "C"]
        assert [r.skipped for r in runs] == [False, True, False]

    def test_summarize(self):
        runs = run_diagnostics([
            FakeDiagnostic("A"),
            FakeDiagnostic("B", level=Level.ERROR),
            FakeDiagnostic("C", runnable=False),
            FakeDiagnostic("D", level=Level.WARNING),
        ])

        summary = summarize(runs)

        assert summary["total"] == 4
        assert summary["passed"] == 2
        assert summary["failed"] == 1
        assert summary["skipped"] == 1
        assert summary["findings"] == {"debug": 3, "info": 0, "warning": 1, "error": 1}


class TestReport:
    """Tests for rendering."""

    @pytest.fixture
    def runs(self):
        return run_diagnostics([
            FakeDiagnostic("Healthy"),
            FakeDiagnostic("Broken", level=Level.ERROR),
            FakeDiagnostic("Unconfigured", runnable=False),
        ])

    def test_render_json(self, runs):
        data = json.loads(render_json(runs, min_level=Level.INFO))

        assert data["summary"]["failed"] == 1
        names = [d["name"] for d in data["diagnostics"]]
        assert names == ["Healthy", "Broken", "Unconfigured"]
        broken = data["diagnostics"][1]["result"]
        assert [f["code"] for f in broken["findings"]] == ["F2"]
        assert broken["findings"][0]["message"] == "broken: disk full"
        assert data["diagnostics"][2]["reason"]["code"] == "F0"

    def test_render_text(self, runs):
        console = Console(record=True, width=120)

        render_text(runs, console=console, min_level=Level.INFO)
        output = console.export_text()

        assert "Broken - failed" in output
        assert "Healthy - passed" in output
        assert "Unconfigured - skipped" in output
        assert "[F2]" in output
        assert "broken: disk full" in output
        assert "[F1]" not in output
        assert "1 failed" in output

    def test_render_catalog(self):
        console = Console(record=True, width=120)

        render_catalog([FakeDiagnostic("A"), FakeDiagnostic("B", runnable=False)], console=console)
        output = console.export_text()

        assert "A description" in output
        assert "B is not configured" in output


class TestScheduler:
    """Tests for DiagnosticScheduler."""

    def test_run_now(self):
        scheduler = DiagnosticScheduler(lambda: [FakeDiagnostic("A")], interval_seconds=60)

        runs = scheduler.run_now()

        assert [r.name for r in runs] == ["A"]
        assert scheduler.last_runs == runs
        assert len(scheduler.get_history()) == 1
        assert scheduler.get_history()[0]["passed"] == 1

    def test_callbacks(self):
        scheduler = DiagnosticScheduler(lambda: [FakeDiagnostic("B", level=Level.ERROR)])
        scheduler.on_run_complete = Mock()
        scheduler.on_failure = Mock()

        runs = scheduler.run_now()

        scheduler.on_run_complete.assert_called_once_with(runs)
        scheduler.on_failure.assert_called_once_with(runs)

    def test_no_failure_callback_when_healthy(self):
        scheduler = DiagnosticScheduler(lambda: [FakeDiagnostic("A")])
        scheduler.on_failure = Mock()

        scheduler.run_now()

        scheduler.on_failure.assert_not_called()

    def test_history_is_bounded(self):
        scheduler = DiagnosticScheduler(lambda: [FakeDiagnostic("A")], max_history=3)

        for _ in range(5):
            scheduler.run_now()

        assert len(scheduler.get_history(limit=10)) == 3

    def test_factory_error(self):
        scheduler = DiagnosticScheduler(Mock(side_effect=RuntimeError("no config")))

        assert scheduler.run_now() == []
        assert scheduler.last_runs is None

    def test_status_when_stopped(self):
        scheduler = DiagnosticScheduler(lambda: [], interval_seconds=30)

        status = scheduler.get_status()

        assert status["running"] is False
        assert status["interval_seconds"] == 30
        assert status["last_run"] is None

    def test_start_and_stop(self):
        scheduler = DiagnosticScheduler(lambda: [FakeDiagnostic("A")], interval_seconds=3600)

        scheduler.start()
        try:
            assert scheduler.is_running
        finally:
            scheduler.stop()

        assert not scheduler.is_running
