"""Tests for the engine's sequential, failure-isolating run."""

from devopsctl.core.context import RunContext
from devopsctl.core.engine import Engine
from devopsctl.core.errors import ModulesFailedError, RunCancelledError
from devopsctl.core.registry import ModuleRegistry
from devopsctl.core.scoring import compute_summary, exit_code
from devopsctl.core.severity import Severity

from conftest import StubModule, make_finding


class CancellingModule:
    """Cancels the shared context, then honours it"""

    name = "canceller"

    def run(self, ctx):
        ctx.cancel()
        ctx.check()
        return []


def test_empty_engine_returns_no_reports():
    run = Engine().run_all()
    assert run.reports == []
    assert run.error is None


def test_successful_module_without_findings():
    engine = Engine()
    engine.register(StubModule("docker"))

    run = engine.run_all(RunContext())

    assert len(run.reports) == 1
    report = run.reports[0]
    assert report.module == "docker"
    assert report.findings == []
    assert report.error == ""
    assert run.error is None


def test_failing_module_is_isolated():
    engine = Engine()
    engine.register(StubModule("aws", findings=[make_finding(severity=Severity.HIGH)]))
    engine.register(StubModule("git", error=RuntimeError("git not found")))
    engine.register(StubModule("docker", findings=[make_finding(severity=Severity.LOW)]))

    run = engine.run_all()

    by_name = {r.module: r for r in run.reports}
    assert set(by_name) == {"aws", "git", "docker"}
    assert by_name["git"].error == "git not found"
    assert by_name["git"].findings is None
    assert by_name["aws"].error == "" and len(by_name["aws"].findings) == 1
    assert by_name["docker"].error == "" and len(by_name["docker"].findings) == 1

    assert isinstance(run.error, ModulesFailedError)
    assert run.error.failures == {"git": "git not found"}
    assert "git: git not found" in str(run.error)
    assert run.failed_modules == ["git"]


def test_exception_without_message_uses_type_name():
    engine = Engine()
    engine.register(StubModule("terraform", error=KeyError()))

    run = engine.run_all()

    assert run.reports[0].error == "KeyError"


def test_every_module_runs_once():
    modules = [StubModule(name) for name in ("a", "b", "c")]
    engine = Engine()
    for module in modules:
        engine.register(module)

    engine.run_all()

    assert [m.calls for m in modules] == [1, 1, 1]


def test_registry_is_injected():
    registry = ModuleRegistry()
    registry.register(StubModule("aws"))
    engine = Engine(registry)

    assert engine.registry is registry
    assert Engine().registry is not registry
    assert [r.module for r in engine.run_all().reports] == ["aws"]


def test_cancelled_context_fails_module_not_run():
    engine = Engine()
    engine.register(CancellingModule())
    engine.register(StubModule("after"))

    ctx = RunContext()
    run = engine.run_all(ctx)

    by_name = {r.module: r for r in run.reports}
    assert by_name["canceller"].error == "run cancelled"
    assert by_name["after"].error == ""
    assert ctx.cancelled


def test_expired_deadline_raises_on_check():
    ctx = RunContext(timeout=0)
    assert ctx.expired
    try:
        ctx.check()
    except RunCancelledError as e:
        assert str(e) == "deadline exceeded"
    else:
        raise AssertionError("expected RunCancelledError")


def test_timeout_for_is_bounded_by_deadline():
    assert RunContext().timeout_for(30.0) == 30.0
    assert RunContext(timeout=5).timeout_for(30.0) <= 5


def test_failed_module_does_not_affect_score_or_exit_code():
    engine = Engine()
    engine.register(StubModule("aws", findings=[make_finding(severity=Severity.MEDIUM)]))
    engine.register(StubModule("git", error=RuntimeError("boom")))

    reports = engine.run_all().reports
    summary = compute_summary(reports)

    assert summary.total_findings == 1
    assert summary.medium == 1
    assert summary.score == 2
    assert summary.modules_failed == 1
    assert summary.module_errors == {"git": "boom"}
    assert exit_code(reports) == 2
