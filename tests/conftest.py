"""
Pytest configuration and shared fixtures.

Usage:
    pytest tests/ -v
"""

import pytest

from devopsctl.core.context import RunContext
from devopsctl.core.framework import Finding
from devopsctl.core.severity import Severity


def make_finding(check_name="check", severity=Severity.LOW, resource_id="res",
                 message="msg", recommendation="") -> Finding:
    return Finding(
        check_name=check_name,
        severity=severity,
        resource_id=resource_id,
        message=message,
        recommendation=recommendation,
    )


class StubModule:
    """Module returning fixed findings, or raising a fixed error"""

    def __init__(self, name, findings=None, error=None):
        self.name = name
        self.findings = findings or []
        self.error = error
        self.calls = 0

    def run(self, ctx):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return list(self.findings)


@pytest.fixture
def ctx():
    return RunContext()


@pytest.fixture
def aws_credentials(monkeypatch):
    """Fake credentials so moto-backed clients never reach real AWS"""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SECURITY_TOKEN", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")
    monkeypatch.delenv("AWS_PROFILE", raising=False)
