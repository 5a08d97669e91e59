"""
Base class for checks and the shared partial-failure runner
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, Tuple

from ..core.context import RunContext
from ..core.errors import ChecksFailedError
from ..core.framework import Finding
from ..core.provider import AWSProvider
from ..core.severity import Severity

logger = logging.getLogger(__name__)


class Check:
    """Base class for a single rule.

    Subclasses fill in the attributes in __init__ and add an `execute`
    method taking whatever collaborator their domain needs.
    """

    def __init__(self):
        self.check_name: str = ""
        self.severity: Severity = Severity.MEDIUM
        self.recommendation: str = ""

    def create_finding(self, resource_id: str, message: str,
                       severity: Optional[Severity] = None,
                       recommendation: Optional[str] = None) -> Finding:
        """Helper method to create a finding"""
        return Finding(
            check_name=self.check_name,
            severity=severity or self.severity,
            resource_id=resource_id,
            message=message,
            recommendation=self.recommendation if recommendation is None else recommendation,
        )


class AWSCheck(Check, ABC):
    """A check that inspects an AWS account through an AWSProvider"""

    @abstractmethod
    def execute(self, aws_provider: AWSProvider) -> List[Finding]:
        """Execute the check and return findings"""


@dataclass
class RunnerResult:
    """Findings collected by a domain runner plus the checks that failed"""
    findings: List[Finding] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    @property
    def error(self) -> Optional[ChecksFailedError]:
        if not self.errors:
            return None
        return ChecksFailedError(self.errors)


NamedCheck = Tuple[str, Callable[[], List[Finding]]]


def run_checks(checks: Sequence[NamedCheck], ctx: RunContext) -> RunnerResult:
    """Run checks in order; a failing check is recorded and skipped"""
    result = RunnerResult()
    for name, check in checks:
        try:
            ctx.check()
            findings = check()
        except Exception as e:
            logger.warning(f"Check {name} failed: {e}")
            result.errors.append(f"{name}: {e}")
            continue
        logger.debug(f"Completed check: {name} ({len(findings)} findings)")
        result.findings.extend(findings)
    return result
