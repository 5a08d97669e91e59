"""
Aggregate scoring and exit-code derivation over module reports

Both computations are pure and recomputed from the report list on every
call. The summary is a volume-sensitive health metric; the exit code is a
worst-case gate. They are deliberately independent of each other.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from .framework import Finding, ModuleReport
from .severity import Severity, highest, weight
from . import severity as _severity


@dataclass
class Summary:
    """Aggregate statistics for one engine run"""
    total_findings: int = 0
    critical: int = 0
    high: int = 0
    medium: int = 0
    low: int = 0
    score: int = 0
    modules_failed: int = 0
    module_errors: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "total_findings": self.total_findings,
            "critical": self.critical,
            "high": self.high,
            "medium": self.medium,
            "low": self.low,
            "score": self.score,
            "modules_failed": self.modules_failed,
        }
        if self.module_errors:
            data["module_errors"] = dict(self.module_errors)
        return data


_BUCKETS = {
    Severity.CRITICAL: "critical",
    Severity.HIGH: "high",
    Severity.MEDIUM: "medium",
    Severity.LOW: "low",
}


def compute_summary(reports: Iterable[ModuleReport]) -> Summary:
    """Calculate aggregate statistics from module reports.

    A failed module contributes only to `modules_failed` and
    `module_errors`; any findings it carries are discarded. Every finding
    of a successful module counts toward `total_findings`, but only
    recognized severities reach the per-level counters and the score.
    """
    summary = Summary()

    for report in reports:
        if report.error:
            summary.modules_failed += 1
            summary.module_errors[report.module] = report.error
            continue

        for finding in report.findings or []:
            summary.total_findings += 1

            level = Severity.parse(finding.severity)
            if level is None:
                continue
            bucket = _BUCKETS[level]
            setattr(summary, bucket, getattr(summary, bucket) + 1)
            summary.score += weight(level)

    return summary


def _successful_findings(reports: Iterable[ModuleReport]) -> List[Finding]:
    findings = []
    for report in reports:
        if report.error:
            continue
        findings.extend(report.findings or [])
    return findings


def highest_severity(reports: Iterable[ModuleReport]) -> Optional[Severity]:
    """Return the highest severity collected from successful modules"""
    return highest(f.severity for f in _successful_findings(reports))


def exit_code(reports: Iterable[ModuleReport]) -> int:
    """Exit code for a whole run: 0 when nothing was found"""
    return _severity.exit_code(highest_severity(reports))


def exit_code_for_findings(findings: Iterable[Finding]) -> int:
    """Exit code for a single flat finding list"""
    return _severity.exit_code(highest(f.severity for f in findings))
