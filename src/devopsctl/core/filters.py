"""
Post-processing filters applied to a finding list before rendering
"""

from typing import Iterable, List, Sequence

from .framework import Finding
from .severity import Severity

# Levels kept in quiet mode
QUIET_LEVELS = (Severity.CRITICAL, Severity.HIGH)


def filter_by_ignore(findings: Iterable[Finding], ignore: Sequence[str]) -> List[Finding]:
    """Drop findings whose check name exactly matches an ignore entry"""
    ignored = set(ignore or ())
    return [f for f in findings if f.check_name not in ignored]


def filter_by_severity(findings: Iterable[Finding], quiet: bool,
                       levels: Sequence[Severity] = QUIET_LEVELS) -> List[Finding]:
    """In quiet mode, keep only findings at the given levels"""
    if not quiet:
        return list(findings)
    return [f for f in findings if Severity.parse(f.severity) in levels]


def apply_filters(findings: Iterable[Finding], ignore: Sequence[str] = (),
                  quiet: bool = False) -> List[Finding]:
    """Apply the ignore list and quiet mode; the two commute"""
    return filter_by_severity(filter_by_ignore(findings, ignore), quiet)
