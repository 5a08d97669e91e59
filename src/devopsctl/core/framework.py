"""
Core data structures and the module contract
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, TYPE_CHECKING, Union, runtime_checkable

from .severity import Severity

if TYPE_CHECKING:
    from .context import RunContext


@dataclass(frozen=True)
class Finding:
    """A single reported violation produced by a check.

    `severity` is normally a Severity member; producers that pass a raw
    string keep it as-is so that unrecognized values can be scored as 0.
    """
    check_name: str
    severity: Union[Severity, str]
    resource_id: str
    message: str
    recommendation: str = ""

    def __post_init__(self):
        parsed = Severity.parse(self.severity)
        if parsed is not None:
            object.__setattr__(self, "severity", parsed)

    def to_dict(self) -> Dict[str, Any]:
        """Convert finding to dictionary for JSON output"""
        severity = self.severity
        if isinstance(severity, Severity):
            severity = severity.value
        return {
            "check_name": self.check_name,
            "severity": severity,
            "resource_id": self.resource_id,
            "message": self.message,
            "recommendation": self.recommendation,
        }


@runtime_checkable
class Module(Protocol):
    """A named, independently runnable producer of findings.

    Any object with a `name` attribute and a `run(ctx)` method satisfies
    this contract; no base class is required. `run` either returns the
    module's findings or raises.
    """

    name: str

    def run(self, ctx: "RunContext") -> List[Finding]: ...


@dataclass
class ModuleReport:
    """Outcome of one module in one engine run.

    `findings` is None when the module failed outright; an empty `error`
    means the module succeeded.
    """
    module: str
    findings: Optional[List[Finding]] = field(default_factory=list)
    error: str = ""

    @property
    def failed(self) -> bool:
        return self.error != ""

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "module": self.module,
            "findings": [f.to_dict() for f in self.findings or []],
        }
        if self.error:
            data["error"] = self.error
        return data


@dataclass
class Report:
    """What a reporter renders: one module's (already filtered) findings"""
    module: str
    findings: List[Finding] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "module": self.module,
            "findings": [f.to_dict() for f in self.findings],
        }
