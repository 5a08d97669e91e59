"""Core framework components for devopsctl"""

from .context import RunContext
from .engine import Engine, EngineRun
from .framework import Finding, Module, ModuleReport, Report
from .registry import ModuleRegistry
from .scoring import Summary, compute_summary, exit_code
from .severity import Severity

__all__ = [
    "RunContext",
    "Engine",
    "EngineRun",
    "Finding",
    "Module",
    "ModuleReport",
    "Report",
    "ModuleRegistry",
    "Summary",
    "compute_summary",
    "exit_code",
    "Severity",
]
