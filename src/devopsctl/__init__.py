"""
devopsctl - Infrastructure hygiene and DevOps validation toolkit

Runs audit checks against AWS accounts, Dockerfiles, Terraform
configurations and Git repositories, and aggregates the results into a
scored health report.
"""

__version__ = "1.0.0"

from .core.engine import Engine, EngineRun
from .core.framework import Finding, Module, ModuleReport, Report
from .core.registry import ModuleRegistry
from .core.severity import Severity

__all__ = [
    "Engine",
    "EngineRun",
    "Finding",
    "Module",
    "ModuleReport",
    "ModuleRegistry",
    "Report",
    "Severity",
]
