"""
Core engine that orchestrates registered modules
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from .context import RunContext
from .errors import ModulesFailedError
from .framework import Module, ModuleReport
from .registry import ModuleRegistry

logger = logging.getLogger(__name__)


@dataclass
class EngineRun:
    """Reports from one engine run plus the advisory failure summary.

    `error` is informational: callers that only need the reports can
    ignore it and inspect each report's `error` instead.
    """
    reports: List[ModuleReport] = field(default_factory=list)
    error: Optional[ModulesFailedError] = None

    @property
    def failed_modules(self) -> List[str]:
        return [r.module for r in self.reports if r.failed]


class Engine:
    """Runs every registered module, isolating per-module failure"""

    def __init__(self, registry: Optional[ModuleRegistry] = None):
        self.registry = registry if registry is not None else ModuleRegistry()

    def register(self, module: Module):
        """Add a module to the engine's registry"""
        self.registry.register(module)

    def run_all(self, ctx: Optional[RunContext] = None) -> EngineRun:
        """Run modules sequentially in registry order"""
        if ctx is None:
            ctx = RunContext()

        names = self.registry.names()
        logger.info(f"Running {len(names)} modules...")

        reports = []
        for name in names:
            module = self.registry.get(name)
            if module is None:
                continue
            reports.append(self._run_module(name, module, ctx))

        failures = {r.module: r.error for r in reports if r.failed}
        error = ModulesFailedError(failures) if failures else None

        logger.info(f"Run completed. {len(reports)} modules, {len(failures)} failed")
        return EngineRun(reports=reports, error=error)

    @staticmethod
    def _run_module(name: str, module: Module, ctx: RunContext) -> ModuleReport:
        try:
            findings = module.run(ctx)
        except Exception as e:
            message = str(e) or type(e).__name__
            logger.error(f"Module {name} failed: {message}")
            return ModuleReport(module=name, findings=None, error=message)

        findings = list(findings or [])
        logger.info(f"Completed module: {name} ({len(findings)} findings)")
        return ModuleReport(module=name, findings=findings)
