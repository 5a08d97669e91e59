"""Domain checks and the runners that execute them"""

from .base import Check, RunnerResult, run_checks

__all__ = ["Check", "RunnerResult", "run_checks"]
