"""
Exception hierarchy shared by the engine, registry and runners
"""

from typing import Dict, List


class DevopsctlError(Exception):
    """Base class for all devopsctl errors"""


class RegistryError(DevopsctlError):
    """Raised when a module cannot be registered"""


class NilModuleError(RegistryError):
    def __init__(self):
        super().__init__("nil module not allowed")


class EmptyModuleNameError(RegistryError):
    def __init__(self):
        super().__init__("module name cannot be empty")


class ModuleAlreadyRegisteredError(RegistryError):
    def __init__(self, name: str = ""):
        self.name = name
        message = "module already registered"
        if name:
            message = f"{message}: {name}"
        super().__init__(message)


class ModulesFailedError(DevopsctlError):
    """Advisory summary of the modules that failed during an engine run.

    Returned by the engine alongside the reports, never raised by it.
    """

    def __init__(self, failures: Dict[str, str]):
        self.failures = dict(failures)
        pairs = ", ".join(f"{name}: {message}" for name, message in self.failures.items())
        super().__init__(f"some modules failed: [{pairs}]")


class ChecksFailedError(DevopsctlError):
    """Advisory summary of the checks that failed inside a domain runner"""

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__(f"some checks failed: [{', '.join(self.errors)}]")


class ConfigError(DevopsctlError):
    """Raised when a configuration file cannot be loaded"""


class RunCancelledError(DevopsctlError):
    """Raised by a module when its run context was cancelled or timed out"""


class CommandError(DevopsctlError):
    """Raised when an external command (git, terraform, trivy) fails"""

    def __init__(self, command: str, message: str, returncode: int = None):
        self.command = command
        self.returncode = returncode
        super().__init__(f"{command}: {message}")
