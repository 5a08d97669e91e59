"""
Registry for managing audit modules
"""

from typing import Dict, List, Optional

from .errors import EmptyModuleNameError, ModuleAlreadyRegisteredError, NilModuleError
from .framework import Module


class ModuleRegistry:
    """Registry of modules keyed by unique name.

    Populated once during setup; the engine only reads from it.
    """

    def __init__(self):
        self.modules: Dict[str, Module] = {}

    def register(self, module: Module):
        """Register a module"""
        if module is None:
            raise NilModuleError()
        name = module.name
        if not name:
            raise EmptyModuleNameError()
        if name in self.modules:
            raise ModuleAlreadyRegisteredError(name)
        self.modules[name] = module

    def get(self, name: str) -> Optional[Module]:
        """Get a specific module by name"""
        return self.modules.get(name)

    def names(self) -> List[str]:
        """List all registered module names, in registration order"""
        return list(self.modules)

    def __len__(self) -> int:
        return len(self.modules)

    def __contains__(self, name) -> bool:
        return name in self.modules
