"""Module registry - registration and lifecycle of background modules.

The registry handles:
- Module registration and validation
- Option merging
- Starting each module as its own task
- Cooperative stop
"""

import asyncio
import logging
from typing import Optional

from ..errors import PortalError
from .base import Module, ModuleContext, ModuleMeta

log = logging.getLogger("bedrock_portal.modules")


class ModuleError(PortalError):
    """Error during module operations."""

    pass


class DuplicateModuleError(ModuleError):
    """A module with the same name is already registered."""

    pass


class InvalidModuleError(ModuleError):
    """Value does not satisfy the module contract."""

    pass


class ModuleRegistry:
    """Holds the modules attached to one portal."""

    def __init__(self):
        self._modules: dict[str, Module] = {}  # name -> instance
        self._tasks: dict[str, asyncio.Task] = {}

    def register(self, module, options: Optional[dict] = None) -> Module:
        """Validate and register a module.

        Args:
            module: Module subclass or instance
            options: Overrides for the module's defaults

        Returns:
            Module instance

        Raises:
            InvalidModuleError: Not a usable Module
            DuplicateModuleError: Name already registered
        """
        if isinstance(module, type):
            if not issubclass(module, Module):
                raise InvalidModuleError(f"Invalid module: {module} is not a Module subclass")
            try:
                module = module()
            except Exception as e:
                raise InvalidModuleError(f"Failed to instantiate module {module.__name__}: {e}")

        if not isinstance(module, Module):
            raise InvalidModuleError(f"Invalid module: {module!r} must extend Module")

        meta = getattr(module, "meta", None)
        if not isinstance(meta, ModuleMeta):
            raise InvalidModuleError(
                f"Module {type(module).__name__} missing valid 'meta' attribute"
            )

        if not callable(getattr(module, "run", None)):
            raise InvalidModuleError(f"Module {meta.name} must have a run function")

        if meta.name in self._modules:
            raise DuplicateModuleError(f"Module with name {meta.name} has already been loaded")

        module.apply_options(options or {})
        self._modules[meta.name] = module
        log.debug("Enabled module: %s with options: %s", meta.name, module.options)
        return module

    def get(self, name: str) -> Optional[Module]:
        return self._modules.get(name)

    def all_modules(self) -> list[Module]:
        """All registered modules in registration order."""
        return list(self._modules.values())

    def __contains__(self, name: str) -> bool:
        return name in self._modules

    def __len__(self) -> int:
        return len(self._modules)

    def start_all(self, portal, context: ModuleContext) -> None:
        """Start every module as an independent task.

        A module that fails, at startup or later, is logged and does not
        affect the others.
        """
        for name, module in self._modules.items():
            task = self._tasks.get(name)
            if task and not task.done():
                continue
            module.reset()
            self._tasks[name] = asyncio.create_task(
                self._run_module(module, portal, context), name=f"module:{name}"
            )

    async def _run_module(self, module: Module, portal, context: ModuleContext) -> None:
        log.debug("Module %s has run", module.name)
        try:
            await module.run(portal, context)
        except asyncio.CancelledError:
            raise
        except Exception:
            log.exception("Module %s failed", module.name)
        else:
            log.debug("Module %s stopped", module.name)

    def stop_all(self) -> None:
        """Ask every module to stop. Does not cancel in-flight work."""
        for module in self._modules.values():
            module.stop()

    async def wait_stopped(self, timeout: Optional[float] = None) -> bool:
        """Wait for module tasks to finish.

        Returns:
            True if all module tasks finished within timeout
        """
        tasks = [t for t in self._tasks.values() if not t.done()]
        if not tasks:
            return True
        _, pending = await asyncio.wait(tasks, timeout=timeout)
        return not pending

    def list_modules(self) -> list[dict]:
        """List registered modules with metadata."""
        return [
            {
                "name": module.meta.name,
                "description": module.meta.description,
                "version": module.meta.version,
                "stopped": module.stopped,
                "options": dict(module.options),
            }
            for module in self.all_modules()
        ]
