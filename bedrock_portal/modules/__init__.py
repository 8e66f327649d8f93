"""Module system for bedrock-portal.

This package provides:
- Module base class and metadata (base.py)
- Module registry (registry.py)
- Built-in modules, one subpackage each

Each built-in module subpackage exports a create_module() factory.
"""

import importlib
import logging
from pathlib import Path

from .base import Module, ModuleContext, ModuleMeta
from .registry import (
    DuplicateModuleError,
    InvalidModuleError,
    ModuleError,
    ModuleRegistry,
)

log = logging.getLogger("bedrock_portal.modules")

MODULES_DIR = Path(__file__).parent


def discover_modules(modules_dir: Path = MODULES_DIR) -> dict[str, type[Module]]:
    """Find built-in module classes.

    Returns:
        module name -> Module subclass
    """
    found: dict[str, type[Module]] = {}

    for path in sorted(modules_dir.iterdir()):
        if not path.is_dir() or path.name.startswith("_"):
            continue
        if not (path / "__init__.py").exists():
            continue

        try:
            package = importlib.import_module(f"{__name__}.{path.name}")
        except ImportError as e:
            log.warning("Failed to load module package %s: %s", path.name, e)
            continue

        create_module = getattr(package, "create_module", None)
        if create_module is None:
            log.debug("%s has no create_module(), skipping", path.name)
            continue

        instance = create_module()
        found[instance.meta.name] = type(instance)

    return found


def load_modules(registry: ModuleRegistry, modules_config: dict) -> list[Module]:
    """Register the built-in modules named in config.

    Args:
        registry: Registry to register into
        modules_config: {module_name: options}

    Raises:
        ModuleError: A configured module does not exist or is invalid
    """
    available = discover_modules()
    loaded = []
    for name, options in (modules_config or {}).items():
        module_class = available.get(name)
        if module_class is None:
            raise ModuleError(
                f"Unknown module: {name} (available: {', '.join(sorted(available)) or 'none'})"
            )
        loaded.append(registry.register(module_class, options or {}))
    return loaded


__all__ = [
    "Module",
    "ModuleContext",
    "ModuleMeta",
    "ModuleRegistry",
    "ModuleError",
    "DuplicateModuleError",
    "InvalidModuleError",
    "discover_modules",
    "load_modules",
]
