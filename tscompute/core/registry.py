"""
Master Registry - discovers and loads master computations.

The registry provides:
1. Auto-discovery of built-in masters with .yaml config files
2. Lazy loading of master compute functions
3. Registration of user computations at runtime

A master operation in the catalog names its computation by `code`; the
registry turns that name into a callable plus its declared outputs.
"""

import importlib
import importlib.util
import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from .base import MasterConfig, load_master_config

logger = logging.getLogger(__name__)

BUILTIN_MASTERS_DIR = Path(__file__).parent / "masters"


class MasterRegistry:
    """
    Registry of available master computations.

    Discovers built-ins by scanning for .yaml files in the masters directory.
    """

    def __init__(self, masters_dir: Optional[Path] = None, discover: bool = True):
        if masters_dir is None:
            masters_dir = BUILTIN_MASTERS_DIR

        self.masters_dir = Path(masters_dir)
        self._configs: Dict[str, MasterConfig] = {}
        self._compute_funcs: Dict[str, Callable] = {}

        if discover:
            self._discover_masters()

    def _discover_masters(self):
        """Find all masters with .yaml config files."""
        for config_path in sorted(self.masters_dir.glob("*.yaml")):
            name = config_path.stem
            if name.startswith("_"):
                continue

            try:
                self._configs[name] = load_master_config(config_path)
            except (OSError, KeyError, TypeError, ValueError) as e:
                logger.warning(f"Failed to load config for master '{name}': {e}")

    def register(
        self,
        name: str,
        func: Callable,
        outputs: Optional[List[str]] = None,
        params: Optional[Dict[str, Any]] = None,
        version: str = "1.0",
        description: str = "",
    ) -> None:
        """
        Register a master computation.

        Args:
            name: Code name referenced by MasterOperation.code
            func: Callable taking a 1-D array and keyword params, returning a
                  dict of outputs (or a scalar when outputs == [])
            outputs: Declared output names (None = undeclared)
            params: Default keyword parameters
        """
        self._configs[name] = MasterConfig(
            name=name,
            version=version,
            outputs=list(outputs) if outputs is not None else None,
            params=dict(params or {}),
            description=description,
        )
        self._compute_funcs[name] = func

    def list_masters(self) -> List[str]:
        """List all available master names."""
        return sorted(self._configs.keys())

    def has_master(self, name: str) -> bool:
        """Check if a master exists in the registry."""
        return name in self._configs

    def get_config(self, name: str) -> MasterConfig:
        """Get configuration for a master."""
        if name not in self._configs:
            available = ", ".join(self.list_masters())
            raise KeyError(
                f"Unknown master: '{name}'. Available: {available}"
            )
        return self._configs[name]

    def get_compute_func(self, name: str) -> Callable:
        """
        Get compute function for a master.

        Lazily imports the module beside the .yaml on first access.
        """
        if name not in self._compute_funcs:
            self.get_config(name)
            try:
                module = self._load_module(name)
                self._compute_funcs[name] = module.compute
            except (ImportError, AttributeError, OSError, SyntaxError) as e:
                raise ImportError(
                    f"Could not load compute function for '{name}': {e}"
                )

        return self._compute_funcs[name]

    def _load_module(self, name: str):
        """Import <masters_dir>/<name>.py (the package module for built-ins)."""
        if self.masters_dir.resolve() == BUILTIN_MASTERS_DIR.resolve():
            return importlib.import_module(f"tscompute.core.masters.{name}")

        path = self.masters_dir / f"{name}.py"
        if not path.exists():
            raise ImportError(f"no module file {path}")

        # Not registered in sys.modules: process workers get compute by value
        spec = importlib.util.spec_from_file_location(f"_tscompute_master_{name}", path)
        module = importlib.util.module_from_spec(spec)
        spec.loader.exec_module(module)
        return module

    def get_outputs(self, name: str) -> Optional[List[str]]:
        """Get declared outputs for a master."""
        return self.get_config(name).outputs

    def get_params(self, name: str, overrides: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Default params for a master, updated with catalog overrides."""
        params = dict(self.get_config(name).params)
        if overrides:
            params.update(overrides)
        return params


# Global registry instance (lazy initialized)
_registry: Optional[MasterRegistry] = None


def get_registry() -> MasterRegistry:
    """Get or create global master registry."""
    global _registry
    if _registry is None:
        _registry = MasterRegistry()
    return _registry


def reset_registry():
    """Reset the global registry (for testing)."""
    global _registry
    _registry = None
