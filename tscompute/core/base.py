"""
Master computation configuration.

Master computations own their configuration (declared outputs, default
parameters). Built-ins ship a .yaml beside their .py; user computations
pass the same information to MasterRegistry.register().
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml


@dataclass
class MasterConfig:
    """
    Configuration for one master computation.

    outputs:
        Named fields of the dict the computation returns. An empty list means
        the computation returns a single scalar. None means the outputs are
        not declared and operation fields are only checked at extraction time.
    """
    name: str
    version: str = "1.0"
    outputs: Optional[List[str]] = None
    params: Dict[str, Any] = field(default_factory=dict)
    description: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_scalar(self) -> bool:
        return self.outputs is not None and len(self.outputs) == 0

    def declares(self, output_name: str) -> bool:
        """True if output_name is a declared output (or outputs are undeclared)."""
        if self.outputs is None:
            return True
        return output_name in self.outputs


def load_master_config(config_path: Path) -> MasterConfig:
    """Load master computation configuration from a YAML file."""
    with open(config_path) as f:
        raw = yaml.safe_load(f)

    outputs = raw.get('outputs')
    return MasterConfig(
        name=raw['master'],
        version=str(raw.get('version', '1.0')),
        outputs=list(outputs) if outputs is not None else None,
        params=raw.get('params') or {},
        description=raw.get('description', ''),
        metadata=raw.get('metadata') or {},
    )
