"""
Workflow Editor Configuration.

Controls where saved workflows live, the command name seeded into
new trigger nodes, and the length of generated node IDs.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from botflow.config.env_utils import read_env_defaults

_DEFAULT_DIR = Path(__file__).parent.parent.parent / "workflows"


@dataclass
class WorkflowConfig:
    """Workflow editor settings."""

    storage_dir: str = ""
    default_command_name: str = "mycommand"
    node_id_length: int = 8

    _ENV_MAP = {
        "storage_dir": "BOTFLOW_WORKFLOW_DIR",
        "default_command_name": "BOTFLOW_DEFAULT_COMMAND",
        "node_id_length": "BOTFLOW_NODE_ID_LENGTH",
    }

    def __post_init__(self) -> None:
        # IDs are cut from a 32-char uuid4 hex string
        self.node_id_length = max(4, min(32, int(self.node_id_length)))

    @classmethod
    def get_default_instance(cls) -> "WorkflowConfig":
        defaults = read_env_defaults(cls._ENV_MAP, cls.__dataclass_fields__)
        return cls(**defaults)

    @classmethod
    def get_config_name(cls) -> str:
        return "workflow"

    def resolve_storage_dir(self) -> Path:
        """Directory for saved workflow JSON files."""
        return Path(self.storage_dir) if self.storage_dir else _DEFAULT_DIR


# ── Singleton ──

_config_instance: Optional[WorkflowConfig] = None


def get_workflow_config() -> WorkflowConfig:
    """Return the global WorkflowConfig, read from the environment once."""
    global _config_instance
    if _config_instance is None:
        _config_instance = WorkflowConfig.get_default_instance()
    return _config_instance


def reset_workflow_config() -> None:
    """Forget the cached config so the next call re-reads the environment."""
    global _config_instance
    _config_instance = None
