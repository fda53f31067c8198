"""
Workflow Store — JSON-file persistence for saved command workflows.

One ``<workflow id>.json`` file per workflow under
``WorkflowConfig.storage_dir``. Saves carry a version number; passing
the version a caller last read turns a save into a compare-and-set.
Unreadable files are logged and skipped, never raised, so one bad
file cannot hide the rest of the command list.
"""

from __future__ import annotations

import re
from logging import getLogger
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import ValidationError

from botflow.config import get_workflow_config
from botflow.workflow.exceptions import VersionConflictError
from botflow.workflow.workflow_model import WorkflowDefinition, WorkflowGraph

logger = getLogger(__name__)

_UNSAFE_ID_CHARS = re.compile(r"[^A-Za-z0-9_-]")


class WorkflowStore:
    """Saved command workflows, one JSON file per workflow ID."""

    def __init__(self, storage_dir: Optional[Path] = None) -> None:
        self._dir = Path(storage_dir) if storage_dir else get_workflow_config().resolve_storage_dir()
        self._dir.mkdir(parents=True, exist_ok=True)
        logger.info(f"WorkflowStore initialized at {self._dir}")

    @property
    def storage_dir(self) -> Path:
        return self._dir

    # ── Writing ──

    def save(
        self,
        workflow: WorkflowDefinition,
        expected_version: Optional[int] = None,
    ) -> WorkflowDefinition:
        """Save (create or update) a workflow definition.

        The version is set to one past the version currently on disk
        (1 for a new workflow) and written back to ``workflow``. The
        file is replaced in one rename, so readers never see half a
        workflow.

        Raises:
            VersionConflictError: ``expected_version`` was given and
                does not match the version currently on disk.
        """
        path = self._file_for(workflow.id)
        current = self._read(path)
        actual = current.version if current is not None else None
        if expected_version is not None and actual != expected_version:
            raise VersionConflictError(workflow.id, expected_version, actual)

        workflow.version = (actual or 0) + 1
        workflow.touch()
        staging = path.with_name(f"{path.name}.tmp")
        staging.write_text(workflow.model_dump_json(indent=2), encoding="utf-8")
        staging.replace(path)
        logger.info(
            f"Workflow saved: {workflow.name} (/{workflow.command_name}, "
            f"{workflow.id}) v{workflow.version}"
        )
        return workflow

    def delete(self, workflow_id: str) -> bool:
        """Remove a saved workflow; ``False`` when there was none."""
        try:
            self._file_for(workflow_id).unlink()
        except FileNotFoundError:
            return False
        logger.info(f"Workflow deleted: {workflow_id}")
        return True

    # ── Reading ──

    def load(self, workflow_id: str) -> Optional[WorkflowDefinition]:
        """The saved workflow, or ``None`` when missing or unreadable."""
        return self._read(self._file_for(workflow_id))

    def load_graph(self, workflow_id: str) -> Optional[WorkflowGraph]:
        """Decode a saved workflow straight into an editor snapshot.

        Returns ``None`` when the workflow is missing or its stored
        graph cannot be decoded (unknown node kind, duplicate node IDs,
        malformed config).
        """
        workflow = self.load(workflow_id)
        if workflow is None:
            return None
        try:
            return workflow.to_graph()
        except ValueError as e:
            logger.error(f"Workflow {workflow_id} has an undecodable graph: {e}")
            return None

    def exists(self, workflow_id: str) -> bool:
        return self._file_for(workflow_id).is_file()

    def list_all(self) -> List[WorkflowDefinition]:
        """Every readable saved workflow, ordered by file name."""
        found = (self._read(path) for path in sorted(self._dir.glob("*.json")))
        return [w for w in found if w is not None]

    def commands(self) -> Dict[str, WorkflowDefinition]:
        """Saved workflows keyed by command name.

        When two files claim the same command the first (by file name)
        keeps it and the clash is logged.
        """
        by_command: Dict[str, WorkflowDefinition] = {}
        for workflow in self.list_all():
            owner = by_command.get(workflow.command_name)
            if owner is not None:
                logger.warning(
                    f"Command /{workflow.command_name} is claimed by {owner.id} "
                    f"and {workflow.id}; keeping {owner.id}"
                )
                continue
            by_command[workflow.command_name] = workflow
        return by_command

    def find_by_command(self, command_name: str) -> Optional[WorkflowDefinition]:
        """The saved workflow bound to ``command_name``, if any."""
        return self.commands().get(command_name)

    # ── Internals ──

    def _file_for(self, workflow_id: str) -> Path:
        safe_id = _UNSAFE_ID_CHARS.sub("", workflow_id)
        if not safe_id:
            raise ValueError(f"Workflow id {workflow_id!r} has no usable characters")
        return self._dir / f"{safe_id}.json"

    def _read(self, path: Path) -> Optional[WorkflowDefinition]:
        if not path.is_file():
            return None
        try:
            return WorkflowDefinition.model_validate_json(path.read_text(encoding="utf-8"))
        except (OSError, ValidationError) as e:
            logger.warning(f"Skipping unreadable workflow file {path.name}: {e}")
            return None


# ── Shared instance ──

_store_instance: Optional[WorkflowStore] = None


def get_workflow_store() -> WorkflowStore:
    """The process-wide store, rooted at the configured storage directory."""
    global _store_instance
    if _store_instance is None:
        _store_instance = WorkflowStore()
    return _store_instance


def reset_workflow_store() -> None:
    """Drop the cached store; the next ``get_workflow_store`` re-reads config."""
    global _store_instance
    _store_instance = None
