from __future__ import annotations

import shutil
from pathlib import Path

import structlog

from ..core.errors import WorkspaceError
from ..core.models import Workspace

logger = structlog.get_logger(__name__)


class LocalFSStorage:
    """
    Per-job scratch directories under one root:
      <jobs_dir>/<job_id>/
        ├─ <entry>        (user code, verbatim)
        └─ <aux files>    (seed scripts, e.g. init.sql)

    The whole directory is bind-mounted into the job's container and removed
    when the job ends.
    """

    def __init__(self, jobs_dir: Path):
        # bind mounts need an absolute host path
        self.jobs_dir = jobs_dir if jobs_dir.is_absolute() else jobs_dir.resolve()

    def create(self, job_id: str) -> Workspace:
        path = self.jobs_dir / job_id
        try:
            self.jobs_dir.mkdir(parents=True, exist_ok=True)
            path.mkdir(exist_ok=False)
        except OSError as exc:
            raise WorkspaceError(f"Failed to create workspace for job {job_id}: {exc}") from exc
        logger.debug("workspace_created", job_id=job_id, path=str(path))
        return Workspace(job_id=job_id, path=path)

    def _target(self, ws: Workspace, name: str) -> Path:
        target = (ws.path / name).resolve()
        if target.parent != ws.path.resolve():
            raise WorkspaceError(f"File name '{name}' escapes the workspace")
        return target

    def _write(self, target: Path, content: str) -> None:
        try:
            target.write_text(content, encoding="utf-8")
        except OSError as exc:
            raise WorkspaceError(f"Failed to write {target.name}: {exc}") from exc

    def write_source(self, ws: Workspace, entry: str, content: str) -> Path:
        target = self._target(ws, entry)
        self._write(target, content)
        ws.source_file_path = target
        return target

    def write_auxiliary(self, ws: Workspace, name: str, content: str) -> Path:
        target = self._target(ws, name)
        self._write(target, content)
        ws.auxiliary_file_paths.append(target)
        return target

    def destroy(self, ws: Workspace) -> bool:
        """Remove the workspace tree. Never raises; a missing tree counts as removed."""
        try:
            shutil.rmtree(ws.path)
        except FileNotFoundError:
            return True
        except OSError as exc:
            logger.warning("workspace_destroy_failed", job_id=ws.job_id, path=str(ws.path), error=str(exc))
            return False
        logger.debug("workspace_destroyed", job_id=ws.job_id)
        return True
