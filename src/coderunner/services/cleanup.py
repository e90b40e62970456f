from __future__ import annotations

import asyncio
from typing import List, Optional

import structlog

from ..core.errors import CleanupWarning
from ..core.models import SandboxInstance, SandboxState, Workspace
from ..executor.base import ContainerMissing, ContainerRuntime
from .storage import LocalFSStorage

logger = structlog.get_logger(__name__)


class CleanupCoordinator:
    """
    Releases a job's container and workspace. Both steps are always
    attempted; failures come back as ``CleanupWarning`` values and are
    logged, never raised.
    """

    def __init__(self, runtime: ContainerRuntime, storage: LocalFSStorage):
        self.runtime = runtime
        self.storage = storage

    async def finalize(self, instance: Optional[SandboxInstance],
                       workspace: Optional[Workspace],
                       container_name: Optional[str] = None) -> List[CleanupWarning]:
        """
        ``container_name`` covers a create call that failed after the daemon
        made the container: with no instance, removal goes by name.
        """
        warnings: List[CleanupWarning] = []

        target = instance.container_id if instance is not None else container_name
        if target is not None:
            try:
                await asyncio.to_thread(self.runtime.remove_container, target)
            except ContainerMissing:
                pass
            except Exception as exc:
                warnings.append(CleanupWarning(f"container:{target}", str(exc)))
            else:
                logger.debug("container_removed", container=target)
            if instance is not None and not warnings and instance.state is not SandboxState.REMOVED:
                instance.transition(SandboxState.REMOVED)

        if workspace is not None:
            if not await asyncio.to_thread(self.storage.destroy, workspace):
                warnings.append(CleanupWarning(f"workspace:{workspace.path}", "recursive delete failed"))

        for w in warnings:
            logger.warning("cleanup_warning", target=w.target, detail=w.detail)
        return warnings
