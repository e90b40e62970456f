from __future__ import annotations

import asyncio
import functools
from typing import Dict

import structlog

from ..core.errors import ProvisionError
from ..executor.base import ContainerRuntime, ImageMissing

logger = structlog.get_logger(__name__)


class ImageProvisioner:
    """
    Makes sure an image is in the local cache, pulling it on first use.

    Concurrent ``ensure`` calls for the same reference share one in-flight
    task, so a cold image is pulled once.
    """

    def __init__(self, runtime: ContainerRuntime):
        self.runtime = runtime
        self._inflight: Dict[str, asyncio.Task] = {}

    async def ensure(self, ref: str) -> None:
        task = self._inflight.get(ref)
        if task is None:
            task = asyncio.ensure_future(self._ensure(ref))
            self._inflight[ref] = task
            task.add_done_callback(functools.partial(self._forget, ref))
        await asyncio.shield(task)

    def _forget(self, ref: str, task: asyncio.Task) -> None:
        self._inflight.pop(ref, None)
        # every waiter may have been cancelled; the failure is still consumed
        if not task.cancelled():
            task.exception()

    async def _ensure(self, ref: str) -> None:
        try:
            await asyncio.to_thread(self.runtime.inspect_image, ref)
            logger.debug("image_present", image=ref)
            return
        except ImageMissing:
            logger.info("image_missing", image=ref)
        except Exception as exc:
            raise ProvisionError(f"Failed to inspect image {ref}: {exc}") from exc

        try:
            await asyncio.to_thread(self.runtime.pull_image, ref)
        except Exception as exc:
            raise ProvisionError(f"Failed to pull image {ref}: {exc}") from exc
