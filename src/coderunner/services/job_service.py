from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Optional

import structlog

from ..core.models import Job, ResourceLimits, SandboxInstance, Workspace
from ..core.utils import new_job_id
from ..executor.base import ContainerRuntime
from ..executor.docker_runtime import DockerRuntime
from ..runners.registry import LanguageRegistry
from ..settings import Settings, load_settings
from .cleanup import CleanupCoordinator
from .provisioner import ImageProvisioner
from .sandbox import SandboxController
from .storage import LocalFSStorage

logger = structlog.get_logger(__name__)


@dataclass
class JobResources:
    job: Job
    workspace: Optional[Workspace] = None
    container_name: Optional[str] = None
    sandbox: Optional[SandboxInstance] = None


class JobService:
    """
    Wires registry + storage + provisioner + sandbox together for one call
    of ``execute``. Holds no per-job state; concurrent calls share nothing
    but the read-only registry and the image provisioner.
    """

    def __init__(self, settings: Optional[Settings] = None, runtime: Optional[ContainerRuntime] = None):
        self.settings = settings or load_settings()
        s = self.settings

        if runtime is None:
            runtime = DockerRuntime(base_url=s.docker_base_url, timeout_s=s.docker_client_timeout_s)
        self.runtime = runtime

        self.registry = LanguageRegistry(images=s.images)
        self.storage = LocalFSStorage(s.jobs_dir)
        self.provisioner = ImageProvisioner(runtime)
        self.sandbox = SandboxController(
            runtime,
            ResourceLimits(memory_bytes=s.memory_bytes, cpu_shares=s.cpu_shares, pids_limit=s.pids_limit),
            timeout_s=s.timeout_s,
            stop_grace_s=s.stop_grace_s,
            mount_point=s.mount_point,
            wait_workers=s.wait_workers,
        )
        self.cleanup = CleanupCoordinator(runtime, self.storage)

    @asynccontextmanager
    async def job_scope(self, job: Job) -> AsyncIterator[JobResources]:
        res = JobResources(job)
        try:
            yield res
        finally:
            await self.cleanup.finalize(res.sandbox, res.workspace, res.container_name)

    async def execute(self, language: str, code: str) -> str:
        profile = self.registry.resolve(language)
        job = Job(id=new_job_id(), language=profile.language, source_code=code)
        log = logger.bind(job_id=job.id, language=job.language.value)
        log.info("job_started", image=profile.image)

        try:
            async with self.job_scope(job) as res:
                res.workspace = ws = await asyncio.to_thread(self.storage.create, job.id)
                await asyncio.to_thread(self.storage.write_source, ws, profile.entry_file_name(), code)
                if profile.init_file_name and profile.init_file_content is not None:
                    await asyncio.to_thread(
                        self.storage.write_auxiliary, ws, profile.init_file_name, profile.init_file_content
                    )

                await self.provisioner.ensure(profile.image)

                res.container_name = self.sandbox.container_name(job.id)
                res.sandbox = await self.sandbox.create(profile, ws)
                await self.sandbox.start(res.sandbox)
                exit_code = await self.sandbox.await_completion(res.sandbox)
                result = await self.sandbox.collect_output(res.sandbox, exit_code)
                output = self.sandbox.to_output(result)
        except Exception as exc:
            log.info("job_failed", kind=getattr(exc, "kind", type(exc).__name__), error=str(exc))
            raise

        log.info("job_finished", exit_code=exit_code)
        return output


def execute(language: str, code: str, service: Optional[JobService] = None) -> str:
    """Blocking entry point for callers outside an event loop."""
    return asyncio.run((service or JobService()).execute(language, code))
