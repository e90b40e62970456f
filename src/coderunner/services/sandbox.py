"""
One container per job: create, start, race its exit against the deadline,
collect its output.

State machine:
    CREATED -> STARTED -> {COMPLETED | TIMED_OUT | CREATE_FAILED} -> STOPPED -> REMOVED

REMOVED is set by the cleanup coordinator. Nothing here retries: a user
program that fails to compile or crashes is a result, not a fault.
"""
from __future__ import annotations

import asyncio
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

import structlog

from ..core.errors import (
    ContainerCreateError,
    ContainerRuntimeError,
    ExecutionFailure,
    ExecutionTimeout,
)
from ..core.models import ExecutionResult, ResourceLimits, SandboxInstance, SandboxState, Workspace
from ..core.utils import sanitize_output
from ..executor.base import ContainerRuntime, ContainerSpec, WaitTimeout
from ..runners.base import Runner

logger = structlog.get_logger(__name__)

NO_OUTPUT = "(no output)"
JOB_LABEL = "coderunner.job"


class SandboxController:
    def __init__(
        self,
        runtime: ContainerRuntime,
        limits: ResourceLimits,
        *,
        timeout_s: float = 10.0,
        stop_grace_s: int = 5,
        mount_point: str = "/usr/src/app",
        wait_workers: int = 32,
    ):
        self.runtime = runtime
        self.limits = limits
        self.timeout_s = timeout_s
        self.stop_grace_s = stop_grace_s
        self.mount_point = mount_point
        # exit waits hold a thread for up to timeout_s; kept off the default executor
        self._wait_pool = ThreadPoolExecutor(max_workers=wait_workers, thread_name_prefix="coderunner-wait")

    @staticmethod
    def container_name(job_id: str) -> str:
        return f"coderunner-{job_id}"

    def container_spec(self, profile: Runner, ws: Workspace) -> ContainerSpec:
        entry = ws.source_file_path.name if ws.source_file_path else profile.entry_file_name()
        return ContainerSpec(
            name=self.container_name(ws.job_id),
            image=profile.image,
            cmd=profile.build_argv(entry),
            host_dir=ws.path,
            workdir=self.mount_point,
            memory_bytes=self.limits.memory_bytes,
            cpu_shares=self.limits.cpu_shares,
            pids_limit=self.limits.pids_limit,
            network_disabled=True,
            labels={JOB_LABEL: ws.job_id},
        )

    async def create(self, profile: Runner, ws: Workspace) -> SandboxInstance:
        spec = self.container_spec(profile, ws)
        try:
            container_id = await asyncio.to_thread(self.runtime.create_container, spec)
        except Exception as exc:
            raise ContainerCreateError(f"Failed to create container: {exc}") from exc
        logger.debug("container_created", job_id=ws.job_id, container_id=container_id)
        return SandboxInstance(
            container_id=container_id,
            job_id=ws.job_id,
            limits=self.limits,
            network_disabled=spec.network_disabled,
        )

    async def start(self, instance: SandboxInstance) -> None:
        try:
            await asyncio.to_thread(self.runtime.start_container, instance.container_id)
        except Exception as exc:
            instance.transition(SandboxState.CREATE_FAILED)
            raise ContainerCreateError(f"Failed to start container: {exc}") from exc
        instance.transition(SandboxState.STARTED)

    async def await_completion(self, instance: SandboxInstance) -> Optional[int]:
        """
        Race the container's exit against the wall-clock ceiling.

        Returns the exit code, or ``None`` when the ceiling won; in that
        case the container has been asked to stop.
        """
        loop = asyncio.get_running_loop()
        exit_task = loop.run_in_executor(
            self._wait_pool, self.runtime.wait_container, instance.container_id, self.timeout_s
        )
        timer = asyncio.ensure_future(asyncio.sleep(self.timeout_s))
        try:
            await asyncio.wait({exit_task, timer}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            timer.cancel()

        if exit_task.done():
            try:
                exit_code = exit_task.result()
            except WaitTimeout:
                # the bounded wait ran out just ahead of the timer
                pass
            except Exception as exc:
                raise ContainerRuntimeError(f"Failed waiting for container: {exc}") from exc
            else:
                instance.transition(SandboxState.COMPLETED)
                instance.transition(SandboxState.STOPPED)
                return exit_code

        # the exit notification lost; whatever it reports later is ignored
        exit_task.cancel()
        instance.transition(SandboxState.TIMED_OUT)
        logger.info("execution_timed_out", job_id=instance.job_id, timeout_s=self.timeout_s)
        try:
            await asyncio.to_thread(self.runtime.stop_container, instance.container_id, self.stop_grace_s)
        except Exception as exc:
            # cleanup force-removes it anyway
            logger.warning("container_stop_failed", job_id=instance.job_id, error=str(exc))
        instance.transition(SandboxState.STOPPED)
        return None

    async def collect_output(self, instance: SandboxInstance, exit_code: Optional[int]) -> ExecutionResult:
        timed_out = exit_code is None
        try:
            out, err = await asyncio.to_thread(self.runtime.container_logs, instance.container_id)
        except Exception as exc:
            if not timed_out:
                raise ContainerRuntimeError(f"Failed to read container logs: {exc}") from exc
            out, err = b"", b""
        return ExecutionResult(
            exit_code=exit_code,
            stdout=sanitize_output(out),
            stderr=sanitize_output(err),
            timed_out=timed_out,
        )

    def to_output(self, result: ExecutionResult) -> str:
        if result.timed_out:
            raise ExecutionTimeout(self.timeout_s, _combined(result))
        if result.exit_code != 0:
            raise ExecutionFailure(result.exit_code, _combined(result))
        return result.stdout.strip() or NO_OUTPUT


def _combined(result: ExecutionResult) -> str:
    parts = [p.strip("\n") for p in (result.stdout, result.stderr) if p.strip()]
    return "\n".join(parts)
