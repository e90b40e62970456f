import asyncio
import time

import pytest

from coderunner.core.errors import ContainerCreateError, ExecutionFailure, ExecutionTimeout
from coderunner.core.models import ExecutionResult, ResourceLimits, SandboxState
from coderunner.runners import LanguageRegistry
from coderunner.services.sandbox import NO_OUTPUT, SandboxController
from coderunner.services.storage import LocalFSStorage

LIMITS = ResourceLimits(memory_bytes=256 * 1024 * 1024, cpu_shares=512, pids_limit=64)


@pytest.fixture
def controller(runtime):
    return SandboxController(runtime, LIMITS, timeout_s=0.3, stop_grace_s=0)


@pytest.fixture
def workspace(tmp_path):
    storage = LocalFSStorage(tmp_path / "jobs")
    ws = storage.create("job42")
    return storage, ws


def _prepare(workspace, code, lang="python"):
    storage, ws = workspace
    profile = LanguageRegistry().resolve(lang)
    storage.write_source(ws, profile.entry_file_name(), code)
    return profile, ws


def test_container_spec_is_locked_down(controller, workspace):
    profile, ws = _prepare(workspace, "out: hi")
    spec = controller.container_spec(profile, ws)
    assert spec.name == "coderunner-job42"
    assert spec.image == "python:3.11-slim"
    assert spec.cmd == ["python", "-u", "script.py"]
    assert spec.host_dir == ws.path
    assert spec.workdir == "/usr/src/app"
    assert spec.network_disabled is True
    assert spec.memory_bytes == LIMITS.memory_bytes
    assert spec.cpu_shares == 512
    assert spec.labels == {"coderunner.job": "job42"}


def test_completed_run(controller, workspace, runtime):
    profile, ws = _prepare(workspace, "out: hello\nerr: warn")

    async def main():
        inst = await controller.create(profile, ws)
        assert inst.state is SandboxState.CREATED
        assert inst.network_disabled
        await controller.start(inst)
        assert inst.state is SandboxState.STARTED
        code = await controller.await_completion(inst)
        return inst, code, await controller.collect_output(inst, code)

    inst, code, result = asyncio.run(main())
    assert code == 0
    assert inst.state is SandboxState.STOPPED
    assert result == ExecutionResult(exit_code=0, stdout="hello\n", stderr="warn\n", timed_out=False)
    assert controller.to_output(result) == "hello"
    assert runtime.stops == []


def test_timeout_stops_container(controller, workspace, runtime):
    profile, ws = _prepare(workspace, "out: partial\nhang")

    async def main():
        inst = await controller.create(profile, ws)
        await controller.start(inst)
        started = time.monotonic()
        code = await controller.await_completion(inst)
        elapsed = time.monotonic() - started
        return inst, code, elapsed, await controller.collect_output(inst, code)

    inst, code, elapsed, result = asyncio.run(main())
    assert code is None
    assert 0.25 <= elapsed < 3
    assert runtime.stops == [inst.container_id]
    assert inst.state is SandboxState.STOPPED
    assert result.timed_out

    with pytest.raises(ExecutionTimeout) as ei:
        controller.to_output(result)
    assert ei.value.output == "partial"
    assert ei.value.http_status == 408


def test_waits_beyond_pool_size_still_time_out(runtime, tmp_path):
    controller = SandboxController(runtime, LIMITS, timeout_s=0.3, stop_grace_s=0, wait_workers=1)
    storage = LocalFSStorage(tmp_path / "jobs")
    profile = LanguageRegistry().resolve("python")

    async def one(job_id):
        ws = storage.create(job_id)
        storage.write_source(ws, profile.entry_file_name(), "hang")
        inst = await controller.create(profile, ws)
        await controller.start(inst)
        return await controller.await_completion(inst)

    async def main():
        started = time.monotonic()
        codes = await asyncio.gather(*(one(f"job{i}") for i in range(3)))
        return codes, time.monotonic() - started

    codes, elapsed = asyncio.run(main())
    assert codes == [None, None, None]
    assert elapsed < 3
    assert len(runtime.stops) == 3


def test_failed_stop_is_not_fatal(controller, workspace, runtime):
    profile, ws = _prepare(workspace, "hang")
    runtime.stop_error = RuntimeError("daemon hiccup")

    async def main():
        inst = await controller.create(profile, ws)
        await controller.start(inst)
        code = await controller.await_completion(inst)
        # release the fake's blocked wait thread
        runtime.remove_container(inst.container_id)
        return code

    assert asyncio.run(main()) is None


def test_create_failure(controller, workspace, runtime):
    profile, ws = _prepare(workspace, "out: x")
    runtime.create_error = RuntimeError("no such image")
    with pytest.raises(ContainerCreateError, match="create"):
        asyncio.run(controller.create(profile, ws))


def test_start_failure_marks_create_failed(controller, workspace, runtime):
    profile, ws = _prepare(workspace, "out: x")
    runtime.start_error = RuntimeError("mount denied")

    async def main():
        inst = await controller.create(profile, ws)
        with pytest.raises(ContainerCreateError, match="start"):
            await controller.start(inst)
        return inst

    assert asyncio.run(main()).state is SandboxState.CREATE_FAILED


def test_empty_output_sentinel(controller):
    result = ExecutionResult(exit_code=0, stdout="  \n", stderr="")
    assert controller.to_output(result) == NO_OUTPUT


def test_nonzero_exit_combines_streams(controller):
    result = ExecutionResult(exit_code=3, stdout="before crash\n", stderr="Traceback: boom\n")
    with pytest.raises(ExecutionFailure) as ei:
        controller.to_output(result)
    assert ei.value.exit_code == 3
    assert "before crash" in ei.value.output
    assert "Traceback: boom" in ei.value.output
    assert ei.value.to_dict()["exit_code"] == 3


def test_output_is_sanitized(controller, workspace, runtime):
    profile, ws = _prepare(workspace, "out: x")

    async def main():
        inst = await controller.create(profile, ws)
        runtime.containers[inst.container_id].program.stdout = "a\x00b\x1b[31mc\td\n\x7f"
        return await controller.collect_output(inst, 0)

    assert asyncio.run(main()).stdout == "ab[31mc\td\n"


def test_illegal_transition(controller, workspace):
    profile, ws = _prepare(workspace, "out: x")
    inst = asyncio.run(controller.create(profile, ws))
    with pytest.raises(ValueError):
        inst.transition(SandboxState.COMPLETED)
