from __future__ import annotations

import itertools
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

import pytest

from coderunner.executor.base import ContainerMissing, ContainerSpec, ImageMissing, WaitTimeout
from coderunner.services.job_service import JobService
from coderunner.settings import Settings


@dataclass
class FakeProgram:
    """What a fake container "does", parsed from the job's source file.

    Directives, one per line:
        out: <text>   -> line on stdout
        err: <text>   -> line on stderr
        exit: <n>     -> exit code
        hang          -> never exits on its own
    """

    stdout: str = ""
    stderr: str = ""
    exit_code: int = 0
    hang: bool = False

    @classmethod
    def parse(cls, code: str) -> "FakeProgram":
        prog = cls()
        for line in code.splitlines():
            line = line.strip()
            if line.startswith("out:"):
                prog.stdout += line[4:].strip() + "\n"
            elif line.startswith("err:"):
                prog.stderr += line[4:].strip() + "\n"
            elif line.startswith("exit:"):
                prog.exit_code = int(line[5:])
            elif line == "hang":
                prog.hang = True
        return prog


@dataclass
class FakeContainer:
    spec: ContainerSpec
    program: FakeProgram
    started: bool = False
    stopped: threading.Event = field(default_factory=threading.Event)


class FakeRuntime:
    """Thread-safe in-memory stand-in for a container runtime."""

    def __init__(self, images=("python:3.11-slim",)):
        self.lock = threading.Lock()
        self.images = set(images)
        self.containers: Dict[str, FakeContainer] = {}
        self.created: List[ContainerSpec] = []
        self.workspace_seen: Dict[str, List[str]] = {}
        self.pulls: List[str] = []
        self.stops: List[str] = []
        self.removed: List[str] = []
        self._ids = itertools.count(1)

        self.inspect_error: Optional[Exception] = None
        self.pull_error: Optional[Exception] = None
        self.pull_delay = threading.Event()
        self.pull_delay.set()
        self.create_error: Optional[Exception] = None
        # raised after the container exists, like a lost create reply
        self.create_reply_error: Optional[Exception] = None
        self.start_error: Optional[Exception] = None
        self.stop_error: Optional[Exception] = None
        self.remove_error: Optional[Exception] = None

    # ---------- images ----------

    def inspect_image(self, ref: str) -> None:
        if self.inspect_error:
            raise self.inspect_error
        with self.lock:
            if ref not in self.images:
                raise ImageMissing(ref)

    def pull_image(self, ref: str) -> None:
        self.pull_delay.wait(5)
        if self.pull_error:
            raise self.pull_error
        with self.lock:
            self.pulls.append(ref)
            self.images.add(ref)

    # ---------- containers ----------

    def create_container(self, spec: ContainerSpec) -> str:
        if self.create_error:
            raise self.create_error
        files = sorted(p.name for p in Path(spec.host_dir).iterdir())
        source = next(n for n in files if n != "init.sql")
        program = FakeProgram.parse((Path(spec.host_dir) / source).read_text(encoding="utf-8"))
        with self.lock:
            cid = f"c{next(self._ids)}"
            self.containers[cid] = FakeContainer(spec=spec, program=program)
            self.created.append(spec)
            self.workspace_seen[cid] = files
        if self.create_reply_error:
            raise self.create_reply_error
        return cid

    def _resolve(self, ref: str) -> Optional[str]:
        # caller holds the lock
        if ref in self.containers:
            return ref
        return next((cid for cid, c in self.containers.items() if c.spec.name == ref), None)

    def _get(self, ref: str) -> FakeContainer:
        with self.lock:
            cid = self._resolve(ref)
            if cid is None:
                raise ContainerMissing(ref)
            return self.containers[cid]

    def start_container(self, cid: str) -> None:
        if self.start_error:
            raise self.start_error
        self._get(cid).started = True

    def wait_container(self, cid: str, timeout_s: Optional[float] = None) -> int:
        c = self._get(cid)
        if c.program.hang:
            if not c.stopped.wait(10 if timeout_s is None else timeout_s):
                raise WaitTimeout(cid)
            return 137
        return c.program.exit_code

    def stop_container(self, cid: str, grace_s: int) -> None:
        with self.lock:
            self.stops.append(cid)
        if self.stop_error:
            raise self.stop_error
        self._get(cid).stopped.set()

    def container_logs(self, cid: str):
        p = self._get(cid).program
        return p.stdout.encode(), p.stderr.encode()

    def remove_container(self, ref: str) -> None:
        if self.remove_error:
            raise self.remove_error
        with self.lock:
            cid = self._resolve(ref)
            if cid is None:
                raise ContainerMissing(ref)
            c = self.containers.pop(cid)
            self.removed.append(cid)
        c.stopped.set()

    # ---------- helpers ----------

    def containers_for(self, job_id: str) -> List[str]:
        with self.lock:
            return [cid for cid, c in self.containers.items()
                    if c.spec.labels.get("coderunner.job") == job_id]


@pytest.fixture
def runtime():
    return FakeRuntime()


@pytest.fixture
def settings(tmp_path):
    return Settings(jobs_dir=tmp_path / "jobs", timeout_s=0.3, stop_grace_s=0)


@pytest.fixture
def service(settings, runtime):
    return JobService(settings=settings, runtime=runtime)


@pytest.fixture
def jobs_dir(settings):
    return settings.jobs_dir

