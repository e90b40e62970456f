from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional


class Language(str, Enum):
    PYTHON = "python"
    JAVASCRIPT = "javascript"
    JAVA = "java"
    CPP = "cpp"
    C = "c"
    SQLITE = "sqlite"


class SandboxState(str, Enum):
    CREATED = "CREATED"
    STARTED = "STARTED"
    COMPLETED = "COMPLETED"
    TIMED_OUT = "TIMED_OUT"
    CREATE_FAILED = "CREATE_FAILED"
    STOPPED = "STOPPED"
    REMOVED = "REMOVED"


_TRANSITIONS = {
    SandboxState.CREATED: {SandboxState.STARTED, SandboxState.CREATE_FAILED, SandboxState.REMOVED},
    SandboxState.STARTED: {SandboxState.COMPLETED, SandboxState.TIMED_OUT, SandboxState.REMOVED},
    SandboxState.COMPLETED: {SandboxState.STOPPED, SandboxState.REMOVED},
    SandboxState.TIMED_OUT: {SandboxState.STOPPED, SandboxState.REMOVED},
    SandboxState.CREATE_FAILED: {SandboxState.STOPPED, SandboxState.REMOVED},
    SandboxState.STOPPED: {SandboxState.REMOVED},
    SandboxState.REMOVED: set(),
}


@dataclass(frozen=True)
class Job:
    id: str
    language: Language
    source_code: str


@dataclass
class Workspace:
    job_id: str
    path: Path
    source_file_path: Optional[Path] = None
    auxiliary_file_paths: List[Path] = field(default_factory=list)


@dataclass(frozen=True)
class ResourceLimits:
    memory_bytes: int
    cpu_shares: int
    pids_limit: Optional[int] = None


@dataclass
class SandboxInstance:
    container_id: str
    job_id: str
    limits: ResourceLimits
    network_disabled: bool = True
    state: SandboxState = SandboxState.CREATED

    def transition(self, new: SandboxState) -> None:
        if new not in _TRANSITIONS[self.state]:
            raise ValueError(f"illegal sandbox transition {self.state.value} -> {new.value}")
        self.state = new


@dataclass
class ExecutionResult:
    exit_code: Optional[int]
    stdout: str
    stderr: str
    timed_out: bool = False
