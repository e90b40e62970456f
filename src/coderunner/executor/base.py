from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Protocol, Tuple


class ImageMissing(Exception):
    """The image is not in the local cache."""


class ContainerMissing(Exception):
    """The container no longer exists."""


class WaitTimeout(Exception):
    """A bounded exit wait ran out before the container exited."""


@dataclass
class ContainerSpec:
    name: str
    image: str
    cmd: List[str]
    host_dir: Path
    workdir: str
    memory_bytes: int
    cpu_shares: int
    pids_limit: Optional[int] = None
    network_disabled: bool = True
    labels: Dict[str, str] = field(default_factory=dict)


class ContainerRuntime(Protocol):
    """
    Blocking container-runtime capability. Callers run these methods off the
    event loop.
    """

    def inspect_image(self, ref: str) -> None:
        """Return if present, raise ``ImageMissing`` if not."""

    def pull_image(self, ref: str) -> None: ...

    def create_container(self, spec: ContainerSpec) -> str:
        """Create (not start) a container and return its id."""

    def start_container(self, container_id: str) -> None: ...

    def wait_container(self, container_id: str, timeout_s: Optional[float] = None) -> int:
        """
        Block until the container exits and return its exit code. With
        ``timeout_s`` set, raise ``WaitTimeout`` once it elapses.
        """

    def stop_container(self, container_id: str, grace_s: int) -> None: ...

    def container_logs(self, container_id: str) -> Tuple[bytes, bytes]:
        """Return ``(stdout, stderr)`` as raw bytes."""

    def remove_container(self, container_id: str) -> None:
        """Force-remove by id or name, raise ``ContainerMissing`` if already gone."""
