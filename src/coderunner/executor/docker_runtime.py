"""
Docker Engine backend for ``ContainerRuntime``.

Only this module talks to the docker SDK; its errors are translated into
``ImageMissing`` / ``ContainerMissing`` / ``WaitTimeout`` and otherwise
propagate unchanged.
"""
from __future__ import annotations

import threading
from typing import Optional, Tuple

import docker
import requests
import structlog
from docker.errors import ImageNotFound, NotFound

from .base import ContainerMissing, ContainerSpec, ImageMissing, WaitTimeout

logger = structlog.get_logger(__name__)


class DockerRuntime:
    name = "docker"

    def __init__(self, base_url: Optional[str] = None, timeout_s: int = 60, client=None):
        self.base_url = base_url
        self.timeout_s = timeout_s
        self._client = client
        self._lock = threading.Lock()

    @property
    def client(self):
        # created lazily so importing the API never needs a daemon
        with self._lock:
            if self._client is None:
                if self.base_url:
                    self._client = docker.DockerClient(base_url=self.base_url, timeout=self.timeout_s)
                else:
                    self._client = docker.from_env(timeout=self.timeout_s)
            return self._client

    # ---------- images ----------

    def inspect_image(self, ref: str) -> None:
        try:
            self.client.images.get(ref)
        except ImageNotFound as exc:
            raise ImageMissing(ref) from exc

    def pull_image(self, ref: str) -> None:
        logger.info("image_pull_started", image=ref)
        self.client.images.pull(ref)
        logger.info("image_pull_finished", image=ref)

    # ---------- containers ----------

    def create_container(self, spec: ContainerSpec) -> str:
        kwargs = {
            "name": spec.name,
            "working_dir": spec.workdir,
            "volumes": {str(spec.host_dir): {"bind": spec.workdir, "mode": "rw"}},
            "mem_limit": spec.memory_bytes,
            "memswap_limit": spec.memory_bytes,
            "cpu_shares": spec.cpu_shares,
            "network_disabled": spec.network_disabled,
            "tty": False,
            "stdin_open": False,
            "labels": dict(spec.labels),
        }
        if spec.network_disabled:
            kwargs["network_mode"] = "none"
        if spec.pids_limit:
            kwargs["pids_limit"] = spec.pids_limit
        container = self.client.containers.create(spec.image, spec.cmd, **kwargs)
        return container.id

    def _get(self, container_id: str):
        try:
            return self.client.containers.get(container_id)
        except NotFound as exc:
            raise ContainerMissing(container_id) from exc

    def start_container(self, container_id: str) -> None:
        self._get(container_id).start()

    def wait_container(self, container_id: str, timeout_s: Optional[float] = None) -> int:
        try:
            result = self._get(container_id).wait(timeout=timeout_s)
        except requests.exceptions.ReadTimeout as exc:
            raise WaitTimeout(container_id) from exc
        except requests.exceptions.ConnectionError as exc:
            # urllib3 2.x surfaces the read timeout as a connection error
            if timeout_s is not None and "timed out" in str(exc).lower():
                raise WaitTimeout(container_id) from exc
            raise
        return int(result.get("StatusCode", -1))

    def stop_container(self, container_id: str, grace_s: int) -> None:
        self._get(container_id).stop(timeout=grace_s)

    def container_logs(self, container_id: str) -> Tuple[bytes, bytes]:
        container = self._get(container_id)
        out = container.logs(stdout=True, stderr=False)
        err = container.logs(stdout=False, stderr=True)
        return out or b"", err or b""

    def remove_container(self, container_id: str) -> None:
        try:
            self.client.api.remove_container(container_id, force=True)
        except NotFound as exc:
            raise ContainerMissing(container_id) from exc

    # ---------- diagnostics ----------

    def check_health(self) -> Tuple[bool, str]:
        """Return (healthy, detail) for daemon availability."""
        try:
            version = self.client.version().get("Version", "unknown")
        except Exception as exc:
            return False, f"docker daemon unavailable: {exc}"
        return True, f"docker daemon ready (server {version})"
