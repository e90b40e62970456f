from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, Optional

import yaml
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # ---- core paths ----
    jobs_dir: Path = Path("/tmp/coderunner/jobs")
    mount_point: str = "/usr/src/app"

    # ---- execution policy (platform-wide, never per request) ----
    timeout_s: float = 10.0
    stop_grace_s: int = 5
    wait_workers: int = 32

    # ---- container ceilings ----
    memory_bytes: int = 256 * 1024 * 1024
    cpu_shares: int = 512
    pids_limit: int = 64

    # ---- docker ----
    docker_base_url: Optional[str] = None
    docker_client_timeout_s: int = 60

    # ---- image overrides, keyed by language id ----
    images: Dict[str, str] = {}

    # ---- logging ----
    log_level: str = "INFO"
    log_json: bool = True

    # env prefix SBX_*
    model_config = SettingsConfigDict(env_prefix="SBX_", extra="ignore")


def _section(data: dict, key: str) -> dict:
    value = data.get(key) or {}
    return value if isinstance(value, dict) else {}


def load_settings() -> Settings:
    # 0) base from SBX_* env
    s = Settings()

    # 1) conf/sandbox.yaml (or SANDBOX_CONF)
    sbx_yaml = os.environ.get("SANDBOX_CONF", "conf/sandbox.yaml")
    try:
        with open(sbx_yaml, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (FileNotFoundError, yaml.YAMLError):
        data = {}
    if not isinstance(data, dict):
        data = {}

    defaults = _section(data, "defaults")
    docker_cfg = _section(data, "docker")
    images = {str(k).lower(): str(v) for k, v in _section(data, "images").items()}

    # 2) merge into Settings, keeping Path/int/float types
    return s.model_copy(
        update={
            "jobs_dir": Path(str(data.get("jobs_dir", s.jobs_dir))),
            "mount_point": str(data.get("mount_point", s.mount_point)),
            "timeout_s": float(defaults.get("timeout_s", s.timeout_s)),
            "stop_grace_s": int(defaults.get("stop_grace_s", s.stop_grace_s)),
            "wait_workers": int(defaults.get("wait_workers", s.wait_workers)),
            "memory_bytes": int(defaults.get("memory_bytes", s.memory_bytes)),
            "cpu_shares": int(defaults.get("cpu_shares", s.cpu_shares)),
            "pids_limit": int(defaults.get("pids_limit", s.pids_limit)),
            "docker_base_url": docker_cfg.get("base_url", s.docker_base_url),
            "docker_client_timeout_s": int(
                docker_cfg.get("client_timeout_s", s.docker_client_timeout_s)
            ),
            "images": {**s.images, **images},
            "log_level": str(data.get("log_level", s.log_level)).upper(),
            "log_json": bool(data.get("log_json", s.log_json)),
        }
    )
