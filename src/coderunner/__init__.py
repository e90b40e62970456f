"""Run untrusted code in throwaway containers."""

from .core.errors import (
    ContainerCreateError,
    ContainerRuntimeError,
    ExecutionError,
    ExecutionFailure,
    ExecutionTimeout,
    ProvisionError,
    UnsupportedLanguage,
    WorkspaceError,
)
from .services.job_service import JobService, execute

__version__ = "0.1.0"

__all__ = [
    "ContainerCreateError",
    "ContainerRuntimeError",
    "ExecutionError",
    "ExecutionFailure",
    "ExecutionTimeout",
    "JobService",
    "ProvisionError",
    "UnsupportedLanguage",
    "WorkspaceError",
    "execute",
]
