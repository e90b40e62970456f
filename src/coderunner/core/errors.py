"""
Failure taxonomy for a job.

Every class except ``CleanupWarning`` ends the job and is surfaced to the
caller. ``CleanupWarning`` is only ever logged.
"""
from __future__ import annotations

from typing import Optional


class ExecutionError(Exception):
    kind = "execution_error"
    http_status = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.message, "kind": self.kind}


class UnsupportedLanguage(ExecutionError):
    kind = "unsupported_language"
    http_status = 400

    def __init__(self, language: str, supported: Optional[list] = None):
        supported = supported or []
        msg = f"Language '{language}' is not supported."
        if supported:
            msg += f" Supported: {', '.join(supported)}"
        super().__init__(msg)
        self.language = language
        self.supported = supported


class WorkspaceError(ExecutionError):
    kind = "workspace_error"
    http_status = 500


class ProvisionError(ExecutionError):
    kind = "provision_error"
    http_status = 503


class ContainerCreateError(ExecutionError):
    kind = "container_create_error"
    http_status = 503


class ContainerRuntimeError(ExecutionError):
    """The container started but waiting on it or reading its logs failed."""

    kind = "container_runtime_error"
    http_status = 503


class ExecutionTimeout(ExecutionError):
    kind = "execution_timeout"
    http_status = 408

    def __init__(self, timeout_s: float, output: str = ""):
        super().__init__(f"Execution timed out after {timeout_s:g} seconds.")
        self.timeout_s = timeout_s
        self.output = output

    def to_dict(self) -> dict:
        return {**super().to_dict(), "output": self.output}


class ExecutionFailure(ExecutionError):
    kind = "execution_failure"
    http_status = 422

    def __init__(self, exit_code: int, output: str):
        super().__init__(f"Execution failed with exit code {exit_code}.\n{output}".rstrip())
        self.exit_code = exit_code
        self.output = output

    def to_dict(self) -> dict:
        return {**super().to_dict(), "exit_code": self.exit_code, "output": self.output}


class CleanupWarning:
    """A cleanup step that failed. Logged, never raised."""

    def __init__(self, target: str, detail: str):
        self.target = target
        self.detail = detail

    def __repr__(self) -> str:
        return f"CleanupWarning(target={self.target!r}, detail={self.detail!r})"
