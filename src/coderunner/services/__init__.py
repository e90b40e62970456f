from .job_service import JobService, execute

__all__ = ["JobService", "execute"]
