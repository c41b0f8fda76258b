"""Exceptions raised by the injection pipeline."""

from enum import Enum


class DistroDebugError(Exception):
    """Base class for every error distrodebug reports to the user."""


class ConfigError(DistroDebugError):
    pass


class ResolutionFailure(Enum):
    POD_NOT_FOUND = "PodNotFound"
    CONTAINER_NOT_FOUND = "ContainerNotFound"
    CONTAINER_NOT_STARTED = "ContainerNotStarted"


class ResolutionError(DistroDebugError):
    def __init__(self, reason: ResolutionFailure, message: str):
        super().__init__(message)
        self.reason = reason


class SubmissionError(DistroDebugError):
    pass


class JobFailedError(DistroDebugError):
    def __init__(self, job_name: str, logs: str = ""):
        message = f"Injection job '{job_name}' failed."
        if logs:
            message += f"\n{logs.rstrip()}"
        super().__init__(message)
        self.job_name = job_name
        self.logs = logs


class PollTimeoutError(DistroDebugError):
    def __init__(self, job_name: str, timeout: float):
        super().__init__(
            f"Injection job '{job_name}' did not finish within {timeout:g}s."
        )
        self.job_name = job_name
        self.timeout = timeout


class ExecError(DistroDebugError):
    pass


class CleanupError(DistroDebugError):
    pass
