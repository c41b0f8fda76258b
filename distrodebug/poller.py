"""Watch the injection job until it succeeds, fails, or times out."""

import subprocess
import time
from collections.abc import Callable

from distrodebug.errors import JobFailedError, PollTimeoutError
from distrodebug.kubectl import Kubectl
from distrodebug.types import InjectionJobSpec, JobStatus
from distrodebug.ui import print_debug

DEFAULT_POLL_INTERVAL = 2.0
DEFAULT_POLL_TIMEOUT = 300.0


def get_job_status(kubectl: Kubectl, namespace: str, name: str) -> JobStatus:
    try:
        job = kubectl.get_job(namespace, name)
    except (subprocess.CalledProcessError, ValueError) as e:
        print_debug(f"Could not read status of job {name}: {e}")
        return JobStatus.UNKNOWN

    status = job.get("status", {})
    if status.get("succeeded", 0) >= 1:
        return JobStatus.SUCCEEDED
    if status.get("failed", 0) > 0:
        return JobStatus.FAILED
    if status.get("active", 0) > 0:
        return JobStatus.RUNNING
    return JobStatus.PENDING


def _failure_logs(kubectl: Kubectl, spec: InjectionJobSpec) -> str:
    try:
        return kubectl.job_logs(spec.namespace, spec.name)
    except subprocess.CalledProcessError:
        return ""


def wait_for_completion(
    kubectl: Kubectl,
    spec: InjectionJobSpec,
    interval: float = DEFAULT_POLL_INTERVAL,
    timeout: float = DEFAULT_POLL_TIMEOUT,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> JobStatus:
    """Block until the job succeeds.

    Raises:
        JobFailedError: the job reported a failed pod
        PollTimeoutError: no terminal state before the deadline
    """
    deadline = clock() + timeout
    last_status = None

    while True:
        status = get_job_status(kubectl, spec.namespace, spec.name)
        if status != last_status:
            print_debug(f"Job {spec.name}: {status.value}")
            last_status = status

        if status.is_terminal:
            if status == JobStatus.FAILED:
                raise JobFailedError(spec.name, _failure_logs(kubectl, spec))
            return status

        if clock() >= deadline:
            raise PollTimeoutError(spec.name, timeout)
        sleep(interval)
