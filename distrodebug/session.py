"""Run one injection: resolve, submit, poll, exec, clean up."""

import subprocess
from dataclasses import dataclass
from enum import Enum

from distrodebug.errors import (
    CleanupError,
    ExecError,
    SubmissionError,
)
from distrodebug.injector import InjectionPlan
from distrodebug.kubectl import Kubectl
from distrodebug.manifest import build_job_spec, submit_job
from distrodebug.poller import (
    DEFAULT_POLL_INTERVAL,
    DEFAULT_POLL_TIMEOUT,
    wait_for_completion,
)
from distrodebug.resolver import resolve_target
from distrodebug.runtimes import select_rootfs_template
from distrodebug.types import ContainerIdentity, InjectionJobSpec, TargetReference
from distrodebug.ui import (
    is_verbose,
    print_daemon_info,
    print_debug,
    print_step,
    print_success,
    print_warning,
    render_identity,
)

# Alpine ships busybox plus the musl libraries it needs in /bin and /lib,
# and python3 to run the injector.
DEFAULT_IMAGE = "python:3.12-alpine"
DEFAULT_SHELL = "/bin/sh"
DEFAULT_CLEANUP_TIMEOUT = 60.0
# kubectl exec reports these when the command cannot be run in the container
_SHELL_NOT_STARTED = (126, 127)


class Stage(Enum):
    CREATED = "created"
    RESOLVING = "resolving"
    SUBMITTING = "submitting"
    POLLING = "polling"
    EXECUTING = "executing"
    CLEANING_UP = "cleaning-up"
    DETACHED = "detached"
    DONE = "done"
    FAILED = "failed"


_TRANSITIONS: dict[Stage, set[Stage]] = {
    Stage.CREATED: {Stage.RESOLVING},
    Stage.RESOLVING: {Stage.SUBMITTING, Stage.FAILED},
    Stage.SUBMITTING: {Stage.POLLING, Stage.DETACHED, Stage.CLEANING_UP, Stage.FAILED},
    Stage.POLLING: {Stage.EXECUTING, Stage.CLEANING_UP},
    Stage.EXECUTING: {Stage.CLEANING_UP},
    Stage.CLEANING_UP: {Stage.DONE, Stage.FAILED},
    Stage.DETACHED: set(),
    Stage.DONE: set(),
    Stage.FAILED: set(),
}


@dataclass
class SessionOptions:
    image: str = DEFAULT_IMAGE
    daemon: bool = False
    image_pull_secret: str | None = None
    job_namespace: str | None = None
    runtime: str | None = None
    rootfs_template: str | None = None
    utilities: tuple[str, ...] = ()
    shell: str = DEFAULT_SHELL
    poll_interval: float = DEFAULT_POLL_INTERVAL
    poll_timeout: float = DEFAULT_POLL_TIMEOUT
    cleanup_timeout: float = DEFAULT_CLEANUP_TIMEOUT


class InjectionSession:
    """A single, strictly ordered injection run against one target container.

    Once a job has been submitted, every exit path (success, job failure,
    timeout, exec failure, KeyboardInterrupt) goes through cleanup, except
    daemon mode, which leaves the job in place on purpose.
    """

    def __init__(
        self, kubectl: Kubectl, target: TargetReference, options: SessionOptions
    ):
        self.kubectl = kubectl
        self.target = target
        self.options = options
        self.stage = Stage.CREATED
        self.identity: ContainerIdentity | None = None
        self.job: InjectionJobSpec | None = None
        self.cleanup_error: CleanupError | None = None
        self.exec_returncode: int | None = None
        self._job_succeeded = False

    def _advance(self, stage: Stage):
        if stage not in _TRANSITIONS[self.stage]:
            raise RuntimeError(
                f"Invalid session transition {self.stage.value} -> {stage.value}"
            )
        print_debug(f"Stage: {self.stage.value} -> {stage.value}")
        self.stage = stage

    def run(self) -> Stage:
        failed = True
        try:
            self._resolve()
            self._submit()
            if self.options.daemon:
                self._advance(Stage.DETACHED)
                print_daemon_info(self.job)
                failed = False
                return self.stage
            self._poll()
            self._exec()
            failed = False
        finally:
            if self.stage is not Stage.DETACHED:
                self._finish(failed)
        return self.stage

    # ===== Pipeline steps =====

    def _resolve(self):
        self._advance(Stage.RESOLVING)
        print_step(
            f"Resolving container in pod [blue]{self.target.pod_name}[/blue] "
            f"(namespace [magenta]{self.target.namespace}[/magenta])..."
        )
        self.identity = resolve_target(self.kubectl, self.target)
        if is_verbose():
            render_identity(self.identity)

    def _submit(self):
        self._advance(Stage.SUBMITTING)
        identity = self.identity
        plan = InjectionPlan(
            container_id=identity.container_id,
            rootfs_template=select_rootfs_template(
                identity, self.options.runtime, self.options.rootfs_template
            ),
            utilities=list(self.options.utilities),
        )
        print_debug(f"Target rootfs on node: {plan.rootfs}")

        spec = build_job_spec(
            identity,
            namespace=self.options.job_namespace or self.target.namespace,
            image=self.options.image,
            plan=plan,
            image_pull_secret=self.options.image_pull_secret,
        )
        print_step(
            f"Submitting job [cyan]{spec.name}[/cyan] on node [blue]{spec.node_name}[/blue]..."
        )
        # Set before applying so an interrupt mid-apply still triggers cleanup
        self.job = spec
        try:
            submit_job(self.kubectl, spec)
        except SubmissionError:
            self.job = None
            raise
        print_success(f"Job [cyan]{spec.name}[/cyan] submitted")

    def _poll(self):
        self._advance(Stage.POLLING)
        print_step("Waiting for the toolkit to be copied...", prefix="⏳")
        wait_for_completion(
            self.kubectl,
            self.job,
            interval=self.options.poll_interval,
            timeout=self.options.poll_timeout,
        )
        self._job_succeeded = True
        print_success("Toolkit injected")

    def _exec(self):
        self._advance(Stage.EXECUTING)
        container = self.identity.container_name
        print_step(
            f"Opening [cyan]{self.options.shell}[/cyan] in [blue]{self.target.pod_name}[/blue]/{container}...",
            prefix="🐚",
        )
        try:
            returncode = self.kubectl.exec_interactive(
                self.target.namespace,
                self.target.pod_name,
                container,
                [self.options.shell],
            )
        except OSError as e:
            raise ExecError(f"Could not start kubectl exec: {e}") from e
        if returncode in _SHELL_NOT_STARTED:
            raise ExecError(
                f"Could not start '{self.options.shell}' in container '{container}' "
                f"(exit code {returncode})."
            )
        self.exec_returncode = returncode
        if returncode != 0:
            print_debug(f"Interactive session exited with code {returncode}")

    def _finish(self, failed: bool):
        if self.job is None:
            self._advance(Stage.FAILED)
            return

        self._advance(Stage.CLEANING_UP)
        try:
            self._cleanup()
        except CleanupError as e:
            self.cleanup_error = e
            print_warning(str(e))
        self._advance(Stage.FAILED if failed else Stage.DONE)

    def _cleanup(self):
        spec = self.job
        print_step(f"Removing job [cyan]{spec.name}[/cyan]...", prefix="🧹")

        wait_error = None
        if self._job_succeeded:
            try:
                self.kubectl.wait_for_job(
                    spec.namespace, spec.name, self.options.cleanup_timeout
                )
            except subprocess.CalledProcessError as e:
                wait_error = (e.stderr or "").strip() or f"exit code {e.returncode}"

        try:
            self.kubectl.delete_job(spec.namespace, spec.name)
        except (subprocess.CalledProcessError, OSError) as e:
            detail = getattr(e, "stderr", None) or str(e)
            raise CleanupError(
                f"Failed to delete job '{spec.name}' in namespace '{spec.namespace}': "
                f"{detail.strip()}. Delete it manually."
            ) from e

        if wait_error:
            raise CleanupError(
                f"Job '{spec.name}' did not report completion before deletion: {wait_error}"
            )
        print_success(f"Job [cyan]{spec.name}[/cyan] removed")
