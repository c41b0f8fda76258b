"""Kubernetes control-plane operations for distrodebug, via kubectl."""

import json
import shlex
import shutil
import subprocess
from dataclasses import dataclass
from typing import Any

from distrodebug.errors import ConfigError
from distrodebug.ui import print_debug


def _is_not_found(stderr: str, kind: str, name: str) -> bool:
    # A missing context or kubeconfig also says "not found"; only match the object
    return "(NotFound)" in stderr or f'{kind} "{name}" not found' in stderr


@dataclass
class Kubectl:
    """A kubectl invocation bound to one kubeconfig/context."""

    kubeconfig: str | None = None
    context: str | None = None
    binary: str = "kubectl"

    def ensure_available(self):
        if not shutil.which(self.binary):
            raise ConfigError(
                f"'{self.binary}' command-line tool is required but not found in PATH."
            )

    def command(self, *args: str) -> list[str]:
        cmd = [self.binary]
        if self.kubeconfig:
            cmd.extend(["--kubeconfig", self.kubeconfig])
        if self.context:
            cmd.extend(["--context", self.context])
        cmd.extend(args)
        return cmd

    def _run(
        self, *args: str, input: str | None = None
    ) -> subprocess.CompletedProcess[str]:
        cmd = self.command(*args)
        print_debug(f"$ {shlex.join(cmd)}")
        return subprocess.run(
            cmd, input=input, capture_output=True, text=True, check=False
        )

    def _check(self, *args: str, input: str | None = None) -> str:
        result = self._run(*args, input=input)
        if result.returncode != 0:
            raise subprocess.CalledProcessError(
                result.returncode, self.command(*args), result.stdout, result.stderr
            )
        return result.stdout

    # ===== Pods =====

    def get_pod(self, namespace: str, name: str) -> dict[str, Any] | None:
        """Return the pod object, or None when it does not exist."""
        result = self._run("get", "pod", name, "-n", namespace, "-o", "json")
        if result.returncode != 0:
            if _is_not_found(result.stderr, "pods", name):
                return None
            raise subprocess.CalledProcessError(
                result.returncode,
                self.command("get", "pod", name, "-n", namespace, "-o", "json"),
                result.stdout,
                result.stderr,
            )
        return json.loads(result.stdout)

    def exec_interactive(
        self, namespace: str, pod: str, container: str | None, command: list[str]
    ) -> int:
        """Attach the local terminal to a command in a container. Returns its exit code."""
        args = ["exec", "-it", pod, "-n", namespace]
        if container:
            args.extend(["-c", container])
        cmd = self.command(*args, "--", *command)
        print_debug(f"$ {shlex.join(cmd)}")
        return subprocess.run(cmd).returncode

    # ===== Jobs =====

    def apply(self, manifest: dict[str, Any]) -> str:
        return self._check("apply", "-f", "-", input=json.dumps(manifest))

    def get_job(self, namespace: str, name: str) -> dict[str, Any]:
        return json.loads(self._check("get", "job", name, "-n", namespace, "-o", "json"))

    def job_logs(self, namespace: str, name: str) -> str:
        return self._check("logs", f"job/{name}", "-n", namespace)

    def wait_for_job(self, namespace: str, name: str, timeout: float):
        self._check(
            "wait",
            "--for=condition=complete",
            f"job/{name}",
            "-n",
            namespace,
            f"--timeout={int(timeout)}s",
        )

    def delete_job(self, namespace: str, name: str):
        # Background propagation also removes the job's pod
        self._check(
            "delete",
            "job",
            name,
            "-n",
            namespace,
            "--ignore-not-found",
            "--cascade=background",
        )
