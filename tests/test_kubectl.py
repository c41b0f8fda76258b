"""Tests for the kubectl wrapper - command construction and output parsing."""

import json
import subprocess
from unittest.mock import MagicMock, patch

import pytest

from distrodebug.errors import ConfigError
from distrodebug.kubectl import Kubectl


def _completed(stdout: str = "", stderr: str = "", returncode: int = 0) -> MagicMock:
    result = MagicMock()
    result.stdout = stdout
    result.stderr = stderr
    result.returncode = returncode
    return result


class TestCommand:
    def test_plain_command(self):
        assert Kubectl().command("get", "pods") == ["kubectl", "get", "pods"]

    def test_kubeconfig_and_context_come_first(self):
        kubectl = Kubectl(kubeconfig="/tmp/kc", context="staging")

        assert kubectl.command("get", "pods") == [
            "kubectl",
            "--kubeconfig",
            "/tmp/kc",
            "--context",
            "staging",
            "get",
            "pods",
        ]

    @patch("shutil.which")
    def test_missing_binary_raises_config_error(self, mock_which: MagicMock):
        mock_which.return_value = None

        with pytest.raises(ConfigError, match="not found in PATH"):
            Kubectl().ensure_available()


class TestGetPod:
    @patch("subprocess.run")
    def test_returns_parsed_pod(self, mock_run: MagicMock):
        pod = {"metadata": {"name": "web-1"}, "spec": {"nodeName": "node-7"}}
        mock_run.return_value = _completed(stdout=json.dumps(pod))

        result = Kubectl().get_pod("prod", "web-1")

        assert result == pod
        cmd = mock_run.call_args[0][0]
        assert cmd == ["kubectl", "get", "pod", "web-1", "-n", "prod", "-o", "json"]

    @patch("subprocess.run")
    def test_not_found_returns_none(self, mock_run: MagicMock):
        mock_run.return_value = _completed(
            stderr='Error from server (NotFound): pods "web-1" not found',
            returncode=1,
        )

        assert Kubectl().get_pod("prod", "web-1") is None

    @patch("subprocess.run")
    def test_other_errors_are_raised(self, mock_run: MagicMock):
        mock_run.return_value = _completed(
            stderr="error: You must be logged in to the server (Unauthorized)",
            returncode=1,
        )

        with pytest.raises(subprocess.CalledProcessError):
            Kubectl().get_pod("prod", "web-1")

    @patch("subprocess.run")
    def test_missing_context_is_raised_not_treated_as_missing_pod(
        self, mock_run: MagicMock
    ):
        mock_run.return_value = _completed(
            stderr="error: context was not found for specified context: staging",
            returncode=1,
        )

        with pytest.raises(subprocess.CalledProcessError):
            Kubectl(context="staging").get_pod("prod", "web-1")

    @patch("subprocess.run")
    def test_other_pod_not_found_is_raised(self, mock_run: MagicMock):
        mock_run.return_value = _completed(
            stderr='error: pods "web-2" not found', returncode=1
        )

        with pytest.raises(subprocess.CalledProcessError):
            Kubectl().get_pod("prod", "web-1")


class TestJobOperations:
    @patch("subprocess.run")
    def test_apply_sends_manifest_on_stdin(self, mock_run: MagicMock):
        mock_run.return_value = _completed(stdout="job.batch/x created")
        manifest = {"kind": "Job", "metadata": {"name": "x"}}

        Kubectl().apply(manifest)

        args, kwargs = mock_run.call_args
        assert args[0] == ["kubectl", "apply", "-f", "-"]
        assert json.loads(kwargs["input"]) == manifest

    @patch("subprocess.run")
    def test_apply_failure_raises(self, mock_run: MagicMock):
        mock_run.return_value = _completed(stderr="forbidden", returncode=1)

        with pytest.raises(subprocess.CalledProcessError) as exc_info:
            Kubectl().apply({"kind": "Job"})
        assert exc_info.value.stderr == "forbidden"

    @patch("subprocess.run")
    def test_wait_uses_bounded_timeout(self, mock_run: MagicMock):
        mock_run.return_value = _completed()

        Kubectl().wait_for_job("prod", "privileged-debugger-0a1b2c3d", 60)

        cmd = mock_run.call_args[0][0]
        assert "--for=condition=complete" in cmd
        assert "job/privileged-debugger-0a1b2c3d" in cmd
        assert "--timeout=60s" in cmd

    @patch("subprocess.run")
    def test_delete_ignores_missing_job(self, mock_run: MagicMock):
        mock_run.return_value = _completed()

        Kubectl().delete_job("prod", "privileged-debugger-0a1b2c3d")

        cmd = mock_run.call_args[0][0]
        assert cmd[:4] == ["kubectl", "delete", "job", "privileged-debugger-0a1b2c3d"]
        assert "--ignore-not-found" in cmd


class TestExecInteractive:
    @patch("subprocess.run")
    def test_exec_targets_container(self, mock_run: MagicMock):
        mock_run.return_value = _completed(returncode=0)

        code = Kubectl(context="prod-cluster").exec_interactive(
            "prod", "web-1", "app", ["/bin/sh"]
        )

        assert code == 0
        assert mock_run.call_args[0][0] == [
            "kubectl",
            "--context",
            "prod-cluster",
            "exec",
            "-it",
            "web-1",
            "-n",
            "prod",
            "-c",
            "app",
            "--",
            "/bin/sh",
        ]

    @patch("subprocess.run")
    def test_exec_returns_remote_exit_code(self, mock_run: MagicMock):
        mock_run.return_value = _completed(returncode=3)

        assert Kubectl().exec_interactive("prod", "web-1", None, ["/bin/sh"]) == 3
        assert "-c" not in mock_run.call_args[0][0]
