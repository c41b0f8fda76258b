"""Tests for the injection job manifest."""

import re
import subprocess
from unittest.mock import MagicMock

import pytest

from distrodebug.errors import SubmissionError
from distrodebug.injector import InjectionPlan
from distrodebug.manifest import (
    build_job_spec,
    generate_job_name,
    render_manifest,
    submit_job,
)
from distrodebug.types import ContainerIdentity

IDENTITY = ContainerIdentity(
    node_name="node-7",
    container_id="abc123",
    runtime_prefix="containerd",
    container_name="app",
)
PLAN = InjectionPlan(
    container_id="abc123",
    rootfs_template="run/containerd/io.containerd.runtime.v2.task/k8s.io/{container_id}/rootfs",
    utilities=["ls", "cat"],
)


class TestGenerateJobName:
    def test_format(self):
        assert re.fullmatch(r"privileged-debugger-[0-9a-f]{8}", generate_job_name())

    def test_names_do_not_collide(self):
        names = {generate_job_name() for _ in range(5000)}

        assert len(names) == 5000


class TestRenderManifest:
    def test_job_shape(self):
        spec = build_job_spec(IDENTITY, "prod", "python:3.12-alpine", PLAN)

        manifest = render_manifest(spec)

        assert manifest["kind"] == "Job"
        assert manifest["metadata"]["name"] == spec.name
        assert manifest["metadata"]["namespace"] == "prod"
        assert manifest["spec"]["backoffLimit"] == 0

        pod_spec = manifest["spec"]["template"]["spec"]
        assert pod_spec["restartPolicy"] == "Never"
        assert pod_spec["tolerations"] == [{"operator": "Exists"}]
        assert "imagePullSecrets" not in pod_spec

        terms = pod_spec["affinity"]["nodeAffinity"][
            "requiredDuringSchedulingIgnoredDuringExecution"
        ]["nodeSelectorTerms"]
        assert terms == [
            {
                "matchFields": [
                    {"key": "metadata.name", "operator": "In", "values": ["node-7"]}
                ]
            }
        ]

        (container,) = pod_spec["containers"]
        assert container["image"] == "python:3.12-alpine"
        assert container["securityContext"] == {"privileged": True}
        assert container["stdin"] is True
        assert container["tty"] is True
        assert container["volumeMounts"] == [
            {"name": "host-root", "mountPath": "/host"}
        ]
        assert pod_spec["volumes"] == [{"name": "host-root", "hostPath": {"path": "/"}}]

    def test_command_carries_injector_and_plan(self):
        spec = build_job_spec(IDENTITY, "prod", "python:3.12-alpine", PLAN)

        command = render_manifest(spec)["spec"]["template"]["spec"]["containers"][0][
            "command"
        ]

        assert command[:2] == ["python3", "-c"]
        assert "def inject(" in command[2]
        assert command[3] == "--plan"
        assert InjectionPlan.from_json(command[4]) == PLAN

    def test_pull_secret(self):
        spec = build_job_spec(
            IDENTITY, "prod", "registry.local/toolkit:1", PLAN, image_pull_secret="regcred"
        )

        pod_spec = render_manifest(spec)["spec"]["template"]["spec"]

        assert pod_spec["imagePullSecrets"] == [{"name": "regcred"}]


class TestSubmitJob:
    def test_applies_once(self):
        kubectl = MagicMock()
        spec = build_job_spec(IDENTITY, "prod", "python:3.12-alpine", PLAN)

        submit_job(kubectl, spec)

        kubectl.apply.assert_called_once_with(render_manifest(spec))

    def test_rejection_raises_submission_error(self):
        kubectl = MagicMock()
        kubectl.apply.side_effect = subprocess.CalledProcessError(
            1, ["kubectl", "apply"], "", 'jobs.batch is forbidden: User "dev"'
        )
        spec = build_job_spec(IDENTITY, "prod", "python:3.12-alpine", PLAN)

        with pytest.raises(SubmissionError, match="forbidden"):
            submit_job(kubectl, spec)
