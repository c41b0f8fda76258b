"""Build and submit the privileged injection job."""

import secrets
import subprocess
from pathlib import Path
from typing import Any

from distrodebug.errors import SubmissionError
from distrodebug.injector import InjectionPlan
from distrodebug.kubectl import Kubectl
from distrodebug.types import ContainerIdentity, InjectionJobSpec

JOB_NAME_PREFIX = "privileged-debugger-"
INJECTOR_PATH = Path(__file__).parent / "injector.py"

_CONTAINER_NAME = "injector"
_HOST_VOLUME = "host-root"
_LABELS = {
    "app.kubernetes.io/name": "privileged-debugger",
    "app.kubernetes.io/managed-by": "distrodebug",
}


def generate_job_name() -> str:
    return JOB_NAME_PREFIX + secrets.token_hex(4)


def build_job_spec(
    identity: ContainerIdentity,
    namespace: str,
    image: str,
    plan: InjectionPlan,
    image_pull_secret: str | None = None,
) -> InjectionJobSpec:
    return InjectionJobSpec(
        name=generate_job_name(),
        namespace=namespace,
        node_name=identity.node_name,
        image=image,
        payload=plan.to_json(),
        image_pull_secret=image_pull_secret,
        host_mount_path=plan.host_mount,
    )


def injector_command(payload: str) -> list[str]:
    with open(INJECTOR_PATH, "r") as f:
        source = f.read()
    return ["python3", "-c", source, "--plan", payload]


def render_manifest(spec: InjectionJobSpec) -> dict[str, Any]:
    pod_spec: dict[str, Any] = {
        "restartPolicy": "Never",
        "tolerations": [{"operator": "Exists"}],
        # matchFields on metadata.name pins by node name even when the
        # kubernetes.io/hostname label differs from it
        "affinity": {
            "nodeAffinity": {
                "requiredDuringSchedulingIgnoredDuringExecution": {
                    "nodeSelectorTerms": [
                        {
                            "matchFields": [
                                {
                                    "key": "metadata.name",
                                    "operator": "In",
                                    "values": [spec.node_name],
                                }
                            ]
                        }
                    ]
                }
            }
        },
        "containers": [
            {
                "name": _CONTAINER_NAME,
                "image": spec.image,
                "command": injector_command(spec.payload),
                "securityContext": {"privileged": spec.privileged},
                "stdin": True,
                "tty": True,
                "volumeMounts": [
                    {"name": _HOST_VOLUME, "mountPath": spec.host_mount_path}
                ],
            }
        ],
        "volumes": [{"name": _HOST_VOLUME, "hostPath": {"path": "/"}}],
    }
    if spec.image_pull_secret:
        pod_spec["imagePullSecrets"] = [{"name": spec.image_pull_secret}]

    return {
        "apiVersion": "batch/v1",
        "kind": "Job",
        "metadata": {
            "name": spec.name,
            "namespace": spec.namespace,
            "labels": dict(_LABELS),
        },
        "spec": {
            "backoffLimit": 0,
            "template": {
                "metadata": {"labels": dict(_LABELS)},
                "spec": pod_spec,
            },
        },
    }


def submit_job(kubectl: Kubectl, spec: InjectionJobSpec):
    try:
        kubectl.apply(render_manifest(spec))
    except subprocess.CalledProcessError as e:
        stderr = (e.stderr or "").strip()
        raise SubmissionError(
            f"Failed to submit job '{spec.name}': {stderr or f'exit code {e.returncode}'}"
        ) from e
