"""Map a pod/container reference to the container's identity on its node."""

from typing import Any

from distrodebug.errors import ResolutionError, ResolutionFailure
from distrodebug.kubectl import Kubectl
from distrodebug.types import ContainerIdentity, TargetReference


def normalize_container_id(raw_id: str) -> tuple[str, str]:
    """Split a status containerID such as ``containerd://abc`` into (scheme, id).

    IDs without a scheme are returned with an empty scheme.
    """
    scheme, sep, container_id = raw_id.partition("://")
    if not sep:
        return "", raw_id.strip()
    return scheme, container_id.strip()


def _select_status(
    statuses: list[dict[str, Any]], ref: TargetReference
) -> dict[str, Any]:
    if ref.container_name is None:
        if not statuses:
            raise ResolutionError(
                ResolutionFailure.CONTAINER_NOT_STARTED,
                f"Pod '{ref.pod_name}' has no container statuses yet.",
            )
        return statuses[0]

    for status in statuses:
        if status.get("name") == ref.container_name:
            return status

    available = ", ".join(s.get("name", "?") for s in statuses) or "none"
    raise ResolutionError(
        ResolutionFailure.CONTAINER_NOT_FOUND,
        f"Container '{ref.container_name}' not found in pod '{ref.pod_name}' "
        f"(available: {available}).",
    )


def resolve_target(kubectl: Kubectl, ref: TargetReference) -> ContainerIdentity:
    pod = kubectl.get_pod(ref.namespace, ref.pod_name)
    if not pod:
        raise ResolutionError(
            ResolutionFailure.POD_NOT_FOUND,
            f"Pod '{ref.pod_name}' not found in namespace '{ref.namespace}'.",
        )

    status = _select_status(pod.get("status", {}).get("containerStatuses", []), ref)
    container_name = status.get("name", "")

    scheme, container_id = normalize_container_id(status.get("containerID") or "")
    if not container_id:
        raise ResolutionError(
            ResolutionFailure.CONTAINER_NOT_STARTED,
            f"Container '{container_name}' in pod '{ref.pod_name}' is not running yet.",
        )

    node_name = pod.get("spec", {}).get("nodeName", "")
    if not node_name:
        raise ResolutionError(
            ResolutionFailure.CONTAINER_NOT_STARTED,
            f"Pod '{ref.pod_name}' has not been scheduled to a node yet.",
        )

    return ContainerIdentity(
        node_name=node_name,
        container_id=container_id,
        runtime_prefix=scheme,
        container_name=container_name,
    )
