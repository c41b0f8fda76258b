"""Type definitions for distrodebug."""

from dataclasses import dataclass
from enum import Enum


@dataclass(frozen=True)
class TargetReference:
    namespace: str
    pod_name: str
    container_name: str | None = None


@dataclass(frozen=True)
class ContainerIdentity:
    node_name: str
    container_id: str  # runtime scheme already stripped
    runtime_prefix: str  # e.g. "containerd", "docker", "cri-o"
    container_name: str

    def __post_init__(self):
        if not self.node_name:
            raise ValueError("ContainerIdentity requires a node name.")
        if not self.container_id:
            raise ValueError("ContainerIdentity requires a container ID.")


@dataclass(frozen=True)
class InjectionJobSpec:
    name: str
    namespace: str
    node_name: str
    image: str
    payload: str  # serialized InjectionPlan, opaque to the orchestrator
    image_pull_secret: str | None = None
    privileged: bool = True
    host_mount_path: str = "/host"


class JobStatus(Enum):
    PENDING = "Pending"
    RUNNING = "Running"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"
    UNKNOWN = "Unknown"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.SUCCEEDED, JobStatus.FAILED)
