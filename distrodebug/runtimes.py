"""On-disk rootfs layouts of the container runtimes distrodebug knows about.

Each layout is a path template relative to the host root. The templates are a
direct dependency on the runtime's storage convention: on an unlisted runtime
they point at a path that does not exist, and the injection job fails.
"""

from distrodebug.errors import ConfigError
from distrodebug.types import ContainerIdentity

_CONTAINERD_TASKS = "io.containerd.runtime.v2.task"

RUNTIME_LAYOUTS: dict[str, str] = {
    "containerd": f"run/containerd/{_CONTAINERD_TASKS}/k8s.io/{{container_id}}/rootfs",
    "k3s": f"run/k3s/containerd/{_CONTAINERD_TASKS}/k8s.io/{{container_id}}/rootfs",
    "microk8s": f"var/snap/microk8s/common/run/containerd/{_CONTAINERD_TASKS}/k8s.io/{{container_id}}/rootfs",
    # Docker Engine (cri-dockerd) keeps its tasks in containerd's "moby" namespace
    "docker": f"run/containerd/{_CONTAINERD_TASKS}/moby/{{container_id}}/rootfs",
}

# Layout used when no runtime is configured, keyed by container ID scheme
_SCHEME_DEFAULTS = {
    "containerd": "containerd",
    "docker": "docker",
}


def select_rootfs_template(
    identity: ContainerIdentity,
    runtime: str | None = None,
    template: str | None = None,
) -> str:
    """Pick the rootfs path template for a container.

    An explicit template wins, then a named runtime, then the default for the
    container ID's scheme.
    """
    if template:
        if "{container_id}" not in template:
            raise ConfigError(
                f"Rootfs template '{template}' must contain '{{container_id}}'."
            )
        try:
            template.format(container_id=identity.container_id)
        except (KeyError, IndexError, ValueError) as e:
            raise ConfigError(
                f"Rootfs template '{template}' is not valid: only '{{container_id}}' "
                f"may appear in braces ({type(e).__name__}: {e})."
            ) from None
        return template.lstrip("/")

    if runtime is None:
        runtime = _SCHEME_DEFAULTS.get(identity.runtime_prefix)
        if runtime is None:
            raise ConfigError(
                f"No rootfs layout known for runtime '{identity.runtime_prefix or 'unknown'}'. "
                f"Pass --runtime ({', '.join(RUNTIME_LAYOUTS)}) or --rootfs-template."
            )

    try:
        return RUNTIME_LAYOUTS[runtime]
    except KeyError:
        raise ConfigError(
            f"Unknown runtime '{runtime}'. Choose one of: {', '.join(RUNTIME_LAYOUTS)}."
        ) from None
