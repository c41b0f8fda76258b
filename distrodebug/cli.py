import signal

import typer

from distrodebug.catalog import load_catalog
from distrodebug.errors import DistroDebugError
from distrodebug.kubectl import Kubectl
from distrodebug.poller import DEFAULT_POLL_INTERVAL, DEFAULT_POLL_TIMEOUT
from distrodebug.session import (
    DEFAULT_CLEANUP_TIMEOUT,
    DEFAULT_IMAGE,
    DEFAULT_SHELL,
    InjectionSession,
    SessionOptions,
)
from distrodebug.types import TargetReference
from distrodebug.ui import print_info, set_verbose

app = typer.Typer(add_completion=False)


def _raise_keyboard_interrupt(signum, frame):
    raise KeyboardInterrupt


@app.command(
    help="Inject a static debugging toolkit into a running container and open a shell in it."
)
def inject(
    pod: str = typer.Argument(..., help="The pod to debug."),
    namespace: str = typer.Option(
        "default",
        "--namespace",
        "-n",
        envvar="DISTRODEBUG_NAMESPACE",
        help="The namespace of the pod.",
    ),
    image: str = typer.Option(
        DEFAULT_IMAGE,
        "--image",
        "-i",
        envvar="DISTRODEBUG_IMAGE",
        help="Debug image providing the toolkit (and python3 to run the injector).",
    ),
    container: str = typer.Option(
        None,
        "--container",
        "-c",
        help="The target container. Defaults to the first container of the pod.",
    ),
    daemon: bool = typer.Option(
        False,
        "--daemon",
        "-d",
        help="Submit the injection job and exit, leaving the job in place.",
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Echo every step and kubectl command."
    ),
    pull_secret: str = typer.Option(
        None,
        "--pull-secret",
        envvar="DISTRODEBUG_PULL_SECRET",
        help="Image pull secret for the debug image.",
    ),
    kubeconfig: str = typer.Option(
        None, "--kubeconfig", help="Path to a kubeconfig file."
    ),
    context: str = typer.Option(
        None, "--context", help="The kubeconfig context to use."
    ),
    job_namespace: str = typer.Option(
        None,
        "--job-namespace",
        envvar="DISTRODEBUG_JOB_NAMESPACE",
        help="Namespace for the privileged job. Defaults to the pod's namespace.",
    ),
    runtime: str = typer.Option(
        None,
        "--runtime",
        envvar="DISTRODEBUG_RUNTIME",
        help="Node container runtime layout (containerd, k3s, microk8s, docker).",
    ),
    rootfs_template: str = typer.Option(
        None,
        "--rootfs-template",
        envvar="DISTRODEBUG_ROOTFS_TEMPLATE",
        help="Rootfs path relative to the host root, containing '{container_id}'.",
    ),
    catalog: str = typer.Option(
        None,
        "--catalog",
        envvar="DISTRODEBUG_CATALOG",
        help="File with the utility names to link, one per line.",
    ),
    shell: str = typer.Option(
        DEFAULT_SHELL, "--shell", help="Command to run in the interactive session."
    ),
    timeout: float = typer.Option(
        DEFAULT_POLL_TIMEOUT,
        "--timeout",
        min=1,
        help="Seconds to wait for the injection job to finish.",
    ),
    cleanup_timeout: float = typer.Option(
        DEFAULT_CLEANUP_TIMEOUT,
        "--cleanup-timeout",
        min=1,
        help="Seconds to wait for job completion before deleting it.",
    ),
    poll_interval: float = typer.Option(
        DEFAULT_POLL_INTERVAL,
        "--poll-interval",
        min=0.1,
        help="Seconds between job status checks.",
    ),
):
    set_verbose(verbose)
    kubectl = Kubectl(kubeconfig=kubeconfig, context=context)

    try:
        kubectl.ensure_available()
        options = SessionOptions(
            image=image,
            daemon=daemon,
            image_pull_secret=pull_secret,
            job_namespace=job_namespace,
            runtime=runtime,
            rootfs_template=rootfs_template,
            utilities=load_catalog(catalog),
            shell=shell,
            poll_interval=poll_interval,
            poll_timeout=timeout,
            cleanup_timeout=cleanup_timeout,
        )
    except DistroDebugError as e:
        typer.echo(f"❌ {e}", err=True)
        raise typer.Exit(code=1)

    session = InjectionSession(
        kubectl,
        TargetReference(namespace=namespace, pod_name=pod, container_name=container),
        options,
    )

    # Route SIGTERM through the same cleanup path as Ctrl+C
    signal.signal(signal.SIGTERM, _raise_keyboard_interrupt)
    try:
        session.run()
    except DistroDebugError as e:
        typer.echo(f"❌ {e}", err=True)
        raise typer.Exit(code=1)
    except KeyboardInterrupt:
        print_info("Interrupted.")
        raise typer.Exit(code=130)

    # The shell's own exit status is the command's exit status
    if session.exec_returncode:
        raise typer.Exit(code=session.exec_returncode)


if __name__ == "__main__":
    app()
