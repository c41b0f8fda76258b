import os

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from distrodebug.types import ContainerIdentity, InjectionJobSpec

# Global console for UI functions
_console = Console()

# Check if we should use simple UI (e.g., when output is captured by CI logs)
_use_simple_ui = os.getenv("DISTRODEBUG_SIMPLE_UI") == "1"

_verbose = False


def set_verbose(enabled: bool):
    global _verbose
    _verbose = enabled


def is_verbose() -> bool:
    return _verbose


def print_success(message: str, prefix: str = "✅"):
    """Print a success message."""
    _console.print(f"[green]{prefix}[/green] {message}")


def print_info(message: str, prefix: str = "ℹ️"):
    """Print an info message."""
    _console.print(f"[blue]{prefix}[/blue]  {message}")


def print_step(message: str, prefix: str = "🔧"):
    """Print a step/progress message."""
    _console.print(f"[cyan]{prefix}[/cyan] {message}")


def print_warning(message: str, prefix: str = "⚠️"):
    _console.print(f"[yellow]{prefix}[/yellow]  {message}")


def print_debug(message: str):
    """Print a message only when verbose mode is on."""
    if _verbose:
        _console.print(f"[dim]· {message}[/dim]", highlight=False)


def render_identity(identity: ContainerIdentity):
    table = Table(show_header=False)

    table.add_column("Field", style="magenta", no_wrap=True)
    table.add_column("Value", style="cyan")

    table.add_row("Node", identity.node_name)
    table.add_row("Container", identity.container_name)
    table.add_row("Container ID", identity.container_id)
    table.add_row("Runtime", identity.runtime_prefix or "(none)")

    _console.print(table)


def print_daemon_info(spec: InjectionJobSpec):
    """Tell the user how to reclaim a job left behind in daemon mode."""
    delete_cmd = f"kubectl delete job {spec.name} -n {spec.namespace}"
    _console.print()

    if _use_simple_ui:
        _console.print("[yellow]" + "=" * 60 + "[/yellow]")
        _console.print(
            f"Privileged job [cyan bold]{spec.name}[/cyan bold] left running on node [blue]{spec.node_name}[/blue]."
        )
        _console.print(f"Remove it when done: [cyan]{delete_cmd}[/cyan]")
        _console.print("[yellow]" + "=" * 60 + "[/yellow]")
    else:
        _console.print(
            Panel(
                f"Privileged job [cyan bold]{spec.name}[/cyan bold] left running on node [blue]{spec.node_name}[/blue].\n"
                f"Remove it when done: [cyan]{delete_cmd}[/cyan]",
                border_style="yellow",
                title="Daemon Mode",
                expand=False,
            )
        )
