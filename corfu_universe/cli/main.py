"""Main CLI entry point for the Corfu Universe framework."""

import sys
from pathlib import Path
from typing import Optional

import typer
from pydantic import BaseModel, ConfigDict, Field
from rich.console import Console
from rich.table import Table

from ..core.config import load_config, load_universe_params
from ..core.enums import BackendType
from ..core.errors import UniverseFrameworkError
from ..core.log import configure_logging, get_logger
from ..universe.factory import UniverseFactory
from ..universe.universe import Universe


class GlobalCliOptions(BaseModel):
    """Global CLI options that can be used across all commands."""

    verbose: int = Field(0, description="Increase verbosity level")
    config_file: Optional[Path] = Field(None, description="Configuration file path")
    log_level: str = Field("WARNING", description="Framework logging level")

    model_config = ConfigDict(use_enum_values=True)


app = typer.Typer(
    name="corfu-universe",
    help="Deploy Corfu clusters and inject faults into them",
    no_args_is_help=True,
    rich_markup_mode="markdown",
)
console = Console()
logger = get_logger(__name__)


@app.callback()
def main(
    ctx: typer.Context,
    verbose: int = typer.Option(
        0, "--verbose", "-v", count=True, help="Increase verbosity level"
    ),
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        help="Framework logging level (DEBUG, INFO, WARNING, ERROR) - explicit level",
    ),
    config_file: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Configuration file path"
    ),
) -> None:
    """Corfu Universe: cluster deployment and fault injection."""
    if verbose > 0 and log_level is not None:
        console.print("[red]Error: Cannot specify both --verbose and --log-level[/red]")
        raise typer.Exit(1)

    if log_level is None:
        log_level = "DEBUG" if verbose >= 2 else "INFO" if verbose == 1 else "WARNING"

    cli_options = GlobalCliOptions(verbose=verbose, config_file=config_file, log_level=log_level)
    ctx.ensure_object(dict)
    ctx.obj["cli_options"] = cli_options

    configure_logging(level=cli_options.log_level, enable_console=True, enable_json=False)


def _load_cli_config(ctx: typer.Context):
    options: GlobalCliOptions = ctx.obj["cli_options"]
    return load_config(config_file=options.config_file)


@app.command()
def version() -> None:
    """Show version information."""
    from .. import __version__

    table = Table(title="Corfu Universe Version Information")
    table.add_column("Component", style="cyan")
    table.add_column("Version", style="green")
    table.add_row("Corfu Universe", __version__)

    import docker
    import paramiko
    import pydantic

    table.add_row("docker", docker.__version__)
    table.add_row("paramiko", paramiko.__version__)
    table.add_row("pydantic", pydantic.VERSION)
    console.print(table)


@app.command()
def config(ctx: typer.Context) -> None:
    """Show current configuration."""
    try:
        current_config = _load_cli_config(ctx)
    except UniverseFrameworkError as e:
        console.print(f"[red]Error getting configuration: {e}[/red]")
        raise typer.Exit(1)

    table = Table(title="Corfu Universe Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Backend", current_config.backend.value)
    table.add_row("Log Level", current_config.log_level)
    table.add_row("Docker Image", current_config.docker_image)
    table.add_row("Bootstrap Command", " ".join(current_config.bootstrap_command))
    table.add_row("Work Directory", str(current_config.work_dir))
    table.add_row("Node Stop Timeout", f"{current_config.timeouts.node_stop}s")
    table.add_row(
        "IP Poll",
        f"{current_config.timeouts.ip_poll_max_attempts} x "
        f"{current_config.timeouts.ip_poll_interval}s",
    )
    table.add_row("SSH Connect Timeout", f"{current_config.timeouts.ssh_connect}s")
    table.add_row("Remote Command Timeout", f"{current_config.timeouts.exec_command}s")
    table.add_row(
        "VM Provision Workers", str(current_config.infrastructure.vm_provision_workers)
    )
    table.add_row(
        "Node Deploy Workers", str(current_config.infrastructure.node_deploy_workers)
    )
    console.print(table)


def _universe_table(universe: Universe) -> Table:
    table = Table(title=f"Universe {universe.universe_id}")
    table.add_column("Cluster", style="cyan")
    table.add_column("Node", style="magenta")
    table.add_column("Endpoint", style="green")
    table.add_column("State")
    for cluster_name, cluster in universe.groups().items():
        for name, node in cluster.nodes().items():
            table.add_row(cluster_name, name, node.endpoint, node.state.value)
    return table


def _teardown_universe(universe: Universe) -> None:
    """Remove every node so the same description can be deployed again."""
    for name, group in universe.groups().items():
        try:
            group.destroy()
        except UniverseFrameworkError as e:
            logger.warning("Can't destroy cluster %s: %s", name, e)
    universe.shutdown()


@app.command()
def deploy(
    ctx: typer.Context,
    universe_file: Path = typer.Argument(..., help="YAML universe description"),
    backend: Optional[BackendType] = typer.Option(
        None, "--backend", "-b", help="Backend to deploy on (defaults to the configured one)"
    ),
    keep: bool = typer.Option(
        False, "--keep", help="Leave the universe running after deployment"
    ),
) -> None:
    """Deploy a universe, print its nodes and shut it down again."""
    try:
        current_config = _load_cli_config(ctx)
        params = load_universe_params(universe_file)
        universe = UniverseFactory(config=current_config).build(params, backend=backend)
    except UniverseFrameworkError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    try:
        universe.deploy()
        console.print(_universe_table(universe))
    except UniverseFrameworkError as e:
        logger.error("Deployment failed: %s", e)
        console.print(f"[red]Deployment failed: {e}[/red]")
        _teardown_universe(universe)
        raise typer.Exit(1)

    if keep:
        console.print(f"[yellow]Universe {universe.universe_id} left running[/yellow]")
        return
    _teardown_universe(universe)
    console.print(f"[green]Universe {universe.universe_id} shut down[/green]")


def cli_main() -> None:
    """Entry point for the CLI."""
    try:
        app()
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        sys.exit(130)
    except (RuntimeError, OSError, ValueError, ImportError) as e:
        logger.error("Unexpected error: %s", e)
        console.print(f"[red]Unexpected error: {e}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    cli_main()
