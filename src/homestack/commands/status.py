"""Status command: show install state and running services."""

from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table

from ..bootstrap import (
    Orchestrator,
    StackState,
    TokenState,
    TokenStatus,
    ToolchainBinding,
    ToolchainResolver,
    detect_state,
)
from ..config import StackConfig

console = Console()


def _mark(ok: bool) -> str:
    return "[green]✓[/green]" if ok else "[red]✗[/red]"


@click.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show install state and compose service status.

    Never installs or writes anything.
    """
    config: StackConfig = ctx.obj["config"]
    layout = config.layout
    state = detect_state(layout)

    table = Table(title=f"homestack: {layout.project_dir}")
    table.add_column("Check")
    table.add_column("State")
    table.add_row("docker-compose.yml", _mark(state.has_compose_file))
    table.add_row(".env", _mark(state.has_env_file))
    token_style = {
        TokenStatus.SET: "[green]set[/green]",
        TokenStatus.PLACEHOLDER: "[yellow]placeholder[/yellow]",
        TokenStatus.MISSING: "[red]missing[/red]",
    }
    table.add_row("InfluxDB token", token_style[state.token_status])
    table.add_row(
        "InfluxDB initialized", _mark(state.store_state is TokenState.INITIALIZED)
    )
    table.add_row("Laravel scaffolded", _mark(state.webapp_scaffolded))
    table.add_row("HA influxdb integration", _mark(state.integration_present))
    console.print(table)

    if not state.has_compose_file:
        return

    resolver = ToolchainResolver()
    engine = resolver.detect_engine(interactive=False)
    compose = resolver.detect_compose(engine)
    if compose is None:
        console.print("[yellow]Docker Compose not available; run: homestack setup[/yellow]")
        return

    stack_status = Orchestrator(ToolchainBinding(engine, compose), layout.compose_file).status()
    if stack_status.state == StackState.NOT_FOUND:
        console.print("No stack found. Run: homestack setup")
        return

    console.print(f"Stack state: {stack_status.state.value}")
    for svc in stack_status.running_services:
        console.print(f"  [green]✓[/green] {svc}")
    for svc in stack_status.stopped_services:
        console.print(f"  [red]✗[/red] {svc}")
    if stack_status.message:
        console.print(f"[dim]{stack_status.message}[/dim]")
