"""Setup command: provision the stack in one idempotent pass."""

from __future__ import annotations

import sys
from pathlib import Path

import click

from ..bootstrap import ArtifactOutcome, Bootstrapper, BootstrapResult, SequencerState
from ..bootstrap import process
from ..config import StackConfig
from ..errors import BootstrapError

SERVICE_URLS = [
    ("Home Assistant", "http://{ip}:8123"),
    ("Node-RED", "http://{ip}:1880"),
    ("InfluxDB", "http://{ip}:8086"),
    ("Laravel", "http://{ip}:8080"),
    ("MQTT", "{ip}:1883"),
]


def host_ip() -> str:
    """First address from ``hostname -I``, or loopback."""
    result = process.run(["hostname", "-I"], timeout=5)
    addresses = result.stdout.split() if result.returncode == 0 else []
    return addresses[0] if addresses else "127.0.0.1"


def _display_path(path: Path, root: Path) -> Path:
    return path.relative_to(root) if path.is_relative_to(root) else path


def _print_summary(result: BootstrapResult, config: StackConfig) -> None:
    reconcile = result.reconcile
    if reconcile is not None:
        for outcome in (ArtifactOutcome.CREATED, ArtifactOutcome.COPIED, ArtifactOutcome.APPENDED):
            for path in reconcile.paths_with(outcome):
                click.echo(f"  ✓ {outcome.value}: {_display_path(path, config.project_dir)}")
    if result.injection is not None and result.injection.changed:
        click.echo("  ✓ Home Assistant wired to InfluxDB")

    for warning in result.warnings:
        click.echo(f"  ⚠ {warning}")


@click.command()
@click.option("--no-start", is_flag=True, help="Only reconcile files and secrets")
@click.pass_context
def setup(ctx: click.Context, no_start: bool) -> None:
    """Provision Docker, config files, secrets and start the stack.

    Safe to re-run at any point: existing files and tokens are kept,
    and an interrupted run resumes where it left off.

    Examples:

        # Full setup from the project directory
        homestack setup

        # Write config only, leave containers alone
        homestack setup --no-start
    """
    config: StackConfig = ctx.obj["config"]

    click.echo("\n=== Homestack Setup ===")
    click.echo(f"Project directory: {config.project_dir}\n")

    def on_step(label: str) -> None:
        click.echo(f"📋 {label}")

    try:
        result = Bootstrapper(config, on_step=on_step).run(start=not no_start)
    except BootstrapError as e:
        click.echo(f"\n✗ {e.message}", err=True)
        if e.remediation:
            click.echo(f"  → {e.remediation}", err=True)
        sys.exit(e.exit_code)

    click.echo("")
    if result.binding is not None:
        click.echo(f"  Docker cmd:  {result.binding.engine_invocation}")
        click.echo(f"  Compose cmd: {result.binding.compose_invocation}")
    _print_summary(result, config)

    click.echo("\n" + "=" * 50)
    if result.state is SequencerState.READY:
        click.echo("✓ Setup complete!\n")
        ip = host_ip()
        for name, url in SERVICE_URLS:
            click.echo(f"  {name:<15}: {url.format(ip=ip)}")
    else:
        click.echo("✓ Configuration complete (stack not started)")
    click.echo("=" * 50 + "\n")
