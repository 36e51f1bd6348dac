"""CLI main entry point."""

import click

from .commands.setup import setup
from .commands.status import status
from .config import load_config
from .shared.logging import configure_logging


@click.group()
@click.option(
    "-C",
    "--project-dir",
    type=click.Path(file_okay=False, exists=True),
    default=None,
    help="Directory holding docker-compose.yml (default: current directory)",
)
@click.option("-v", "--verbose", count=True, help="Increase verbosity")
@click.option("-q", "--quiet", is_flag=True, help="Only log warnings and errors")
@click.option("--json-logs", is_flag=True, help="Log as JSON lines")
@click.pass_context
def cli(
    ctx: click.Context,
    project_dir: str | None,
    verbose: int,
    quiet: bool,
    json_logs: bool,
) -> None:
    """Provision the homestack home-automation stack."""
    configure_logging(verbose=verbose, quiet=quiet, json_output=json_logs)

    ctx.ensure_object(dict)
    ctx.obj["config"] = load_config(project_dir)


cli.add_command(setup)
cli.add_command(status)


def main() -> None:
    """Main entry point."""
    cli(obj={})


if __name__ == "__main__":
    main()
