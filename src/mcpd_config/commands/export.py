"""``mcpd config export`` – write the portable execution context and env contract."""

from __future__ import annotations

from pathlib import Path

import rich_click as click

from ..application.export import ExportFormat
from ..core import export_config
from .common import CLICK_CONTEXT_SETTINGS, config_errors, paths_from


@click.command("export", context_settings=CLICK_CONTEXT_SETTINGS)
@click.option(
    "--context-output",
    type=click.Path(dir_okay=False, path_type=Path),
    default=Path("secrets.prod.toml"),
    show_default=True,
    help="Path of the portable execution context (placeholders instead of values)",
)
@click.option(
    "--contract-output",
    type=click.Path(dir_okay=False, path_type=Path),
    default=Path(".env"),
    show_default=True,
    help="Path of the environment contract listing every required placeholder",
)
@click.option(
    "--format",
    "fmt",
    type=click.Choice([fmt.value for fmt in ExportFormat], case_sensitive=False),
    default=ExportFormat.DOTENV.value,
    show_default=True,
    help="Format of the environment contract",
)
@click.pass_context
def export_command(ctx: click.Context, context_output: Path, contract_output: Path, fmt: str) -> None:
    """Export the configuration for sharing or deployment.

    Required environment variables and arguments become ``${MCPD__SERVER__VAR}``
    placeholders; no locally stored value is written.
    """

    with config_errors():
        artefacts = export_config(
            paths_from(ctx),
            context_output=context_output,
            contract_output=contract_output,
            fmt=ExportFormat(fmt.lower()),
        )
    click.echo(f"✓ Environment Contract exported: {contract_output}")
    click.echo(f"✓ Portable Execution Context exported: {context_output}")
    for server, names in artefacts.missing.items():
        click.echo(f"  ! '{server}' has no local value for: {', '.join(names)}", err=True)
    click.echo("✓ Export completed successfully!")
