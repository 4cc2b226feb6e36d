"""CLI adapter for ``mcpd_config`` built on ``lib_cli_exit_tools``.

Purpose
-------
Expose the contract and execution-context editors as the ``mcpd`` command so
operators can manage servers, daemon settings and plugins without touching
TOML by hand.

Contents
--------
* :data:`CLICK_CONTEXT_SETTINGS` – shared Click settings ensuring ``-h`` works.
* :func:`cli` – root command resolving file locations and wiring traceback
  handling into ``lib_cli_exit_tools``.
* :func:`cli_info` – prints distribution metadata for quick diagnostics.
* :func:`cli_init` – writes a skeleton project contract.
* :func:`config_group` – hosts the ``args``, ``env``, ``daemon``, ``plugins``
  and ``export`` commands.
* :func:`main` – entry point used by ``console_scripts`` registration.

System Role
-----------
The CLI lives in the outermost layer. Commands go through the composition root
(:mod:`mcpd_config.core`) and never reach into adapter implementations.
``lib_cli_exit_tools`` centralises the exit code strategy.
"""

from __future__ import annotations

import sys
from importlib import metadata
from pathlib import Path
from typing import Final, Optional, Sequence

import lib_cli_exit_tools
import rich_click as click

from .commands.args import args_group
from .commands.common import CLICK_CONTEXT_SETTINGS, config_errors, paths_from, save
from .commands.daemon import daemon_group
from .commands.env import env_group
from .commands.export import export_command
from .commands.plugins import plugins_group
from .core import CONFIG_FILE_ENV, RUNTIME_FILE_ENV, document_loader
from .domain.document import Document, DocumentKind
from .domain.errors import AlreadyExists
from .observability import enable_console_logging, log_info

_DISTRIBUTION: Final[str] = "mcpd-config"
_TRACEBACK_SUMMARY_LIMIT: Final[int] = 500
_TRACEBACK_VERBOSE_LIMIT: Final[int] = 10_000


def _resolve_version() -> str:
    """Return the installed package version, or ``"0.0.0"`` when metadata is missing."""

    try:
        return metadata.version(_DISTRIBUTION)
    except metadata.PackageNotFoundError:
        return "0.0.0"


@click.group(
    help="Manage mcpd project configuration and execution context",
    context_settings=CLICK_CONTEXT_SETTINGS,
    invoke_without_command=False,
)
@click.version_option(
    version=_resolve_version(),
    prog_name="mcpd",
    message="mcpd-config version %(version)s",
)
@click.option(
    "--config-file",
    type=click.Path(dir_okay=False, path_type=Path),
    envvar=CONFIG_FILE_ENV,
    default=None,
    help=f"Path to the project contract (default: ./.mcpd.toml, env: {CONFIG_FILE_ENV})",
)
@click.option(
    "--runtime-file",
    type=click.Path(dir_okay=False, path_type=Path),
    envvar=RUNTIME_FILE_ENV,
    default=None,
    help=f"Path to the execution context (default: user config dir, env: {RUNTIME_FILE_ENV})",
)
@click.option(
    "--traceback/--no-traceback",
    is_flag=True,
    default=False,
    help="Show full Python traceback on errors",
)
@click.option("--verbose", is_flag=True, default=False, help="Log structured events to stderr")
@click.pass_context
def cli(
    ctx: click.Context,
    config_file: Optional[Path],
    runtime_file: Optional[Path],
    traceback: bool,
    verbose: bool,
) -> None:
    """Root command storing file locations and the traceback preference.

    Why
        Subcommands resolve the contract and context paths lazily from the
        root context, so the flags and environment variables apply uniformly.

    Side Effects
        Mutates ``lib_cli_exit_tools.config.traceback`` and
        ``lib_cli_exit_tools.config.traceback_force_color``; ``--verbose``
        attaches a stderr handler to the package logger.
    """

    ctx.ensure_object(dict)
    ctx.obj["traceback"] = traceback
    ctx.obj["config_file"] = config_file
    ctx.obj["runtime_file"] = runtime_file
    lib_cli_exit_tools.config.traceback = traceback
    lib_cli_exit_tools.config.traceback_force_color = traceback
    if verbose:
        enable_console_logging()


@cli.command("info", context_settings=CLICK_CONTEXT_SETTINGS)
@click.pass_context
def cli_info(ctx: click.Context) -> None:
    """Print distribution metadata and the resolved file locations."""

    try:
        meta = metadata.metadata(_DISTRIBUTION)
    except metadata.PackageNotFoundError:
        click.echo(f"{_DISTRIBUTION} (metadata unavailable)")
    else:
        click.echo(f"Info for {meta.get('Name', _DISTRIBUTION)}:")
        click.echo(f"  Version         : {meta.get('Version', _resolve_version())}")
        click.echo(f"  Requires-Python : {meta.get('Requires-Python', '>=3.10')}")
    paths = paths_from(ctx)
    click.echo(f"  Project contract : {paths.contract}")
    click.echo(f"  Execution context: {paths.context}")


@cli.command("init", context_settings=CLICK_CONTEXT_SETTINGS)
@click.pass_context
def cli_init(ctx: click.Context) -> None:
    """Initialise a new project contract at the configured location.

    Examples
    --------
    >>> from click.testing import CliRunner
    >>> runner = CliRunner()
    >>> with runner.isolated_filesystem():
    ...     result = runner.invoke(cli, ["--config-file", "demo.toml", "init"])
    ...     Path("demo.toml").read_text(encoding="utf-8").strip()
    'servers = []'
    """

    path = paths_from(ctx).contract
    click.echo("Initializing mcpd project in current directory...")
    with config_errors():
        if document_loader().exists(path):
            raise AlreadyExists(f"{path} already exists")
    save(Document(DocumentKind.CONTRACT, path=path))
    log_info("project_initialised", path=str(path))
    click.echo(f"{path} created successfully.")


@cli.group("config", context_settings=CLICK_CONTEXT_SETTINGS)
def config_group() -> None:
    """Manage MCP server configuration, daemon settings and plugins."""


config_group.add_command(args_group)
config_group.add_command(env_group)
config_group.add_command(daemon_group)
config_group.add_command(plugins_group)
config_group.add_command(export_command)


def main(argv: Optional[Sequence[str]] = None, *, restore_traceback: bool = True) -> int:
    """Execute the CLI with shared exit handling and return the exit code."""

    previous_traceback = getattr(lib_cli_exit_tools.config, "traceback", False)
    previous_force_color = getattr(lib_cli_exit_tools.config, "traceback_force_color", False)
    try:
        try:
            return lib_cli_exit_tools.run_cli(
                cli,
                argv=list(argv) if argv is not None else None,
                prog_name="mcpd",
            )
        except BaseException as exc:  # noqa: BLE001 - funnel through shared printers
            lib_cli_exit_tools.print_exception_message(
                trace_back=lib_cli_exit_tools.config.traceback,
                length_limit=(
                    _TRACEBACK_VERBOSE_LIMIT if lib_cli_exit_tools.config.traceback else _TRACEBACK_SUMMARY_LIMIT
                ),
            )
            return lib_cli_exit_tools.get_system_exit_code(exc)
    finally:
        if restore_traceback:
            lib_cli_exit_tools.config.traceback = previous_traceback
            lib_cli_exit_tools.config.traceback_force_color = previous_force_color


if __name__ == "__main__":  # pragma: no cover - exercised via console entry point
    raise SystemExit(main(sys.argv[1:]))
