"""``mcpd config args`` – runtime arguments stored in the execution context."""

from __future__ import annotations

from typing import Sequence

import rich_click as click

from ..domain.args import merge_args, normalize_args, remove_matching_flags
from ..domain.document import Document, ServerEntry
from ..observability import log_info
from .common import CLICK_CONTEXT_SETTINGS, config_errors, load_context, save_if_changed


@click.group("args", context_settings=CLICK_CONTEXT_SETTINGS)
def args_group() -> None:
    """Manage command line arguments passed to MCP servers at start-up."""


def _current(document: Document, server: str) -> ServerEntry:
    entry, found = document.get(server)
    return entry if found else ServerEntry(name=server.strip())


@args_group.command("set", context_settings=CLICK_CONTEXT_SETTINGS)
@click.argument("server")
@click.argument("tokens", nargs=-1, required=True)
@click.pass_context
def args_set(ctx: click.Context, server: str, tokens: Sequence[str]) -> None:
    """Set startup arguments for SERVER: mcpd config args set SERVER -- --flag=value ...

    Existing flags given again with a new inline value are replaced in place;
    new arguments are appended.
    """

    document = load_context(ctx)
    with config_errors():
        entry = _current(document, server)
        incoming = normalize_args(tokens)
        result = document.upsert(entry.with_args(merge_args(entry.args, incoming)))
    save_if_changed(document, result)
    log_info("args_set", server=server, operation=result.value)
    click.echo(f"✓ Startup arguments set for server '{server}' (operation: {result}): {list(incoming)}")


@args_group.command("remove", context_settings=CLICK_CONTEXT_SETTINGS)
@click.argument("server")
@click.argument("names", nargs=-1, required=True)
@click.pass_context
def args_remove(ctx: click.Context, server: str, names: Sequence[str]) -> None:
    """Remove arguments from SERVER by flag name: mcpd config args remove SERVER -- --flag ..."""

    document = load_context(ctx)
    with config_errors():
        entry, found = document.get(server)
        if not found:
            raise click.ClickException(f"server '{server}' not found in configuration")
        result = document.upsert(entry.with_args(remove_matching_flags(entry.args, names)))
    save_if_changed(document, result)
    click.echo(f"✓ Args removed for server '{server}' (operation: {result}): {list(names)}")


@args_group.command("list", context_settings=CLICK_CONTEXT_SETTINGS)
@click.argument("server")
@click.pass_context
def args_list(ctx: click.Context, server: str) -> None:
    """List the arguments configured for SERVER."""

    document = load_context(ctx)
    entry, found = document.get(server)
    if not found:
        raise click.ClickException(f"server '{server}' not found in configuration")
    click.echo(f"Arguments for '{server}':")
    if not entry.args:
        click.echo("  (No arguments set)")
        return
    for token in entry.args:
        click.echo(f"  {token}")


@args_group.command("clear", context_settings=CLICK_CONTEXT_SETTINGS)
@click.argument("server")
@click.option("--force", is_flag=True, default=False, help="Confirm clearing every argument for the server")
@click.pass_context
def args_clear(ctx: click.Context, server: str, force: bool) -> None:
    """Remove every argument configured for SERVER (requires --force)."""

    if not force:
        raise click.ClickException(
            f"this is a destructive operation. To clear all command line arguments for '{server}', "
            "please re-run the command with the --force flag"
        )
    document = load_context(ctx)
    with config_errors():
        entry, found = document.get(server)
        if not found:
            raise click.ClickException(f"server '{server}' not found in configuration")
        result = document.upsert(entry.with_args(()))
    save_if_changed(document, result)
    click.echo(f"✓ Arguments cleared for server '{server}' (operation: {result})")
