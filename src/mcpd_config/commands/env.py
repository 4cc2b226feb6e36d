"""``mcpd config env`` – environment variables stored in the execution context."""

from __future__ import annotations

from typing import Sequence

import rich_click as click

from ..domain.document import ServerEntry
from .common import CLICK_CONTEXT_SETTINGS, config_errors, load_context, save_if_changed, split_key_value


@click.group("env", context_settings=CLICK_CONTEXT_SETTINGS)
def env_group() -> None:
    """Manage environment variables passed to MCP servers at start-up."""


@env_group.command("set", context_settings=CLICK_CONTEXT_SETTINGS)
@click.argument("server")
@click.argument("pairs", nargs=-1, required=True)
@click.pass_context
def env_set(ctx: click.Context, server: str, pairs: Sequence[str]) -> None:
    """Set KEY=VALUE environment variables for SERVER."""

    updates: dict[str, str] = {}
    with config_errors():
        for pair in pairs:
            key, value = split_key_value(pair, hint="expected KEY=VALUE")
            updates[key] = value
    document = load_context(ctx)
    with config_errors(f"error setting environment variables for server '{server}'"):
        entry, found = document.get(server)
        current = entry if found else ServerEntry(name=server.strip())
        result = document.upsert(current.with_env({**current.env, **updates}))
    save_if_changed(document, result)
    click.echo(f"✓ Environment variables set for server '{server}' (operation: {result}): {sorted(updates)}")


@env_group.command("remove", context_settings=CLICK_CONTEXT_SETTINGS)
@click.argument("server")
@click.argument("keys", nargs=-1, required=True)
@click.pass_context
def env_remove(ctx: click.Context, server: str, keys: Sequence[str]) -> None:
    """Remove environment variables from SERVER by name."""

    document = load_context(ctx)
    entry, found = document.get(server)
    if not found:
        raise click.ClickException(f"server '{server}' not found in configuration")
    names = {key.strip() for key in keys}
    with config_errors(f"error removing environment variables for server '{server}'"):
        result = document.upsert(entry.with_env({k: v for k, v in entry.env.items() if k not in names}))
    save_if_changed(document, result)
    click.echo(f"✓ Environment variables removed for server '{server}' (operation: {result}): {sorted(names)}")


@env_group.command("list", context_settings=CLICK_CONTEXT_SETTINGS)
@click.argument("server")
@click.pass_context
def env_list(ctx: click.Context, server: str) -> None:
    """List the environment variables configured for SERVER."""

    document = load_context(ctx)
    entry, found = document.get(server)
    if not found:
        raise click.ClickException(f"server '{server}' not found in configuration")
    click.echo(f"Environment variables for '{server}':")
    if not entry.env:
        click.echo("  (No environment variables set)")
        return
    for key in sorted(entry.env):
        click.echo(f"  {key} = {entry.env[key]}")


@env_group.command("clear", context_settings=CLICK_CONTEXT_SETTINGS)
@click.argument("server")
@click.option("--force", is_flag=True, default=False, help="Confirm clearing every variable for the server")
@click.pass_context
def env_clear(ctx: click.Context, server: str, force: bool) -> None:
    """Remove every environment variable configured for SERVER (requires --force)."""

    if not force:
        raise click.ClickException(
            f"this is a destructive operation. To clear all environment variables for '{server}', "
            "please re-run the command with the --force flag"
        )
    document = load_context(ctx)
    entry, found = document.get(server)
    if not found:
        raise click.ClickException(f"server '{server}' not found in configuration")
    with config_errors(f"error clearing environment variables for server '{server}'"):
        result = document.upsert(entry.with_env({}))
    save_if_changed(document, result)
    click.echo(f"✓ Environment variables cleared for server '{server}' (operation: {result})")
