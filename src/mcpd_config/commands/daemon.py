"""``mcpd config daemon`` – path-addressable daemon settings in the project contract."""

from __future__ import annotations

import json
from typing import Any, Iterator, Sequence

import rich_click as click

from ..domain.daemon import DaemonSection
from ..domain.document import Document
from ..domain.errors import NotFound, ValidationError
from ..domain.results import OperationResult
from ..domain.schema import available_keys
from ..domain.values import Duration
from ..observability import log_error
from .common import CLICK_CONTEXT_SETTINGS, config_errors, load_contract, save, split_key_value


@click.group("daemon", context_settings=CLICK_CONTEXT_SETTINGS)
def daemon_group() -> None:
    """Manage daemon settings (API address, CORS, timeouts, health checks)."""


def _require_daemon(document: Document) -> DaemonSection:
    if document.daemon is None or document.daemon.is_empty:
        raise NotFound("no daemon configuration found")
    return document.daemon


@daemon_group.command("set", context_settings=CLICK_CONTEXT_SETTINGS)
@click.argument("assignments", nargs=-1, required=True)
@click.pass_context
def daemon_set(ctx: click.Context, assignments: Sequence[str]) -> None:
    """Set one or more daemon keys: mcpd config daemon set api.addr=localhost:8090 ..."""

    document = load_contract(ctx)
    section = document.ensure_daemon()
    results: list[tuple[str, OperationResult]] = []
    with config_errors():
        for assignment in assignments:
            key, value = split_key_value(assignment)
            if not value:
                raise click.ClickException(
                    f"empty value for key '{key}', use 'mcpd config daemon remove {key}' instead"
                )
            results.append((key, section.set(key, value)))
    if any(result.changed for _, result in results):
        save(document)
    for key, result in results:
        click.echo(f"✓ Daemon config set for key '{key}' (operation: {result})")


@daemon_group.command("get", context_settings=CLICK_CONTEXT_SETTINGS)
@click.argument("key")
@click.pass_context
def daemon_get(ctx: click.Context, key: str) -> None:
    """Print the value (or subtree) stored at KEY."""

    document = load_contract(ctx)
    with config_errors():
        value = _require_daemon(document).get(*key.split("."))
        if value is None or value == {}:
            raise NotFound(f"{key.strip()} not set")
    if isinstance(value, dict):
        for path, leaf in _flatten(value, key.strip().lower()):
            click.echo(f"{path} = {_display(leaf)}")
        return
    click.echo(_plain(value))


@daemon_group.command("list", context_settings=CLICK_CONTEXT_SETTINGS)
@click.option("--available", is_flag=True, default=False, help="Show all available configuration keys with descriptions")
@click.pass_context
def daemon_list(ctx: click.Context, available: bool) -> None:
    """List configured daemon keys, or every supported key with --available."""

    if available:
        click.echo("Available daemon configuration keys:")
        click.echo("")
        for schema_key in available_keys():
            click.echo(f"  {schema_key.path:<35} {'(' + schema_key.kind.value + ')':<12} {schema_key.description}")
        return
    document = load_contract(ctx)
    if document.daemon is None or document.daemon.is_empty:
        click.echo("No daemon configuration found")
        return
    for path, leaf in sorted(_flatten(document.daemon.get(), "")):
        click.echo(f"{path} = {_display(leaf)}")


@daemon_group.command("remove", context_settings=CLICK_CONTEXT_SETTINGS)
@click.argument("keys", nargs=-1, required=True)
@click.pass_context
def daemon_remove(ctx: click.Context, keys: Sequence[str]) -> None:
    """Remove one or more daemon keys."""

    document = load_contract(ctx)
    results: list[tuple[str, OperationResult]] = []
    with config_errors():
        section = _require_daemon(document)
        for key in keys:
            results.append((key, section.remove(key)))
    if any(result.changed for _, result in results):
        save(document)
    for key, result in results:
        click.echo(f"✓ Removed daemon config '{key}' (operation: {result})")


@daemon_group.command("validate", context_settings=CLICK_CONTEXT_SETTINGS)
@click.pass_context
def daemon_validate(ctx: click.Context) -> None:
    """Validate the daemon configuration and report every problem found."""

    document = load_contract(ctx)
    with config_errors():
        section = _require_daemon(document)
    try:
        section.validate()
    except ValidationError as exc:
        log_error("daemon_validation_failed", errors=list(exc.errors))
        click.echo("✗ Daemon configuration validation failed:", err=True)
        raise click.ClickException(str(exc)) from exc
    click.echo("✓ Daemon configuration is valid")


def _flatten(tree: dict[str, Any], prefix: str) -> Iterator[tuple[str, Any]]:
    for name, value in tree.items():
        path = f"{prefix}.{name}" if prefix else name
        if isinstance(value, dict):
            yield from _flatten(value, path)
        else:
            yield path, value


def _plain(value: Any) -> str:
    """Render a leaf the way ``daemon get`` prints it."""

    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, tuple):
        return ",".join(value) if value else "[]"
    return str(value)


def _display(value: Any) -> str:
    """Render a leaf the way ``daemon list`` prints it."""

    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Duration):
        return str(value)
    if isinstance(value, tuple):
        return json.dumps(list(value))
    return json.dumps(value)
