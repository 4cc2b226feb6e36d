"""``mcpd config plugins`` – the ordered plugin catalogue of the project contract.

Purpose
-------
Expose catalogue operations (add, set, get, list, move, remove, validate) to
operators. Read-only commands render as text, JSON or YAML.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Sequence

import rich_click as click
from click.core import ParameterSource

from ..adapters.output.render import FORMAT_CHOICES, OutputFormat, render_structured
from ..application.loader import plugin_directory_error
from ..domain.document import Document
from ..domain.errors import AlreadyExists, NotFound
from ..domain.plugins import (
    ORDERED_CATEGORIES,
    ORDERED_FLOWS,
    Category,
    PluginCatalogue,
    PluginEntry,
    parse_category,
    parse_flows,
)
from ..observability import log_info
from .common import CLICK_CONTEXT_SETTINGS, config_errors, load_contract, save_if_changed

_CATEGORY_HELP = f"Plugin category (one of: {', '.join(category.value for category in ORDERED_CATEGORIES)})"
_FLOW_HELP = f"Flow during which the plugin executes ({', '.join(ORDERED_FLOWS)}); repeatable"


def _category_option(required: bool) -> Any:
    return click.option("--category", "category", required=required, default=None, help=_CATEGORY_HELP)


def _format_option() -> Any:
    return click.option(
        "--format",
        "fmt",
        type=click.Choice(FORMAT_CHOICES, case_sensitive=False),
        default=OutputFormat.TEXT.value,
        show_default=True,
        help="Output format",
    )


def _given(ctx: click.Context, name: str) -> bool:
    return ctx.get_parameter_source(name) is ParameterSource.COMMANDLINE


@click.group("plugins", context_settings=CLICK_CONTEXT_SETTINGS)
def plugins_group() -> None:
    """Manage the plugin pipeline (categories execute in a fixed order)."""


@plugins_group.command("add", context_settings=CLICK_CONTEXT_SETTINGS)
@click.argument("name")
@_category_option(required=True)
@click.option("--flow", "flows", multiple=True, required=True, help=_FLOW_HELP)
@click.option("--required", is_flag=True, default=False, help="Mark the plugin as required")
@click.option("--commit-hash", default=None, help="Commit hash for runtime version validation")
@click.pass_context
def plugins_add(
    ctx: click.Context,
    name: str,
    category: str,
    flows: Sequence[str],
    required: bool,
    commit_hash: str | None,
) -> None:
    """Add a new plugin NAME to a category; the name must match the binary file name.

    Fails when the plugin already exists in the category; use ``set`` to update it.
    """

    document = load_contract(ctx)
    with config_errors():
        parsed_category = parse_category(category)
        name = name.strip()
        if not name:
            raise click.ClickException("plugin name cannot be empty")
        _, exists = document.plugin(parsed_category, name)
        if exists:
            raise AlreadyExists(
                f"plugin '{name}' already exists in category '{parsed_category}'\n\n"
                f"To update an existing plugin, use: mcpd config plugins set --category={parsed_category} --name={name} [flags]"
            )
        entry = PluginEntry(
            name=name,
            flows=parse_flows(flows),
            required=True if required else None,
            commit_hash=commit_hash.strip() if commit_hash and commit_hash.strip() else None,
        )
        result = document.upsert_plugin(parsed_category, entry)
    save_if_changed(document, result)
    log_info("plugin_added", category=parsed_category.value, name=name, operation=result.value)
    click.echo(f"✓ Plugin '{name}' added to category '{parsed_category}' (operation: {result})")


@plugins_group.command("set", context_settings=CLICK_CONTEXT_SETTINGS)
@click.option("--dir", "directory", default=None, help="Directory holding plugin binaries (top-level only)")
@_category_option(required=False)
@click.option("--name", default=None, help="Plugin name (plugin entry only)")
@click.option("--flow", "flows", multiple=True, help=_FLOW_HELP)
@click.option("--required/--not-required", "required", default=False, help="Mark the plugin as required or not")
@click.option("--commit-hash", default=None, help="Commit hash; pass an empty value to clear it")
@click.pass_context
def plugins_set(
    ctx: click.Context,
    directory: str | None,
    category: str | None,
    name: str | None,
    flows: Sequence[str],
    required: bool,
    commit_hash: str | None,
) -> None:
    """Set the plugin directory (--dir) or create/update one plugin entry.

    Entry updates are partial: only the flags provided change the stored entry.
    """

    entry_flags = [flag for flag in ("category", "name", "flows", "required", "commit_hash") if _given(ctx, flag)]
    if directory is not None and entry_flags:
        raise click.UsageError("cannot use --dir with plugin entry flags (--category, --name, --flow, --required, --commit-hash)")
    if directory is None and not entry_flags:
        raise click.UsageError("provide either --dir or (--category and --name)")
    if directory is not None:
        _set_directory(ctx, directory)
        return
    if not category or not name or not name.strip():
        raise click.UsageError("--category and --name must be provided together")
    _set_entry(ctx, category, name.strip(), flows, required, commit_hash)


def _set_directory(ctx: click.Context, directory: str) -> None:
    if not directory.strip():
        raise click.ClickException("plugin directory path cannot be empty")
    document = load_contract(ctx)
    catalogue = document.ensure_plugins()
    result = catalogue.set_directory(directory)
    save_if_changed(document, result)
    click.echo(f"✓ Plugin directory set to: {catalogue.dir} (operation: {result})")


def _set_entry(
    ctx: click.Context,
    category: str,
    name: str,
    flows: Sequence[str],
    required: bool,
    commit_hash: str | None,
) -> None:
    document = load_contract(ctx)
    with config_errors():
        parsed_category = parse_category(category)
        existing, exists = document.plugin(parsed_category, name)
        if _given(ctx, "flows"):
            resolved_flows = parse_flows(flows)
        elif existing is not None:
            resolved_flows = existing.flows
        else:
            raise click.ClickException("flows are required when creating a new plugin entry")
        resolved_required = required if _given(ctx, "required") else (existing.required if existing else None)
        if _given(ctx, "commit_hash"):
            resolved_hash = commit_hash.strip() if commit_hash and commit_hash.strip() else None
        else:
            resolved_hash = existing.commit_hash if existing else None
        entry = PluginEntry(name, resolved_flows, resolved_required, resolved_hash)
        result = document.upsert_plugin(parsed_category, entry)
    save_if_changed(document, result)
    click.echo(f"✓ Plugin '{name}' configured in category '{parsed_category}' (operation: {result})")


@plugins_group.command("get", context_settings=CLICK_CONTEXT_SETTINGS)
@_category_option(required=False)
@click.option("--name", default=None, help="Plugin name")
@_format_option()
@click.pass_context
def plugins_get(ctx: click.Context, category: str | None, name: str | None, fmt: str) -> None:
    """Show one plugin entry (--category and --name) or the top-level plugin settings."""

    output = OutputFormat(fmt.lower())
    if bool(category) != bool(name):
        raise click.UsageError("--category and --name must be provided together")
    document = load_contract(ctx)
    if not category or not name:
        directory = document.plugins.dir if document.plugins else None
        if output is not OutputFormat.TEXT:
            click.echo(render_structured({"dir": directory}, output))
            return
        click.echo(f"Plugin directory: {directory or '(not set)'}")
        click.echo(f"Configured plugins: {_distinct_total(document)}")
        return
    with config_errors():
        parsed_category = parse_category(category)
        entry, found = document.plugin(parsed_category, name)
        if not found or entry is None:
            raise NotFound(f"plugin {name.strip()} not found in category '{parsed_category}'")
    if output is not OutputFormat.TEXT:
        click.echo(render_structured({"category": parsed_category.value, **entry.to_mapping()}, output))
        return
    click.echo(f"Plugin '{entry.name}' in category '{parsed_category}':")
    click.echo(f"  Flows: {', '.join(entry.flows)}")
    click.echo(f"  Required: {_optional_bool(entry.required)}")
    click.echo(f"  Commit hash: {entry.commit_hash or '(not set)'}")


@plugins_group.command("list", context_settings=CLICK_CONTEXT_SETTINGS)
@_category_option(required=False)
@_format_option()
@click.pass_context
def plugins_list(ctx: click.Context, category: str | None, fmt: str) -> None:
    """List plugins per category in execution order."""

    output = OutputFormat(fmt.lower())
    document = load_contract(ctx)
    if category:
        with config_errors():
            parsed_category = parse_category(category)
        entries = document.list_plugins(parsed_category)
        if output is not OutputFormat.TEXT:
            payload = {"category": parsed_category.value, "plugins": [entry.to_mapping() for entry in entries]}
            click.echo(render_structured(payload, output))
            return
        click.echo(f"Configured plugins in '{parsed_category}' ({len(entries)} total):")
        _echo_entries(entries, indent="  ")
        return
    categories = document.all_categories()
    total = _distinct_total(document)
    if output is not OutputFormat.TEXT:
        payload = {
            "total": total,
            "categories": {cat.value: [entry.to_mapping() for entry in entries] for cat, entries in categories.items()},
        }
        click.echo(render_structured(payload, output))
        return
    if not categories:
        click.echo("No plugins configured")
        return
    click.echo(f"Configured plugins ({total} total):")
    for cat, entries in categories.items():
        click.echo(f"  {cat}:")
        _echo_entries(entries, indent="    ")


@plugins_group.command("move", context_settings=CLICK_CONTEXT_SETTINGS)
@_category_option(required=True)
@click.option("--name", required=True, help="Plugin name")
@click.option("--to-category", default=None, help="Destination category")
@click.option("--before", default=None, help="Place before this plugin")
@click.option("--after", default=None, help="Place after this plugin")
@click.option("--position", type=int, default=None, help="1-indexed slot, or -1 for the end")
@click.option("--force", is_flag=True, default=False, help="Replace a same-named plugin in the destination category")
@click.pass_context
def plugins_move(
    ctx: click.Context,
    category: str,
    name: str,
    to_category: str | None,
    before: str | None,
    after: str | None,
    position: int | None,
    force: bool,
) -> None:
    """Reorder a plugin within its category or move it to another category."""

    document = load_contract(ctx)
    with config_errors():
        source = parse_category(category)
        destination = parse_category(to_category) if to_category else None
        result = document.move_plugin(
            source,
            name,
            to_category=destination,
            before=before,
            after=after,
            position=position,
            force=force,
        )
    save_if_changed(document, result)
    target = destination or source
    log_info("plugin_moved", name=name, source=source.value, destination=target.value, operation=result.value)
    click.echo(f"✓ Plugin '{name.strip()}' moved (operation: {result})")
    click.echo(f"Order in '{target}':")
    for index, entry in enumerate(document.list_plugins(target), start=1):
        click.echo(f"  {index}. {entry.name}")


@plugins_group.command("remove", context_settings=CLICK_CONTEXT_SETTINGS)
@_category_option(required=True)
@click.option("--name", required=True, help="Plugin name")
@click.pass_context
def plugins_remove(ctx: click.Context, category: str, name: str) -> None:
    """Remove a plugin from a category."""

    document = load_contract(ctx)
    with config_errors():
        parsed_category = parse_category(category)
        result = document.delete_plugin(parsed_category, name)
    save_if_changed(document, result)
    log_info("plugin_removed", category=parsed_category.value, name=name)
    click.echo(f"✓ Plugin '{name.strip()}' removed from category '{parsed_category}' (operation: {result})")


@plugins_group.command("validate", context_settings=CLICK_CONTEXT_SETTINGS)
@_category_option(required=False)
@click.option("--check-binaries", is_flag=True, default=False, help="Also verify plugin binaries exist in the plugin directory")
@click.option("--verbose", is_flag=True, default=False, help="Show details for every validated plugin")
@click.pass_context
def plugins_validate(ctx: click.Context, category: str | None, check_binaries: bool, verbose: bool) -> None:
    """Validate plugin entries and, optionally, the presence of their binaries."""

    document = load_contract(ctx)
    catalogue = document.plugins
    if catalogue is None or catalogue.is_empty:
        click.echo("No plugin configuration found")
        return
    with config_errors():
        only = parse_category(category) if category else None
    report = _ValidationReport(document, catalogue, only=only, check_binaries=check_binaries, verbose=verbose)
    report.echo()
    if report.issues:
        raise click.ClickException(f"validation failed with {report.issues} error(s)")


class _ValidationReport:
    """Per-category, per-plugin validation outcome."""

    def __init__(
        self,
        document: Document,
        catalogue: PluginCatalogue,
        *,
        only: Category | None,
        check_binaries: bool,
        verbose: bool,
    ) -> None:
        self.check_binaries = check_binaries
        self.verbose = verbose
        self.config_errors: list[str] = []
        self.categories: list[tuple[Category, list[tuple[str, list[str], list[str]]]]] = []
        self.plugins = 0
        directory: Path | None = None
        if check_binaries:
            problem = plugin_directory_error(document)
            if problem is None and catalogue.dir:
                directory = Path(catalogue.dir)
            elif problem is not None:
                self.config_errors.append(problem)
        for cat, entries in catalogue.all_categories().items():
            if only is not None and cat is not only:
                continue
            results = [self._check(entry, directory) for entry in entries]
            self.plugins += len(results)
            self.categories.append((cat, results))

    @property
    def issues(self) -> int:
        return len(self.config_errors) + sum(len(errors) for _, results in self.categories for _, errors, _ in results)

    def _check(self, entry: PluginEntry, directory: Path | None) -> tuple[str, list[str], list[str]]:
        errors = entry.validation_errors()
        details: list[str] = []
        if not errors and self.verbose:
            details.append("Config structure valid")
            details.append(f"Flows: {', '.join(entry.flows)}")
            if entry.required:
                details.append("Required: true")
        if directory is not None:
            binary = directory / entry.name
            if not binary.is_file():
                errors.append(f"Binary not found: {binary}")
            elif self.verbose:
                details.append(f"Binary exists: {binary}")
        return entry.name.strip() or "unknown", errors, details

    def echo(self) -> None:
        click.echo("Validating plugin configuration...")
        if self.check_binaries:
            click.echo("Checking plugin binaries (environment-specific)...")
        click.echo("")
        if self.config_errors:
            click.echo("Configuration:")
            for message in self.config_errors:
                click.echo(f"  ✗ {message}")
            click.echo("")
        for cat, results in self.categories:
            click.echo(f"Category '{cat}':")
            for name, errors, details in results:
                click.echo(f"  Plugin '{name}':")
                if not errors and not details:
                    click.echo("    ✓ Valid")
                for message in errors:
                    click.echo(f"    ✗ {message}")
                for detail in details:
                    click.echo(f"    ✓ {detail}")
            click.echo("")
        if self.issues:
            click.echo(f"✗ Validation failed with {self.issues} error(s)")
            click.echo("")
            if self.check_binaries:
                click.echo("NOTE: Binary checks are environment-specific. This config may work in")
                click.echo("other environments where paths differ.")
                click.echo("")
        else:
            click.echo("✓ All plugins validated successfully!")
            click.echo("")
        click.echo("Summary:")
        click.echo(f"  Categories: {len(self.categories)}")
        click.echo(f"  Plugins: {self.plugins}")
        if self.check_binaries:
            click.echo("  Binary checks: enabled")
        click.echo(f"  Issues: {self.issues}")


def _distinct_total(document: Document) -> int:
    return len(document.plugins.distinct_names()) if document.plugins else 0


def _optional_bool(value: bool | None) -> str:
    if value is None:
        return "(not set)"
    return "true" if value else "false"


def _echo_entries(entries: Sequence[PluginEntry], *, indent: str) -> None:
    for index, entry in enumerate(entries, start=1):
        suffix = " [required]" if entry.required else ""
        click.echo(f"{indent}{index}. {entry.name} (flows: {', '.join(entry.flows)}){suffix}")
