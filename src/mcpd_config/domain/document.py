"""Configuration document aggregate.

Purpose
-------
Represent one persisted configuration file: either a project *contract*
(``.mcpd.toml``) declaring servers, daemon settings and plugins, or an
execution *context* (``secrets.*.toml``) holding per-server runtime arguments
and environment values.

Contents
--------
* :class:`DocumentKind` – contract or context.
* :class:`ServerEntry` – immutable server declaration / runtime values.
* :class:`Document` – ordered servers plus optional daemon and plugin sections.

System Role
-----------
The loader pipeline builds documents from mappings and persists them through
:meth:`Document.to_mapping`; commands mutate them via the methods below. The
aggregate never touches the filesystem.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Any, Iterable, Mapping

from .daemon import DaemonSection
from .errors import InvalidFormat, InvalidValue, MissingArgument, NotFound, ValidationError
from .plugins import Category, PluginCatalogue, PluginEntry
from .results import OperationResult

SERVER_NAME_PATTERN = re.compile(r"^[A-Za-z0-9._-]+$")
_CONTEXT_FIELDS = frozenset({"args", "env"})


class DocumentKind(str, Enum):
    CONTRACT = "contract"
    CONTEXT = "context"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class ServerEntry:
    """A server as seen by either document kind.

    Contracts use ``package``, ``tools`` and the ``required_*`` sets; contexts
    use ``args`` and ``env``. Set-like fields are stored sorted and distinct so
    equality ignores their order; ``args`` keeps its order. Context tables this
    tool does not edit (``volumes`` for instance) ride along in ``extra`` and
    are written back unchanged.
    """

    name: str
    package: str = ""
    tools: tuple[str, ...] = ()
    required_env: tuple[str, ...] = ()
    required_args: tuple[str, ...] = ()
    args: tuple[str, ...] = ()
    env: Mapping[str, str] = field(default_factory=dict)
    extra: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def create(
        cls,
        name: str,
        *,
        package: str = "",
        tools: Iterable[str] = (),
        required_env: Iterable[str] = (),
        required_args: Iterable[str] = (),
        args: Iterable[str] = (),
        env: Mapping[str, str] | None = None,
    ) -> "ServerEntry":
        """Build an entry with canonical set fields.

        Examples
        --------
        >>> entry = ServerEntry.create("time", tools=["b", "a", "a"])
        >>> entry.tools
        ('a', 'b')
        """

        return cls(
            name=name.strip(),
            package=package.strip(),
            tools=_as_set(tools),
            required_env=_as_set(required_env),
            required_args=_as_set(required_args),
            args=tuple(args),
            env=dict(env or {}),
        )

    @property
    def has_runtime_values(self) -> bool:
        return bool(self.args) or bool(self.env) or bool(self.extra)

    def with_args(self, args: Iterable[str]) -> "ServerEntry":
        return replace(self, args=tuple(args))

    def with_env(self, env: Mapping[str, str]) -> "ServerEntry":
        return replace(self, env=dict(env))

    def contract_mapping(self) -> dict[str, Any]:
        data: dict[str, Any] = {"name": self.name, "package": self.package}
        if self.tools:
            data["tools"] = list(self.tools)
        if self.required_env:
            data["required_env"] = list(self.required_env)
        if self.required_args:
            data["required_args"] = list(self.required_args)
        return data

    def context_mapping(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        if self.args:
            data["args"] = list(self.args)
        if self.env:
            data["env"] = dict(self.env)
        for key, value in self.extra.items():
            data.setdefault(key, value)
        return data


def _as_set(values: Iterable[str]) -> tuple[str, ...]:
    return tuple(sorted({value.strip() for value in values if value.strip()}))


class Document:
    """Mutable in-memory view of one configuration file.

    Why
    ----
    Commands follow a strict load, mutate, validate, save cycle; the document
    keeps the mutations in memory so nothing reaches disk until every check
    passes.

    Examples
    --------
    >>> doc = Document(DocumentKind.CONTEXT)
    >>> doc.upsert(ServerEntry.create("time", args=["--local-timezone=Europe/London"]))
    <OperationResult.CREATED: 'created'>
    >>> doc.get("time")[1]
    True
    >>> doc.delete("time")
    <OperationResult.DELETED: 'deleted'>
    """

    def __init__(
        self,
        kind: DocumentKind = DocumentKind.CONTRACT,
        *,
        path: Path | None = None,
        servers: Iterable[ServerEntry] = (),
        daemon: DaemonSection | None = None,
        plugins: PluginCatalogue | None = None,
    ) -> None:
        self.kind = kind
        self.path = path
        self.servers: list[ServerEntry] = list(servers)
        self.daemon = daemon
        self.plugins = plugins

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Document):
            return NotImplemented
        return (
            self.kind == other.kind
            and self.servers == other.servers
            and _section_or_none(self.daemon) == _section_or_none(other.daemon)
            and _section_or_none(self.plugins) == _section_or_none(other.plugins)
        )

    def __repr__(self) -> str:
        return f"Document(kind={self.kind.value!r}, path={str(self.path) if self.path else None!r}, servers={len(self.servers)})"

    # Servers -----------------------------------------------------------------

    def get(self, name: str) -> tuple[ServerEntry | None, bool]:
        """Return ``(entry, True)`` for a known server, else ``(None, False)``."""

        name = name.strip()
        for entry in self.servers:
            if entry.name == name:
                return entry, True
        return None, False

    def names(self) -> list[str]:
        return [entry.name for entry in self.servers]

    def upsert(self, entry: ServerEntry) -> OperationResult:
        """Insert or replace a server by name.

        Context documents drop servers that no longer carry any runtime value,
        reporting ``deleted`` (or ``noop`` when the server did not exist).
        """

        if not entry.name.strip():
            raise MissingArgument("server name cannot be empty")
        if not SERVER_NAME_PATTERN.match(entry.name):
            raise InvalidValue(f"invalid server name '{entry.name}' (allowed characters: A-Z a-z 0-9 . _ -)", path="name", value=entry.name)
        index = self._index(entry.name)
        empty = self.kind is DocumentKind.CONTEXT and not entry.has_runtime_values
        if index is None:
            if empty:
                return OperationResult.NOOP
            self.servers.append(entry)
            return OperationResult.CREATED
        if self.servers[index] == entry:
            return OperationResult.NOOP
        if empty:
            del self.servers[index]
            return OperationResult.DELETED
        self.servers[index] = entry
        return OperationResult.UPDATED

    def delete(self, name: str) -> OperationResult:
        name = name.strip()
        if not name:
            raise MissingArgument("server name cannot be empty")
        index = self._index(name)
        if index is None:
            raise NotFound(f"server '{name}' not found in config")
        del self.servers[index]
        return OperationResult.DELETED

    def _index(self, name: str) -> int | None:
        for index, entry in enumerate(self.servers):
            if entry.name == name:
                return index
        return None

    # Sections ----------------------------------------------------------------

    def ensure_daemon(self) -> DaemonSection:
        if self.daemon is None:
            self.daemon = DaemonSection()
        return self.daemon

    def ensure_plugins(self) -> PluginCatalogue:
        if self.plugins is None:
            self.plugins = PluginCatalogue()
        return self.plugins

    def require_plugins(self) -> PluginCatalogue:
        if self.plugins is None or self.plugins.is_empty:
            raise NotFound("no plugins configured")
        return self.plugins

    def plugin(self, category: Category, name: str) -> tuple[PluginEntry | None, bool]:
        if self.plugins is None:
            return None, False
        return self.plugins.plugin(category, name)

    def upsert_plugin(self, category: Category, entry: PluginEntry) -> OperationResult:
        return self.ensure_plugins().upsert(category, entry)

    def delete_plugin(self, category: Category, name: str) -> OperationResult:
        return self.require_plugins().delete(category, name)

    def move_plugin(self, category: Category, name: str, **target: Any) -> OperationResult:
        return self.require_plugins().move(category, name, **target)

    def list_plugins(self, category: Category) -> list[PluginEntry]:
        if self.plugins is None:
            return []
        return self.plugins.list_plugins(category)

    def all_categories(self) -> dict[Category, list[PluginEntry]]:
        if self.plugins is None:
            return {}
        return self.plugins.all_categories()

    # Validation --------------------------------------------------------------

    def validation_errors(self) -> list[str]:
        """Return every structural problem across servers, daemon and plugins."""

        errors = self._server_errors()
        if self.daemon is not None:
            errors.extend(f"daemon configuration error: {message}" for message in self.daemon.validation_errors())
        if self.plugins is not None:
            errors.extend(f"plugin configuration error: {message}" for message in self.plugins.validation_errors())
        return errors

    def validate(self) -> None:
        errors = self.validation_errors()
        if errors:
            raise ValidationError(errors)

    def _server_errors(self) -> list[str]:
        errors: list[str] = []
        seen: set[str] = set()
        for entry in self.servers:
            if not entry.name.strip():
                errors.append("server entry has empty name")
                continue
            if entry.name in seen:
                errors.append(f"duplicate server name '{entry.name}'")
            seen.add(entry.name)
            if not SERVER_NAME_PATTERN.match(entry.name):
                errors.append(f"invalid server name '{entry.name}'")
            if self.kind is DocumentKind.CONTRACT and not entry.package.strip():
                errors.append(f"server entry '{entry.name}' has empty package")
        return errors

    # Serialisation -----------------------------------------------------------

    def to_mapping(self) -> dict[str, Any]:
        """Return the TOML-ready mapping with stable ordering.

        Examples
        --------
        >>> Document(DocumentKind.CONTRACT).to_mapping()
        {'servers': []}
        >>> Document(DocumentKind.CONTEXT).to_mapping()
        {}
        """

        if self.kind is DocumentKind.CONTEXT:
            servers = {entry.name: entry.context_mapping() for entry in self.servers}
            return {"servers": servers} if servers else {}
        data: dict[str, Any] = {"servers": [entry.contract_mapping() for entry in self.servers]}
        if self.daemon is not None and not self.daemon.is_empty:
            data["daemon"] = self.daemon.to_mapping()
        if self.plugins is not None and not self.plugins.is_empty:
            data["plugins"] = self.plugins.to_mapping()
        return data

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], kind: DocumentKind, *, path: Path | None = None) -> "Document":
        """Decode a parsed TOML mapping into a document of *kind*."""

        if kind is DocumentKind.CONTEXT:
            return cls(kind, path=path, servers=_context_servers(data.get("servers", {})))
        document = cls(kind, path=path, servers=_contract_servers(data.get("servers", [])))
        daemon = data.get("daemon")
        if daemon is not None:
            if not isinstance(daemon, Mapping):
                raise InvalidFormat("daemon must be a table")
            document.daemon = DaemonSection.from_mapping(daemon)
        plugins = data.get("plugins")
        if plugins is not None:
            if not isinstance(plugins, Mapping):
                raise InvalidFormat("plugins must be a table")
            document.plugins = PluginCatalogue.from_mapping(plugins)
        return document


def _section_or_none(section: DaemonSection | PluginCatalogue | None) -> DaemonSection | PluginCatalogue | None:
    if section is None or section.is_empty:
        return None
    return section


def _string_list(value: Any, field_name: str) -> list[str]:
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise InvalidFormat(f"{field_name} must be a list of strings")
    return value


def _contract_servers(raw: Any) -> list[ServerEntry]:
    if not isinstance(raw, list):
        raise InvalidFormat("servers must be an array of tables")
    servers: list[ServerEntry] = []
    for item in raw:
        if not isinstance(item, Mapping):
            raise InvalidFormat("servers must be an array of tables")
        servers.append(
            ServerEntry.create(
                str(item.get("name", "")),
                package=str(item.get("package", "")),
                tools=_string_list(item.get("tools", []), "tools"),
                required_env=_string_list(item.get("required_env", []), "required_env"),
                required_args=_string_list(item.get("required_args", []), "required_args"),
            )
        )
    return servers


def _context_servers(raw: Any) -> list[ServerEntry]:
    if not isinstance(raw, Mapping):
        raise InvalidFormat("servers must be a table keyed by server name")
    servers: list[ServerEntry] = []
    for name, item in raw.items():
        if not isinstance(item, Mapping):
            raise InvalidFormat(f"servers.{name} must be a table")
        env = item.get("env", {})
        if not isinstance(env, Mapping) or not all(isinstance(value, str) for value in env.values()):
            raise InvalidFormat(f"servers.{name}.env must map names to strings")
        servers.append(
            ServerEntry(
                name=name,
                args=tuple(_string_list(item.get("args", []), f"servers.{name}.args")),
                env={str(key): value for key, value in env.items()},
                extra={key: value for key, value in item.items() if key not in _CONTEXT_FIELDS},
            )
        )
    return servers
