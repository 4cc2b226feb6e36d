"""Path registry describing every daemon configuration key.

Purpose
-------
Declare the daemon schema once as a flat table of dotted keys. Each entry knows
its value kind, a one-line description, and how to read or write itself within
the flat value store held by :class:`mcpd_config.domain.daemon.DaemonSection`.

Contents
--------
* :class:`SchemaKey` – declaration of a single key with its accessor.
* :data:`DAEMON_KEYS` – the registry in declaration (and serialisation) order.
* :func:`available_keys` – registry sorted by path for listings.
* :func:`lookup` / :func:`normalize_path` / :func:`keys_under`.

System Role
-----------
Adding a daemon key touches only :data:`DAEMON_KEYS`; ``set``/``get``/``list
--available``, validation-free parsing, and TOML encoding all derive from it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final, MutableMapping, Mapping

from .errors import InvalidPath, InvalidValue, UnknownKey
from .values import Duration, ValueKind, parse_value


@dataclass(frozen=True)
class SchemaKey:
    """Single daemon key declaration.

    Attributes
    ----------
    path:
        Dotted path relative to the ``[daemon]`` table, e.g. ``api.cors.enable``.
    kind:
        Value kind used to parse and format the leaf.
    description:
        One-line explanation shown by ``config daemon list --available``.
    """

    path: str
    kind: ValueKind
    description: str

    @property
    def segments(self) -> tuple[str, ...]:
        return tuple(self.path.split("."))

    def parse(self, raw: str) -> object:
        """Parse *raw* for this key; an empty string parses to ``None`` (clear).

        Durations must be strictly positive when set through this accessor.
        """

        try:
            value = parse_value(self.kind, raw)
        except InvalidValue as exc:
            raise InvalidValue(f"invalid value for '{self.path}': {exc}", path=self.path, value=raw) from exc
        if isinstance(value, Duration) and not value.positive:
            raise InvalidValue(f"invalid value for '{self.path}': duration must be positive", path=self.path, value=raw)
        return value

    def read(self, store: Mapping[str, object]) -> object:
        return store.get(self.path)

    def write(self, store: MutableMapping[str, object], value: object) -> None:
        if value is None:
            store.pop(self.path, None)
        else:
            store[self.path] = value


DAEMON_KEYS: Final[tuple[SchemaKey, ...]] = (
    SchemaKey("api.addr", ValueKind.STRING, "API server address (host:port)"),
    SchemaKey("api.timeout.shutdown", ValueKind.DURATION, "API server shutdown timeout"),
    SchemaKey("api.cors.enable", ValueKind.BOOL, "Enable CORS support"),
    SchemaKey("api.cors.allow_origins", ValueKind.STRING_LIST, "Allowed CORS origins"),
    SchemaKey("api.cors.methods", ValueKind.STRING_LIST, "Allowed HTTP methods for CORS requests"),
    SchemaKey("api.cors.allow_headers", ValueKind.STRING_LIST, "Allowed request headers for CORS"),
    SchemaKey("api.cors.expose_headers", ValueKind.STRING_LIST, "Response headers exposed to CORS clients"),
    SchemaKey("api.cors.max_age", ValueKind.DURATION, "How long CORS preflight results may be cached"),
    SchemaKey("api.cors.allow_credentials", ValueKind.BOOL, "Allow credentials in CORS requests"),
    SchemaKey("mcp.timeout.shutdown", ValueKind.DURATION, "MCP server shutdown timeout"),
    SchemaKey("mcp.timeout.init", ValueKind.DURATION, "MCP server initialization timeout"),
    SchemaKey("mcp.timeout.health", ValueKind.DURATION, "MCP server health check timeout"),
    SchemaKey("mcp.interval.health", ValueKind.DURATION, "MCP server health check interval"),
)

_BY_PATH: Final[dict[str, SchemaKey]] = {key.path: key for key in DAEMON_KEYS}


def available_keys() -> list[SchemaKey]:
    """Return every declared key sorted by path.

    Examples
    --------
    >>> [key.path for key in available_keys()][:2]
    ['api.addr', 'api.cors.allow_credentials']
    """

    return sorted(DAEMON_KEYS, key=lambda key: key.path)


def normalize_path(path: str) -> str:
    """Trim and lowercase *path*, rejecting empty segments.

    Examples
    --------
    >>> normalize_path(" API.Addr ")
    'api.addr'
    >>> normalize_path("api..addr")
    Traceback (most recent call last):
    ...
    mcpd_config.domain.errors.InvalidPath: invalid key path 'api..addr'
    """

    cleaned = path.strip().lower()
    if not cleaned:
        raise InvalidPath("key path cannot be empty")
    if any(not segment.strip() for segment in cleaned.split(".")):
        raise InvalidPath(f"invalid key path '{path.strip()}'")
    return cleaned


def lookup(path: str) -> SchemaKey:
    """Return the :class:`SchemaKey` declared at *path* or raise :class:`UnknownKey`."""

    normalized = normalize_path(path)
    try:
        return _BY_PATH[normalized]
    except KeyError as exc:
        raise UnknownKey(f"unknown daemon config key: {normalized}") from exc


def keys_under(prefix: str) -> list[SchemaKey]:
    """Return the keys nested below *prefix* in declaration order.

    An empty prefix selects the whole registry.
    """

    if not prefix:
        return list(DAEMON_KEYS)
    return [key for key in DAEMON_KEYS if key.path.startswith(prefix + ".")]
