"""Daemon configuration section addressed by dotted paths.

Purpose
-------
Hold the ``[daemon]`` table of a project contract as a flat store of typed
leaves keyed by schema path, offering path-addressable ``set``/``get``/``remove``
plus a structural validator that reports every problem in one composite error.

Contents
--------
* :class:`DaemonSection` – the mutable section object.
* :data:`VALID_HTTP_METHODS` – methods accepted in ``api.cors.methods``.
* :func:`is_valid_address` / :func:`is_valid_origin` – address predicates.

System Role
-----------
Owned by :class:`mcpd_config.domain.document.Document`. The CLI ``config daemon``
commands call into it and the loader pipeline invokes :meth:`DaemonSection.validate`.
"""

from __future__ import annotations

import ipaddress
from typing import Any, Final, Iterator, Mapping

from .errors import InvalidValue, UnknownKey, ValidationError
from .results import OperationResult, compare_values
from .schema import DAEMON_KEYS, SchemaKey, keys_under, lookup, normalize_path
from .values import Duration, coerce_stored, format_value

VALID_HTTP_METHODS: Final[frozenset[str]] = frozenset(
    {"GET", "HEAD", "POST", "PUT", "DELETE", "CONNECT", "OPTIONS", "TRACE", "PATCH"}
)

_MAX_HOSTNAME_LENGTH: Final[int] = 253


class DaemonSection:
    """Path-addressable daemon settings.

    Why
    ----
    Operators edit individual leaves (``api.cors.enable=true``) without caring
    about the nested TOML layout; the section keeps that layout a serialisation
    detail.

    Examples
    --------
    >>> section = DaemonSection()
    >>> section.set("api.addr", "localhost:8090")
    <OperationResult.CREATED: 'created'>
    >>> section.set("api.addr", "localhost:8090")
    <OperationResult.NOOP: 'noop'>
    >>> section.get("api.addr")
    'localhost:8090'
    >>> section.remove("api.addr")
    <OperationResult.DELETED: 'deleted'>
    >>> section.is_empty
    True
    """

    def __init__(self, values: Mapping[str, object] | None = None) -> None:
        self._values: dict[str, object] = {}
        for path, value in (values or {}).items():
            lookup(path).write(self._values, value)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DaemonSection):
            return NotImplemented
        return self._values == other._values

    def __repr__(self) -> str:
        return f"DaemonSection({self._values!r})"

    def __iter__(self) -> Iterator[tuple[SchemaKey, object]]:
        """Yield ``(key, value)`` for every configured leaf in schema order."""

        for key in DAEMON_KEYS:
            value = key.read(self._values)
            if value is not None:
                yield key, value

    @property
    def is_empty(self) -> bool:
        return not self._values

    def set(self, path: str, raw: str) -> OperationResult:
        """Parse *raw* for the key at *path* and store it.

        An empty *raw* clears the key. Returns ``created`` when the key held no
        value, ``updated`` when the value changed, ``deleted`` when a value was
        cleared, and ``noop`` otherwise.
        """

        key = lookup(path)
        new = key.parse(raw)
        old = key.read(self._values)
        key.write(self._values, new)
        return compare_values(old, new)

    def remove(self, path: str) -> OperationResult:
        """Clear the key at *path*; clearing an absent key is a ``noop``."""

        return self.set(path, "")

    def get(self, *segments: str) -> Any:
        """Return the leaf at the dotted path, a subtree, or the whole tree.

        Segments may be passed individually or already dotted. Leaves come back
        typed (:class:`Duration`, ``bool``, ``str`` or ``tuple``); subtrees are
        nested dictionaries of typed leaves. Unset leaves return ``None``.
        """

        joined = ".".join(segment for segment in segments if segment.strip())
        if not joined:
            return self._tree(DAEMON_KEYS)
        path = normalize_path(joined)
        try:
            return lookup(path).read(self._values)
        except UnknownKey:
            nested = keys_under(path)
            if not nested:
                raise
        subtree = self._tree(nested)
        for segment in path.split("."):
            subtree = subtree.get(segment, {})
        return subtree

    def _tree(self, keys: list[SchemaKey] | tuple[SchemaKey, ...]) -> dict[str, Any]:
        tree: dict[str, Any] = {}
        for key in keys:
            value = key.read(self._values)
            if value is None:
                continue
            node = tree
            *parents, leaf = key.segments
            for segment in parents:
                node = node.setdefault(segment, {})
            node[leaf] = value
        return tree

    def validate(self) -> None:
        """Raise a composite :class:`ValidationError` listing every problem found."""

        errors = self.validation_errors()
        if errors:
            raise ValidationError(errors)

    def validation_errors(self) -> list[str]:
        errors = [f"API configuration error: {message}" for message in self._api_errors()]
        errors.extend(f"MCP configuration error: {message}" for message in self._mcp_errors())
        return errors

    def _api_errors(self) -> list[str]:
        errors: list[str] = []
        addr = self._values.get("api.addr")
        if addr is not None:
            if not str(addr).strip():
                errors.append("API address cannot be empty")
            elif not is_valid_address(str(addr)):
                errors.append(f'API address "{addr}" appears to be invalid (expected format: host:port)')
        if not _positive(self._values.get("api.timeout.shutdown")):
            errors.append("timeout configuration error: API shutdown timeout must be positive")
        errors.extend(f"CORS configuration error: {message}" for message in self._cors_errors())
        return errors

    def _cors_errors(self) -> list[str]:
        errors: list[str] = []
        for origin in self._values.get("api.cors.allow_origins", ()):  # type: ignore[union-attr]
            if origin == "*":
                continue
            if not origin:
                errors.append("CORS origin cannot be empty")
            elif not is_valid_origin(origin):
                errors.append(f"invalid origin address: {origin}")
        for method in self._values.get("api.cors.methods", ()):  # type: ignore[union-attr]
            if method == "*":
                continue
            if not method:
                errors.append("CORS method cannot be empty")
            elif method not in VALID_HTTP_METHODS:
                errors.append(f"CORS method {method} is not a valid HTTP request method")
        if not _positive(self._values.get("api.cors.max_age")):
            errors.append("CORS max age must be positive")
        return errors

    def _mcp_errors(self) -> list[str]:
        errors: list[str] = []
        for name in ("shutdown", "init", "health"):
            if not _positive(self._values.get(f"mcp.timeout.{name}")):
                errors.append(f"timeout configuration error: MCP {name} timeout must be positive")
        if not _positive(self._values.get("mcp.interval.health")):
            errors.append("interval configuration error: MCP health interval must be positive")
        return errors

    def to_mapping(self) -> dict[str, Any]:
        """Return the nested TOML-ready mapping in schema order."""

        tree: dict[str, Any] = {}
        for key, value in self:
            node = tree
            *parents, leaf = key.segments
            for segment in parents:
                node = node.setdefault(segment, {})
            node[leaf] = format_value(key.kind, value)
        return tree

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "DaemonSection":
        """Build a section from the nested ``[daemon]`` table read from disk.

        Stored values are coerced but not validated so broken files can still be
        loaded and reported by :meth:`validate`.
        """

        section = cls()
        for path, raw in _flatten(data):
            key = lookup(path)
            try:
                value = coerce_stored(key.kind, raw)
            except InvalidValue as exc:
                raise InvalidValue(f"invalid value for '{path}': {exc}", path=path, value=raw) from exc
            key.write(section._values, value)
        return section


def _flatten(data: Mapping[str, Any], prefix: str = "") -> Iterator[tuple[str, Any]]:
    for name, value in data.items():
        path = f"{prefix}{name}"
        if isinstance(value, Mapping):
            yield from _flatten(value, path + ".")
        else:
            yield path, value


def _positive(value: object) -> bool:
    """Return ``True`` unless *value* is a configured, non-positive duration."""

    if isinstance(value, Duration):
        return value.positive
    return True


def is_valid_address(addr: str) -> bool:
    """Return ``True`` when *addr* looks like ``host:port``.

    The host may be empty, an IP address (IPv6 in brackets), or a hostname; the
    port must be numeric in ``1..65535``. A lone ``:`` binds every interface.

    Examples
    --------
    >>> is_valid_address("localhost:8090")
    True
    >>> is_valid_address(":8090")
    True
    >>> is_valid_address("[::1]:8090")
    True
    >>> is_valid_address("invalid-address")
    False
    >>> is_valid_address("host:70000")
    False
    """

    split = _split_host_port(addr)
    if split is None:
        return False
    host, port = split
    if not host and not port:
        return True
    return _valid_port(port) and _valid_host(host)


def is_valid_origin(origin: str) -> bool:
    """Return ``True`` for ``scheme://host[:port]`` or ``host[:port]`` origins.

    Examples
    --------
    >>> is_valid_origin("https://example.com")
    True
    >>> is_valid_origin("http://localhost:3000")
    True
    >>> is_valid_origin("example.com:8080")
    True
    >>> is_valid_origin("http://bad host")
    False
    """

    remainder = origin
    if "://" in origin:
        scheme, _, remainder = origin.partition("://")
        if not scheme or not scheme.isalpha():
            return False
    if not remainder or "/" in remainder:
        return False
    if remainder.startswith("[") or remainder.count(":") == 1:
        split = _split_host_port(remainder)
        if split is None:
            return _valid_host(remainder.strip("[]"))
        host, port = split
        return bool(host) and _valid_port(port) and _valid_host(host)
    return _valid_host(remainder)


def _split_host_port(addr: str) -> tuple[str, str] | None:
    if addr.startswith("["):
        closing = addr.find("]")
        if closing == -1 or addr[closing + 1 : closing + 2] != ":":
            return None
        return addr[1:closing], addr[closing + 2 :]
    if addr.count(":") != 1:
        return None
    host, _, port = addr.partition(":")
    return host, port


def _valid_port(port: str) -> bool:
    return port.isdigit() and 1 <= int(port) <= 65535


def _valid_host(host: str) -> bool:
    if not host:
        return True
    if any(char.isspace() for char in host):
        return False
    try:
        ipaddress.ip_address(host)
        return True
    except ValueError:
        pass
    return len(host) <= _MAX_HOSTNAME_LENGTH and all(char.isalnum() or char in "-._" for char in host)
