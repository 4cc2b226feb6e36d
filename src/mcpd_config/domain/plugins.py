"""Ordered plugin catalogue grouped by execution category.

Purpose
-------
Model the ``[plugins]`` table of a project contract: an optional binary
directory plus one ordered list of plugin entries per fixed category. The
catalogue owns insertion, replacement, deletion and reordering rules including
cross-category moves.

Contents
--------
* :class:`Category` / :class:`Flow` – closed enumerations with canonical order.
* :class:`PluginEntry` – immutable plugin declaration.
* :class:`PluginCatalogue` – mutable per-category ordered lists.
* :func:`parse_category` / :func:`parse_flows` – operator input parsing.

System Role
-----------
Held by :class:`mcpd_config.domain.document.Document`; the ``config plugins``
commands call the catalogue through the document's forwarding helpers.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Iterable, Iterator, Mapping

from .errors import Conflict, InvalidFormat, InvalidValue, MissingArgument, NotFound, ValidationError
from .results import OperationResult, compare_values


class Category(str, Enum):
    """Plugin categories in canonical execution order."""

    AUTHENTICATION = "authentication"
    AUTHORIZATION = "authorization"
    RATE_LIMITING = "rate_limiting"
    VALIDATION = "validation"
    CONTENT = "content"
    OBSERVABILITY = "observability"
    AUDIT = "audit"

    def __str__(self) -> str:
        return self.value


class Flow(str, Enum):
    """Message phase during which a plugin runs."""

    REQUEST = "request"
    RESPONSE = "response"

    def __str__(self) -> str:
        return self.value


ORDERED_CATEGORIES: tuple[Category, ...] = tuple(Category)
ORDERED_FLOWS: tuple[str, ...] = tuple(flow.value for flow in Flow)


def parse_category(text: str) -> Category:
    """Return the :class:`Category` named by *text* (case-insensitive).

    Examples
    --------
    >>> parse_category(" Authentication ")
    <Category.AUTHENTICATION: 'authentication'>
    >>> parse_category("other")
    Traceback (most recent call last):
    ...
    mcpd_config.domain.errors.InvalidValue: invalid category 'other' (allowed: authentication, authorization, rate_limiting, validation, content, observability, audit)
    """

    try:
        return Category(text.strip().lower())
    except ValueError as exc:
        allowed = ", ".join(category.value for category in ORDERED_CATEGORIES)
        raise InvalidValue(f"invalid category '{text.strip()}' (allowed: {allowed})", value=text) from exc


def parse_flows(values: Iterable[str]) -> tuple[str, ...]:
    """Return the distinct valid flows in canonical order; raise when none remain.

    Examples
    --------
    >>> parse_flows(["response", "REQUEST", "response"])
    ('request', 'response')
    >>> parse_flows(["sideways"])
    Traceback (most recent call last):
    ...
    mcpd_config.domain.errors.InvalidValue: at least one valid flow is required (request, response)
    """

    raw = list(values)
    wanted = {value.strip().lower() for value in raw}
    flows = tuple(flow for flow in ORDERED_FLOWS if flow in wanted)
    if not flows:
        raise InvalidValue(f"at least one valid flow is required ({', '.join(ORDERED_FLOWS)})", value=raw)
    return flows


def canonical_flows(values: Iterable[str]) -> tuple[str, ...]:
    """Order stored flows canonically, keeping unknown and repeated flows for validation.

    Examples
    --------
    >>> canonical_flows(["response", "bogus", "request"])
    ('request', 'response', 'bogus')
    """

    return tuple(sorted(values, key=_flow_rank))


def _flow_rank(flow: str) -> int:
    return ORDERED_FLOWS.index(flow) if flow in ORDERED_FLOWS else len(ORDERED_FLOWS)


@dataclass(frozen=True)
class PluginEntry:
    """Plugin declaration stored in one category.

    ``required`` and ``commit_hash`` distinguish *absent* (``None``) from a set
    value; absent fields are omitted on disk.
    """

    name: str
    flows: tuple[str, ...]
    required: bool | None = None
    commit_hash: str | None = None

    def same_as(self, other: "PluginEntry") -> bool:
        """Structural equality treating ``flows`` as a set and respecting optional presence."""

        return (
            self.name == other.name
            and set(self.flows) == set(other.flows)
            and self.required == other.required
            and self.commit_hash == other.commit_hash
        )

    def validation_errors(self) -> list[str]:
        errors: list[str] = []
        if not self.name.strip():
            errors.append("plugin name is required")
        if not self.flows:
            errors.append("at least one flow is required")
            return errors
        seen: set[str] = set()
        for flow in self.flows:
            if flow not in ORDERED_FLOWS:
                errors.append(f"invalid flow '{flow}' (allowed: {', '.join(ORDERED_FLOWS)})")
            if flow in seen:
                errors.append(f"duplicate flow: {flow}")
            seen.add(flow)
        return errors

    def to_mapping(self) -> dict[str, Any]:
        data: dict[str, Any] = {"name": self.name}
        if self.commit_hash is not None:
            data["commit_hash"] = self.commit_hash
        if self.required is not None:
            data["required"] = self.required
        data["flows"] = list(self.flows)
        return data

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "PluginEntry":
        flows = data.get("flows", [])
        if not isinstance(flows, list) or not all(isinstance(flow, str) for flow in flows):
            raise InvalidValue("plugin flows must be a list of strings", path="flows", value=flows)
        required = data.get("required")
        if required is not None and not isinstance(required, bool):
            raise InvalidValue("plugin required must be a boolean", path="required", value=required)
        commit_hash = data.get("commit_hash")
        if commit_hash is not None and not isinstance(commit_hash, str):
            raise InvalidValue("plugin commit_hash must be a string", path="commit_hash", value=commit_hash)
        return cls(str(data.get("name", "")), canonical_flows(flows), required, commit_hash)


class PluginCatalogue:
    """Per-category ordered plugin lists plus the optional binary directory.

    Examples
    --------
    >>> catalogue = PluginCatalogue()
    >>> catalogue.upsert(Category.AUTHENTICATION, PluginEntry("jwt-auth", ("request",)))
    <OperationResult.CREATED: 'created'>
    >>> catalogue.upsert(Category.AUTHENTICATION, PluginEntry("jwt-auth", ("request",)))
    <OperationResult.NOOP: 'noop'>
    >>> [entry.name for entry in catalogue.list_plugins(Category.AUTHENTICATION)]
    ['jwt-auth']
    """

    def __init__(self, directory: str | None = None) -> None:
        self.dir = directory
        self._entries: dict[Category, list[PluginEntry]] = {category: [] for category in ORDERED_CATEGORIES}

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PluginCatalogue):
            return NotImplemented
        return self.dir == other.dir and self._entries == other._entries

    def __repr__(self) -> str:
        populated = {str(category): entries for category, entries in self._entries.items() if entries}
        return f"PluginCatalogue(dir={self.dir!r}, entries={populated!r})"

    @property
    def is_empty(self) -> bool:
        return not self.dir and not any(self._entries.values())

    def set_directory(self, directory: str) -> OperationResult:
        """Point the catalogue at *directory*; an empty value clears it."""

        new = directory.strip() or None
        result = compare_values(self.dir, new)
        self.dir = new
        return result

    def plugin(self, category: Category, name: str) -> tuple[PluginEntry | None, bool]:
        """Return ``(entry, True)`` when *name* exists in *category*, else ``(None, False)``."""

        index = self._index(category, name)
        if index is None:
            return None, False
        return self._entries[category][index], True

    def list_plugins(self, category: Category) -> list[PluginEntry]:
        return list(self._entries[category])

    def all_categories(self) -> dict[Category, list[PluginEntry]]:
        """Return the populated categories in execution order."""

        return {category: list(entries) for category, entries in self._entries.items() if entries}

    def distinct_names(self) -> set[str]:
        return {entry.name for entries in self._entries.values() for entry in entries}

    def __iter__(self) -> Iterator[tuple[Category, PluginEntry]]:
        for category in ORDERED_CATEGORIES:
            for entry in self._entries[category]:
                yield category, entry

    def upsert(self, category: Category, entry: PluginEntry) -> OperationResult:
        """Append *entry* or replace the same-named entry in place."""

        entry = replace(entry, name=entry.name.strip())
        if not entry.name:
            raise InvalidValue("plugin name cannot be empty", path="name")
        errors = entry.validation_errors()
        if errors:
            raise InvalidValue(f"plugin validation failed: {'; '.join(errors)}", path=entry.name)
        entries = self._entries[category]
        index = self._index(category, entry.name)
        if index is None:
            entries.append(entry)
            return OperationResult.CREATED
        if entries[index].same_as(entry):
            return OperationResult.NOOP
        entries[index] = entry
        return OperationResult.UPDATED

    def delete(self, category: Category, name: str) -> OperationResult:
        name = name.strip()
        if not name:
            raise MissingArgument("plugin name cannot be empty")
        index = self._index(category, name)
        if index is None:
            raise NotFound(f"plugin {name} not found in category '{category}'")
        del self._entries[category][index]
        return OperationResult.DELETED

    def move(
        self,
        category: Category,
        name: str,
        *,
        to_category: Category | None = None,
        before: str | None = None,
        after: str | None = None,
        position: int | None = None,
        force: bool = False,
    ) -> OperationResult:
        """Reorder *name* within *category* or move it to *to_category*.

        Why
        ----
        Plugin execution order is significant; operators need precise control
        without re-creating entries.

        Parameters
        ----------
        to_category:
            Destination category; must differ from *category*. May be combined
            with *position*.
        before / after:
            Name of another entry in the destination list to anchor against.
        position:
            1-indexed slot in the resulting list, or ``-1`` for the end.
        force:
            Replace a same-named entry in the destination category instead of
            failing with :class:`Conflict`.

        Returns
        -------
        OperationResult
            ``updated`` when the order or placement changed, ``noop`` otherwise.

        Examples
        --------
        >>> catalogue = PluginCatalogue()
        >>> for name in ("plugin-a", "plugin-b"):
        ...     _ = catalogue.upsert(Category.AUTHENTICATION, PluginEntry(name, ("request",)))
        >>> catalogue.move(Category.AUTHENTICATION, "plugin-b", before="plugin-a")
        <OperationResult.UPDATED: 'updated'>
        >>> [entry.name for entry in catalogue.list_plugins(Category.AUTHENTICATION)]
        ['plugin-b', 'plugin-a']
        """

        anchors = [option for option in (before, after, position) if option is not None]
        if len(anchors) > 1:
            raise InvalidValue("only one of before, after or position may be specified")
        if to_category is None and not anchors:
            raise MissingArgument("one of to-category, before, after or position is required")
        if to_category is not None and to_category == category:
            raise InvalidValue(f"plugin is already in category '{category}'", path="to_category")

        name = name.strip()
        source_index = self._index(category, name)
        if source_index is None:
            raise NotFound(f"plugin {name} not found in category '{category}'")

        source = list(self._entries[category])
        entry = source.pop(source_index)
        destination_category = to_category or category
        destination = source if to_category is None else list(self._entries[destination_category])

        if to_category is not None:
            existing = [index for index, current in enumerate(destination) if current.name == name]
            if existing and not force:
                raise Conflict(
                    f"plugin '{name}' already exists in category '{to_category}', use --force to overwrite"
                )
            for index in reversed(existing):
                del destination[index]

        slot = self._target_slot(destination, before=before, after=after, position=position)
        destination.insert(slot, entry)

        if to_category is None:
            if destination == self._entries[category]:
                return OperationResult.NOOP
            self._entries[category] = destination
            return OperationResult.UPDATED
        self._entries[category] = source
        self._entries[destination_category] = destination
        return OperationResult.UPDATED

    @staticmethod
    def _target_slot(
        entries: list[PluginEntry],
        *,
        before: str | None,
        after: str | None,
        position: int | None,
    ) -> int:
        if before is not None or after is not None:
            anchor = (before if before is not None else after or "").strip()
            for index, current in enumerate(entries):
                if current.name == anchor:
                    return index if before is not None else index + 1
            raise NotFound(f"target plugin '{anchor}' not found")
        if position is None or position == -1:
            return len(entries)
        size = len(entries) + 1
        if not 1 <= position <= size:
            raise InvalidValue(f"position must be between 1 and {size}, or -1 for the end", path="position", value=position)
        return position - 1

    def _index(self, category: Category, name: str) -> int | None:
        name = name.strip()
        for index, entry in enumerate(self._entries[category]):
            if entry.name == name:
                return index
        return None

    def validate(self) -> None:
        """Raise :class:`ValidationError` listing every invalid entry."""

        errors = self.validation_errors()
        if errors:
            raise ValidationError(errors)

    def validation_errors(self) -> list[str]:
        errors: list[str] = []
        for category, entry in self:
            problems = entry.validation_errors()
            if problems:
                label = entry.name.strip() or "unknown"
                errors.extend(f"plugin '{label}' in category '{category}': {problem}" for problem in problems)
        return errors

    def to_mapping(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        if self.dir:
            data["dir"] = self.dir
        for category, entries in self._entries.items():
            if entries:
                data[category.value] = [entry.to_mapping() for entry in entries]
        return data

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "PluginCatalogue":
        directory = data.get("dir")
        if directory is not None and not isinstance(directory, str):
            raise InvalidValue("plugins dir must be a string", path="plugins.dir", value=directory)
        catalogue = cls(directory or None)
        for key, value in data.items():
            if key == "dir":
                continue
            category = parse_category(key)
            if not isinstance(value, list):
                raise InvalidValue(f"plugins.{key} must be an array of tables", path=f"plugins.{key}")
            if not all(isinstance(item, Mapping) for item in value):
                raise InvalidFormat(f"plugins.{key} must be an array of tables")
            catalogue._entries[category] = [PluginEntry.from_mapping(item) for item in value]
        return catalogue
