"""Domain-level exception hierarchy.

Purpose
-------
Expose the stable error taxonomy shared by the domain, the loader pipeline, the
export engine, and the CLI front-end. The hierarchy lives in the domain layer so
outer layers may depend on it without the domain depending on them.

Contents
--------
* :class:`ConfigError` – umbrella base class for every configuration failure.
* :class:`NotFound` / :class:`AlreadyExists` / :class:`Conflict` – lookup and
  uniqueness failures on servers, plugins, and daemon keys.
* :class:`InvalidValue` – a value failed type parsing or a semantic rule.
* :class:`InvalidPath` / :class:`UnknownKey` – a dotted daemon path is malformed
  or not declared by the schema registry.
* :class:`MissingArgument` / :class:`EmptyInput` / :class:`EmptyContract` –
  operator input was incomplete.
* :class:`IOFailure` / :class:`InvalidFormat` – persistence failures.
* :class:`ValidationError` – composite error aggregating every validation
  message produced within one command.
* :class:`Unimplemented` – a recognised request the tool does not support yet.

System Role
-----------
Components raise these exceptions; the CLI wraps them with operator context and
converts them into non-zero exits. Callers catch :class:`ConfigError` to handle
all failures uniformly.
"""

from __future__ import annotations

from typing import Iterable


class ConfigError(Exception):
    """Base type for all exceptions emitted by ``mcpd_config``.

    Why
    ----
    Provide a single catch-all type for consumers that do not need fine-grained
    handling.
    """


class NotFound(ConfigError):
    """Raised when the primary target of an operation does not exist."""


class AlreadyExists(ConfigError):
    """Raised when creating an entry whose name is already taken."""


class Conflict(ConfigError):
    """Raised when an operation would overwrite an existing entry without ``force``."""


class InvalidValue(ConfigError):
    """Raised when a value cannot be parsed into its declared kind or breaks a rule.

    Attributes
    ----------
    path:
        Dotted path or field name the value was destined for (may be ``None``).
    value:
        The offending raw value (may be ``None``).
    """

    def __init__(self, message: str, *, path: str | None = None, value: object = None) -> None:
        super().__init__(message)
        self.path = path
        self.value = value


class InvalidPath(ConfigError):
    """Raised when a dotted path is syntactically unusable (empty segments, blanks)."""


class UnknownKey(InvalidPath):
    """Raised when a dotted path is not declared in the daemon schema registry."""


class MissingArgument(ConfigError):
    """Raised when a required operand was not supplied."""


class EmptyInput(ConfigError):
    """Raised when an operation receives nothing to work on."""


class EmptyContract(EmptyInput):
    """Raised when an export is requested for a contract without servers."""


class IOFailure(ConfigError):
    """Raised when reading or writing a configuration artefact fails."""


class InvalidFormat(IOFailure):
    """Raised when an on-disk artefact cannot be parsed into structured data.

    Typical Sources
    ---------------
    The TOML document store (:mod:`tomllib`) and document decoding helpers.
    """


class ValidationError(ConfigError):
    """Composite error aggregating every validation failure found in one pass.

    Why
    ----
    Operators should see all problems at once instead of fixing them one run at
    a time. The messages are kept individually so callers can inspect them.

    Examples
    --------
    >>> err = ValidationError(["API address cannot be empty", "MCP health timeout must be positive"])
    >>> len(err.errors)
    2
    >>> print(err)
    API address cannot be empty
    MCP health timeout must be positive
    """

    def __init__(self, errors: Iterable[str], *, heading: str | None = None) -> None:
        self.errors: tuple[str, ...] = tuple(errors)
        self.heading = heading
        lines = [heading] if heading else []
        lines.extend(self.errors)
        super().__init__("\n".join(lines))


class Unimplemented(ConfigError):
    """Raised for recognised requests that are not supported yet."""


def collect_messages(error: BaseException) -> list[str]:
    """Return the individual messages carried by *error*.

    Flattens :class:`ValidationError` so nested composites stay one level deep.
    """

    if isinstance(error, ValidationError):
        return list(error.errors)
    return [str(error)]
