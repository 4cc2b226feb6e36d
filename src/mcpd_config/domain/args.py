"""Argument list normaliser for server runtime arguments.

Purpose
-------
Turn operator supplied argument tokens into a canonical, merge-friendly list and
support whole-flag removal regardless of the syntax the flag was written in.

Contents
--------
* :func:`flag_name` – extract the ``--flag`` prefix of a token.
* :func:`normalize_args` – collapse ``--flag value`` pairs, trim, and dedupe.
* :func:`merge_args` – append unseen tokens, overriding inline values in place.
* :func:`remove_matching_flags` – drop every token matching a flag name.

System Role
-----------
Used by the execution context commands (``config args``) and the export engine.
The module owns no grammar of the target program; the only heuristic is that a
token following a long flag is a value unless it begins with ``-``.
"""

from __future__ import annotations

from typing import AbstractSet, Iterable, Sequence


def flag_name(token: str) -> str | None:
    """Return the long flag name carried by *token* or ``None``.

    Examples
    --------
    >>> flag_name("--port=8080")
    '--port'
    >>> flag_name("--verbose")
    '--verbose'
    >>> flag_name("-v") is None
    True
    >>> flag_name("positional") is None
    True
    """

    token = token.strip()
    if not token.startswith("--") or token == "--":
        return None
    name, _, _ = token.partition("=")
    return name


def is_long_flag(token: str) -> bool:
    return flag_name(token) is not None


def normalize_args(tokens: Iterable[str], *, boolean_flags: AbstractSet[str] = frozenset()) -> list[str]:
    """Return the canonical form of *tokens*.

    Why
    ----
    Stored argument lists must compare and merge deterministically no matter
    whether the operator typed ``--flag value`` or ``--flag=value``.

    What
    -----
    * Tokens are trimmed; blank tokens are dropped.
    * ``--flag value`` collapses into ``--flag=value`` when the next token does
      not begin with ``-`` and ``--flag`` is not listed in *boolean_flags*.
    * Short flags (``-x``) and positionals pass through unchanged.
    * Duplicate tokens are removed keeping the first occurrence.

    Examples
    --------
    >>> normalize_args(["--repo", "mozilla-ai/mcpd", "--verbose", "--debug"])
    ['--repo=mozilla-ai/mcpd', '--verbose', '--debug']
    >>> normalize_args(["--dry-run", "target"], boolean_flags={"--dry-run"})
    ['--dry-run', 'target']
    >>> normalize_args(["-v", "-v", "file.txt"])
    ['-v', 'file.txt']
    """

    current = [token.strip() for token in tokens if token.strip()]
    # Dropping a duplicate can expose a new flag/value pair; repeat until stable.
    while True:
        normalized = _dedupe(_collapse(current, boolean_flags))
        if normalized == current:
            return normalized
        current = normalized


def _collapse(tokens: Sequence[str], boolean_flags: AbstractSet[str]) -> list[str]:
    collapsed: list[str] = []
    index = 0
    while index < len(tokens):
        token = tokens[index]
        following = tokens[index + 1] if index + 1 < len(tokens) else None
        if _takes_value(token, following, boolean_flags):
            collapsed.append(f"{token}={following}")
            index += 2
            continue
        collapsed.append(token)
        index += 1
    return collapsed


def _takes_value(token: str, following: str | None, boolean_flags: AbstractSet[str]) -> bool:
    if following is None or following.startswith("-"):
        return False
    if not is_long_flag(token) or "=" in token:
        return False
    return token not in boolean_flags


def _dedupe(tokens: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    result: list[str] = []
    for token in tokens:
        if token in seen:
            continue
        seen.add(token)
        result.append(token)
    return result


def merge_args(existing: Sequence[str], incoming: Sequence[str]) -> list[str]:
    """Merge *incoming* into *existing* without reordering *existing*.

    An inline-valued incoming token (``--flag=value``) replaces the tokens that
    share its flag name: the first keeps its slot, later ones are dropped. Every
    other incoming token not already present is appended.

    Examples
    --------
    >>> merge_args(["--port=8080", "--verbose"], ["--port=9090", "--debug"])
    ['--port=9090', '--verbose', '--debug']
    >>> merge_args(["--verbose"], ["--verbose"])
    ['--verbose']
    """

    merged = list(existing)
    for token in incoming:
        name = flag_name(token)
        if name is not None and "=" in token:
            slots = [index for index, current in enumerate(merged) if flag_name(current) == name]
            if slots:
                merged[slots[0]] = token
                for index in reversed(slots[1:]):
                    del merged[index]
                continue
        if token not in merged:
            merged.append(token)
    return _dedupe(merged)


def remove_matching_flags(tokens: Sequence[str], names: Iterable[str]) -> list[str]:
    """Remove every token whose flag name (or exact text) appears in *names*.

    Examples
    --------
    >>> remove_matching_flags(["--verbose", "--verbose=true", "--port=8080"], ["--verbose"])
    ['--port=8080']
    >>> remove_matching_flags(["--port=8080", "input.txt"], ["input.txt", "--missing"])
    ['--port=8080']
    """

    targets = {name.strip() for name in names if name.strip()}
    flag_targets = {flag_name(name) or name for name in targets}
    result: list[str] = []
    for token in tokens:
        name = flag_name(token)
        if name is not None and name in flag_targets:
            continue
        if token in targets:
            continue
        result.append(token)
    return result


def required_arg_names(tokens: Iterable[str]) -> list[str]:
    """Return the distinct flag names of *tokens* in first-seen order."""

    return _dedupe(name for name in (flag_name(token) for token in tokens) if name is not None)
