"""Operation result model shared by every mutating operation.

Purpose
-------
Classify the outcome of a mutation so callers can branch on it (for example a
``--check`` style caller exiting non-zero when something was ``updated``) and so
the CLI can report ``(operation: <kind>)`` uniformly.

Contents
--------
* :class:`OperationResult` – enumeration of ``created``, ``updated``, ``noop``
  and ``deleted``.
* :func:`compare_values` – derive the result of replacing one optional value
  with another.
"""

from __future__ import annotations

from enum import Enum


class OperationResult(str, Enum):
    """Outcome of a mutating operation.

    Examples
    --------
    >>> OperationResult.CREATED.value
    'created'
    >>> str(OperationResult.NOOP)
    'noop'
    >>> OperationResult.UPDATED.changed
    True
    """

    CREATED = "created"
    UPDATED = "updated"
    NOOP = "noop"
    DELETED = "deleted"

    def __str__(self) -> str:
        return self.value

    @property
    def changed(self) -> bool:
        """Return ``True`` when the operation modified state."""

        return self is not OperationResult.NOOP


def compare_values(old: object, new: object) -> OperationResult:
    """Classify replacing *old* with *new* where ``None`` means "absent".

    Empty sequences count as absent so cleared lists report ``deleted``.

    Examples
    --------
    >>> compare_values(None, "x")
    <OperationResult.CREATED: 'created'>
    >>> compare_values("x", None)
    <OperationResult.DELETED: 'deleted'>
    >>> compare_values(("a",), ("a",))
    <OperationResult.NOOP: 'noop'>
    """

    old_absent = _is_absent(old)
    new_absent = _is_absent(new)
    if old_absent and new_absent:
        return OperationResult.NOOP
    if old_absent:
        return OperationResult.CREATED
    if new_absent:
        return OperationResult.DELETED
    if old != new:
        return OperationResult.UPDATED
    return OperationResult.NOOP


def _is_absent(value: object) -> bool:
    if value is None:
        return True
    if isinstance(value, (list, tuple)) and not value:
        return True
    return False
