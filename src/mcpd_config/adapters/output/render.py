"""Structured output rendering for read-only commands.

Purpose
-------
Render command results as JSON or YAML inside a ``{"result": ...}`` envelope so
scripts can consume them, while text output stays command specific.

Contents
--------
* :class:`OutputFormat` – ``text``, ``json`` or ``yaml``.
* :func:`render_structured` – serialise a payload in the requested format.
"""

from __future__ import annotations

import json
from enum import Enum
from typing import Any

import yaml


class OutputFormat(str, Enum):
    TEXT = "text"
    JSON = "json"
    YAML = "yaml"

    def __str__(self) -> str:
        return self.value


FORMAT_CHOICES: tuple[str, ...] = tuple(fmt.value for fmt in OutputFormat)


def render_structured(payload: Any, fmt: OutputFormat) -> str:
    """Return *payload* wrapped in a ``result`` envelope and rendered as *fmt*.

    Examples
    --------
    >>> print(render_structured({"name": "jwt-auth"}, OutputFormat.JSON))
    {
      "result": {
        "name": "jwt-auth"
      }
    }
    >>> print(render_structured(["a"], OutputFormat.YAML), end="")
    result:
    - a
    """

    envelope = {"result": payload}
    if fmt is OutputFormat.JSON:
        return json.dumps(envelope, indent=2, ensure_ascii=False)
    if fmt is OutputFormat.YAML:
        return yaml.safe_dump(envelope, sort_keys=False, allow_unicode=True)
    raise ValueError(f"text output has no structured rendering: {fmt}")
