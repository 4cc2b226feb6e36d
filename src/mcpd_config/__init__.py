"""Public package surface for the mcpd configuration core.

Exposes the document model, the operation result type and the composition-root
helpers so both ``import mcpd_config`` and the ``mcpd`` CLI drive the same code.
"""

from __future__ import annotations

from .core import ConfigPaths, export_config, load_or_init, resolve_paths, save_document
from .domain.document import Document, DocumentKind, ServerEntry
from .domain.errors import ConfigError
from .domain.results import OperationResult

__all__ = [
    "ConfigError",
    "ConfigPaths",
    "Document",
    "DocumentKind",
    "OperationResult",
    "ServerEntry",
    "export_config",
    "load_or_init",
    "resolve_paths",
    "save_document",
]
