"""Export engine producing shareable artefacts from contract and context.

Purpose
-------
Join the project contract with the local execution context and emit two files
that are safe to commit or hand to a platform operator:

* a *portable execution context* whose ``env`` values and required ``args``
  reference ``${MCPD__SERVER__VAR}`` placeholders instead of secrets;
* an *environment contract* listing every placeholder with an empty value.

Contents
--------
* :class:`ExportFormat` – supported environment contract formats.
* :func:`placeholder_name` – ``MCPD__{SERVER}__{VAR}`` derivation.
* :func:`build_export` – pure join returning both artefacts in memory.
* :class:`ExportEngine` – writes the artefacts through the ports.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Final

from ..domain.args import flag_name
from ..domain.document import Document, DocumentKind, ServerEntry
from ..domain.errors import EmptyContract
from ..observability import log_info, make_event
from .loader import DocumentLoader
from .ports import EnvContractWriter

PLACEHOLDER_PREFIX: Final[str] = "MCPD"


class ExportFormat(str, Enum):
    DOTENV = "dotenv"

    def __str__(self) -> str:
        return self.value


def _normalize_segment(text: str) -> str:
    return text.strip().lstrip("-").replace("-", "_").replace(".", "_").upper()


def placeholder_name(server: str, var: str) -> str:
    """Return the placeholder for *var* of *server*.

    Examples
    --------
    >>> placeholder_name("gh-server", "GITHUB_TOKEN")
    'MCPD__GH_SERVER__GITHUB_TOKEN'
    >>> placeholder_name("my.server", "--repo")
    'MCPD__MY_SERVER__REPO'
    """

    return f"{PLACEHOLDER_PREFIX}__{_normalize_segment(server)}__{_normalize_segment(var)}"


def placeholder_reference(server: str, var: str) -> str:
    return "${" + placeholder_name(server, var) + "}"


@dataclass(frozen=True)
class ExportArtefacts:
    """In-memory export result."""

    portable_context: Document
    env_contract: dict[str, str]
    missing: dict[str, list[str]]


def build_export(contract: Document, context: Document) -> ExportArtefacts:
    """Join *contract* and *context* into the portable context and env contract.

    Why
    ----
    Exported files must describe every required input without leaking any
    locally configured value.

    What
    -----
    For each contract server (in contract order) every ``required_env`` name
    maps to ``${PLACEHOLDER}`` and every ``required_args`` flag renders as
    ``--flag=${PLACEHOLDER}``. Context arguments that are not declared required
    are dropped. Required names that the context does not provide are reported
    in :attr:`ExportArtefacts.missing`.

    Raises
    ------
    EmptyContract
        When *contract* declares no servers.

    Examples
    --------
    >>> contract = Document(DocumentKind.CONTRACT, servers=[ServerEntry.create(
    ...     "gh-server", package="uvx::gh", required_env=["GITHUB_TOKEN"], required_args=["--repo"])])
    >>> artefacts = build_export(contract, Document(DocumentKind.CONTEXT))
    >>> sorted(artefacts.env_contract)
    ['MCPD__GH_SERVER__GITHUB_TOKEN', 'MCPD__GH_SERVER__REPO']
    >>> artefacts.portable_context.servers[0].args
    ('--repo=${MCPD__GH_SERVER__REPO}',)
    """

    if not contract.servers:
        raise EmptyContract("export error, no servers defined in config")
    portable = Document(DocumentKind.CONTEXT)
    env_contract: dict[str, str] = {}
    missing: dict[str, list[str]] = {}
    for server in contract.servers:
        local, _ = context.get(server.name)
        env: dict[str, str] = {}
        for var in server.required_env:
            env[var] = placeholder_reference(server.name, var)
            env_contract[placeholder_name(server.name, var)] = ""
        args: list[str] = []
        for flag in server.required_args:
            bare = flag_name(flag) or flag
            args.append(f"{bare}={placeholder_reference(server.name, bare)}")
            env_contract[placeholder_name(server.name, bare)] = ""
        gaps = _missing_values(server, local)
        if gaps:
            missing[server.name] = gaps
        portable.servers.append(ServerEntry(name=server.name, args=tuple(args), env=env))
    return ExportArtefacts(portable, env_contract, missing)


def _missing_values(server: ServerEntry, local: ServerEntry | None) -> list[str]:
    env = dict(local.env) if local else {}
    provided_flags = {flag_name(token) for token in (local.args if local else ())}
    gaps = [var for var in server.required_env if var not in env]
    gaps.extend(flag for flag in server.required_args if (flag_name(flag) or flag) not in provided_flags)
    return gaps


class ExportEngine:
    """Write the export artefacts to disk.

    The portable context is saved world-readable (it holds no secrets); the
    environment contract goes through an :class:`EnvContractWriter`.
    """

    def __init__(self, loader: DocumentLoader, writer: EnvContractWriter) -> None:
        self._loader = loader
        self._writer = writer

    def export(
        self,
        contract: Document,
        context: Document,
        *,
        context_output: Path,
        contract_output: Path,
        fmt: ExportFormat = ExportFormat.DOTENV,
    ) -> ExportArtefacts:
        artefacts = build_export(contract, context)
        for server, gaps in artefacts.missing.items():
            log_info(
                "export_missing_context_values",
                **make_event("context", str(context.path) if context.path else None, {"server": server, "names": gaps}),
            )
        self._loader.save(artefacts.portable_context, path=context_output, secure=False)
        if fmt is ExportFormat.DOTENV:
            self._writer.write(contract_output, artefacts.env_contract)
        log_info(
            "export_written",
            **make_event("contract", str(contract_output), {"placeholders": len(artefacts.env_contract), "context_output": str(context_output)}),
        )
        return artefacts
