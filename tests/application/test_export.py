"""Export engine: placeholders, environment contract and portable context."""

from __future__ import annotations

import stat
from pathlib import Path

import pytest

from mcpd_config.adapters.dotenv.writer import DotEnvWriter
from mcpd_config.adapters.file_store.toml import TOMLDocumentStore
from mcpd_config.application.export import ExportEngine, build_export, placeholder_name, placeholder_reference
from mcpd_config.application.loader import DocumentLoader
from mcpd_config.domain.document import Document, DocumentKind, ServerEntry
from mcpd_config.domain.errors import EmptyContract


def _contract() -> Document:
    return Document(
        DocumentKind.CONTRACT,
        servers=[
            ServerEntry.create("gh-server", package="uvx::gh", required_env=["GITHUB_TOKEN"], required_args=["--repo"]),
        ],
    )


def _context() -> Document:
    return Document(
        DocumentKind.CONTEXT,
        servers=[ServerEntry("gh-server", args=("--repo=mozilla-ai/mcpd", "--debug"), env={"GITHUB_TOKEN": "abc"})],
    )


@pytest.mark.parametrize(
    ("server", "var", "expected"),
    [
        ("gh-server", "GITHUB_TOKEN", "MCPD__GH_SERVER__GITHUB_TOKEN"),
        ("my.server", "--repo", "MCPD__MY_SERVER__REPO"),
        ("time", "local-timezone", "MCPD__TIME__LOCAL_TIMEZONE"),
    ],
)
def test_placeholder_names(server: str, var: str, expected: str) -> None:
    assert placeholder_name(server, var) == expected


def test_build_export_never_leaks_local_values() -> None:
    artefacts = build_export(_contract(), _context())
    assert artefacts.env_contract == {"MCPD__GH_SERVER__GITHUB_TOKEN": "", "MCPD__GH_SERVER__REPO": ""}
    server = artefacts.portable_context.servers[0]
    assert server.env == {"GITHUB_TOKEN": placeholder_reference("gh-server", "GITHUB_TOKEN")}
    assert server.args == ("--repo=${MCPD__GH_SERVER__REPO}",)
    assert artefacts.missing == {}


def test_build_export_reports_missing_context_values() -> None:
    artefacts = build_export(_contract(), Document(DocumentKind.CONTEXT))
    assert artefacts.missing == {"gh-server": ["GITHUB_TOKEN", "--repo"]}


def test_build_export_requires_servers() -> None:
    with pytest.raises(EmptyContract, match="no servers defined"):
        build_export(Document(DocumentKind.CONTRACT), _context())


def test_engine_writes_both_artefacts(tmp_path: Path) -> None:
    engine = ExportEngine(DocumentLoader(TOMLDocumentStore()), DotEnvWriter())
    context_output = tmp_path / "out" / "secrets.prod.toml"
    contract_output = tmp_path / "out" / ".env"
    engine.export(_contract(), _context(), context_output=context_output, contract_output=contract_output)

    assert contract_output.read_text(encoding="utf-8") == "MCPD__GH_SERVER__GITHUB_TOKEN=\nMCPD__GH_SERVER__REPO=\n"
    portable = DocumentLoader(TOMLDocumentStore()).load(context_output, DocumentKind.CONTEXT)
    assert portable.get("gh-server")[0].env == {"GITHUB_TOKEN": "${MCPD__GH_SERVER__GITHUB_TOKEN}"}
    assert stat.S_IMODE(context_output.stat().st_mode) == 0o644
    assert stat.S_IMODE(contract_output.stat().st_mode) == 0o644
