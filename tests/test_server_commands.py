"""
test_server_commands.py - Testes para comandos e features do servidor LSP

Propósito:
    Validar handlers de comandos customizados (sproto/validateDocument,
    sproto/formatDocument, sproto/validateWorkspace), formatação,
    document symbols, code actions e resolução do workspace root.
"""

from __future__ import annotations

from pathlib import Path
from tempfile import TemporaryDirectory
from types import SimpleNamespace
from unittest.mock import MagicMock

from lsprotocol.types import Position, Range

URI = "file:///test.sproto"
UNFORMATTED = "login 2530{\nrequest {\nid 1:integer\n}\n}\n"


def _make_ls(source: str = "", enabled: bool = True) -> MagicMock:
    ls = MagicMock()
    ls.validation_enabled = enabled
    ls.open_documents = set()
    ls.workspace.get_text_document.return_value = SimpleNamespace(source=source)
    return ls


def _doc_params(uri: str = URI):
    return SimpleNamespace(text_document=SimpleNamespace(uri=uri))


# --- _command_params ---

def test_command_params_shapes():
    from sproto_lsp.server import _command_params

    assert _command_params(()) == {}
    assert _command_params(({"uri": URI},)) == {"uri": URI}
    assert _command_params(([{"uri": URI}],)) == {"uri": URI}
    assert _command_params(([],)) == {}
    assert _command_params(("not a dict",)) == {}


# --- sproto/validateDocument ---

def test_validate_document_command():
    from sproto_lsp.server import cmd_validate_document

    ls = _make_ls("a 1 {\n}\nb 1 {\n}\n")
    result = cmd_validate_document(ls, {"uri": URI})

    assert result == {"success": True, "uri": URI, "totalDiagnostics": 1}
    ls.text_document_publish_diagnostics.assert_called_once()


def test_validate_document_command_without_uri():
    from sproto_lsp.server import cmd_validate_document

    result = cmd_validate_document(_make_ls())
    assert result["success"] is False
    assert "uri" in result["error"]


def test_validate_document_command_disabled():
    from sproto_lsp.server import cmd_validate_document

    ls = _make_ls(enabled=False)
    result = cmd_validate_document(ls, [{"uri": URI}])

    assert result["success"] is False
    assert "disabled" in result["error"]
    ls.text_document_publish_diagnostics.assert_not_called()


# --- sproto/formatDocument ---

def test_format_document_command():
    from sproto_lsp.formatter import format_source
    from sproto_lsp.server import cmd_format_document

    ls = _make_ls(UNFORMATTED)
    result = cmd_format_document(ls, {"uri": URI})

    assert result["success"] is True
    assert result["changed"] is True
    assert result["text"] == format_source(UNFORMATTED)


def test_format_document_command_already_formatted():
    from sproto_lsp.formatter import format_source
    from sproto_lsp.server import cmd_format_document

    ls = _make_ls(format_source(UNFORMATTED))
    result = cmd_format_document(ls, {"uri": URI})

    assert result["success"] is True
    assert result["changed"] is False


def test_format_document_command_missing_document():
    from sproto_lsp.server import cmd_format_document

    ls = _make_ls()
    ls.workspace.get_text_document.side_effect = KeyError(URI)
    result = cmd_format_document(ls, {"uri": URI})

    assert result["success"] is False


# --- sproto/validateWorkspace ---

def test_validate_workspace_command():
    from sproto_lsp.server import cmd_validate_workspace

    with TemporaryDirectory() as tmpdir:
        root = Path(tmpdir)
        (root / "ok.sproto").write_text("login 2530 {\n}\n", encoding="utf-8")
        (root / "bad.sproto").write_text("a 1 {\n}\nb 1 {\n}\n# 注释：\n", encoding="utf-8")

        ls = _make_ls()
        result = cmd_validate_workspace(ls, {"workspaceRoot": tmpdir})

    assert result == {
        "success": True,
        "totalFiles": 2,
        "filesWithErrors": 1,
        "totalDiagnostics": 2,
    }
    assert ls.text_document_publish_diagnostics.call_count == 2


def test_validate_workspace_command_without_root():
    from sproto_lsp.server import cmd_validate_workspace

    ls = SimpleNamespace(workspace=None)
    result = cmd_validate_workspace(ls)

    assert result["success"] is False
    assert "Workspace root" in result["error"]


# --- Workspace root ---

def test_resolve_workspace_root_from_params():
    from sproto_lsp.server import _resolve_workspace_root

    ls = SimpleNamespace(workspace=None)
    assert _resolve_workspace_root(ls, {"workspaceRoot": "/ws"}) == "/ws"
    assert _resolve_workspace_root(ls, {"rootUri": "file:///ws"}) == "file:///ws"
    assert _resolve_workspace_root(ls, {"rootPath": "/other"}) == "/other"
    assert _resolve_workspace_root(ls, {}) is None


def test_resolve_workspace_root_from_folders():
    from sproto_lsp.server import _resolve_workspace_root

    folder = SimpleNamespace(uri="file:///ws/project")
    ls = SimpleNamespace(workspace=SimpleNamespace(folders={"project": folder}))
    assert _resolve_workspace_root(ls, {}) == "file:///ws/project"


def test_normalize_workspace_path():
    from sproto_lsp.server import _normalize_workspace_path

    assert _normalize_workspace_path(None) is None
    assert _normalize_workspace_path(42) is None
    assert _normalize_workspace_path("/ws/test") == Path("/ws/test")
    assert _normalize_workspace_path("file:///ws/my%20proj") == Path("/ws/my proj")
    assert _normalize_workspace_path(Path("/ws")) == Path("/ws")


# --- Features ---

def test_formatting_returns_single_full_edit():
    from sproto_lsp.formatter import format_source
    from sproto_lsp.server import formatting

    ls = _make_ls(UNFORMATTED)
    edits = formatting(ls, _doc_params())

    assert len(edits) == 1
    assert edits[0].new_text == format_source(UNFORMATTED)
    assert (edits[0].range.start.line, edits[0].range.start.character) == (0, 0)
    assert (edits[0].range.end.line, edits[0].range.end.character) == (5, 0)


def test_formatting_error_returns_none():
    from sproto_lsp.server import formatting

    ls = _make_ls()
    ls.workspace.get_text_document.side_effect = RuntimeError("gone")
    assert formatting(ls, _doc_params()) is None


def test_document_symbol_feature():
    from sproto_lsp.server import document_symbol

    ls = _make_ls("login 2530 {\n}\n")
    symbols = document_symbol(ls, _doc_params())
    assert [s.name for s in symbols] == ["login"]


def test_code_action_feature():
    from sproto_lsp.converters import build_diagnostics
    from sproto_lsp.server import code_action
    from sproto_lsp.validator import validate_source

    diagnostics = build_diagnostics(validate_source("名字：\n"))
    params = SimpleNamespace(
        text_document=SimpleNamespace(uri=URI),
        range=Range(start=Position(line=0, character=0), end=Position(line=0, character=3)),
        context=SimpleNamespace(diagnostics=diagnostics),
    )
    (action,) = code_action(_make_ls(), params)
    assert action.edit.changes[URI][0].new_text == ":"
