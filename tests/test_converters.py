"""
test_converters.py - Testes para conversão de tipos sproto → LSP

Propósito:
    Validar conversão correta entre issues do validador e protocolo LSP.
    Garante que coordenadas, severidades, códigos e edições de formatação
    são mapeados corretamente.

Componentes testados:
    - convert_severity: Severity → DiagnosticSeverity
    - convert_range: SprotoIssue → Range (0-based, linha única)
    - build_diagnostic / build_diagnostics
    - full_document_range / build_formatting_edits
"""

from __future__ import annotations

from lsprotocol.types import DiagnosticSeverity

from sproto_lsp import converters
from sproto_lsp.converters import (
    DIAGNOSTIC_SOURCE,
    build_diagnostic,
    build_diagnostics,
    build_formatting_edits,
    convert_range,
    convert_severity,
    full_document_range,
)
from sproto_lsp.validator import (
    CHINESE_PUNCTUATION,
    Severity,
    SprotoIssue,
    ValidationResult,
    validate_source,
)


def test_convert_severity_error():
    """Severity.ERROR deve mapear para DiagnosticSeverity.Error."""
    assert convert_severity(Severity.ERROR) == DiagnosticSeverity.Error


def test_convert_severity_warning():
    """Severity.WARNING deve mapear para DiagnosticSeverity.Warning."""
    assert convert_severity(Severity.WARNING) == DiagnosticSeverity.Warning


def test_convert_range_keeps_zero_based_coordinates():
    issue = SprotoIssue(line=3, start=4, end=9, message="x")
    range_result = convert_range(issue)

    assert range_result.start.line == 3
    assert range_result.start.character == 4
    assert range_result.end.line == 3
    assert range_result.end.character == 9


def test_convert_range_zero_width():
    """Issues de inserção (ex: ':' ausente) têm range vazio."""
    range_result = convert_range(SprotoIssue(line=0, start=14, end=14, message="x"))
    assert range_result.start == range_result.end


def test_convert_range_clamps_inverted_end():
    range_result = convert_range(SprotoIssue(line=0, start=5, end=2, message="x"))
    assert range_result.end.character == 5


def test_build_diagnostic_carries_code_and_data():
    issue = SprotoIssue(
        line=0,
        start=2,
        end=3,
        message="Chinese punctuation '：' detected. Use the ASCII ':' instead",
        severity=Severity.WARNING,
        code=CHINESE_PUNCTUATION,
        data={"replacement": ":"},
    )
    diagnostic = build_diagnostic(issue)

    assert diagnostic.source == DIAGNOSTIC_SOURCE
    assert diagnostic.severity == DiagnosticSeverity.Warning
    assert diagnostic.code == CHINESE_PUNCTUATION
    assert diagnostic.data == {"replacement": ":"}
    assert diagnostic.message == issue.message


def test_build_diagnostics_preserves_order():
    result = validate_source("a 1 {\n}\nb 1 {\n}\n# 注释：\n")
    diagnostics = build_diagnostics(result)

    assert len(diagnostics) == 2
    assert diagnostics[0].range.start.line == 2
    assert diagnostics[1].range.start.line == 4


def test_build_diagnostics_empty():
    assert build_diagnostics(ValidationResult()) == []


def test_build_diagnostics_falls_back_on_conversion_error(monkeypatch):
    def broken(issue):
        raise ValueError("boom")

    monkeypatch.setattr(converters, "build_diagnostic", broken)
    result = ValidationResult(issues=[SprotoIssue(line=7, start=0, end=1, message="x")])
    diagnostics = build_diagnostics(result)

    assert len(diagnostics) == 1
    assert diagnostics[0].source == "sproto-lsp"
    assert "boom" in diagnostics[0].message
    assert diagnostics[0].range.start.line == 0


def test_full_document_range_with_trailing_newline():
    range_result = full_document_range("a\nbc\n")
    assert (range_result.start.line, range_result.start.character) == (0, 0)
    assert (range_result.end.line, range_result.end.character) == (2, 0)


def test_full_document_range_without_trailing_newline():
    range_result = full_document_range("a\nbcd")
    assert (range_result.end.line, range_result.end.character) == (1, 3)


def test_full_document_range_empty():
    range_result = full_document_range("")
    assert (range_result.end.line, range_result.end.character) == (0, 0)


def test_build_formatting_edits_single_edit():
    edits = build_formatting_edits("x {\n}", "formatted\n")
    assert len(edits) == 1
    assert edits[0].new_text == "formatted\n"
    assert edits[0].range.end.line == 1
    assert edits[0].range.end.character == 1
