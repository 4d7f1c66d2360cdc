"""
converters.py - Conversão entre tipos sproto e LSP

Propósito:
    Converter issues do validador e resultados do formatter para tipos do
    protocolo LSP (Diagnostic, Range, TextEdit).

Componentes principais:
    - convert_severity: Severity → DiagnosticSeverity
    - convert_range: SprotoIssue → Range
    - build_diagnostic: SprotoIssue → Diagnostic
    - build_diagnostics: ValidationResult → List[Diagnostic]
    - full_document_range / build_formatting_edits: edição única do documento

Dependências críticas:
    - lsprotocol.types: Tipos do protocolo LSP

Exemplo de uso:
    from sproto_lsp.validator import validate_source
    from sproto_lsp.converters import build_diagnostics

    diagnostics = build_diagnostics(validate_source(text))

Notas de implementação:
    - Coordenadas do validador já são 0-based (line, character)
    - Issues ocupam uma única linha
    - A formatação sempre produz uma única edição cobrindo o documento todo
"""

from __future__ import annotations

import logging
from typing import List

from lsprotocol.types import (
    Diagnostic,
    DiagnosticSeverity,
    Position,
    Range,
    TextEdit,
)

from sproto_lsp.lines import split_lines
from sproto_lsp.validator import Severity, SprotoIssue, ValidationResult

logger = logging.getLogger(__name__)

DIAGNOSTIC_SOURCE = "sproto"


def convert_severity(severity: Severity) -> DiagnosticSeverity:
    """
    Mapeia Severity do validador para DiagnosticSeverity do LSP.

    Mapeamento:
        ERROR   → DiagnosticSeverity.Error (1)
        WARNING → DiagnosticSeverity.Warning (2)
    """
    mapping = {
        Severity.ERROR: DiagnosticSeverity.Error,
        Severity.WARNING: DiagnosticSeverity.Warning,
    }
    return mapping.get(severity, DiagnosticSeverity.Error)


def convert_range(issue: SprotoIssue) -> Range:
    """Converte a posição de um issue (linha única) para Range LSP."""
    start_char = max(0, issue.start)
    end_char = max(start_char, issue.end)
    return Range(
        start=Position(line=max(0, issue.line), character=start_char),
        end=Position(line=max(0, issue.line), character=end_char),
    )


def build_diagnostic(issue: SprotoIssue) -> Diagnostic:
    """
    Converte um SprotoIssue em Diagnostic do LSP.

    O código do issue vai em Diagnostic.code e os dados auxiliares
    (ex: substituto ASCII de pontuação) em Diagnostic.data, para uso
    pelos code actions.
    """
    return Diagnostic(
        range=convert_range(issue),
        severity=convert_severity(issue.severity),
        source=DIAGNOSTIC_SOURCE,
        message=issue.message,
        code=issue.code,
        data=issue.data,
    )


def build_diagnostics(result: ValidationResult) -> List[Diagnostic]:
    """
    Converte todos os issues de um ValidationResult, na ordem da varredura.

    Um issue que falhe na conversão vira um diagnostic genérico em vez de
    derrubar o servidor.
    """
    diagnostics: List[Diagnostic] = []

    for issue in result.issues:
        try:
            diagnostics.append(build_diagnostic(issue))
        except Exception as e:
            logger.warning(f"Falha ao converter issue {issue!r}: {e}")
            diagnostics.append(internal_error_diagnostic(f"Error processing diagnostic: {e}"))

    return diagnostics


def internal_error_diagnostic(message: str) -> Diagnostic:
    """Diagnostic genérico na primeira posição do documento."""
    return Diagnostic(
        range=Range(
            start=Position(line=0, character=0),
            end=Position(line=0, character=1),
        ),
        severity=DiagnosticSeverity.Error,
        source="sproto-lsp",
        message=message,
    )


def full_document_range(source: str) -> Range:
    """Range do início ao fim do documento."""
    lines = split_lines(source)
    last = len(lines) - 1
    return Range(
        start=Position(line=0, character=0),
        end=Position(line=last, character=len(lines[last])),
    )


def build_formatting_edits(source: str, formatted: str) -> List[TextEdit]:
    """Edição única substituindo o documento inteiro pelo texto formatado."""
    return [TextEdit(range=full_document_range(source), new_text=formatted)]
