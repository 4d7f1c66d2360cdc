"""
code_actions.py - Code Actions (Quick Fixes) para sproto

Propósito:
    Implementa textDocument/codeAction para fornecer quick fixes
    para diagnósticos do validador que têm correção mecânica.

LSP Feature:
    textDocument/codeAction → Lista de CodeAction com sugestões de correção

Correções:
    - chinese-punctuation: troca o caractere pelo equivalente ASCII
    - dotted-protocol-number: remove o número de um protocolo '.nome'
    - missing-colon: insere ':' após o número do campo
"""

from __future__ import annotations

import logging
from typing import Optional

from lsprotocol.types import (
    CodeAction,
    CodeActionKind,
    Diagnostic,
    Range,
    TextEdit,
    WorkspaceEdit,
)

from sproto_lsp.validator import (
    CHINESE_PUNCTUATION,
    DOTTED_PROTOCOL_NUMBER,
    MISSING_COLON,
    PUNCTUATION_REPLACEMENTS,
)

logger = logging.getLogger(__name__)


def compute_code_actions(
    uri: str,
    range_: Range,
    diagnostics: list[Diagnostic],
) -> Optional[list[CodeAction]]:
    """
    Gera code actions (quick fixes) para diagnósticos.

    Args:
        uri: URI do documento
        range_: Range selecionado ou posição do cursor
        diagnostics: Lista de diagnósticos no range (enviada pelo cliente)

    Returns:
        Lista de CodeAction ou None
    """
    if not diagnostics:
        return None

    actions = []

    for diagnostic in diagnostics:
        if diagnostic.code == CHINESE_PUNCTUATION:
            action = _replace_punctuation(uri, diagnostic)
        elif diagnostic.code == DOTTED_PROTOCOL_NUMBER:
            action = _remove_protocol_number(uri, diagnostic)
        elif diagnostic.code == MISSING_COLON:
            action = _insert_colon(uri, diagnostic)
        else:
            action = None

        if action:
            actions.append(action)

    return actions if actions else None


def _quick_fix(uri: str, diagnostic: Diagnostic, title: str, edit: TextEdit) -> CodeAction:
    return CodeAction(
        title=title,
        kind=CodeActionKind.QuickFix,
        diagnostics=[diagnostic],
        edit=WorkspaceEdit(changes={uri: [edit]}),
        is_preferred=True,
    )


def _replace_punctuation(uri: str, diagnostic: Diagnostic) -> Optional[CodeAction]:
    """
    Troca a pontuação full-width pelo equivalente ASCII.

    O substituto vem de diagnostic.data; se o cliente não devolver data,
    extrai o caractere da mensagem.
    """
    replacement = None
    data = diagnostic.data
    if isinstance(data, dict):
        replacement = data.get("replacement")

    if not replacement:
        punct = _extract_punctuation_from_message(diagnostic.message)
        replacement = PUNCTUATION_REPLACEMENTS.get(punct) if punct else None

    if not replacement:
        return None

    edit = TextEdit(range=diagnostic.range, new_text=replacement)
    return _quick_fix(uri, diagnostic, f"Replace with '{replacement}'", edit)


def _remove_protocol_number(uri: str, diagnostic: Diagnostic) -> CodeAction:
    """O range do diagnóstico cobre ' 12 {' logo após o nome; vira ' {'."""
    edit = TextEdit(range=diagnostic.range, new_text=" {")
    return _quick_fix(uri, diagnostic, "Remove protocol number", edit)


def _insert_colon(uri: str, diagnostic: Diagnostic) -> CodeAction:
    """Insere ':' logo após 'nome numero' (início do range do diagnóstico)."""
    insert_at = Range(start=diagnostic.range.start, end=diagnostic.range.start)
    edit = TextEdit(range=insert_at, new_text=":")
    return _quick_fix(uri, diagnostic, "Insert ':'", edit)


def _extract_punctuation_from_message(message: str) -> Optional[str]:
    """
    Extrai o caractere de pontuação da mensagem.

    Exemplo:
        "Chinese punctuation '：' detected. ..." → "："
    """
    for punct in PUNCTUATION_REPLACEMENTS:
        if f"'{punct}'" in message:
            return punct
    return None
