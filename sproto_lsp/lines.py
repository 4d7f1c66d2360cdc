"""
lines.py - Classificação de linhas de arquivos sproto

Propósito:
    Tokenizar cada linha de um documento sproto uma única vez em uma variante
    rotulada (LineKind). Formatter e validator despacham sobre o rótulo em vez
    de re-aplicar regexes sobrepostas.

Componentes principais:
    - LineKind: Variantes de linha (banner, protocolo, bloco, campo, ...)
    - ScanState: Estados explícitos das máquinas de varredura
    - LineToken: Linha classificada com as partes capturadas
    - classify_line / tokenize: Classificação de uma linha / do documento

Notas de implementação:
    - Linhas e colunas são 0-based (mesmo endereçamento do LSP)
    - Um '\\r' final é removido de cada linha (arquivos CRLF)
    - Declarações de protocolo só são reconhecidas na coluna 0; declarações
      indentadas (tipos aninhados) ficam como OPAQUE
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple

_RE_BANNER = re.compile(r"^#{4,}.*#{4,}$")
_RE_BANNER_RANGE = re.compile(r"^#{4,}\s*(.*?)\s*Module\s*(\d+)\s*-\s*(\d+)\s*#{4,}")
_RE_MODULE_LABEL = re.compile(r"^#{4,}\s+(\w+)")
_RE_BRACE_CLOSE = re.compile(r"^\s*\}\s*$")
_RE_BRACE_OPEN = re.compile(r"^\s*\{\s*$")
_RE_BLOCK_START = re.compile(r"^\s*(request|response)\s*\{(\s*\})?")
_RE_PROTOCOL = re.compile(r"^(\.?\w+)(?:\s+(\d+))?\s*\{")
_RE_FIELD = re.compile(r"^\s*(\w+)\s+(\d+)\s*:\s*(.*)")


class LineKind(Enum):
    """Variantes de linha reconhecidas."""

    MODULE_BANNER = "module_banner"
    PROTOCOL_DECL = "protocol_decl"
    BLOCK_START = "block_start"
    FIELD_DECL = "field_decl"
    COMMENT = "comment"
    BRACE_OPEN = "brace_open"
    BRACE_CLOSE = "brace_close"
    BLANK = "blank"
    OPAQUE = "opaque"


class ScanState(Enum):
    """Estados das máquinas de varredura (formatter e validator)."""

    TOP = "top"
    IN_PROTOCOL = "in_protocol"
    IN_FIELD_BLOCK = "in_field_block"


@dataclass(frozen=True)
class LineToken:
    """Linha classificada."""

    kind: LineKind
    text: str
    index: int = 0
    name: Optional[str] = None
    number: Optional[int] = None
    block: Optional[str] = None
    content: Optional[str] = None
    empty_block: bool = False
    match_end: int = 0  # fim do trecho casado (declarações)

    @property
    def stripped(self) -> str:
        return self.text.strip()


def split_lines(source: str) -> List[str]:
    """Divide o texto em linhas, removendo '\\r' final de cada uma."""
    lines = source.split("\n")
    return [line[:-1] if line.endswith("\r") else line for line in lines]


def classify_line(text: str, index: int = 0) -> LineToken:
    """
    Classifica uma linha.

    Ordem de prioridade:
        BLANK, MODULE_BANNER, COMMENT, BRACE_CLOSE, BRACE_OPEN,
        BLOCK_START, PROTOCOL_DECL, FIELD_DECL, OPAQUE

    BLOCK_START vem antes de PROTOCOL_DECL porque 'request {' na coluna 0
    também casaria com o padrão de protocolo.
    """
    stripped = text.strip()
    if not stripped:
        return LineToken(LineKind.BLANK, text, index)

    if _RE_BANNER.match(stripped):
        return LineToken(LineKind.MODULE_BANNER, text, index)

    if stripped.startswith("#"):
        return LineToken(LineKind.COMMENT, text, index)

    if _RE_BRACE_CLOSE.match(text):
        return LineToken(LineKind.BRACE_CLOSE, text, index)

    if _RE_BRACE_OPEN.match(text):
        return LineToken(LineKind.BRACE_OPEN, text, index)

    m = _RE_BLOCK_START.match(text)
    if m:
        return LineToken(
            LineKind.BLOCK_START,
            text,
            index,
            block=m.group(1),
            empty_block=m.group(2) is not None,
            match_end=m.end(),
        )

    m = _RE_PROTOCOL.match(text)
    if m:
        number = int(m.group(2)) if m.group(2) else None
        return LineToken(
            LineKind.PROTOCOL_DECL,
            text,
            index,
            name=m.group(1),
            number=number,
            match_end=m.end(),
        )

    m = _RE_FIELD.match(text)
    if m:
        return LineToken(
            LineKind.FIELD_DECL,
            text,
            index,
            name=m.group(1),
            number=int(m.group(2)),
            content=m.group(3),
            match_end=m.end(),
        )

    return LineToken(LineKind.OPAQUE, text, index)


def tokenize(source: str) -> List[LineToken]:
    """Classifica todas as linhas do documento."""
    return [classify_line(line, idx) for idx, line in enumerate(split_lines(source))]


def module_label(text: str) -> Optional[str]:
    """Rótulo de um cabeçalho de módulo '#### Rotulo', ou None."""
    m = _RE_MODULE_LABEL.match(text)
    return m.group(1) if m else None


def banner_range(text: str) -> Optional[Tuple[int, int]]:
    """Faixa numérica de um banner '#### ... Module N-M ####', ou None."""
    m = _RE_BANNER_RANGE.match(text.strip())
    if not m:
        return None
    return int(m.group(2)), int(m.group(3))


def code_part(text: str) -> str:
    """Parte da linha antes de um comentário '#'."""
    idx = text.find("#")
    return text if idx < 0 else text[:idx]


def count_braces(text: str) -> int:
    """Saldo de '{' menos '}' na parte de código da linha."""
    code = code_part(text)
    return code.count("{") - code.count("}")
