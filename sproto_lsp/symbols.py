"""
symbols.py - Document symbols (outline view) para arquivos sproto

Propósito:
    Produzir DocumentSymbol[] que o editor exibirá como outline/breadcrumb,
    a partir das linhas classificadas por sproto_lsp.lines.

Mapeamento sproto → LSP SymbolKind:
    Banner de módulo       → Namespace (com os protocolos abaixo dele)
    Protocolo numerado     → Class
    Tipo '.Nome'           → Struct
    request / response     → Object
    Campo                  → Field (detail = "numero: tipo")

Notas de implementação:
    - Protocolos declarados antes de qualquer banner ficam no nível superior
    - Blocos e protocolos não fechados terminam na última linha não vazia
    - Nunca levanta exceção para texto mal formado
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional

from lsprotocol.types import DocumentSymbol, Position, Range, SymbolKind

from sproto_lsp.lines import LineKind, code_part, count_braces, tokenize

logger = logging.getLogger(__name__)


@dataclass
class _Node:
    """Símbolo em construção (ranges só são conhecidos ao fechar o bloco)."""

    name: str
    kind: SymbolKind
    line: int
    detail: Optional[str] = None
    end_line: Optional[int] = None
    children: List["_Node"] = field(default_factory=list)


def compute_document_symbols(source: str) -> List[DocumentSymbol]:
    """
    Computa document symbols para um arquivo sproto.

    Args:
        source: Texto do documento

    Returns:
        Lista hierárquica de DocumentSymbol
    """
    tokens = tokenize(source)
    lines = [t.text for t in tokens]

    roots: List[_Node] = []
    module: Optional[_Node] = None
    protocol: Optional[_Node] = None
    block: Optional[_Node] = None
    depth = 0
    last_line = 0

    for token in tokens:
        kind = token.kind
        if kind == LineKind.BLANK:
            continue

        if kind == LineKind.MODULE_BANNER:
            _close_open(last_line, module, protocol, block)
            module = _Node(_banner_title(token.text), SymbolKind.Namespace, token.index)
            roots.append(module)
            protocol = block = None
            depth = 0
            last_line = token.index
            continue

        if kind == LineKind.PROTOCOL_DECL and depth == 0:
            symbol_kind = SymbolKind.Struct if token.name.startswith(".") else SymbolKind.Class
            protocol = _Node(
                token.name,
                symbol_kind,
                token.index,
                detail=str(token.number) if token.number is not None else None,
            )
            (module.children if module else roots).append(protocol)
            depth = count_braces(token.text)
            if depth <= 0:
                protocol.end_line = token.index
                protocol = None
                depth = 0
            last_line = token.index
            continue

        last_line = token.index
        if protocol is None:
            continue

        if kind == LineKind.BLOCK_START:
            block = _Node(token.block, SymbolKind.Object, token.index)
            protocol.children.append(block)
            if token.empty_block:
                block.end_line = token.index
                block = None
        elif kind == LineKind.FIELD_DECL:
            field_type = code_part(token.content or "").strip()
            parent = block or protocol
            parent.children.append(
                _Node(token.name, SymbolKind.Field, token.index, detail=f"{token.number}: {field_type}")
            )

        depth += count_braces(token.text)
        if block is not None and depth <= 1:
            block.end_line = token.index
            block = None
        if depth <= 0:
            protocol.end_line = token.index
            protocol = None
            depth = 0

    _close_open(last_line, module, protocol, block)

    symbols = [_to_symbol(node, lines) for node in roots]
    logger.debug(f"Document symbols: {len(symbols)} símbolos de nível superior")
    return symbols


def _close_open(last_line: int, *nodes: Optional[_Node]) -> None:
    """Fecha nós ainda abertos na última linha não vazia vista."""
    for node in nodes:
        if node is not None and node.end_line is None:
            node.end_line = max(node.line, last_line)


def _banner_title(text: str) -> str:
    title = re.sub(r"^#+|#+$", "", text.strip()).strip()
    return title or "Module"


def _to_symbol(node: _Node, lines: List[str]) -> DocumentSymbol:
    end_line = node.end_line if node.end_line is not None else node.line
    selection = Range(
        start=Position(line=node.line, character=0),
        end=Position(line=node.line, character=len(lines[node.line])),
    )
    full = Range(
        start=Position(line=node.line, character=0),
        end=Position(line=end_line, character=len(lines[end_line])),
    )
    return DocumentSymbol(
        name=node.name,
        kind=node.kind,
        range=full,
        selection_range=selection,
        detail=node.detail,
        children=[_to_symbol(child, lines) for child in node.children] or None,
    )
