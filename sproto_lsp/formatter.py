"""
formatter.py - Formatação canônica de arquivos sproto

Propósito:
    Reescrever um documento sproto no layout canônico e devolver o texto
    completo de substituição (uma única edição cobrindo o documento todo).

Componentes principais:
    - SprotoFormatter: Motor de formatação (máquina de estados TOP/IN_PROTOCOL)
    - format_source: Atalho com instância padrão

Regras de layout:
    - Banner de módulo no topo; sintetizado a partir do primeiro protocolo
      numerado quando ausente ("Protocol Module 2500-2599")
    - Uma linha em branco após cada protocolo e cada banner
    - Blocos request/response com um nível de indentação
    - Campos com dois níveis de indentação (também dentro de tipos '.Nome')
    - Campos alinhados com comentários inline a partir da coluna 60
    - Blocos vazios colapsados para 'request {}' / 'response {}'

Notas de implementação:
    - Nunca levanta exceção: linhas não reconhecidas passam inalteradas
    - Idempotente: formatar a saída novamente não muda nada
    - Constantes fixas após a construção; a instância é reutilizável
"""

from __future__ import annotations

import logging
import re
from typing import List, Optional

from sproto_lsp.lines import (
    LineKind,
    LineToken,
    ScanState,
    banner_range,
    classify_line,
    count_braces,
    split_lines,
)

logger = logging.getLogger(__name__)

DEFAULT_MODULE_RANGE = "2500-2599"


class SprotoFormatter:
    """
    Formatter de documentos sproto.

    Attributes:
        indent_size: Espaços por nível de indentação
        min_comment_column: Coluna mínima de início de comentários inline
        min_banner_hashes: Mínimo de '#' de cada lado do banner
    """

    def __init__(
        self,
        indent_size: int = 4,
        min_comment_column: int = 60,
        min_banner_hashes: int = 40,
    ):
        self.indent_size = indent_size
        self.min_comment_column = min_comment_column
        self.min_banner_hashes = min_banner_hashes

    # ------------------------------------------------------------------
    # API pública
    # ------------------------------------------------------------------

    def format(self, source: str) -> str:
        """
        Formata o documento inteiro.

        Args:
            source: Texto completo do documento

        Returns:
            Texto completo formatado
        """
        raw_lines = split_lines(source)
        tokens = [classify_line(line.rstrip(), idx) for idx, line in enumerate(raw_lines)]
        output: List[str] = []

        if not self._has_module_banner(tokens):
            output.append(self.normalize_banner(f"Protocol Module {self._default_range(tokens)}"))
            output.append("")

        state = ScanState.TOP
        protocol: List[str] = []
        depth = 0

        i = 0
        while i < len(tokens):
            token = tokens[i]
            i += 1
            kind = token.kind

            if kind == LineKind.BLANK:
                continue

            # Bloco vazio: 'request {}' ou 'request {' seguido de '}' (linhas em branco no meio)
            if kind == LineKind.BLOCK_START and state == ScanState.IN_PROTOCOL:
                j = i
                while j < len(tokens) and tokens[j].kind == LineKind.BLANK:
                    j += 1
                next_closes = j < len(tokens) and tokens[j].kind == LineKind.BRACE_CLOSE
                if token.empty_block or next_closes:
                    protocol.append(self._indent(1) + f"{token.block} {{}}")
                    if next_closes and not token.empty_block:
                        i = j + 1
                    continue

            if kind == LineKind.MODULE_BANNER:
                self._finalize_protocol(protocol, output, depth if state == ScanState.IN_PROTOCOL else 0)
                protocol = []
                state, depth = ScanState.TOP, 0
                if output and output[-1] != "":
                    output.append("")
                output.append(token.stripped)
                output.append("")
                continue

            if kind == LineKind.PROTOCOL_DECL:
                self._finalize_protocol(protocol, output, depth if state == ScanState.IN_PROTOCOL else 0)
                protocol = [self._format_protocol_line(token)]
                depth = count_braces(token.text)
                if depth <= 0:
                    # Protocolo de uma linha só ('foo {}')
                    self._finalize_protocol(protocol, output, 0)
                    protocol = []
                    state, depth = ScanState.TOP, 0
                else:
                    state = ScanState.IN_PROTOCOL
                continue

            if state == ScanState.TOP:
                if kind == LineKind.COMMENT:
                    self._emit_comment(token, output)
                else:
                    output.append(token.text)
                continue

            # ScanState.IN_PROTOCOL
            depth_before = depth
            depth += count_braces(token.text)

            if kind == LineKind.BLOCK_START:
                line = self._indent(1) + self._collapse_block_start(token.stripped)
            elif kind == LineKind.FIELD_DECL:
                line = self.format_field(token.name, token.number, token.content, level=max(depth, 2))
            else:
                level = depth_before - 1 if token.stripped.startswith("}") else depth_before
                line = self._indent(max(level, 0)) + token.stripped

            protocol.append(line)

            if depth <= 0:
                self._finalize_protocol(protocol, output, 0)
                protocol = []
                state, depth = ScanState.TOP, 0

        if state == ScanState.IN_PROTOCOL and protocol:
            self._finalize_protocol(protocol, output, depth)

        logger.debug(f"Formatação: {len(raw_lines)} linhas -> {len(output)} linhas")
        return "\n".join(output)

    def normalize_banner(self, line: str) -> str:
        """
        Normaliza um banner de módulo para '#...# conteudo #...#'.

        O número de '#' de cada lado é max(min_banner_hashes, 50 - len(conteudo)).
        """
        content = re.sub(r"^#+|#+$", "", line.strip()).strip()
        side = "#" * max(self.min_banner_hashes, 50 - len(content))
        return f"{side} {content} {side}"

    def format_field(self, name: str, number, content: Optional[str], level: int = 2) -> str:
        """
        Formata uma linha de campo.

        Args:
            name: Nome do campo
            number: Número do campo
            content: Conteúdo após ':' (tipo e comentário opcional)
            level: Nível de indentação (2 dentro de request/response)

        Returns:
            '<indent><name> <number>: <tipo>' com o comentário alinhado
        """
        field_content = (content or "").strip()
        comment = ""
        comment_idx = field_content.find("#")
        if comment_idx >= 0:
            comment = " " + field_content[comment_idx:].strip()
            field_content = field_content[:comment_idx].strip()

        field_str = f"{self._indent(level)}{name} {number}: {field_content}".rstrip()
        if not comment:
            return field_str

        padding = max(1, self.min_comment_column - len(field_str))
        return field_str + " " * padding + comment

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _indent(self, level: int) -> str:
        return " " * (self.indent_size * level)

    @staticmethod
    def _has_module_banner(tokens: List[LineToken]) -> bool:
        return any(banner_range(t.text) for t in tokens if t.kind == LineKind.MODULE_BANNER)

    @staticmethod
    def _default_range(tokens: List[LineToken]) -> str:
        """Faixa do banner a partir do primeiro protocolo numerado."""
        for token in tokens:
            if token.kind == LineKind.PROTOCOL_DECL and token.number is not None:
                base = (token.number // 100) * 100
                return f"{base}-{base + 99}"
        return DEFAULT_MODULE_RANGE

    @staticmethod
    def _format_protocol_line(token: LineToken) -> str:
        """Normaliza 'nome  123{' para 'nome 123 {' preservando o resto da linha."""
        head = token.name if token.number is None else f"{token.name} {token.number}"
        rest = token.text[token.match_end:].strip()
        line = f"{head} {{"
        if rest.startswith("}"):
            return line + rest
        return f"{line} {rest}" if rest else line

    @staticmethod
    def _collapse_block_start(text: str) -> str:
        text = re.sub(r"\s+", " ", text)
        return re.sub(r"^(request|response)\s*\{", r"\1 {", text)

    def _emit_comment(self, token: LineToken, output: List[str]) -> None:
        """Comentário de topo: separado por uma linha em branco, '# ' normalizado."""
        previous_is_comment = bool(output) and classify_line(output[-1]).kind == LineKind.COMMENT
        if not previous_is_comment:
            while output and output[-1].strip() == "":
                output.pop()
            if output:
                output.append("")
        output.append(re.sub(r"^#\s*", "# ", token.stripped).rstrip())

    @staticmethod
    def _finalize_protocol(protocol: List[str], output: List[str], open_depth: int) -> None:
        """
        Emite o protocolo acumulado seguido de uma linha em branco.

        Protocolos não terminados (open_depth > 0) recebem um '}' final.
        """
        if not protocol:
            return

        if open_depth > 0 and protocol[-1].strip() != "}":
            protocol.append("}")

        output.extend(protocol)
        if output[-1].strip() != "":
            output.append("")


_default_formatter = SprotoFormatter()


def format_source(source: str) -> str:
    """Formata um documento com as constantes padrão."""
    return _default_formatter.format(source)
