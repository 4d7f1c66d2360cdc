"""
validator.py - Validação estrutural de arquivos sproto

Propósito:
    Varrer um documento sproto e produzir a lista completa de problemas
    posicionados (SprotoIssue), sem modificar o texto.

Componentes principais:
    - SprotoValidator: Motor de validação (máquina de estados TOP/IN_FIELD_BLOCK)
    - ValidationResult: Issues + mapa global de protocolos + agrupamento por módulo
    - validate_source: Função pura texto -> ValidationResult

Verificações:
    - Pontuação full-width (chinesa) em qualquer linha (Warning)
    - Protocolo com '.' não pode ter número (Error)
    - Número de protocolo duplicado no documento (Error)
    - Número de campo duplicado dentro do mesmo bloco request/response (Error)
    - Forma do campo: tipo ausente, ':' ausente, número e tipo ausentes,
      formato incorreto (Error)

Notas de implementação:
    - Linhas/colunas 0-based; mensagens citam linhas 1-based
    - A varredura nunca aborta: todo problema vira um issue
    - Cada ocorrência de pontuação é reportada (não apenas a primeira por tipo)
    - Unicidade de campo é por bloco: request e response são independentes
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from sproto_lsp.lines import LineKind, LineToken, ScanState, module_label, tokenize

logger = logging.getLogger(__name__)


class Severity(Enum):
    ERROR = "error"
    WARNING = "warning"


# Códigos de issue (também publicados em Diagnostic.code)
CHINESE_PUNCTUATION = "chinese-punctuation"
DOTTED_PROTOCOL_NUMBER = "dotted-protocol-number"
DUPLICATE_PROTOCOL = "duplicate-protocol"
DUPLICATE_FIELD = "duplicate-field"
MISSING_TYPE = "missing-type"
MISSING_COLON = "missing-colon"
MISSING_NUMBER_AND_TYPE = "missing-number-and-type"
INVALID_FIELD = "invalid-field"

# Pontuação full-width -> equivalente ASCII
PUNCTUATION_REPLACEMENTS: Dict[str, str] = {
    "，": ",",
    "。": ".",
    "；": ";",
    "：": ":",
    "？": "?",
    "！": "!",
    "、": ",",
    "「": '"',
    "」": '"',
    "『": "'",
    "』": "'",
    "（": "(",
    "）": ")",
    "【": "[",
    "】": "]",
    "｛": "{",
    "｝": "}",
    "《": "<",
    "》": ">",
    "…": "...",
    "—": "-",
    "～": "~",
}

_RE_PUNCTUATION = re.compile("[" + re.escape("".join(PUNCTUATION_REPLACEMENTS)) + "]")

FIELD_FORMAT_HINT = "Expected format: 'name number: type'"

_RE_CANONICAL_FIELD = re.compile(r"^\s*(\w+)\s+(\d+)\s*:\s*(\*?\s*\w+|\(.*?\))")
_RE_TYPE_AFTER_COLON = re.compile(r":\s*\w")
_RE_NAME_NUMBER_ONLY = re.compile(r"^\s*\w+\s+\d+\s*$")
_RE_NAME_NUMBER_WORD = re.compile(r"^\s*\w+\s+\d+\s+\w")
_RE_NAME_NUMBER = re.compile(r"^\s*\w+\s+\d+")
_RE_IDENTIFIER_ONLY = re.compile(r"^\s*\w+\s*$")
_RE_IDENTIFIER = re.compile(r"^\s*\w+")
_RE_BLOCK_VARIANT = re.compile(r"^\s*(request|response)\s*(\{\s*\}?)?\s*$")


@dataclass(frozen=True)
class SprotoIssue:
    """Problema posicionado em uma única linha (colunas 0-based, fim exclusivo)."""

    line: int
    start: int
    end: int
    message: str
    severity: Severity = Severity.ERROR
    code: Optional[str] = None
    data: Optional[dict] = None


@dataclass
class ProtocolInfo:
    name: str
    number: Optional[int]
    line: int


@dataclass
class FieldInfo:
    name: str
    number: int
    line: int


@dataclass
class ValidationResult:
    """Resultado agregado de uma varredura."""

    issues: List[SprotoIssue] = field(default_factory=list)
    protocols: Dict[int, ProtocolInfo] = field(default_factory=dict)
    modules: Dict[str, List[ProtocolInfo]] = field(default_factory=dict)

    @property
    def errors(self) -> List[SprotoIssue]:
        return [i for i in self.issues if i.severity == Severity.ERROR]

    @property
    def warnings(self) -> List[SprotoIssue]:
        return [i for i in self.issues if i.severity == Severity.WARNING]


class SprotoValidator:
    """
    Validador de documentos sproto.

    Estados:
        TOP            → protocolo: registra e volta a TOP
                       → 'request {' / 'response {': entra em IN_FIELD_BLOCK
        IN_FIELD_BLOCK → '}' sozinho ou fim do documento: volta a TOP
    """

    def validate(self, source: str) -> ValidationResult:
        """
        Valida o documento inteiro.

        Args:
            source: Texto completo do documento

        Returns:
            ValidationResult com todos os issues, na ordem da varredura
        """
        result = ValidationResult()
        current_module = ""
        state = ScanState.TOP
        block_type = ""
        fields: Dict[int, FieldInfo] = {}

        for token in tokenize(source):
            if state == ScanState.IN_FIELD_BLOCK:
                if token.kind == LineKind.BRACE_CLOSE:
                    state = ScanState.TOP
                    continue
                self._check_punctuation(token, result.issues)
                self._check_field(token, block_type, fields, result.issues)
                continue

            label = module_label(token.text)
            if label:
                current_module = label
                result.modules.setdefault(current_module, [])
                continue

            self._check_punctuation(token, result.issues)

            if token.kind == LineKind.PROTOCOL_DECL:
                self._check_protocol(token, current_module, result)
                continue

            if token.kind == LineKind.BLOCK_START and not token.empty_block:
                state = ScanState.IN_FIELD_BLOCK
                block_type = token.block
                fields = {}

        logger.debug(
            f"Validação: {len(result.errors)} erros, {len(result.warnings)} avisos"
        )
        return result

    # ------------------------------------------------------------------
    # Verificações
    # ------------------------------------------------------------------

    @staticmethod
    def _check_punctuation(token: LineToken, issues: List[SprotoIssue]) -> None:
        for m in _RE_PUNCTUATION.finditer(token.text):
            punct = m.group(0)
            replacement = PUNCTUATION_REPLACEMENTS[punct]
            issues.append(
                SprotoIssue(
                    line=token.index,
                    start=m.start(),
                    end=m.end(),
                    message=(
                        f"Chinese punctuation '{punct}' detected. "
                        f"Use the ASCII '{replacement}' instead"
                    ),
                    severity=Severity.WARNING,
                    code=CHINESE_PUNCTUATION,
                    data={"replacement": replacement},
                )
            )

    @staticmethod
    def _check_protocol(token: LineToken, current_module: str, result: ValidationResult) -> None:
        name = token.name
        number = token.number
        start = len(name)
        end = token.match_end

        if name.startswith(".") and number is not None:
            result.issues.append(
                SprotoIssue(
                    line=token.index,
                    start=start,
                    end=end,
                    message=f"Protocol '{name}' starts with '.' and should not have numbers",
                    code=DOTTED_PROTOCOL_NUMBER,
                )
            )

        if number is None:
            return

        existing = result.protocols.get(number)
        if existing:
            result.issues.append(
                SprotoIssue(
                    line=token.index,
                    start=start,
                    end=end,
                    message=(
                        f"Duplicate protocol number {number}. "
                        f"Already used by '{existing.name}' at line {existing.line + 1}"
                    ),
                    code=DUPLICATE_PROTOCOL,
                )
            )
            return

        info = ProtocolInfo(name=name, number=number, line=token.index)
        result.protocols[number] = info
        if current_module:
            result.modules[current_module].append(info)

    def _check_field(
        self,
        token: LineToken,
        block_type: str,
        fields: Dict[int, FieldInfo],
        issues: List[SprotoIssue],
    ) -> None:
        if self._is_skippable(token):
            return

        m = _RE_CANONICAL_FIELD.match(token.text)
        if not m:
            issues.append(self._classify_field_error(token))
            return

        name = m.group(1)
        number = int(m.group(2))
        existing = fields.get(number)
        if existing:
            colon = token.text.index(":", m.end(2))
            issues.append(
                SprotoIssue(
                    line=token.index,
                    start=m.end(1),
                    end=colon + 1,
                    message=(
                        f"Duplicate field number {number} in {block_type} block. "
                        f"Already used by '{existing.name}' at line {existing.line + 1}"
                    ),
                    code=DUPLICATE_FIELD,
                )
            )
            return

        fields[number] = FieldInfo(name=name, number=number, line=token.index)

    @staticmethod
    def _is_skippable(token: LineToken) -> bool:
        if token.kind in (
            LineKind.BLANK,
            LineKind.BRACE_CLOSE,
            LineKind.BRACE_OPEN,
            LineKind.COMMENT,
            LineKind.MODULE_BANNER,
            LineKind.BLOCK_START,
        ):
            return True
        return bool(_RE_BLOCK_VARIANT.match(token.text))

    @staticmethod
    def _classify_field_error(token: LineToken) -> SprotoIssue:
        """Classifica uma linha de campo mal formada (primeira regra que casa)."""
        line = token.text
        length = len(line)

        # 'msg 2:' - dois-pontos sem tipo
        if ":" in line and not _RE_TYPE_AFTER_COLON.search(line):
            return SprotoIssue(
                line=token.index,
                start=line.index(":"),
                end=length,
                message=f"Field definition is missing a type. {FIELD_FORMAT_HINT}",
                code=MISSING_TYPE,
            )

        # 'msg3 2' / 'msg 2 int32' - número sem dois-pontos
        if _RE_NAME_NUMBER_ONLY.match(line) or _RE_NAME_NUMBER_WORD.match(line):
            m = _RE_NAME_NUMBER.match(line)
            return SprotoIssue(
                line=token.index,
                start=m.end(),
                end=length,
                message=f"Field definition is missing a colon. {FIELD_FORMAT_HINT}",
                code=MISSING_COLON,
            )

        # 'msg' - apenas o nome
        if _RE_IDENTIFIER_ONLY.match(line):
            m = _RE_IDENTIFIER.match(line)
            return SprotoIssue(
                line=token.index,
                start=m.end(),
                end=length,
                message=f"Field definition is missing a number and a type. {FIELD_FORMAT_HINT}",
                code=MISSING_NUMBER_AND_TYPE,
            )

        return SprotoIssue(
            line=token.index,
            start=0,
            end=length,
            message=f"Incorrect field definition format. {FIELD_FORMAT_HINT}",
            code=INVALID_FIELD,
        )


_default_validator = SprotoValidator()


def validate_source(source: str) -> ValidationResult:
    """Valida um documento com o validador padrão."""
    return _default_validator.validate(source)
