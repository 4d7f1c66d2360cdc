"""
sproto_lsp - Language Server Protocol para arquivos sproto

Propósito:
    Servidor LSP que fornece formatação e validação em tempo real para
    arquivos de protocolo sproto (.sproto) no VSCode e outros editores.

Componentes principais:
    - lines: Classificação de linhas compartilhada
    - formatter: Layout canônico (banner, protocolos, alinhamento de campos)
    - validator: Diagnósticos estruturais e de estilo
    - converters: Conversão issue → LSP Diagnostic
    - server: Servidor principal usando pygls

Dependências críticas:
    - pygls: Framework LSP
    - lsprotocol: Tipos do protocolo LSP

Exemplo de uso:
    python -m sproto_lsp

Notas de implementação:
    - Comunica via STDIO com o cliente
    - Formatter e validator são funções puras texto → texto/diagnósticos
"""
from importlib.metadata import PackageNotFoundError, version as _pkg_version
from pathlib import Path
import re


def _read_version_from_pyproject() -> str:
    pyproject = Path(__file__).resolve().parents[1] / "pyproject.toml"
    try:
        text = pyproject.read_text(encoding="utf-8")
    except OSError:
        return "0.0.0"
    match = re.search(r'(?m)^version = "([^"]+)"\s*$', text)
    return match.group(1) if match else "0.0.0"


try:
    __version__ = _pkg_version("sproto-lsp")
except PackageNotFoundError:
    __version__ = _read_version_from_pyproject()

__all__ = ["server", "formatter", "validator", "converters"]
