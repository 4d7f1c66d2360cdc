"""
server.py - Servidor LSP principal para sproto usando pygls

Propósito:
    Servidor Language Server Protocol que fornece validação e formatação
    para arquivos sproto (.sproto) em editores compatíveis.

Componentes principais:
    - SprotoLanguageServer: Servidor principal com pygls
    - validate_document: Validação + publicação de diagnósticos
    - Event handlers: did_open, did_change, did_save, did_close
    - Features: formatting, documentSymbol, codeAction
    - Comandos: sproto/validateDocument, sproto/formatDocument,
      sproto/validateWorkspace

Dependências críticas:
    - pygls: Framework LSP
    - sproto_lsp.formatter / sproto_lsp.validator: Motores puros
    - sproto_lsp.converters: Conversão de tipos

Exemplo de uso:
    python -m sproto_lsp

Notas de implementação:
    - Comunica via STDIO (entrada/saída padrão)
    - Cada validação processa o documento inteiro (sem parse incremental)
    - Diagnósticos publicados substituem os anteriores do documento
    - Tratamento robusto de exceções (nunca crasha)
    - Validação pode ser desabilitada via sproto.validation.enabled
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional
from urllib.parse import unquote, urlparse

from lsprotocol.types import (
    TEXT_DOCUMENT_CODE_ACTION,
    TEXT_DOCUMENT_DID_CHANGE,
    TEXT_DOCUMENT_DID_CLOSE,
    TEXT_DOCUMENT_DID_OPEN,
    TEXT_DOCUMENT_DID_SAVE,
    TEXT_DOCUMENT_DOCUMENT_SYMBOL,
    TEXT_DOCUMENT_FORMATTING,
    WORKSPACE_DID_CHANGE_CONFIGURATION,
    CodeActionKind,
    CodeActionOptions,
    CodeActionParams,
    DidChangeConfigurationParams,
    DidChangeTextDocumentParams,
    DidCloseTextDocumentParams,
    DidOpenTextDocumentParams,
    DidSaveTextDocumentParams,
    DocumentFormattingParams,
    DocumentSymbolParams,
    PublishDiagnosticsParams,
)
from pygls.lsp.server import LanguageServer

from sproto_lsp import __version__
from sproto_lsp.code_actions import compute_code_actions
from sproto_lsp.converters import (
    build_diagnostics,
    build_formatting_edits,
    internal_error_diagnostic,
)
from sproto_lsp.formatter import format_source
from sproto_lsp.symbols import compute_document_symbols
from sproto_lsp.validator import validate_source
from sproto_lsp.workspace_diagnostics import compute_workspace_diagnostics, validate_workspace_file

# Configuração de logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


class SprotoLanguageServer(LanguageServer):
    """
    Servidor LSP especializado para sproto.

    Attributes:
        open_documents: URIs abertos, revalidados quando a validação é reativada
        validation_enabled: Flag de controle para habilitar/desabilitar validação
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.open_documents: set[str] = set()
        self.validation_enabled: bool = True  # Habilitado por padrão


# Instância global do servidor
server = SprotoLanguageServer("sproto-lsp", f"v{__version__}")


def _publish(ls: SprotoLanguageServer, uri: str, diagnostics: list) -> None:
    ls.text_document_publish_diagnostics(
        PublishDiagnosticsParams(uri=uri, diagnostics=diagnostics)
    )


def _command_params(args) -> dict:
    """
    Normaliza argumentos de comando para um dict.

    Aceita (dict,), ([dict],) ou () conforme o cliente envie os argumentos.
    """
    if not args:
        return {}
    first = args[0]
    if isinstance(first, list):
        first = first[0] if first else {}
    return first if isinstance(first, dict) else {}


def _normalize_workspace_path(workspace_root) -> Optional[Path]:
    """
    Normaliza workspace_root para Path, aceitando path ou file URI.

    Mantém o caminho sem resolve() para evitar dependência do filesystem.
    """
    if not workspace_root:
        return None

    if isinstance(workspace_root, Path):
        return workspace_root

    if not isinstance(workspace_root, str):
        return None

    if workspace_root.startswith("file://"):
        parsed = urlparse(workspace_root)
        path_str = unquote(parsed.path or "")

        # UNC paths: file://server/share/path -> //server/share/path
        if parsed.netloc:
            path_str = f"//{parsed.netloc}{path_str}"

        # Windows drive: /d:/path -> d:/path
        if len(path_str) >= 3 and path_str[0] == "/" and path_str[2] == ":":
            path_str = path_str[1:]

        return Path(path_str)

    return Path(workspace_root)


def _resolve_workspace_root(ls: SprotoLanguageServer, params: dict) -> Optional[str]:
    """
    Resolve o workspace root a partir dos parâmetros ou das pastas do LSP.

    Estratégia:
        1. 'workspaceRoot', 'rootUri' ou 'rootPath' nos params
        2. Primeira workspace folder do cliente
    """
    for key in ("workspaceRoot", "rootUri", "rootPath"):
        if params.get(key):
            return params[key]

    workspace = getattr(ls, "workspace", None)
    folders = getattr(workspace, "folders", None) if workspace else None
    if folders:
        first_folder = next(iter(folders.values()), None)
        if first_folder:
            return first_folder.uri

    return None


def validate_document(ls: SprotoLanguageServer, uri: str) -> list:
    """
    Valida um documento sproto e publica diagnósticos.

    Args:
        ls: Instância do servidor
        uri: URI do documento a validar

    Returns:
        Lista de Diagnostic publicada

    Fluxo:
        1. Verifica se validação está habilitada (sproto.validation.enabled)
        2. Obtém conteúdo do documento
        3. Valida o texto inteiro (validate_source)
        4. Converte issues → List[Diagnostic]
        5. Publica diagnósticos, substituindo o conjunto anterior

    Tratamento de Erros:
        - Captura todas as exceções para evitar crash do servidor
        - Em caso de erro fatal, publica diagnostic genérico
    """
    ls.open_documents.add(uri)

    if not ls.validation_enabled:
        logger.debug(f"Validação desabilitada, pulando: {uri}")
        # Limpa diagnósticos existentes quando validação está desabilitada
        _publish(ls, uri, [])
        return []

    try:
        doc = ls.workspace.get_text_document(uri)
        result = validate_source(doc.source)
        diagnostics = build_diagnostics(result)
        _publish(ls, uri, diagnostics)
        logger.info(
            f"Validação completa: {uri} - "
            f"{len(result.errors)} erros, "
            f"{len(result.warnings)} avisos"
        )
        return diagnostics
    except Exception as e:
        # Log do erro mas não crash
        logger.error(f"Erro ao validar {uri}: {e}", exc_info=True)
        diagnostics = [internal_error_diagnostic(f"Internal error while validating: {e}")]
        _publish(ls, uri, diagnostics)
        return diagnostics


@server.feature(TEXT_DOCUMENT_DID_OPEN)
def did_open(ls: SprotoLanguageServer, params: DidOpenTextDocumentParams) -> None:
    """Valida imediatamente quando o usuário abre um arquivo sproto."""
    logger.info(f"Documento aberto: {params.text_document.uri}")
    validate_document(ls, params.text_document.uri)


@server.feature(TEXT_DOCUMENT_DID_CHANGE)
def did_change(ls: SprotoLanguageServer, params: DidChangeTextDocumentParams) -> None:
    """
    Handler para mudanças no documento.

    Cada mudança revalida o documento inteiro a partir do snapshot atual.
    """
    logger.debug(f"Documento modificado: {params.text_document.uri}")
    validate_document(ls, params.text_document.uri)


@server.feature(TEXT_DOCUMENT_DID_SAVE)
def did_save(ls: SprotoLanguageServer, params: DidSaveTextDocumentParams) -> None:
    """Validação disparada pelo salvamento."""
    logger.info(f"Documento salvo: {params.text_document.uri}")
    validate_document(ls, params.text_document.uri)


@server.feature(TEXT_DOCUMENT_DID_CLOSE)
def did_close(ls: SprotoLanguageServer, params: DidCloseTextDocumentParams) -> None:
    """
    Handler para fechamento de documento.

    Limpa diagnósticos e remove documento do rastreamento.
    """
    uri = params.text_document.uri
    logger.info(f"Documento fechado: {uri}")
    _publish(ls, uri, [])
    ls.open_documents.discard(uri)


@server.feature(TEXT_DOCUMENT_FORMATTING)
def formatting(ls: SprotoLanguageServer, params: DocumentFormattingParams):
    """
    Formata o documento inteiro.

    Retorna uma única edição cobrindo o documento todo. Documentos que ainda
    não passam na validação também são formatados.
    """
    uri = params.text_document.uri
    try:
        doc = ls.workspace.get_text_document(uri)
        source = doc.source
        formatted = format_source(source)
        return build_formatting_edits(source, formatted)
    except Exception as e:
        logger.error(f"Erro ao formatar {uri}: {e}", exc_info=True)
        return None


@server.feature(TEXT_DOCUMENT_DOCUMENT_SYMBOL)
def document_symbol(ls: SprotoLanguageServer, params: DocumentSymbolParams) -> list:
    """Retorna document symbols (módulos > protocolos > blocos > campos)."""
    doc = ls.workspace.get_text_document(params.text_document.uri)
    return compute_document_symbols(doc.source)


@server.feature(
    TEXT_DOCUMENT_CODE_ACTION,
    CodeActionOptions(code_action_kinds=[CodeActionKind.QuickFix]),
)
def code_action(ls: SprotoLanguageServer, params: CodeActionParams):
    """Quick fixes para pontuação, números em protocolos '.' e ':' ausente."""
    return compute_code_actions(
        params.text_document.uri,
        params.range,
        params.context.diagnostics,
    )


@server.command("sproto/validateDocument")
def cmd_validate_document(ls: SprotoLanguageServer, *args) -> dict:
    """
    Validação manual de um documento aberto.

    Params: {"uri": "file:///..."}
    """
    params = _command_params(args)
    uri = params.get("uri")
    if not uri:
        return {"success": False, "error": "Parameter 'uri' not provided"}

    if not ls.validation_enabled:
        return {"success": False, "error": "Validation is disabled"}

    diagnostics = validate_document(ls, uri)
    return {"success": True, "uri": uri, "totalDiagnostics": len(diagnostics)}


@server.command("sproto/formatDocument")
def cmd_format_document(ls: SprotoLanguageServer, *args) -> dict:
    """
    Retorna o texto formatado de um documento aberto.

    Params: {"uri": "file:///..."}
    """
    params = _command_params(args)
    uri = params.get("uri")
    if not uri:
        return {"success": False, "error": "Parameter 'uri' not provided"}

    try:
        source = ls.workspace.get_text_document(uri).source
        formatted = format_source(source)
    except Exception as e:
        logger.error(f"formatDocument falhou para {uri}: {e}", exc_info=True)
        return {"success": False, "error": str(e)}

    return {"success": True, "text": formatted, "changed": formatted != source}


@server.command("sproto/validateWorkspace")
def cmd_validate_workspace(ls: SprotoLanguageServer, *args) -> dict:
    """
    Valida todos os arquivos sproto no workspace.

    Returns dict com resumo da validação; diagnósticos são publicados por arquivo.
    """
    params = _command_params(args)
    workspace_path = _normalize_workspace_path(_resolve_workspace_root(ls, params))
    if not workspace_path:
        return {"success": False, "error": "Workspace root not provided"}

    diagnostics_map = compute_workspace_diagnostics(workspace_path, validate_workspace_file)

    for uri, diagnostics in diagnostics_map.items():
        _publish(ls, uri, diagnostics)

    total_files = len(diagnostics_map)
    files_with_errors = sum(1 for diags in diagnostics_map.values() if diags)
    total_diagnostics = sum(len(diags) for diags in diagnostics_map.values())

    return {
        "success": True,
        "totalFiles": total_files,
        "filesWithErrors": files_with_errors,
        "totalDiagnostics": total_diagnostics,
    }


def _read_validation_enabled(settings) -> bool:
    """
    Lê sproto.validation.enabled (padrão: True).

    settings pode vir como {'sproto': {...}} ou já ser a seção.
    """
    if not isinstance(settings, dict):
        return True
    sproto_config = settings.get("sproto", settings)
    if not isinstance(sproto_config, dict):
        return True
    validation_config = sproto_config.get("validation", {})
    if not isinstance(validation_config, dict):
        return True
    return bool(validation_config.get("enabled", True))


@server.feature(WORKSPACE_DID_CHANGE_CONFIGURATION)
def did_change_configuration(
    ls: SprotoLanguageServer, params: DidChangeConfigurationParams
) -> None:
    """
    Handler para mudanças na configuração do workspace.

    Reativar a validação revalida os documentos abertos; desativar limpa
    os diagnósticos publicados.
    """
    try:
        old_validation_enabled = ls.validation_enabled
        ls.validation_enabled = _read_validation_enabled(params.settings)

        logger.info(f"Configuração atualizada: validation.enabled = {ls.validation_enabled}")

        if not old_validation_enabled and ls.validation_enabled:
            logger.info("Validação reativada, revalidando documentos abertos")
            for doc_uri in list(ls.open_documents):
                validate_document(ls, doc_uri)
        elif old_validation_enabled and not ls.validation_enabled:
            logger.info("Validação desativada, limpando diagnósticos")
            for doc_uri in list(ls.open_documents):
                _publish(ls, doc_uri, [])

    except Exception as e:
        logger.error(f"Erro ao processar mudança de configuração: {e}", exc_info=True)


def main() -> None:
    """
    Ponto de entrada principal do servidor.

    Inicia servidor LSP em modo STDIO.
    """
    logger.info("Iniciando sproto Language Server...")
    logger.info("Python executable: %s", sys.executable)
    logger.info("sproto-lsp package: %s", __version__)
    server.start_io()


if __name__ == "__main__":
    main()
