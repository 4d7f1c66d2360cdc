"""
workspace_diagnostics.py - Diagnósticos para todo o workspace

Propósito:
    Validar todos os arquivos sproto no workspace, não apenas
    os arquivos abertos no editor.

Comando:
    sproto/validateWorkspace → Diagnostics para todos os arquivos .sproto
"""

from __future__ import annotations

import logging
from pathlib import Path

from lsprotocol.types import Diagnostic

from sproto_lsp.converters import build_diagnostics
from sproto_lsp.validator import validate_source

logger = logging.getLogger(__name__)

SPROTO_EXTENSIONS = [".sproto"]


def compute_workspace_diagnostics(
    workspace_root: Path,
    validate_func
) -> dict[str, list[Diagnostic]]:
    """
    Gera diagnósticos para todos os arquivos no workspace.

    Args:
        workspace_root: Raiz do workspace
        validate_func: Função para validar um arquivo individual

    Returns:
        Dict mapeando URIs para listas de Diagnostic
    """
    diagnostics_map = {}

    if not workspace_root or not workspace_root.exists():
        logger.warning(f"Workspace root não existe: {workspace_root}")
        return diagnostics_map

    sproto_files = _find_sproto_files(workspace_root)

    logger.info(f"Validando {len(sproto_files)} arquivos no workspace")

    for file_path in sproto_files:
        try:
            uri = file_path.as_uri()
            diagnostics_map[uri] = validate_func(uri, file_path) or []
        except Exception as e:
            logger.warning(f"Erro ao validar {file_path}: {e}", exc_info=True)
            # Continuar com próximo arquivo

    logger.info(f"Workspace diagnostics completo: {len(diagnostics_map)} arquivos processados")

    return diagnostics_map


def _find_sproto_files(workspace_root: Path) -> list[Path]:
    """
    Encontra todos os arquivos sproto no workspace (recursivo).

    Returns:
        Lista ordenada de Path para arquivos .sproto
    """
    files = []

    try:
        for ext in SPROTO_EXTENSIONS:
            files.extend(workspace_root.rglob(f"*{ext}"))
    except OSError as e:
        logger.warning(f"Erro ao buscar arquivos no workspace: {e}")

    return sorted(files)


def validate_workspace_file(uri: str, file_path: Path) -> list[Diagnostic]:
    """
    Valida um arquivo individual do workspace.

    Args:
        uri: URI do arquivo
        file_path: Path absoluto do arquivo

    Returns:
        Lista de Diagnostic (vazia se o arquivo não puder ser lido)
    """
    try:
        source = file_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        logger.warning(f"Erro ao ler arquivo {file_path}: {e}")
        return []

    return build_diagnostics(validate_source(source))
