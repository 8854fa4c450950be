"""Errores del Core.

Ninguno de estos errores llega al usuario: el orquestador los convierte en
rechazos o en una respuesta de respaldo pre-escrita.
"""

from __future__ import annotations


class ClaraError(Exception):
    """Base de todos los errores propios."""


class GenerationUnavailable(ClaraError):
    """La llamada de generación externa no produjo texto utilizable.

    `kind` es un identificador corto (timeout, empty_output, transport,
    rate_limited, missing_ai_api_key...) que termina en el registro de auditoría.
    """

    def __init__(self, kind: str, message: str | None = None) -> None:
        super().__init__(message or kind)
        self.kind = kind


class UnknownContractError(ClaraError, KeyError):
    """No existe contrato para el par (categoría, variante) pedido."""


class ContractTableError(ClaraError, ValueError):
    """La tabla de contratos desplegada está incompleta o es inválida."""
