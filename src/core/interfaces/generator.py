"""Contrato del generador de texto externo.

Por qué Protocol:
- Define un contrato estructural (duck typing) sin herencia rígida.
- Permite que el proveedor (OpenAI-compatible, guionizado para tests, etc.)
  sea intercambiable sin acoplar el orquestador a un SDK concreto.
"""

from __future__ import annotations

from typing import Protocol, Sequence, runtime_checkable

from core.domain.categories import Variant

PromptMessages = Sequence[dict[str, str]]


@runtime_checkable
class ReplyGenerator(Protocol):
    """Contrato mínimo para generar una respuesta.

    Reglas de diseño:
    - Ambos métodos son asíncronos porque típicamente harán I/O (HTTP).
    - Cualquier fallo (timeout, salida vacía, transporte) se señala con
      `core.errors.GenerationUnavailable`; nunca con texto de error.
    - `regenerate` pide una respuesta nueva y completa; nunca continúa ni
      menciona el intento anterior.
    """

    async def generate(self, messages: PromptMessages, max_size: int, variant: Variant) -> str:
        ...

    async def regenerate(self, messages: PromptMessages, rejection_reason: str, variant: Variant) -> str:
        ...
