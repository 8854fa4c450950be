"""Puertos del Core (Protocol).

El orquestador solo conoce `ReplyGenerator` y `TurnRecorder`; el proveedor LLM
y el destino de auditoría se inyectan desde `adapters`.
"""
