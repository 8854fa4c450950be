"""Dominio del núcleo de respuestas.

Categorías, variantes y los modelos congelados que viajan dentro de un turno
(contratos, señales, clasificación, veredicto, plan de entrega, auditoría).
"""
