"""
Módulo de Handlers Comunes (`common.handlers`)

Proporciona la clase base de los handlers de dominio de cada servicio.
"""

from .base_handler import BaseHandler

__all__ = ["BaseHandler"]
