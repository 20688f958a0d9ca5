"""
Servicios comunes para todos los microservicios.
"""

from .base_service import BaseService

__all__ = ['BaseService']
