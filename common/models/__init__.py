"""Módulo de Modelos Comunes Pydantic.

Exporta los modelos de acciones y la envoltura estándar de respuestas
compartidos por los servicios.
"""

from .actions import DomainAction, ErrorDetail, ResponseMetadata, ApiResponse

__all__ = [
    "DomainAction",
    "ErrorDetail",
    "ResponseMetadata",
    "ApiResponse",
]
