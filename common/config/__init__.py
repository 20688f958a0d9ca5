"""
Configuración compartida por los servicios.

Exporta la configuración base y las configuraciones específicas de cada servicio.
"""

from .base_settings import CommonAppSettings
from .service_settings import EmbeddingServiceSettings, QueryServiceSettings

__all__ = [
    "CommonAppSettings",
    "EmbeddingServiceSettings",
    "QueryServiceSettings",
]
