# Este archivo inicializa el módulo service_settings.
# Exporta las clases de configuración específicas de cada servicio.

from .embedding import EmbeddingServiceSettings
from .query import QueryServiceSettings

__all__ = [
    'EmbeddingServiceSettings',
    'QueryServiceSettings',
]
