"""
Acceso a la configuración del Query Service.
"""

from functools import lru_cache

from common.config import QueryServiceSettings


@lru_cache()
def get_settings() -> QueryServiceSettings:
    """Carga la configuración desde el entorno (prefijo QUERY_) una sola vez."""
    return QueryServiceSettings()
