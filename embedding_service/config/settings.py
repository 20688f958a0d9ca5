"""
Acceso a la configuración del Embedding Service.

La API HTTP, el CLI del pipeline y el Query Service (que genera los
embeddings de las consultas) comparten la misma instancia por proceso.
"""

from functools import lru_cache

from common.config import EmbeddingServiceSettings


@lru_cache()
def get_settings() -> EmbeddingServiceSettings:
    """Carga la configuración desde el entorno (prefijo EMBEDDING_) una sola vez."""
    return EmbeddingServiceSettings()
