"""
Inicialización del módulo de configuración para Embedding Service.

Exporta la clase de configuración específica del servicio (importada desde la ubicación común)
y la función de acceso a la configuración.
"""

from common.config import EmbeddingServiceSettings
from .settings import get_settings
from .constants import (
    SUPPORTED_EMBEDDING_MODELS,
    EmbeddingModelInfo,
    INCLUDED_FIELDS,
    FIELD_WEIGHTS,
    PreprocessingConfig,
    EndpointPaths,
)

__all__ = [
    "EmbeddingServiceSettings",
    "get_settings",
    "SUPPORTED_EMBEDDING_MODELS",
    "EmbeddingModelInfo",
    "INCLUDED_FIELDS",
    "FIELD_WEIGHTS",
    "PreprocessingConfig",
    "EndpointPaths",
]
