"""
Embedding Service - Servicio de generación de embeddings.

Este servicio construye el contenido indexable de los registros del
catálogo, genera sus embeddings con la API de OpenAI y los mantiene al día
mediante el pipeline de generación.
"""

__version__ = "1.0.0"

from .clients import EmbeddingProvider, OpenAIClient
from common.config.service_settings import EmbeddingServiceSettings
from .handlers import ValidationHandler
from .models import (
    RecordEmbedding,
    EmbeddingMetadata,
    EmbeddingGenerationJob,
    PipelineProgress,
)
from .services import EmbeddingService, EmbeddingPipeline, run_embedding_pipeline
from .utils import ContentExtractor

__all__ = [
    # Clientes
    "EmbeddingProvider",
    "OpenAIClient",

    # Configuración
    "EmbeddingServiceSettings",

    # Handlers
    "ValidationHandler",

    # Modelos
    "RecordEmbedding",
    "EmbeddingMetadata",
    "EmbeddingGenerationJob",
    "PipelineProgress",

    # Servicios
    "EmbeddingService",
    "EmbeddingPipeline",
    "run_embedding_pipeline",

    # Utilidades
    "ContentExtractor",
]
