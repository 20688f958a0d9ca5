"""
Servicios del Embedding Service.
"""

from .embedding_service import EmbeddingService
from .embedding_pipeline import EmbeddingPipeline, run_embedding_pipeline

__all__ = ["EmbeddingService", "EmbeddingPipeline", "run_embedding_pipeline"]
