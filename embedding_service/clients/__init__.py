"""
Clientes externos del Embedding Service.
"""

from .openai_client import EmbeddingProvider, OpenAIClient

__all__ = ["EmbeddingProvider", "OpenAIClient"]
