"""
Servicios del Query Service.
"""

from .vector_search_service import VectorSearchService

__all__ = ["VectorSearchService"]
