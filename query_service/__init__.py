"""
Query Service - Servicio de búsqueda semántica.

Este servicio responde consultas en lenguaje natural combinando similitud
vectorial, coincidencia léxica, filtros estructurados y ranking por
popularidad y recencia.
"""

__version__ = "1.0.0"

from common.config.service_settings import QueryServiceSettings
from .handlers import RankingHandler, SuggestionHandler
from .models import SearchQuery, SearchResponse, SearchResult, SemanticSearchApiResponse
from .services import VectorSearchService
from .utils import ExplanationGenerator, QueryProcessor, SearchCacheManager, SimilarityCalculator

__all__ = [
    # Configuración
    "QueryServiceSettings",

    # Handlers
    "RankingHandler",
    "SuggestionHandler",

    # Modelos
    "SearchQuery",
    "SearchResponse",
    "SearchResult",
    "SemanticSearchApiResponse",

    # Servicios
    "VectorSearchService",

    # Utilidades
    "ExplanationGenerator",
    "QueryProcessor",
    "SearchCacheManager",
    "SimilarityCalculator",
]
