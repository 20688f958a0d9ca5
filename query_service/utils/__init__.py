from .similarity import SimilarityCalculator
from .query_processor import QueryProcessor
from .explanation import ExplanationGenerator
from .cache_manager import SearchCacheManager

__all__ = [
    "SimilarityCalculator",
    "QueryProcessor",
    "ExplanationGenerator",
    "SearchCacheManager",
]
