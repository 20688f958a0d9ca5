"""
Modelos del Query Service.
"""

from .search_payloads import (
    DistanceMetric,
    PriceRange,
    SearchFilters,
    SearchOptions,
    SearchQuery,
    QueryEntities,
    QueryIntent,
    StrategyWeights,
    SearchStrategy,
    TextMatch,
    SemanticMatch,
    SearchExplanation,
    SearchResult,
    QueryMetadata,
    SearchPerformance,
    SearchSuggestion,
    SearchResponse,
    SemanticSearchApiResponse,
)

__all__ = [
    "DistanceMetric",
    "PriceRange",
    "SearchFilters",
    "SearchOptions",
    "SearchQuery",
    "QueryEntities",
    "QueryIntent",
    "StrategyWeights",
    "SearchStrategy",
    "TextMatch",
    "SemanticMatch",
    "SearchExplanation",
    "SearchResult",
    "QueryMetadata",
    "SearchPerformance",
    "SearchSuggestion",
    "SearchResponse",
    "SemanticSearchApiResponse",
]
