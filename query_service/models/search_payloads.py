"""
Modelos de búsqueda semántica del Query Service.

Las peticiones aceptan tanto snake_case como camelCase
(`include_text_search` / `includeTextSearch`).
"""

from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from common.models.actions import ApiResponse


_request_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")


class DistanceMetric(str, Enum):
    COSINE = "COSINE"
    EUCLIDEAN = "EUCLIDEAN"
    DOT_PRODUCT = "DOT_PRODUCT"


# =============================================================================
# REQUEST
# =============================================================================

class PriceRange(BaseModel):
    model_config = _request_config

    min: Optional[float] = None
    max: Optional[float] = None


class SearchFilters(BaseModel):
    """Filtros de búsqueda. Dentro de cada lista basta con coincidir uno."""
    model_config = _request_config

    categories: Optional[List[str]] = None
    industries: Optional[List[str]] = None
    provider_types: Optional[List[str]] = None
    price_range: Optional[PriceRange] = None
    min_rating: Optional[float] = None
    locations: Optional[List[str]] = None
    technologies: Optional[List[str]] = None
    features: Optional[List[str]] = None
    compliance: Optional[List[str]] = None


class SearchOptions(BaseModel):
    model_config = _request_config

    limit: Optional[int] = Field(None, ge=1, description="Resultados por página (limitado por max_limit).")
    offset: int = Field(0, ge=0)
    threshold: Optional[float] = Field(None, ge=0, le=1, description="Similitud mínima para la búsqueda vectorial.")
    distance_measure: DistanceMetric = DistanceMetric.COSINE
    include_text_search: Optional[bool] = None
    include_explanation: bool = False


class SearchQuery(BaseModel):
    model_config = _request_config

    query: str
    filters: SearchFilters = Field(default_factory=SearchFilters)
    options: SearchOptions = Field(default_factory=SearchOptions)


# =============================================================================
# QUERY ANALYSIS
# =============================================================================

IntentCategory = Literal["product_search", "service_discovery", "comparison", "specific_need"]


class QueryEntities(BaseModel):
    technologies: List[str] = Field(default_factory=list)
    industries: List[str] = Field(default_factory=list)
    use_cases: List[str] = Field(default_factory=list)
    budget: Optional[int] = None


class QueryIntent(BaseModel):
    category: IntentCategory
    confidence: float
    entities: QueryEntities = Field(default_factory=QueryEntities)


class StrategyWeights(BaseModel):
    vector: float
    text: float
    filters: float
    popularity: float
    recency: float


class SearchStrategy(BaseModel):
    name: str
    primary: Literal["vector", "text", "hybrid"]
    fallbacks: List[str] = Field(default_factory=list)
    weights: StrategyWeights


# =============================================================================
# RESPONSE
# =============================================================================

class TextMatch(BaseModel):
    exact_matches: List[str] = Field(default_factory=list)
    partial_matches: List[str] = Field(default_factory=list)


class SemanticMatch(BaseModel):
    matched_concepts: List[str] = Field(default_factory=list)
    confidence: float


class SearchExplanation(BaseModel):
    matching_factors: List[str] = Field(default_factory=list)
    semantic_match: SemanticMatch
    text_match: Optional[TextMatch] = None


class SearchResult(BaseModel):
    service_id: str
    score: float
    distance: float
    service: Dict[str, Any]
    explanation: Optional[SearchExplanation] = None


class QueryMetadata(BaseModel):
    original_query: str
    processed_query: str
    query_embedding: List[float]
    intent: Optional[QueryIntent] = None
    strategy: SearchStrategy


class SearchPerformance(BaseModel):
    total_time: float = 0.0
    vector_search_time: float = 0.0
    text_search_time: float = 0.0
    filter_time: float = 0.0
    ranking_time: float = 0.0
    documents_scanned: int = 0
    cache_status: Literal["hit", "miss", "partial"] = "miss"


class SearchSuggestion(BaseModel):
    query: str
    type: Literal["spelling", "expansion", "filter", "category"]
    expected_result_count: int
    reason: str


class SearchResponse(BaseModel):
    results: List[SearchResult] = Field(default_factory=list)
    total_count: int = 0
    query_metadata: QueryMetadata
    performance: SearchPerformance = Field(default_factory=SearchPerformance)
    suggestions: List[SearchSuggestion] = Field(default_factory=list)


SemanticSearchApiResponse = ApiResponse[SearchResponse]
