"""
Constantes para el Query Service.

Este módulo define las tablas estáticas del procesamiento de consultas
(sinónimos, correcciones, patrones de intención, vocabularios de entidades),
las estrategias de búsqueda y las rutas del API. Los valores configurables
se gestionan a través de QueryServiceSettings.
"""

import re
from typing import Dict, List, Pattern

from ..models.search_payloads import SearchStrategy, StrategyWeights


# =============================================================================
# PROCESAMIENTO DE CONSULTAS
# =============================================================================

SYNONYMS: Dict[str, List[str]] = {
    "AI": ["artificial intelligence", "machine learning", "ML"],
    "NLP": ["natural language processing", "text analysis", "language AI"],
    "ML": ["machine learning", "artificial intelligence", "AI"],
    "computer vision": ["image recognition", "visual AI", "image analysis"],
    "chatbot": ["conversational AI", "virtual assistant", "chat AI"],
}

SPELL_CORRECTIONS: Dict[str, str] = {
    "machien": "machine",
    "leraning": "learning",
    "artifical": "artificial",
    "inteligence": "intelligence",
    "algoritm": "algorithm",
    "chatbots": "chatbot",
    "analystics": "analytics",
    "prediciton": "prediction",
    "recomendation": "recommendation",
}

# Subconjunto de SPELL_CORRECTIONS que se ofrece como sugerencia de búsqueda.
SUGGESTION_SPELL_CORRECTIONS: Dict[str, str] = {
    typo: SPELL_CORRECTIONS[typo] for typo in ("machien", "leraning", "artifical", "inteligence")
}

# El orden de las claves es la prioridad de evaluación.
INTENT_PATTERNS: Dict[str, List[Pattern[str]]] = {
    "product_search": [
        re.compile(r"looking for.*AI", re.IGNORECASE),
        re.compile(r"need.*machine learning", re.IGNORECASE),
        re.compile(r"want.*solution", re.IGNORECASE),
    ],
    "service_discovery": [
        re.compile(r"what.*services", re.IGNORECASE),
        re.compile(r"show me.*providers", re.IGNORECASE),
        re.compile(r"find.*companies", re.IGNORECASE),
    ],
    "comparison": [
        re.compile(r"compare.*services", re.IGNORECASE),
        re.compile(r"difference between", re.IGNORECASE),
        re.compile(r"vs\.|versus", re.IGNORECASE),
    ],
    "specific_need": [
        re.compile(r"help.*with", re.IGNORECASE),
        re.compile(r"solve.*problem", re.IGNORECASE),
        re.compile(r"automate.*process", re.IGNORECASE),
    ],
}

DEFAULT_INTENT = "product_search"
MATCHED_INTENT_CONFIDENCE = 0.8
DEFAULT_INTENT_CONFIDENCE = 0.5

TECHNOLOGY_ENTITIES: List[str] = ["AI", "ML", "machine learning", "NLP", "computer vision", "chatbot", "deep learning"]
INDUSTRY_ENTITIES: List[str] = ["healthcare", "finance", "retail", "manufacturing", "education"]
USE_CASE_ENTITIES: List[str] = ["automation", "prediction", "analysis", "recommendation", "classification"]

BUDGET_PATTERN = re.compile(r"\$([0-9,]+)")


# =============================================================================
# EXPLICACIONES
# =============================================================================

CONCEPT_MAP: Dict[str, List[str]] = {
    "AI": ["artificial intelligence", "machine learning", "intelligent"],
    "automation": ["automate", "automated", "automatic"],
    "analysis": ["analyze", "analytics", "analytical"],
    "prediction": ["predict", "predictive", "forecasting"],
    "vision": ["image", "visual", "computer vision", "recognition"],
}

HIGH_SIMILARITY_THRESHOLD = 0.8
GOOD_SIMILARITY_THRESHOLD = 0.6


# =============================================================================
# BÚSQUEDA
# =============================================================================

SEARCH_STRATEGIES: Dict[str, SearchStrategy] = {
    "semantic_only": SearchStrategy(
        name="semantic_only",
        primary="vector",
        fallbacks=[],
        weights=StrategyWeights(vector=1.0, text=0.0, filters=0.0, popularity=0.0, recency=0.0),
    ),
    "hybrid_balanced": SearchStrategy(
        name="hybrid_balanced",
        primary="hybrid",
        fallbacks=["vector", "text"],
        weights=StrategyWeights(vector=0.6, text=0.2, filters=0.1, popularity=0.05, recency=0.05),
    ),
    "hybrid_semantic_heavy": SearchStrategy(
        name="hybrid_semantic_heavy",
        primary="hybrid",
        fallbacks=["vector", "text"],
        weights=StrategyWeights(vector=0.8, text=0.1, filters=0.05, popularity=0.03, recency=0.02),
    ),
    "traditional_fallback": SearchStrategy(
        name="traditional_fallback",
        primary="text",
        fallbacks=["vector"],
        weights=StrategyWeights(vector=0.3, text=0.5, filters=0.1, popularity=0.05, recency=0.05),
    ),
}

# Campos de la proyección léxica usada por la búsqueda de texto.
TEXT_SEARCH_FIELDS: List[str] = ["name", "description", "shortDescription", "tags", "features"]

PARTIAL_MATCH_SCORE = 0.5
POPULARITY_NORMALIZER = 100.0
RECENCY_WINDOW_DAYS = 365.0

# Campos del registro que no se devuelven en los resultados.
RESULT_EXCLUDED_FIELDS = ("embedding",)

MAX_SUGGESTIONS = 3
SPELLING_SUGGESTION_RESULT_COUNT = 15
FILTER_SUGGESTION_RESULT_COUNT = 10
CATEGORY_SUGGESTION_RESULT_COUNT = 25
FILTER_SUGGESTION_REASON = "Try removing some filters to see more results"
CATEGORY_SUGGESTION_REASON = "Try searching in Machine Learning category"

HEALTH_CHECK_QUERY = "health check test"
CACHE_KEY_PREFIX = "search"


class EndpointPaths:
    HEALTH = "/health"
    METRICS = "/metrics"
    SEMANTIC_SEARCH = "/api/search/semantic"
    SEMANTIC_SEARCH_HEALTH = "/api/search/semantic/health"
    SEMANTIC_SEARCH_CACHE = "/api/search/semantic/cache"
