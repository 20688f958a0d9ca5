"""
Constantes para el Embedding Service.

Este módulo define las tablas estáticas utilizadas para construir el
contenido indexable de cada registro y la información de los modelos de
embeddings soportados. Los valores operativos (tamaños de lote,
concurrencia, reintentos) se gestionan a través de EmbeddingServiceSettings.
"""

from typing import Dict, List

from pydantic import BaseModel


class EmbeddingModelInfo(BaseModel):
    dimensions: int
    max_tokens: int
    cost_per_1k_tokens: float


SUPPORTED_EMBEDDING_MODELS: Dict[str, EmbeddingModelInfo] = {
    "text-embedding-3-small": EmbeddingModelInfo(dimensions=1536, max_tokens=8191, cost_per_1k_tokens=0.00002),
    "text-embedding-3-large": EmbeddingModelInfo(dimensions=3072, max_tokens=8191, cost_per_1k_tokens=0.00013),
    "text-embedding-ada-002": EmbeddingModelInfo(dimensions=1536, max_tokens=8191, cost_per_1k_tokens=0.0001),
}

# Campos del registro que participan en el contenido indexable, en orden.
INCLUDED_FIELDS: List[str] = [
    "name",
    "description",
    "shortDescription",
    "tags",
    "category",
    "subcategory",
    "features",
    "benefits",
    "industries",
    "technologies",
    "useCases",
]

# Peso de cada campo: número de repeticiones dentro del contenido.
FIELD_WEIGHTS: Dict[str, float] = {
    "name": 3.0,
    "description": 2.0,
    "shortDescription": 1.5,
    "tags": 1.8,
    "category": 1.2,
    "subcategory": 1.0,
    "features": 1.5,
    "benefits": 1.3,
    "industries": 1.0,
    "technologies": 1.4,
    "useCases": 1.6,
}


class PreprocessingConfig:
    REMOVE_HTML = True
    REMOVE_PUNCTUATION = False
    TO_LOWER_CASE = True
    MAX_LENGTH = 8000
    MIN_LENGTH = 10
    # Fracción de MAX_LENGTH a partir de la cual se corta en el último espacio.
    WORD_BOUNDARY_RATIO = 0.8


# Proyección de campos para auditoría (independiente de los pesos).
CONTENT_SOURCE_FIELDS: List[str] = [
    "name",
    "description",
    "tags",
    "category",
    "features",
    "industries",
    "technologies",
]

CHARS_PER_TOKEN = 4
QUERY_MAX_LENGTH = 1000

# Filtros de búsqueda que deben ser listas (nombres del API, en camelCase y snake_case).
SEARCH_FILTER_ARRAY_FIELDS: List[str] = [
    "categories", "industries", "providerTypes", "provider_types",
    "locations", "technologies", "features", "compliance",
]

HEALTH_CHECK_TEXT = "health check"


# Constantes para Endpoints
class EndpointPaths:
    HEALTH = "/health"
    HEALTH_DETAILED = "/health/detailed"
    METRICS = "/metrics"
    QUERY_EMBED = "/embed/query"
    JOBS = "/jobs"
    JOB_STATUS = "/jobs/{job_id}"
    PIPELINE_RUN = "/pipeline/run"
    PIPELINE_STOP = "/pipeline/stop"
    PIPELINE_PROGRESS = "/pipeline/progress"
