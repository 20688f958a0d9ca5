"""
Modelos específicos del Embedding Service.

Incluye los metadatos persistidos junto a cada embedding, los resultados de
generación (individual, por lotes y de consulta), los jobs en segundo plano
y los payloads de las acciones del servicio.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from common.models.actions import ErrorDetail


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# EMBEDDING MODELS
# =============================================================================

class ContentSources(BaseModel):
    """Proyección de los campos de origen del contenido (auditoría)."""
    name: str = ""
    description: str = ""
    tags: List[str] = Field(default_factory=list)
    category: str = ""
    features: List[str] = Field(default_factory=list)
    industries: List[str] = Field(default_factory=list)
    technologies: List[str] = Field(default_factory=list)

    @field_validator("tags", "features", "industries", "technologies", mode="before")
    @classmethod
    def coerce_list(cls, v):
        if v is None:
            return []
        if isinstance(v, (list, tuple)):
            return [str(item) for item in v]
        return [str(v)]

    @field_validator("name", "description", "category", mode="before")
    @classmethod
    def coerce_str(cls, v):
        return "" if v is None else str(v)


class EmbeddingMetadata(BaseModel):
    """Metadatos persistidos en `embeddingMetadata` de cada registro."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    model: str = Field(..., description="Modelo del proveedor")
    generated_at: datetime = Field(default_factory=_utcnow, description="Momento de generación")
    version: str = Field("1.0.0", description="Versión del esquema de embeddings")
    content_hash: str = Field(..., description="Hash SHA-256 del contenido embebido")
    token_count: int = Field(0, description="Tokens consumidos")


class RecordEmbedding(BaseModel):
    """Embedding de un registro junto con el contenido derivado."""
    service_id: str
    embedding: List[float]
    metadata: EmbeddingMetadata
    search_content: str
    content_sources: ContentSources

    def to_record_fields(self, updated_at: Optional[datetime] = None) -> Dict[str, Any]:
        """Campos que se escriben de vuelta en el registro del almacén."""
        return {
            "embedding": self.embedding,
            "embeddingMetadata": self.metadata.model_dump(mode="json", by_alias=True),
            "searchContent": self.search_content,
            "contentSources": self.content_sources.model_dump(mode="json"),
            "lastEmbeddingUpdate": (updated_at or _utcnow()).isoformat(),
        }


class BatchEmbeddingError(BaseModel):
    service_id: str
    error: str


class BatchEmbeddingResult(BaseModel):
    """Resultado de una generación por lotes: éxitos por id y fallos aparte."""
    embeddings: Dict[str, RecordEmbedding] = Field(default_factory=dict)
    errors: List[BatchEmbeddingError] = Field(default_factory=list)


class QueryEmbeddingData(BaseModel):
    embedding: List[float]
    metadata: EmbeddingMetadata


class QueryEmbeddingMeta(BaseModel):
    request_id: str
    timestamp: datetime = Field(default_factory=_utcnow)
    token_count: int = 0
    cost: float = 0.0


class QueryEmbeddingResult(BaseModel):
    """Resultado tipado de `generate_query_embedding`; nunca se lanza por validación."""
    success: bool
    data: Optional[QueryEmbeddingData] = None
    error: Optional[ErrorDetail] = None
    metadata: QueryEmbeddingMeta


# =============================================================================
# JOB MODELS
# =============================================================================

class JobStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class JobProgress(BaseModel):
    total: int
    completed: int = 0
    failed: int = 0


class JobMetadata(BaseModel):
    start_time: datetime = Field(default_factory=_utcnow)
    end_time: Optional[datetime] = None
    model: str
    version: str
    estimated_cost: float
    actual_cost: Optional[float] = None


class EmbeddingGenerationJob(BaseModel):
    """Job de generación en segundo plano. Terminal en completed o failed."""
    job_id: str
    status: JobStatus = JobStatus.PENDING
    record_ids: List[str]
    progress: JobProgress
    metadata: JobMetadata
    error: Optional[ErrorDetail] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in (JobStatus.COMPLETED, JobStatus.FAILED)


# =============================================================================
# ACTION PAYLOADS
# =============================================================================

class GenerateEmbeddingPayload(BaseModel):
    """Payload para embedding.generate."""
    record: Dict[str, Any] = Field(..., description="Registro del catálogo con al menos 'id'")

    model_config = {"extra": "forbid"}


class GenerateBatchPayload(BaseModel):
    """Payload para embedding.generate_batch."""
    records: List[Dict[str, Any]] = Field(..., description="Registros del catálogo")

    model_config = {"extra": "forbid"}


class QueryEmbeddingPayload(BaseModel):
    """Payload para embedding.generate_query."""
    query: Any = Field(..., description="Texto de la consulta")

    model_config = {"extra": "forbid"}


class CreateJobPayload(BaseModel):
    """Payload para embedding.job.create."""
    record_ids: List[str] = Field(..., min_length=1, description="Ids de los registros a procesar")

    model_config = {"extra": "forbid"}


class JobStatusPayload(BaseModel):
    """Payload para embedding.job.status."""
    job_id: str

    model_config = {"extra": "forbid"}
