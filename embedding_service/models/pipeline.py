"""
Modelos del pipeline de generación de embeddings.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, Field
from tenacity import wait_exponential, wait_incrementing
from tenacity.wait import wait_base

from common.config import EmbeddingServiceSettings


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PipelineState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class PipelineMode(str, Enum):
    ALL = "all"
    SPECIFIC = "specific"
    OUTDATED = "outdated"


class PipelineConfig(BaseModel):
    batch_size: int = Field(10, ge=1)
    max_concurrent_batches: int = Field(2, ge=1, description="Registros en vuelo dentro de un lote.")
    retry_attempts: int = Field(3, ge=1)
    retry_base_delay_seconds: float = Field(1.0, ge=0)
    backoff_strategy: Literal["linear", "exponential"] = "linear"
    batch_delay_seconds: float = Field(1.0, ge=0)
    enable_progress_tracking: bool = True
    dry_run: bool = False

    @classmethod
    def from_settings(cls, settings: EmbeddingServiceSettings, **overrides) -> "PipelineConfig":
        values = {
            "batch_size": settings.pipeline_batch_size,
            "max_concurrent_batches": settings.pipeline_max_concurrent_batches,
            "retry_attempts": settings.pipeline_retry_attempts,
            "retry_base_delay_seconds": settings.pipeline_retry_base_delay_seconds,
            "backoff_strategy": settings.pipeline_backoff_strategy,
            "batch_delay_seconds": settings.batch_delay_seconds,
            "enable_progress_tracking": settings.pipeline_enable_progress_tracking,
            "dry_run": settings.pipeline_dry_run,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    def wait_strategy(self) -> wait_base:
        """
        Espera de tenacity entre reintentos de un registro.

        linear: base * intento. exponential: base * 2 ** (intento - 1).
        """
        base = self.retry_base_delay_seconds
        if self.backoff_strategy == "exponential":
            return wait_exponential(multiplier=base)
        return wait_incrementing(start=base, increment=base)


class PipelineError(BaseModel):
    service_id: str
    error: str
    timestamp: datetime = Field(default_factory=_utcnow)


class PipelineProgress(BaseModel):
    total_services: int = 0
    processed_services: int = 0
    successful_embeddings: int = 0
    failed_embeddings: int = 0
    skipped_services: int = 0
    current_batch: int = 0
    total_batches: int = 0
    start_time: datetime = Field(default_factory=_utcnow)
    estimated_completion: Optional[datetime] = None
    errors: List[PipelineError] = Field(default_factory=list)

    @property
    def percentage(self) -> float:
        if not self.total_services:
            return 0.0
        return self.processed_services / self.total_services * 100


class PipelineStats(BaseModel):
    total_cost: float = 0.0
    total_tokens: int = 0
    average_tokens_per_service: float = 0.0
    average_processing_time_ms: float = 0.0
    throughput: float = Field(0.0, description="Registros por minuto.")


class PipelineRunRequest(BaseModel):
    mode: PipelineMode = PipelineMode.ALL
    record_ids: List[str] = Field(default_factory=list)
    dry_run: Optional[bool] = None
    batch_size: Optional[int] = Field(None, ge=1)

    model_config = {"extra": "forbid"}
