"""
Modelos de datos para Embedding Service.
"""

from .payloads import (
    ContentSources,
    EmbeddingMetadata,
    RecordEmbedding,
    BatchEmbeddingError,
    BatchEmbeddingResult,
    QueryEmbeddingData,
    QueryEmbeddingMeta,
    QueryEmbeddingResult,
    JobStatus,
    JobProgress,
    JobMetadata,
    EmbeddingGenerationJob,
    GenerateEmbeddingPayload,
    GenerateBatchPayload,
    QueryEmbeddingPayload,
    CreateJobPayload,
    JobStatusPayload,
)
from .pipeline import (
    PipelineState,
    PipelineMode,
    PipelineConfig,
    PipelineError,
    PipelineProgress,
    PipelineStats,
    PipelineRunRequest,
)

__all__ = [
    'ContentSources',
    'EmbeddingMetadata',
    'RecordEmbedding',
    'BatchEmbeddingError',
    'BatchEmbeddingResult',
    'QueryEmbeddingData',
    'QueryEmbeddingMeta',
    'QueryEmbeddingResult',
    'JobStatus',
    'JobProgress',
    'JobMetadata',
    'EmbeddingGenerationJob',
    'GenerateEmbeddingPayload',
    'GenerateBatchPayload',
    'QueryEmbeddingPayload',
    'CreateJobPayload',
    'JobStatusPayload',
    'PipelineState',
    'PipelineMode',
    'PipelineConfig',
    'PipelineError',
    'PipelineProgress',
    'PipelineStats',
    'PipelineRunRequest',
]
