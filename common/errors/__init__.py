from .exceptions import (
    BaseError,
    AppError,
    AppValidationError,
    InvalidActionError,
    ConfigurationError,
    ExternalServiceError,
    NotFoundError,
    DimensionMismatchError,
    EmptyContentError,
    ContentTooLongError,
    InvalidEmbeddingError,
    EmbeddingGenerationFailedError,
    PipelineAlreadyRunningError,
    DocumentStoreError,
)

__all__ = [
    "BaseError",
    "AppError",
    "AppValidationError",
    "InvalidActionError",
    "ConfigurationError",
    "ExternalServiceError",
    "NotFoundError",
    "DimensionMismatchError",
    "EmptyContentError",
    "ContentTooLongError",
    "InvalidEmbeddingError",
    "EmbeddingGenerationFailedError",
    "PipelineAlreadyRunningError",
    "DocumentStoreError",
]
