"""
Excepciones comunes para la librería common.
"""

from typing import Any, Dict, Optional


class BaseError(Exception):
    """Clase base para todas las excepciones personalizadas del proyecto."""
    def __init__(self, message: str, original_exception: Exception = None):
        super().__init__(message)
        self.message = message
        self.original_exception = original_exception


class AppError(BaseError):
    """
    Clase base para errores de la aplicación que se pueden mapear a respuestas HTTP.
    """
    def __init__(
        self,
        message: str,
        status_code: int = 500,
        error_code: str = "INTERNAL_ERROR",
        original_exception: Exception = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, original_exception)
        self.status_code = status_code
        self.error_code = error_code
        self.details = details or {}

    def to_error_dict(self) -> Dict[str, Any]:
        """Cuerpo de error estándar {code, message, details}."""
        details = dict(self.details)
        if self.original_exception is not None and "cause" not in details:
            details["cause"] = str(self.original_exception)
        return {"code": self.error_code, "message": self.message, "details": details or None}


# --- Application-specific Errors ---

class AppValidationError(AppError):
    """Excepción para errores de validación de datos de la aplicación."""
    def __init__(self, message="Error de validación", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, status_code=400, error_code="VALIDATION_ERROR", details=details)

class InvalidActionError(AppError):
    """Excepción para acciones inválidas o no soportadas."""
    def __init__(self, message="Acción inválida o no soportada"):
        super().__init__(message, status_code=400, error_code="INVALID_ACTION")

class ConfigurationError(AppError):
    """Errores relacionados con la configuración del servicio o componente."""
    def __init__(self, message="Error de configuración"):
        super().__init__(message, status_code=500, error_code="CONFIGURATION_ERROR")

class ExternalServiceError(AppError):
    """Errores originados en un servicio externo (ej. API de un tercero)."""
    def __init__(self, message="Error en servicio externo", status_code=502, error_code="EXTERNAL_SERVICE_ERROR", original_exception: Exception = None):
        super().__init__(message, status_code=status_code, error_code=error_code, original_exception=original_exception)

class NotFoundError(AppError):
    """El recurso solicitado no existe."""
    def __init__(self, message="Not Found"):
        super().__init__(message, status_code=404, error_code="NOT_FOUND")


# --- Búsqueda semántica y embeddings ---

class DimensionMismatchError(AppError):
    """Dos vectores comparados no tienen la misma dimensión."""
    def __init__(self, len_a: int, len_b: int):
        super().__init__(
            f"Vectors must have the same dimensions ({len_a} != {len_b})",
            status_code=400,
            error_code="DIMENSION_MISMATCH",
            details={"len_a": len_a, "len_b": len_b},
        )

class EmptyContentError(AppError):
    """El registro no tiene contenido indexable."""
    def __init__(self, message="No searchable content found"):
        super().__init__(message, status_code=422, error_code="EMPTY_CONTENT")

class ContentTooLongError(AppError):
    """El contenido supera el máximo de tokens del modelo."""
    def __init__(self, token_count: int, max_tokens: int):
        super().__init__(
            f"Content too long: {token_count} tokens (max: {max_tokens})",
            status_code=422,
            error_code="CONTENT_TOO_LONG",
            details={"token_count": token_count, "max_tokens": max_tokens},
        )

class InvalidEmbeddingError(AppError):
    """El vector devuelto por el proveedor no es válido."""
    def __init__(self, message="Invalid embedding generated"):
        super().__init__(message, status_code=502, error_code="INVALID_EMBEDDING")

class EmbeddingGenerationFailedError(AppError):
    """Fallo al generar el embedding de un registro; conserva la causa."""
    def __init__(self, message: str, original_exception: Exception = None):
        super().__init__(
            message,
            status_code=502,
            error_code="EMBEDDING_GENERATION_FAILED",
            original_exception=original_exception,
        )

class PipelineAlreadyRunningError(AppError):
    """Ya existe una ejecución activa del pipeline."""
    def __init__(self, message="Pipeline is already running"):
        super().__init__(message, status_code=409, error_code="ALREADY_RUNNING")


# --- Infrastructure Errors ---

class DocumentStoreError(AppError):
    """El almacén de documentos no está disponible o falló una operación."""
    def __init__(self, message="Document store unavailable", original_exception: Exception = None):
        super().__init__(message, status_code=503, error_code="DOCUMENT_STORE_ERROR", original_exception=original_exception)
