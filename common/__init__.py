"""
Módulo Común de la Aplicación (`common`)

Este paquete agrega configuración, modelos, clientes, excepciones y
utilidades compartidas entre el Embedding Service y el Query Service.
"""

# Configuracion
from .config import CommonAppSettings

# Modelos
from .models import (
    DomainAction,
    ErrorDetail,
    ApiResponse,
    ResponseMetadata,
)

# Handlers
from .handlers import BaseHandler

# Clients
from .clients import RedisManager, DocumentStoreClient, RedisDocumentStore, FieldFilter

# Services
from .services import BaseService

# Utils
from .utils import init_logging, PerformanceMonitor

# Excepciones
from .errors.exceptions import (
    BaseError,
    AppError,
    ConfigurationError,
    ExternalServiceError,
    InvalidActionError,
)

__all__ = [
    # Config
    "CommonAppSettings",
    # Models
    "DomainAction",
    "ErrorDetail",
    "ApiResponse",
    "ResponseMetadata",
    # Handlers
    "BaseHandler",
    # Clients
    "RedisManager",
    "DocumentStoreClient",
    "RedisDocumentStore",
    "FieldFilter",
    # Services
    "BaseService",
    # Utils
    "init_logging",
    "PerformanceMonitor",
    # Exceptions
    "BaseError",
    "AppError",
    "ConfigurationError",
    "ExternalServiceError",
    "InvalidActionError",
]
