"""
Punto de entrada principal del Query Service.

Configura y ejecuta el servicio de búsqueda semántica con FastAPI. El
lifespan actúa como raíz de composición: crea el cliente Redis, el almacén
de documentos, el monitor de rendimiento, la caché de resultados, el
servicio de embeddings y el servicio de búsqueda.
"""

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional
from uuid import uuid4

import uvicorn
from fastapi import Depends, FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from common.clients import RedisManager, RedisDocumentStore
from common.errors.exceptions import AppError
from common.models import ErrorDetail
from common.models.actions import ResponseMetadata
from common.utils import init_logging, PerformanceMonitor

from embedding_service.clients import OpenAIClient
from embedding_service.config.settings import get_settings as get_embedding_settings
from embedding_service.handlers import ValidationHandler
from embedding_service.services import EmbeddingService

from .config.constants import EndpointPaths
from .config.settings import get_settings
from .models import SearchQuery, SemanticSearchApiResponse
from .services import VectorSearchService
from .utils import SearchCacheManager


# Configuración
settings = get_settings()
logger = logging.getLogger(__name__)


async def _sweep_cache_periodically(cache_manager: SearchCacheManager, interval_seconds: int) -> None:
    while True:
        await asyncio.sleep(interval_seconds)
        removed = await cache_manager.sweep_expired()
        if removed:
            logger.debug(f"Entradas de caché caducadas eliminadas: {removed}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Gestiona el ciclo de vida de la aplicación.

    Inicializa recursos al inicio y los limpia al finalizar.
    """
    redis_manager: Optional[RedisManager] = None
    embedding_service: Optional[EmbeddingService] = None
    sweep_task: Optional[asyncio.Task] = None

    try:
        init_logging(
            log_level=settings.log_level,
            service_name=settings.service_name
        )
        logger.info(f"Iniciando {settings.service_name} v{settings.service_version}")

        redis_manager = RedisManager(settings=settings)
        redis_conn = await redis_manager.get_client()
        logger.info("Redis Manager inicializado")

        document_store = RedisDocumentStore(redis_conn, prefix=settings.document_store_prefix)
        performance_monitor = PerformanceMonitor()
        cache_manager = SearchCacheManager.from_settings(
            settings, redis_conn=redis_conn if settings.cache_backend == "redis" else None
        )

        embedding_settings = get_embedding_settings()
        embedding_service = EmbeddingService(
            app_settings=embedding_settings,
            provider=OpenAIClient(
                api_key=embedding_settings.openai_api_key,
                timeout=embedding_settings.openai_timeout_seconds,
                max_retries=embedding_settings.openai_max_retries,
                model=embedding_settings.embedding_model,
                base_url=embedding_settings.openai_base_url,
            ),
            document_store=document_store,
            performance_monitor=performance_monitor,
        )

        app.state.redis_manager = redis_manager
        app.state.embedding_service = embedding_service
        app.state.search_service = VectorSearchService(
            app_settings=settings,
            embedding_service=embedding_service,
            document_store=document_store,
            cache_manager=cache_manager,
            performance_monitor=performance_monitor,
        )
        app.state.validation_handler = ValidationHandler(
            app_settings=settings,
            query_max_length=settings.query_max_length,
            max_limit=settings.max_limit,
        )

        if cache_manager.enabled and cache_manager.backend == "memory":
            sweep_task = asyncio.create_task(
                _sweep_cache_periodically(cache_manager, settings.cache_ttl_seconds)
            )

        yield

    finally:
        logger.info("Deteniendo Query Service...")

        if sweep_task:
            sweep_task.cancel()
            try:
                await sweep_task
            except asyncio.CancelledError:
                pass

        if embedding_service:
            await embedding_service.shutdown()

        if redis_manager:
            await redis_manager.close()

        logger.info("Query Service detenido completamente")


# Crear aplicación FastAPI
app = FastAPI(
    title=settings.service_name,
    description="Servicio de búsqueda semántica del catálogo",
    version=settings.service_version,
    lifespan=lifespan
)

# Configurar CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    return JSONResponse(status_code=exc.status_code, content={"success": False, "error": exc.to_error_dict()})


# --- Dependencias ---

def get_search_service(request: Request) -> VectorSearchService:
    return request.app.state.search_service


def get_validation_handler(request: Request) -> ValidationHandler:
    return request.app.state.validation_handler


# Estado HTTP de cada código de error del envelope de búsqueda.
SEARCH_ERROR_STATUS = {
    "INVALID_QUERY": status.HTTP_400_BAD_REQUEST,
    "EMBEDDING_FAILED": status.HTTP_502_BAD_GATEWAY,
    "SEARCH_FAILED": status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def _error_envelope(status_code: int, code: str, message: str, details: Optional[Dict[str, Any]] = None):
    body = SemanticSearchApiResponse(
        success=False,
        error=ErrorDetail(code=code, message=message, details=details),
        metadata=ResponseMetadata(request_id=f"search_{int(time.time() * 1000)}_{uuid4().hex[:7]}"),
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


# --- Health Check Endpoints ---

@app.get(EndpointPaths.HEALTH)
async def health_check():
    """
    Health check básico del servicio.
    """
    return {
        "status": "healthy",
        "service": settings.service_name,
        "version": settings.service_version,
        "environment": settings.environment
    }


@app.get(EndpointPaths.SEMANTIC_SEARCH_HEALTH)
async def semantic_search_health(search_service: VectorSearchService = Depends(get_search_service)):
    """
    Ejecuta una búsqueda de prueba y devuelve 503 si falla.
    """
    try:
        health = await search_service.health_check()
    except Exception as e:
        logger.error(f"Health check de búsqueda fallido: {e}")
        health = {"healthy": False, "message": "Service unavailable"}
    return JSONResponse(
        status_code=status.HTTP_200_OK if health["healthy"] else status.HTTP_503_SERVICE_UNAVAILABLE,
        content=health,
    )


# --- Metrics Endpoints ---

@app.get(EndpointPaths.METRICS)
async def get_metrics(search_service: VectorSearchService = Depends(get_search_service)):
    """
    Obtiene métricas del servicio.
    """
    return {
        "service": settings.service_name,
        "metrics": search_service.get_performance_metrics(),
    }


# --- Búsqueda semántica ---

@app.post(EndpointPaths.SEMANTIC_SEARCH)
async def semantic_search(
    request: Request,
    search_service: VectorSearchService = Depends(get_search_service),
    validation_handler: ValidationHandler = Depends(get_validation_handler),
):
    try:
        body = await request.json()
    except ValueError:
        return _error_envelope(status.HTTP_400_BAD_REQUEST, "INVALID_JSON", "Invalid JSON in request body")

    validation = validation_handler.validate_search_request(body)
    if not validation.valid:
        return _error_envelope(
            status.HTTP_400_BAD_REQUEST, "VALIDATION_ERROR", validation.error, validation.details
        )

    try:
        search_query = SearchQuery.model_validate(body)
    except ValidationError as e:
        return _error_envelope(
            status.HTTP_400_BAD_REQUEST,
            "VALIDATION_ERROR",
            "Invalid search request",
            {"errors": [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()]},
        )

    result = await search_service.search(search_query)
    if result.success:
        status_code = status.HTTP_200_OK
    else:
        status_code = SEARCH_ERROR_STATUS.get(result.error.code, status.HTTP_500_INTERNAL_SERVER_ERROR)
    return JSONResponse(
        status_code=status_code,
        content=result.model_dump(mode="json"),
    )


@app.get(EndpointPaths.SEMANTIC_SEARCH)
async def semantic_search_info():
    return {
        "name": "Semantic Search API",
        "version": settings.service_version,
        "endpoints": {
            f"POST {EndpointPaths.SEMANTIC_SEARCH}": "Perform semantic search",
            f"GET {EndpointPaths.SEMANTIC_SEARCH_HEALTH}": "Health check",
            f"DELETE {EndpointPaths.SEMANTIC_SEARCH_CACHE}": "Clear search cache",
        },
    }


@app.delete(EndpointPaths.SEMANTIC_SEARCH_CACHE)
async def clear_search_cache(search_service: VectorSearchService = Depends(get_search_service)):
    removed = await search_service.clear_cache()
    return {"cleared": removed}


# --- API Info ---

@app.get("/")
async def root():
    """
    Información básica del servicio.
    """
    return {
        "service": settings.service_name,
        "version": settings.service_version,
        "description": "Query Service - Búsqueda semántica e híbrida sobre el catálogo",
        "endpoints": {
            "health": EndpointPaths.HEALTH,
            "metrics": EndpointPaths.METRICS,
            "search": EndpointPaths.SEMANTIC_SEARCH,
            "search_health": EndpointPaths.SEMANTIC_SEARCH_HEALTH,
            "docs": "/docs",
        }
    }


if __name__ == "__main__":
    uvicorn.run(
        "query_service.main:app",
        host="0.0.0.0",
        port=settings.query_service_port,
        reload=False,
        log_level=settings.log_level.lower()
    )
