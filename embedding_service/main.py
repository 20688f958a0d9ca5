"""
Punto de entrada principal del Embedding Service.

Configura y ejecuta el servicio con FastAPI. El lifespan actúa como raíz
de composición: crea el cliente Redis, el almacén de documentos, el
monitor de rendimiento, el proveedor de embeddings, el servicio y el pipeline.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

import uvicorn
from fastapi import Depends, FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from common.clients import RedisManager, RedisDocumentStore
from common.errors.exceptions import (
    AppError,
    AppValidationError,
    NotFoundError,
    PipelineAlreadyRunningError,
)
from common.models import DomainAction
from common.utils import init_logging, PerformanceMonitor

from .clients import OpenAIClient
from .config.constants import EndpointPaths
from .config.settings import get_settings
from .models import CreateJobPayload, PipelineMode, PipelineRunRequest
from .services import EmbeddingService, EmbeddingPipeline, run_embedding_pipeline


# Configuración
settings = get_settings()
logger = logging.getLogger(__name__)


class QueryEmbeddingRequest(BaseModel):
    query: Any


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Gestiona el ciclo de vida de la aplicación.

    Inicializa recursos al inicio y los limpia al finalizar.
    """
    redis_manager: Optional[RedisManager] = None
    embedding_service: Optional[EmbeddingService] = None

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
        embedding_service = EmbeddingService(
            app_settings=settings,
            provider=OpenAIClient(
                api_key=settings.openai_api_key,
                timeout=settings.openai_timeout_seconds,
                max_retries=settings.openai_max_retries,
                model=settings.embedding_model,
                base_url=settings.openai_base_url,
            ),
            document_store=document_store,
            performance_monitor=performance_monitor,
        )
        pipeline = EmbeddingPipeline(settings, embedding_service, document_store)

        app.state.redis_manager = redis_manager
        app.state.embedding_service = embedding_service
        app.state.pipeline = pipeline
        app.state.pipeline_task = None

        yield

    finally:
        logger.info("Deteniendo Embedding Service...")

        pipeline_task = getattr(app.state, "pipeline_task", None)
        if pipeline_task and not pipeline_task.done():
            app.state.pipeline.stop()
            pipeline_task.cancel()
            try:
                await pipeline_task
            except asyncio.CancelledError:
                pass

        if embedding_service:
            await embedding_service.shutdown()

        if redis_manager:
            await redis_manager.close()

        logger.info("Embedding Service detenido completamente")


# Crear aplicación FastAPI
app = FastAPI(
    title=settings.service_name,
    description="Servicio de generación de embeddings del catálogo",
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

def get_embedding_service(request: Request) -> EmbeddingService:
    return request.app.state.embedding_service


def get_pipeline(request: Request) -> EmbeddingPipeline:
    return request.app.state.pipeline


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


@app.get(EndpointPaths.HEALTH_DETAILED)
async def detailed_health_check(pipeline: EmbeddingPipeline = Depends(get_pipeline)):
    """
    Health check detallado con estado de componentes.
    """
    pipeline_health = await pipeline.health_check()
    details = pipeline_health["details"]
    components = {
        "embedding_provider": {
            "status": "healthy" if details["embedding_service"].get("healthy") else "unhealthy",
            "message": details["embedding_service"].get("message"),
        },
        "document_store": {
            "status": "healthy" if details["document_store"]["healthy"] else "unhealthy",
            "message": details["document_store"]["message"],
        },
        "pipeline": {"status": "healthy", "state": details["state"]},
    }
    all_healthy = all(comp["status"] == "healthy" for comp in components.values())
    body = {
        "service": settings.service_name,
        "version": settings.service_version,
        "environment": settings.environment,
        "status": "healthy" if all_healthy else "degraded",
        "components": components,
    }
    return JSONResponse(status_code=200 if all_healthy else 503, content=body)


# --- Metrics Endpoints ---

@app.get(EndpointPaths.METRICS)
async def get_metrics(embedding_service: EmbeddingService = Depends(get_embedding_service)):
    """
    Obtiene métricas del servicio.
    """
    return {
        "service": settings.service_name,
        "metrics": embedding_service.get_performance_metrics(),
    }


# --- Embeddings y jobs ---

@app.post(EndpointPaths.QUERY_EMBED)
async def embed_query(
    body: QueryEmbeddingRequest,
    embedding_service: EmbeddingService = Depends(get_embedding_service),
):
    result = await embedding_service.process_action(
        DomainAction(action_type="embedding.generate_query", data={"query": body.query}, origin_service="api")
    )
    if result["success"]:
        status_code = status.HTTP_200_OK
    elif result["error"]["code"] == "INVALID_QUERY":
        status_code = status.HTTP_400_BAD_REQUEST
    else:
        status_code = status.HTTP_502_BAD_GATEWAY
    return JSONResponse(status_code=status_code, content=result)


@app.post(EndpointPaths.JOBS, status_code=status.HTTP_202_ACCEPTED)
async def create_job(
    body: CreateJobPayload,
    embedding_service: EmbeddingService = Depends(get_embedding_service),
):
    return await embedding_service.process_action(
        DomainAction(action_type="embedding.job.create", data=body.model_dump(), origin_service="api")
    )


@app.get(EndpointPaths.JOB_STATUS)
async def get_job(job_id: str, embedding_service: EmbeddingService = Depends(get_embedding_service)):
    job = await embedding_service.process_action(
        DomainAction(action_type="embedding.job.status", data={"job_id": job_id}, origin_service="api")
    )
    if job is None:
        raise NotFoundError(f"Job {job_id} no encontrado")
    return job


# --- Pipeline ---

async def _run_pipeline_in_background(pipeline: EmbeddingPipeline, body: PipelineRunRequest) -> None:
    try:
        await run_embedding_pipeline(
            pipeline, body.mode, record_ids=body.record_ids, dry_run=body.dry_run, batch_size=body.batch_size
        )
    except AppError as e:
        logger.error(f"Ejecución del pipeline fallida [{e.error_code}]: {e.message}")
    except Exception:
        logger.exception("Ejecución del pipeline fallida")


@app.post(EndpointPaths.PIPELINE_RUN, status_code=status.HTTP_202_ACCEPTED)
async def run_pipeline(
    body: PipelineRunRequest,
    request: Request,
    pipeline: EmbeddingPipeline = Depends(get_pipeline),
) -> Dict[str, Any]:
    # La tarea creada aún no ha marcado el pipeline como RUNNING.
    pending_task = getattr(request.app.state, "pipeline_task", None)
    if pipeline.is_running or (pending_task is not None and not pending_task.done()):
        raise PipelineAlreadyRunningError()
    if body.mode == PipelineMode.SPECIFIC and not body.record_ids:
        raise AppValidationError("El modo 'specific' requiere record_ids")

    request.app.state.pipeline_task = asyncio.create_task(_run_pipeline_in_background(pipeline, body))
    return {"accepted": True, "mode": body.mode.value}


@app.post(EndpointPaths.PIPELINE_STOP)
async def stop_pipeline(pipeline: EmbeddingPipeline = Depends(get_pipeline)):
    pipeline.stop()
    return {"stopping": pipeline.is_running, "state": pipeline.state.value}


@app.get(EndpointPaths.PIPELINE_PROGRESS)
async def pipeline_progress(pipeline: EmbeddingPipeline = Depends(get_pipeline)):
    return {
        "state": pipeline.state.value,
        "progress": pipeline.get_progress().model_dump(mode="json"),
        "stats": pipeline.get_stats().model_dump(),
    }


# --- API Info ---

@app.get("/")
async def root():
    """
    Información básica del servicio.
    """
    return {
        "service": settings.service_name,
        "version": settings.service_version,
        "description": "Embedding Service - Generación y mantenimiento de embeddings del catálogo",
        "endpoints": {
            "health": EndpointPaths.HEALTH,
            "health_detailed": EndpointPaths.HEALTH_DETAILED,
            "metrics": EndpointPaths.METRICS,
            "query_embedding": EndpointPaths.QUERY_EMBED,
            "jobs": EndpointPaths.JOBS,
            "pipeline": EndpointPaths.PIPELINE_RUN,
            "docs": "/docs",
        }
    }


if __name__ == "__main__":
    uvicorn.run(
        "embedding_service.main:app",
        host="0.0.0.0",
        port=settings.embedding_service_port,
        reload=False,
        log_level=settings.log_level.lower()
    )
