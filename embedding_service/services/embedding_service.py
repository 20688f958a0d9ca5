"""
Implementación del servicio principal de Embedding Service.

Este servicio extiende BaseService y orquesta la generación de embeddings
de registros del catálogo y de consultas, delegando la extracción de
contenido y la validación a sus componentes especializados.
"""

import asyncio
import math
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Set, Tuple, Union
from uuid import uuid4

from pydantic import ValidationError

from common.clients.document_store import DocumentStoreClient, Record
from common.config import EmbeddingServiceSettings
from common.errors.exceptions import (
    AppError,
    ConfigurationError,
    ContentTooLongError,
    EmbeddingGenerationFailedError,
    EmptyContentError,
    ExternalServiceError,
    InvalidActionError,
    InvalidEmbeddingError,
)
from common.models import DomainAction, ErrorDetail
from common.services import BaseService
from common.utils.performance_monitor import PerformanceMonitor

from ..clients.openai_client import EmbeddingProvider
from ..config.constants import CHARS_PER_TOKEN, HEALTH_CHECK_TEXT, SUPPORTED_EMBEDDING_MODELS
from ..handlers.validation_handler import ValidationHandler
from ..models.payloads import (
    BatchEmbeddingError,
    BatchEmbeddingResult,
    CreateJobPayload,
    EmbeddingGenerationJob,
    EmbeddingMetadata,
    GenerateBatchPayload,
    GenerateEmbeddingPayload,
    JobMetadata,
    JobProgress,
    JobStatus,
    JobStatusPayload,
    QueryEmbeddingData,
    QueryEmbeddingMeta,
    QueryEmbeddingPayload,
    QueryEmbeddingResult,
    RecordEmbedding,
)
from ..utils.content_extractor import ContentExtractor


ExistingEmbedding = Union[RecordEmbedding, EmbeddingMetadata, Dict[str, Any], None]


class EmbeddingService(BaseService):
    """
    Servicio principal para generación de embeddings.

    Maneja las acciones:
    - embedding.generate: Embedding de un registro
    - embedding.generate_batch: Embeddings de varios registros
    - embedding.generate_query: Embedding de una consulta de búsqueda
    - embedding.job.create: Job de generación en segundo plano
    - embedding.job.status: Estado de un job
    """

    def __init__(
        self,
        app_settings: EmbeddingServiceSettings,
        provider: EmbeddingProvider,
        document_store: Optional[DocumentStoreClient] = None,
        performance_monitor: Optional[PerformanceMonitor] = None,
        content_extractor: Optional[ContentExtractor] = None,
        validation_handler: Optional[ValidationHandler] = None,
    ):
        super().__init__(app_settings, performance_monitor)

        model_info = SUPPORTED_EMBEDDING_MODELS.get(app_settings.embedding_model)
        if model_info is None:
            raise ConfigurationError(f"Modelo de embeddings no soportado: {app_settings.embedding_model}")

        self.provider = provider
        self.document_store = document_store
        self.model = app_settings.embedding_model
        self.model_info = model_info
        self.max_tokens = min(app_settings.max_tokens, model_info.max_tokens)
        self.content_extractor = content_extractor or ContentExtractor()
        self.validation_handler = validation_handler or ValidationHandler(app_settings=app_settings)

        # Jobs en memoria: válido para un único proceso.
        self._jobs: Dict[str, EmbeddingGenerationJob] = {}
        self._job_tasks: Set[asyncio.Task] = set()

        self._logger.info(f"EmbeddingService inicializado con modelo {self.model} ({model_info.dimensions} dims)")

    # ------------------------------------------------------------------
    # Acciones
    # ------------------------------------------------------------------

    async def process_action(self, action: DomainAction) -> Optional[Dict[str, Any]]:
        """
        Procesa una DomainAction según su tipo.
        """
        self._logger.info(
            f"Procesando acción: {action.action_type} ({action.action_id})",
            extra={"action_id": str(action.action_id), "action_type": action.action_type}
        )

        try:
            if action.action_type == "embedding.generate":
                payload = GenerateEmbeddingPayload.model_validate(action.data)
                result = await self.generate_embedding(payload.record)
                return result.model_dump(mode="json")

            elif action.action_type == "embedding.generate_batch":
                payload = GenerateBatchPayload.model_validate(action.data)
                batch = await self.generate_batch_embeddings(payload.records)
                return batch.model_dump(mode="json")

            elif action.action_type == "embedding.generate_query":
                payload = QueryEmbeddingPayload.model_validate(action.data)
                result = await self.generate_query_embedding(payload.query)
                return result.model_dump(mode="json")

            elif action.action_type == "embedding.job.create":
                payload = CreateJobPayload.model_validate(action.data)
                job = await self.create_embedding_job(payload.record_ids)
                return job.model_dump(mode="json")

            elif action.action_type == "embedding.job.status":
                payload = JobStatusPayload.model_validate(action.data)
                job = self.get_embedding_job(payload.job_id)
                return job.model_dump(mode="json") if job else None

            else:
                self._logger.warning(f"Tipo de acción no soportado: {action.action_type}")
                raise InvalidActionError(
                    f"Acción '{action.action_type}' no es soportada por Embedding Service"
                )

        except ValidationError as e:
            self._logger.error(f"Error de validación en {action.action_type}: {e}")
            raise InvalidActionError(f"Error de validación en el payload: {str(e)}")

        except AppError:
            raise

        except Exception as e:
            self._logger.exception(f"Error inesperado procesando {action.action_type}")
            raise ExternalServiceError(f"Error interno en Embedding Service: {str(e)}", original_exception=e)

    # ------------------------------------------------------------------
    # Generación
    # ------------------------------------------------------------------

    @staticmethod
    def estimate_tokens(text: str) -> int:
        return math.ceil(len(text) / CHARS_PER_TOKEN)

    def estimate_cost(self, token_count: int) -> float:
        return token_count * self.model_info.cost_per_1k_tokens / 1000

    async def generate_embedding(self, record: Record) -> RecordEmbedding:
        """
        Genera el embedding de un registro del catálogo.

        Raises:
            EmptyContentError: El registro no tiene contenido indexable.
            ContentTooLongError: El contenido supera el máximo de tokens del modelo.
            InvalidEmbeddingError: El proveedor devolvió un vector inválido.
            EmbeddingGenerationFailedError: Falló la llamada al proveedor.
        """
        service_id = str(record.get("id", ""))
        timer = self.performance_monitor.start_timer()

        try:
            search_content = self.content_extractor.extract_searchable_content(record)
            if not search_content:
                raise EmptyContentError(f"No searchable content found for service {service_id}")

            estimated_tokens = self.estimate_tokens(search_content)
            if estimated_tokens > self.max_tokens:
                raise ContentTooLongError(estimated_tokens, self.max_tokens)

            try:
                vector, token_count = await self.provider.embed(search_content)
            except Exception as e:
                raise EmbeddingGenerationFailedError(
                    f"Failed to generate embedding for service {service_id}: {e}",
                    original_exception=e,
                )

            if not self.validation_handler.validate_embedding(vector, self.model_info.dimensions):
                raise InvalidEmbeddingError(f"Invalid embedding generated for service {service_id}")

        except Exception:
            self.performance_monitor.record_metric("embedding_generation_error", timer())
            raise

        token_count = token_count or estimated_tokens
        metadata = EmbeddingMetadata(
            model=self.model,
            version=self.app_settings.embedding_version,
            content_hash=self.content_extractor.generate_content_hash(search_content),
            token_count=token_count,
        )

        self.performance_monitor.record_metric("embedding_generation_time", timer())
        self.performance_monitor.record_metric("embedding_token_count", token_count)
        self._logger.debug(f"Embedding generado para {service_id}: {token_count} tokens")

        return RecordEmbedding(
            service_id=service_id,
            embedding=vector,
            metadata=metadata,
            search_content=search_content,
            content_sources=self.content_extractor.extract_content_sources(record),
        )

    async def _generate_guarded(
        self, record: Record, semaphore: asyncio.Semaphore
    ) -> Tuple[str, Optional[RecordEmbedding], Optional[str]]:
        service_id = str(record.get("id", ""))
        async with semaphore:
            try:
                return service_id, await self.generate_embedding(record), None
            except Exception as e:
                self._logger.warning(f"Fallo generando embedding para {service_id}: {e}")
                return service_id, None, str(e)

    async def generate_batch_embeddings(self, records: List[Record]) -> BatchEmbeddingResult:
        """
        Genera embeddings por lotes. Los fallos individuales se acumulan en
        `errors` y nunca interrumpen el lote.
        """
        timer = self.performance_monitor.start_timer()
        batch_size = self.app_settings.batch_size
        semaphore = asyncio.Semaphore(self.app_settings.max_concurrent_embeddings)
        result = BatchEmbeddingResult()

        batches = [records[i:i + batch_size] for i in range(0, len(records), batch_size)]
        for index, batch in enumerate(batches):
            self._logger.info(f"Procesando lote {index + 1}/{len(batches)} ({len(batch)} registros)")
            outcomes = await asyncio.gather(*(self._generate_guarded(r, semaphore) for r in batch))

            for service_id, embedding, error in outcomes:
                if embedding is not None:
                    result.embeddings[service_id] = embedding
                else:
                    result.errors.append(BatchEmbeddingError(service_id=service_id, error=error))

            if index < len(batches) - 1 and self.app_settings.batch_delay_seconds > 0:
                await asyncio.sleep(self.app_settings.batch_delay_seconds)

        self.performance_monitor.record_metric("batch_embedding_time", timer())
        self.performance_monitor.record_metric("batch_embedding_count", len(result.embeddings))
        self.performance_monitor.record_metric("batch_embedding_errors", len(result.errors))

        if result.errors:
            self._logger.warning(
                f"Lote completado con errores: {len(result.embeddings)} ok, {len(result.errors)} fallidos"
            )
        return result

    async def generate_query_embedding(self, query: Any) -> QueryEmbeddingResult:
        """
        Genera el embedding de una consulta. Los errores de validación y del
        proveedor se devuelven como resultado tipado.
        """
        meta = QueryEmbeddingMeta(request_id=f"query_{uuid4().hex[:12]}")

        validation = self.validation_handler.validate_search_query(query)
        if not validation.valid:
            return QueryEmbeddingResult(
                success=False,
                error=ErrorDetail(code="INVALID_QUERY", message=validation.error),
                metadata=meta,
            )

        timer = self.performance_monitor.start_timer()
        try:
            vector, token_count = await self.provider.embed(query)
            if not self.validation_handler.validate_embedding(vector, self.model_info.dimensions):
                raise InvalidEmbeddingError("Invalid query embedding generated")
        except Exception as e:
            self._logger.error(f"Error generando embedding de consulta: {e}")
            self.performance_monitor.record_metric("query_embedding_error", timer())
            return QueryEmbeddingResult(
                success=False,
                error=ErrorDetail(
                    code="EMBEDDING_GENERATION_FAILED",
                    message=f"Failed to generate query embedding: {e}",
                ),
                metadata=meta,
            )

        token_count = token_count or self.estimate_tokens(query)
        meta.token_count = token_count
        meta.cost = self.estimate_cost(token_count)
        self.performance_monitor.record_metric("query_embedding_time", timer())

        return QueryEmbeddingResult(
            success=True,
            data=QueryEmbeddingData(
                embedding=vector,
                metadata=EmbeddingMetadata(
                    model=self.model,
                    version=self.app_settings.embedding_version,
                    content_hash=self.content_extractor.generate_content_hash(query),
                    token_count=token_count,
                ),
            ),
            metadata=meta,
        )

    # ------------------------------------------------------------------
    # Detección de cambios
    # ------------------------------------------------------------------

    @staticmethod
    def _stored_hash(existing: ExistingEmbedding) -> Optional[str]:
        if existing is None:
            return None
        if isinstance(existing, RecordEmbedding):
            return existing.metadata.content_hash
        if isinstance(existing, EmbeddingMetadata):
            return existing.content_hash
        return existing.get("contentHash") or existing.get("content_hash")

    def needs_regeneration(self, record: Record, existing: ExistingEmbedding = None) -> bool:
        """
        True si no hay embedding previo o si el hash del contenido actual
        difiere del almacenado.
        """
        if existing is None:
            if not record.get("embedding"):
                return True
            existing = record.get("embeddingMetadata")

        stored_hash = self._stored_hash(existing)
        if not stored_hash:
            return True

        content = self.content_extractor.extract_searchable_content(record)
        return self.content_extractor.generate_content_hash(content) != stored_hash

    # ------------------------------------------------------------------
    # Jobs en segundo plano
    # ------------------------------------------------------------------

    async def create_embedding_job(self, record_ids: List[str]) -> EmbeddingGenerationJob:
        """
        Crea un job en estado `pending` y lanza su procesamiento en segundo plano.
        """
        if self.document_store is None:
            raise ConfigurationError("Se requiere un almacén de documentos para procesar jobs")

        estimated_cost = self.estimate_cost(len(record_ids) * self.app_settings.estimated_tokens_per_record)
        job = EmbeddingGenerationJob(
            job_id=f"job_{uuid4().hex}",
            record_ids=list(record_ids),
            progress=JobProgress(total=len(record_ids)),
            metadata=JobMetadata(
                model=self.model,
                version=self.app_settings.embedding_version,
                estimated_cost=estimated_cost,
            ),
        )
        self._jobs[job.job_id] = job

        if estimated_cost > self.app_settings.daily_budget:
            self._logger.warning(
                f"Job {job.job_id}: coste estimado ${estimated_cost:.4f} supera el presupuesto diario "
                f"${self.app_settings.daily_budget:.2f}"
            )

        snapshot = job.model_copy(deep=True)
        task = asyncio.create_task(self._process_embedding_job(job))
        self._job_tasks.add(task)
        task.add_done_callback(self._job_tasks.discard)

        self._logger.info(f"Job {job.job_id} creado para {len(record_ids)} registros")
        return snapshot

    def get_embedding_job(self, job_id: str) -> Optional[EmbeddingGenerationJob]:
        job = self._jobs.get(job_id)
        return job.model_copy(deep=True) if job else None

    async def _process_embedding_job(self, job: EmbeddingGenerationJob) -> None:
        job.status = JobStatus.PROCESSING
        chunk_size = self.app_settings.batch_processing_size
        total_tokens = 0

        try:
            for start in range(0, len(job.record_ids), chunk_size):
                chunk = job.record_ids[start:start + chunk_size]
                records = []
                for record_id in chunk:
                    record = await self.document_store.get(record_id)
                    if record is None:
                        self._logger.warning(f"Job {job.job_id}: registro {record_id} no encontrado")
                        job.progress.failed += 1
                        continue
                    records.append(record)

                batch = await self.generate_batch_embeddings(records)
                for service_id, embedding in batch.embeddings.items():
                    await self.document_store.update(service_id, embedding.to_record_fields())
                    total_tokens += embedding.metadata.token_count

                job.progress.completed += len(batch.embeddings)
                job.progress.failed += len(batch.errors)

            job.metadata.actual_cost = self.estimate_cost(total_tokens)
            job.status = JobStatus.COMPLETED
            self._logger.info(
                f"Job {job.job_id} completado: {job.progress.completed} ok, {job.progress.failed} fallidos"
            )
        except Exception as e:
            self._logger.exception(f"Job {job.job_id} fallido")
            job.status = JobStatus.FAILED
            job.error = ErrorDetail(
                code="JOB_PROCESSING_FAILED",
                message=str(e),
                details={"completed": job.progress.completed, "failed": job.progress.failed},
            )
        finally:
            job.metadata.end_time = datetime.now(timezone.utc)

    async def shutdown(self) -> None:
        """Cancela los jobs que sigan en curso."""
        for task in list(self._job_tasks):
            task.cancel()
        if self._job_tasks:
            await asyncio.gather(*self._job_tasks, return_exceptions=True)

    # ------------------------------------------------------------------
    # Salud y métricas
    # ------------------------------------------------------------------

    async def health_check(self) -> Dict[str, Any]:
        timer = self.performance_monitor.start_timer()
        try:
            vector, _ = await self.provider.embed(HEALTH_CHECK_TEXT)
        except Exception as e:
            self._logger.warning(f"Health check de embeddings fallido: {e}")
            return {"healthy": False, "message": f"Embedding service health check failed: {e}"}

        response_time = timer()
        healthy = self.validation_handler.validate_embedding(vector, self.model_info.dimensions)
        return {
            "healthy": healthy,
            "message": "Embedding service is healthy" if healthy else "Provider returned an invalid embedding",
            "details": {
                "model": self.model,
                "dimensions": len(vector) if isinstance(vector, list) else None,
                "response_time_ms": response_time,
                "active_jobs": len(self._job_tasks),
            },
        }

    def get_performance_metrics(self) -> Dict[str, Any]:
        return {name: stats.model_dump() for name, stats in self.performance_monitor.get_all_metrics().items()}

    def clear_performance_metrics(self) -> None:
        self.performance_monitor.clear_metrics()
