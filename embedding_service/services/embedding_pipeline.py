"""
Pipeline de generación de embeddings sobre el almacén de documentos.

Recorre el catálogo (completo, por ids o solo los registros desactualizados),
genera los embeddings que faltan o cambiaron y los persiste en cada
registro. Solo puede haber una ejecución activa; `stop()` se respeta entre
lotes.
"""

import asyncio
import logging
import math
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Awaitable, Dict, List, Optional, Union

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    retry_if_not_exception_type,
    stop_after_attempt,
)

from common.clients.document_store import DocumentStoreClient, Record
from common.config import EmbeddingServiceSettings
from common.errors.exceptions import (
    AppValidationError,
    DocumentStoreError,
    NotFoundError,
    PipelineAlreadyRunningError,
)

from ..models.pipeline import (
    PipelineConfig,
    PipelineError,
    PipelineMode,
    PipelineProgress,
    PipelineState,
    PipelineStats,
)
from .embedding_service import EmbeddingService

# Errores por registro que se muestran en el resumen final.
MAX_REPORTED_ERRORS = 10

PipelineItem = Union[str, Record]


class EmbeddingPipeline:
    """
    Orquesta la generación de embeddings por lotes con reintentos,
    seguimiento de progreso y parada cooperativa.
    """

    def __init__(
        self,
        app_settings: EmbeddingServiceSettings,
        embedding_service: EmbeddingService,
        document_store: DocumentStoreClient,
        config: Optional[PipelineConfig] = None,
    ):
        self.app_settings = app_settings
        self.embedding_service = embedding_service
        self.document_store = document_store
        self.config = config or PipelineConfig.from_settings(app_settings)
        self._logger = logging.getLogger(f"{app_settings.service_name}.{self.__class__.__name__}")

        self._state = PipelineState.IDLE
        self._stop_requested = False
        self.progress = PipelineProgress()
        self._total_tokens = 0
        self._total_cost = 0.0
        self._processing_times_ms: List[float] = []
        self._end_time: Optional[datetime] = None

    # ------------------------------------------------------------------
    # Estado
    # ------------------------------------------------------------------

    @property
    def state(self) -> PipelineState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state == PipelineState.RUNNING

    def update_config(self, **overrides: Any) -> PipelineConfig:
        """Cambia la configuración entre ejecuciones."""
        if self.is_running:
            raise PipelineAlreadyRunningError()
        values = self.config.model_dump()
        values.update({k: v for k, v in overrides.items() if v is not None})
        self.config = PipelineConfig(**values)
        return self.config

    def stop(self) -> None:
        """Solicita una parada cooperativa; el lote en curso termina."""
        if self.is_running:
            self._logger.info("Parada del pipeline solicitada; se detendrá al terminar el lote actual")
        self._stop_requested = True

    def get_progress(self) -> PipelineProgress:
        return self.progress.model_copy(deep=True)

    def get_stats(self) -> PipelineStats:
        successful = self.progress.successful_embeddings
        end = self._end_time or datetime.now(timezone.utc)
        elapsed_minutes = (end - self.progress.start_time).total_seconds() / 60
        return PipelineStats(
            total_cost=self._total_cost,
            total_tokens=self._total_tokens,
            average_tokens_per_service=self._total_tokens / successful if successful else 0.0,
            average_processing_time_ms=(
                sum(self._processing_times_ms) / len(self._processing_times_ms)
                if self._processing_times_ms else 0.0
            ),
            throughput=self.progress.processed_services / elapsed_minutes if elapsed_minutes > 0 else 0.0,
        )

    def _reset(self) -> None:
        self._stop_requested = False
        self.progress = PipelineProgress()
        self._total_tokens = 0
        self._total_cost = 0.0
        self._processing_times_ms = []
        self._end_time = None

    async def _execute(self, label: str, runner: Callable[[], Awaitable[None]]) -> PipelineProgress:
        if self.is_running:
            raise PipelineAlreadyRunningError()

        self._reset()
        self._state = PipelineState.RUNNING
        self._logger.info(f"Iniciando pipeline ({label}){' [DRY RUN]' if self.config.dry_run else ''}")

        try:
            await runner()
        except Exception as e:
            self._state = PipelineState.FAILED
            self._logger.error(f"Pipeline fallido ({label}): {e}")
            raise
        else:
            self._state = PipelineState.COMPLETED
        finally:
            self._end_time = datetime.now(timezone.utc)
            self._log_final_stats()

        return self.progress

    # ------------------------------------------------------------------
    # Modos de ejecución
    # ------------------------------------------------------------------

    async def process_all_services(self) -> PipelineProgress:
        return await self._execute("all", self._run_all)

    async def process_services_by_id(self, service_ids: List[str]) -> PipelineProgress:
        return await self._execute("specific", lambda: self._run_by_ids(service_ids))

    async def update_outdated_embeddings(self) -> PipelineProgress:
        return await self._execute("outdated", self._run_outdated)

    async def _run_all(self) -> None:
        batch_size = self.config.batch_size
        total = await self.document_store.count()
        self.progress.total_services = total
        self.progress.total_batches = math.ceil(total / batch_size) if total else 0
        self._logger.info(f"Procesando {total} registros en {self.progress.total_batches} lotes")

        cursor: Optional[str] = None
        while not self._stop_requested:
            records, cursor = await self.document_store.scan(batch_size, cursor)
            # Una página puede quedar vacía si se borraron registros aún indexados.
            if records:
                self.progress.current_batch += 1
                await self._process_batch(records)
                self._log_progress()

            if cursor is None:
                break
            await self._inter_batch_delay()

        if self._stop_requested:
            self._logger.info("Pipeline detenido por solicitud del operador")

    async def _run_by_ids(self, service_ids: List[str]) -> None:
        batch_size = self.config.batch_size
        batches = [service_ids[i:i + batch_size] for i in range(0, len(service_ids), batch_size)]
        self.progress.total_services = len(service_ids)
        self.progress.total_batches = len(batches)
        self._logger.info(f"Procesando {len(service_ids)} registros específicos en {len(batches)} lotes")

        for index, batch in enumerate(batches):
            if self._stop_requested:
                self._logger.info("Pipeline detenido por solicitud del operador")
                break

            self.progress.current_batch = index + 1
            await self._process_batch(batch)
            self._log_progress()

            if index < len(batches) - 1:
                await self._inter_batch_delay()

    async def _run_outdated(self) -> None:
        outdated = await self._find_outdated_services()
        self._logger.info(f"{len(outdated)} registros con embeddings desactualizados")
        if outdated:
            await self._run_by_ids(outdated)

    async def _find_outdated_services(self) -> List[str]:
        outdated: List[str] = []
        cursor: Optional[str] = None
        while True:
            records, cursor = await self.document_store.scan(self.config.batch_size, cursor)
            outdated.extend(
                str(record["id"]) for record in records
                if self.embedding_service.needs_regeneration(record)
            )
            if cursor is None:
                break
        return outdated

    async def _inter_batch_delay(self) -> None:
        if self.config.batch_delay_seconds > 0:
            await asyncio.sleep(self.config.batch_delay_seconds)

    # ------------------------------------------------------------------
    # Procesamiento por lote y por registro
    # ------------------------------------------------------------------

    async def _process_batch(self, items: List[PipelineItem]) -> None:
        semaphore = asyncio.Semaphore(self.config.max_concurrent_batches)

        async def guarded(item: PipelineItem) -> None:
            async with semaphore:
                await self._process_with_retries(item)

        outcomes = await asyncio.gather(*(guarded(item) for item in items), return_exceptions=True)
        for outcome in outcomes:
            if isinstance(outcome, BaseException):
                raise outcome

    async def _process_with_retries(self, item: PipelineItem) -> None:
        service_id = item if isinstance(item, str) else str(item.get("id"))
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.config.retry_attempts),
            wait=self.config.wait_strategy(),
            retry=retry_if_exception_type(Exception) & retry_if_not_exception_type(DocumentStoreError),
            before_sleep=lambda retry_state: self._log_retry(service_id, retry_state),
            reraise=True,
        )

        try:
            await retrying(self._process_service, item)
        except DocumentStoreError:
            raise
        except Exception as e:
            self.progress.failed_embeddings += 1
            self.progress.processed_services += 1
            self.progress.errors.append(PipelineError(service_id=service_id, error=str(e)))
            self._logger.error(f"Registro {service_id} fallido tras {self.config.retry_attempts} intentos: {e}")

    def _log_retry(self, service_id: str, retry_state: RetryCallState) -> None:
        delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
        self._logger.warning(
            f"Intento {retry_state.attempt_number}/{self.config.retry_attempts} fallido para {service_id}: "
            f"{retry_state.outcome.exception()}. Reintentando en {delay:.1f}s"
        )

    async def _process_service(self, item: PipelineItem) -> None:
        if isinstance(item, str):
            record = await self.document_store.get(item)
            if record is None:
                raise NotFoundError(f"Service {item} not found")
        else:
            record = item
        service_id = str(record.get("id"))

        if record.get("embedding") and not self.embedding_service.needs_regeneration(record):
            self._logger.debug(f"Registro {service_id} omitido (embedding al día)")
            self.progress.skipped_services += 1
            self.progress.processed_services += 1
            return

        if self.config.dry_run:
            self._logger.info(f"[DRY RUN] Se generaría el embedding del registro {service_id}")
            self.progress.successful_embeddings += 1
            self.progress.processed_services += 1
            return

        timer = self.embedding_service.performance_monitor.start_timer()
        embedding = await self.embedding_service.generate_embedding(record)
        await self.document_store.update(service_id, embedding.to_record_fields())

        token_count = embedding.metadata.token_count
        self._total_tokens += token_count
        self._total_cost += self.embedding_service.estimate_cost(token_count)
        self._processing_times_ms.append(timer())
        self.progress.successful_embeddings += 1
        self.progress.processed_services += 1
        self._logger.info(f"Embedding generado para el registro {service_id} ({token_count} tokens)")

    # ------------------------------------------------------------------
    # Logging y salud
    # ------------------------------------------------------------------

    def _log_progress(self) -> None:
        if not self.config.enable_progress_tracking:
            return

        progress = self.progress
        if progress.processed_services and progress.total_services:
            elapsed = (datetime.now(timezone.utc) - progress.start_time).total_seconds()
            remaining = max(progress.total_services - progress.processed_services, 0)
            seconds_left = elapsed / progress.processed_services * remaining
            progress.estimated_completion = datetime.now(timezone.utc) + timedelta(seconds=seconds_left)

        eta = progress.estimated_completion.isoformat() if progress.estimated_completion else "n/d"
        self._logger.info(
            f"Progreso: {progress.percentage:.1f}% ({progress.processed_services}/{progress.total_services}) "
            f"lote {progress.current_batch}/{progress.total_batches} - "
            f"ok {progress.successful_embeddings}, fallidos {progress.failed_embeddings}, "
            f"omitidos {progress.skipped_services} - ETA {eta}"
        )

    def _log_final_stats(self) -> None:
        stats = self.get_stats()
        progress = self.progress
        self._logger.info(
            f"Pipeline finalizado ({self._state.value}): {progress.processed_services} procesados, "
            f"{progress.successful_embeddings} ok, {progress.failed_embeddings} fallidos, "
            f"{progress.skipped_services} omitidos. Tokens: {stats.total_tokens}, "
            f"coste: ${stats.total_cost:.6f}, throughput: {stats.throughput:.1f}/min"
        )
        for error in progress.errors[:MAX_REPORTED_ERRORS]:
            self._logger.warning(f"  - {error.service_id}: {error.error}")
        if len(progress.errors) > MAX_REPORTED_ERRORS:
            self._logger.warning(f"  ... y {len(progress.errors) - MAX_REPORTED_ERRORS} errores más")

    async def health_check(self) -> Dict[str, Any]:
        embedding_health = await self.embedding_service.health_check()
        try:
            store_healthy = await self.document_store.ping()
            store_message = "ok"
        except DocumentStoreError as e:
            store_healthy = False
            store_message = str(e)

        healthy = bool(embedding_health.get("healthy")) and store_healthy
        return {
            "healthy": healthy,
            "message": "Embedding pipeline is healthy" if healthy else "Embedding pipeline is degraded",
            "details": {
                "state": self._state.value,
                "embedding_service": embedding_health,
                "document_store": {"healthy": store_healthy, "message": store_message},
            },
        }


async def run_embedding_pipeline(
    pipeline: EmbeddingPipeline,
    mode: PipelineMode,
    record_ids: Optional[List[str]] = None,
    dry_run: Optional[bool] = None,
    batch_size: Optional[int] = None,
) -> PipelineProgress:
    """
    Ejecuta el pipeline en el modo indicado (all, specific u outdated).
    """
    mode = PipelineMode(mode)
    if mode == PipelineMode.SPECIFIC and not record_ids:
        raise AppValidationError("El modo 'specific' requiere al menos un id de registro")

    base_config = pipeline.config
    pipeline.update_config(dry_run=dry_run, batch_size=batch_size)
    try:
        if mode == PipelineMode.ALL:
            return await pipeline.process_all_services()
        if mode == PipelineMode.SPECIFIC:
            return await pipeline.process_services_by_id(record_ids)
        return await pipeline.update_outdated_embeddings()
    finally:
        pipeline.config = base_config
