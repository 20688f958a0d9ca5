"""
Pruebas del pipeline de embeddings: modos de ejecución, reintentos,
dry run, parada cooperativa y ejecución exclusiva.
"""

import asyncio
from datetime import datetime, timezone

import pytest
from tenacity import AsyncRetrying, RetryCallState

from common.clients import RedisDocumentStore
from common.errors.exceptions import AppValidationError, DocumentStoreError, PipelineAlreadyRunningError
from embedding_service.models import PipelineConfig, PipelineMode, PipelineState
from embedding_service.services import EmbeddingPipeline, EmbeddingService, run_embedding_pipeline

from conftest import FakeEmbeddingProvider, make_record


def build_pipeline(settings, provider, document_store, **config) -> EmbeddingPipeline:
    service = EmbeddingService(app_settings=settings, provider=provider, document_store=document_store)
    pipeline_config = PipelineConfig.from_settings(settings, **config)
    return EmbeddingPipeline(settings, service, document_store, config=pipeline_config)


async def with_current_embedding(service: EmbeddingService, record):
    generated = await service.generate_embedding(record)
    record.update(generated.to_record_fields())
    return record


class BlockingProvider(FakeEmbeddingProvider):
    """Proveedor que espera una señal antes de responder."""

    def __init__(self):
        super().__init__()
        self.started = asyncio.Event()
        self.release = asyncio.Event()

    async def embed(self, text):
        self.started.set()
        await self.release.wait()
        return await super().embed(text)


def retry_waits(config: PipelineConfig, attempts=(1, 2, 3)):
    wait = config.wait_strategy()
    state = RetryCallState(retry_object=AsyncRetrying(), fn=None, args=(), kwargs={})
    waits = []
    for attempt in attempts:
        state.attempt_number = attempt
        waits.append(wait(state))
    return waits


def test_retry_wait_strategies():
    linear = PipelineConfig(retry_base_delay_seconds=1.0)
    exponential = PipelineConfig(retry_base_delay_seconds=1.0, backoff_strategy="exponential")
    immediate = PipelineConfig(retry_base_delay_seconds=0)

    assert retry_waits(linear) == [1.0, 2.0, 3.0]
    assert retry_waits(exponential) == [1.0, 2.0, 4.0]
    assert retry_waits(immediate) == [0, 0, 0]


def test_config_from_settings_applies_overrides(embedding_settings):
    config = PipelineConfig.from_settings(embedding_settings, batch_size=3, dry_run=None)

    assert config.batch_size == 3
    assert config.dry_run is False
    assert config.retry_attempts == embedding_settings.pipeline_retry_attempts


async def test_process_all_generates_and_persists(embedding_settings, provider, document_store):
    for record_id in ("1", "2", "3"):
        document_store.add(make_record(record_id))
    pipeline = build_pipeline(embedding_settings, provider, document_store, batch_size=2)

    progress = await pipeline.process_all_services()

    assert pipeline.state == PipelineState.COMPLETED
    assert progress.total_services == 3
    assert progress.total_batches == 2
    assert progress.processed_services == 3
    assert progress.successful_embeddings == 3
    assert progress.percentage == 100
    assert all("embedding" in record for record in document_store.records.values())

    stats = pipeline.get_stats()
    assert stats.total_tokens > 0
    assert stats.total_cost > 0
    assert stats.average_tokens_per_service == stats.total_tokens / 3


async def test_up_to_date_records_are_skipped(embedding_settings, provider, document_store):
    pipeline = build_pipeline(embedding_settings, provider, document_store)
    document_store.add(await with_current_embedding(pipeline.embedding_service, make_record("1")))
    document_store.add(make_record("2"))
    provider.calls.clear()

    progress = await pipeline.process_all_services()

    assert progress.skipped_services == 1
    assert progress.successful_embeddings == 1
    assert len(provider.calls) == 1
    assert [record_id for record_id, _ in document_store.updates] == ["2"]


async def test_dry_run_does_not_write(embedding_settings, provider, document_store):
    document_store.add(make_record("1"))
    pipeline = build_pipeline(embedding_settings, provider, document_store, dry_run=True)

    progress = await pipeline.process_all_services()

    assert progress.successful_embeddings == 1
    assert provider.calls == []
    assert document_store.updates == []


async def test_transient_failures_are_retried(embedding_settings, document_store):
    document_store.add(make_record("1"))
    provider = FakeEmbeddingProvider(fail_times=2)
    pipeline = build_pipeline(embedding_settings, provider, document_store, retry_attempts=3)

    progress = await pipeline.process_all_services()

    assert progress.successful_embeddings == 1
    assert progress.failed_embeddings == 0
    assert len(provider.calls) == 3


async def test_exhausted_retries_are_recorded(embedding_settings, document_store):
    document_store.add(make_record("1"))
    document_store.add(make_record("2"))
    provider = FakeEmbeddingProvider(fail_when=lambda text: "processing ai 1" in text)
    pipeline = build_pipeline(embedding_settings, provider, document_store, retry_attempts=2)

    progress = await pipeline.process_all_services()

    assert pipeline.state == PipelineState.COMPLETED
    assert progress.failed_embeddings == 1
    assert progress.successful_embeddings == 1
    assert [error.service_id for error in progress.errors] == ["1"]


async def test_empty_page_does_not_end_the_run(embedding_settings, provider, fake_redis):
    store = RedisDocumentStore(fake_redis, prefix="catalog:services")
    for index in range(3):
        record = make_record(str(index))
        record["createdAt"] = datetime(2024, 1, index + 1, tzinfo=timezone.utc)
        await store.save(record)
    # Registro indexado cuyo JSON ya no existe: la primera página llega vacía.
    del fake_redis.data["catalog:services:2"]
    pipeline = build_pipeline(embedding_settings, provider, store, batch_size=1)

    progress = await pipeline.process_all_services()

    assert progress.successful_embeddings == 2
    assert "embedding" in await store.get("1")
    assert "embedding" in await store.get("0")


async def test_store_errors_are_not_retried(embedding_settings, provider, document_store, monkeypatch):
    document_store.add(make_record("1"))
    pipeline = build_pipeline(embedding_settings, provider, document_store, retry_attempts=3)

    async def failing_update(service_id, fields):
        raise DocumentStoreError("Document store unavailable")

    monkeypatch.setattr(document_store, "update", failing_update)

    with pytest.raises(DocumentStoreError):
        await pipeline.process_all_services()

    assert pipeline.state == PipelineState.FAILED
    assert len(provider.calls) == 1
    assert pipeline.get_progress().failed_embeddings == 0


async def test_missing_ids_fail_without_aborting(embedding_settings, provider, document_store):
    document_store.add(make_record("1"))
    pipeline = build_pipeline(embedding_settings, provider, document_store, retry_attempts=1)

    progress = await pipeline.process_services_by_id(["1", "ghost"])

    assert progress.successful_embeddings == 1
    assert progress.failed_embeddings == 1
    assert progress.errors[0].service_id == "ghost"


async def test_stop_is_honoured_between_batches(embedding_settings, document_store):
    for record_id in ("1", "2", "3"):
        document_store.add(make_record(record_id))

    pipeline = None

    def stop_after_first(_text):
        pipeline.stop()
        return False

    provider = FakeEmbeddingProvider(fail_when=stop_after_first)
    pipeline = build_pipeline(embedding_settings, provider, document_store, batch_size=1)

    progress = await pipeline.process_all_services()

    assert progress.processed_services == 1
    assert progress.current_batch == 1
    assert pipeline.state == PipelineState.COMPLETED


async def test_concurrent_run_is_rejected(embedding_settings, document_store):
    document_store.add(make_record("1"))
    provider = BlockingProvider()
    pipeline = build_pipeline(embedding_settings, provider, document_store)

    first_run = asyncio.create_task(pipeline.process_all_services())
    await provider.started.wait()

    assert pipeline.is_running
    with pytest.raises(PipelineAlreadyRunningError):
        await pipeline.process_all_services()
    with pytest.raises(PipelineAlreadyRunningError):
        pipeline.update_config(batch_size=5)

    provider.release.set()
    progress = await first_run
    assert progress.successful_embeddings == 1


async def test_store_failure_fails_the_run(embedding_settings, provider, document_store):
    document_store.unavailable = True
    pipeline = build_pipeline(embedding_settings, provider, document_store)

    with pytest.raises(DocumentStoreError):
        await pipeline.process_all_services()

    assert pipeline.state == PipelineState.FAILED


async def test_outdated_mode_only_processes_stale_records(embedding_settings, provider, document_store):
    pipeline = build_pipeline(embedding_settings, provider, document_store)
    document_store.add(await with_current_embedding(pipeline.embedding_service, make_record("fresh")))
    stale = await with_current_embedding(pipeline.embedding_service, make_record("stale"))
    stale["description"] = "Rewritten description for a service whose content changed"
    document_store.add(stale)
    document_store.add(make_record("new"))

    progress = await pipeline.update_outdated_embeddings()

    assert progress.total_services == 2
    assert sorted(record_id for record_id, _ in document_store.updates) == ["new", "stale"]


async def test_run_specific_requires_ids(embedding_settings, provider, document_store):
    pipeline = build_pipeline(embedding_settings, provider, document_store)

    with pytest.raises(AppValidationError):
        await run_embedding_pipeline(pipeline, PipelineMode.SPECIFIC, record_ids=[])


async def test_run_overrides_do_not_persist(embedding_settings, provider, document_store):
    document_store.add(make_record("1"))
    pipeline = build_pipeline(embedding_settings, provider, document_store)

    progress = await run_embedding_pipeline(pipeline, "all", dry_run=True, batch_size=5)

    assert progress.successful_embeddings == 1
    assert document_store.updates == []
    assert pipeline.config.dry_run is False
    assert pipeline.config.batch_size == embedding_settings.pipeline_batch_size


async def test_health_check(embedding_settings, provider, document_store):
    pipeline = build_pipeline(embedding_settings, provider, document_store)

    health = await pipeline.health_check()
    assert health["healthy"] is True
    assert health["details"]["state"] == "idle"

    document_store.unavailable = True
    health = await pipeline.health_check()
    assert health["healthy"] is False
    assert health["details"]["document_store"]["healthy"] is False
