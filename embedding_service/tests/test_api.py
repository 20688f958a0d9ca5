"""
Pruebas de la API HTTP del Embedding Service.

Se usa TestClient sin lifespan: las dependencias se sustituyen con
`dependency_overrides` para no abrir conexiones a Redis ni a OpenAI.
"""

from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from common.errors.exceptions import PipelineAlreadyRunningError
from embedding_service.main import app, get_embedding_service, get_pipeline, run_pipeline
from embedding_service.models import PipelineMode, PipelineRunRequest, PipelineState
from embedding_service.services import EmbeddingPipeline

from conftest import DIMENSIONS, make_record


@pytest.fixture
def pipeline(embedding_settings, embedding_service, document_store):
    return EmbeddingPipeline(embedding_settings, embedding_service, document_store)


@pytest.fixture
def client(embedding_service, pipeline):
    app.dependency_overrides[get_embedding_service] = lambda: embedding_service
    app.dependency_overrides[get_pipeline] = lambda: pipeline
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_query_embedding(client):
    response = client.post("/embed/query", json={"query": "invoice automation"})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert len(body["data"]["embedding"]) == DIMENSIONS


def test_query_embedding_rejects_empty_query(client):
    response = client.post("/embed/query", json={"query": ""})

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_QUERY"


def test_create_job_is_accepted(client):
    response = client.post("/jobs", json={"record_ids": ["1", "2"]})

    assert response.status_code == 202
    body = response.json()
    assert body["job_id"].startswith("job_")
    assert body["progress"]["total"] == 2


def test_create_job_requires_ids(client):
    response = client.post("/jobs", json={"record_ids": []})

    assert response.status_code == 422


def test_unknown_job_is_404(client):
    response = client.get("/jobs/job_missing")

    assert response.status_code == 404
    assert response.json()["error"]["code"] == "NOT_FOUND"


def test_pipeline_run_conflict_while_running(client, pipeline):
    pipeline._state = PipelineState.RUNNING

    response = client.post("/pipeline/run", json={"mode": "all"})

    assert response.status_code == 409
    assert response.json()["error"]["code"] == "ALREADY_RUNNING"


async def test_back_to_back_pipeline_runs_conflict(pipeline, document_store):
    document_store.add(make_record("1"))
    request = SimpleNamespace(app=SimpleNamespace(state=SimpleNamespace(pipeline_task=None)))
    body = PipelineRunRequest(mode=PipelineMode.ALL)

    accepted = await run_pipeline(body, request, pipeline)
    first_task = request.app.state.pipeline_task

    with pytest.raises(PipelineAlreadyRunningError):
        await run_pipeline(body, request, pipeline)
    assert request.app.state.pipeline_task is first_task

    await first_task
    assert accepted == {"accepted": True, "mode": "all"}
    assert pipeline.state == PipelineState.COMPLETED

    await run_pipeline(body, request, pipeline)
    await request.app.state.pipeline_task
    assert request.app.state.pipeline_task is not first_task


def test_pipeline_specific_requires_ids(client):
    response = client.post("/pipeline/run", json={"mode": "specific"})

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


def test_pipeline_progress(client):
    response = client.get("/pipeline/progress")

    assert response.status_code == 200
    body = response.json()
    assert body["state"] == "idle"
    assert body["progress"]["total_services"] == 0


def test_metrics(client):
    client.post("/embed/query", json={"query": "invoice automation"})

    response = client.get("/metrics")

    assert response.status_code == 200
    assert response.json()["metrics"]["query_embedding_time"]["count"] == 1
