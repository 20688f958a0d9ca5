"""
Pruebas del CLI del pipeline: argumentos y códigos de salida.
"""

import pytest

from embedding_service.pipeline_cli import build_parser, run_cli
from embedding_service.services import EmbeddingPipeline, EmbeddingService

from conftest import make_record


@pytest.fixture
def pipeline(embedding_settings, provider, document_store):
    service = EmbeddingService(app_settings=embedding_settings, provider=provider, document_store=document_store)
    return EmbeddingPipeline(embedding_settings, service, document_store)


def test_parser_accepts_modes_and_options():
    args = build_parser().parse_args(["specific", "--ids", "a", "b", "--dry-run", "--batch-size", "5"])

    assert args.mode == "specific"
    assert args.ids == ["a", "b"]
    assert args.dry_run is True
    assert args.batch_size == 5


def test_parser_rejects_unknown_mode():
    with pytest.raises(SystemExit):
        build_parser().parse_args(["everything"])


async def test_successful_run_exits_zero(pipeline, document_store):
    document_store.add(make_record("1"))

    exit_code = await run_cli(build_parser().parse_args(["all"]), pipeline)

    assert exit_code == 0
    assert "embedding" in document_store.records["1"]


async def test_dry_run_flag_is_forwarded(pipeline, document_store):
    document_store.add(make_record("1"))

    exit_code = await run_cli(build_parser().parse_args(["all", "--dry-run"]), pipeline)

    assert exit_code == 0
    assert document_store.updates == []


async def test_specific_without_ids_exits_one(pipeline):
    assert await run_cli(build_parser().parse_args(["specific"]), pipeline) == 1


async def test_store_failure_exits_one(pipeline, document_store):
    document_store.unavailable = True

    assert await run_cli(build_parser().parse_args(["outdated"]), pipeline) == 1
