"""
Punto de entrada de línea de comandos del pipeline de embeddings.

Uso:
    python -m embedding_service.pipeline_cli all [--dry-run] [--batch-size N]
    python -m embedding_service.pipeline_cli specific --ids ID [ID ...]
    python -m embedding_service.pipeline_cli outdated

Devuelve 0 si la ejecución termina y 1 ante un fallo fatal.
"""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from common.clients import RedisManager, RedisDocumentStore
from common.errors.exceptions import AppError
from common.utils import init_logging, PerformanceMonitor

from .clients import OpenAIClient
from .config.settings import get_settings
from .models.pipeline import PipelineMode
from .services import EmbeddingService, EmbeddingPipeline, run_embedding_pipeline

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pipeline",
        description="Genera o actualiza los embeddings del catálogo.",
    )
    parser.add_argument("mode", choices=[m.value for m in PipelineMode], help="Registros a procesar")
    parser.add_argument("--ids", nargs="+", default=[], help="Ids de registros (modo 'specific')")
    parser.add_argument("--dry-run", action="store_true", help="No escribe en el almacén")
    parser.add_argument("--batch-size", type=int, default=None, help="Registros por lote")
    return parser


async def run_cli(args: argparse.Namespace, pipeline: EmbeddingPipeline) -> int:
    try:
        progress = await run_embedding_pipeline(
            pipeline,
            mode=PipelineMode(args.mode),
            record_ids=args.ids,
            dry_run=True if args.dry_run else None,
            batch_size=args.batch_size,
        )
    except AppError as e:
        logger.error(f"Pipeline fallido [{e.error_code}]: {e.message}")
        return 1
    except Exception as e:
        logger.exception(f"Pipeline fallido: {e}")
        return 1

    logger.info(
        f"Pipeline completado: {progress.successful_embeddings} ok, "
        f"{progress.failed_embeddings} fallidos, {progress.skipped_services} omitidos"
    )
    return 0


async def _main(args: argparse.Namespace) -> int:
    settings = get_settings()
    init_logging(log_level=settings.log_level, service_name=settings.service_name)

    redis_manager = RedisManager(settings=settings)
    try:
        redis_conn = await redis_manager.get_client()
        document_store = RedisDocumentStore(redis_conn, prefix=settings.document_store_prefix)
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
            performance_monitor=PerformanceMonitor(),
        )
        pipeline = EmbeddingPipeline(settings, embedding_service, document_store)
        return await run_cli(args, pipeline)
    except Exception as e:
        logger.error(f"No se pudo iniciar el pipeline: {e}")
        return 1
    finally:
        await redis_manager.close()


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    return asyncio.run(_main(args))


if __name__ == "__main__":
    sys.exit(main())
