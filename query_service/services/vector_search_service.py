"""
Servicio de búsqueda semántica sobre el catálogo.

Orquesta el flujo completo de una consulta: validación, caché, procesamiento
de la consulta, selección de estrategia, embedding de la consulta,
búsqueda vectorial y léxica, fusión, filtros, ranking, paginación y
sugerencias. Devuelve siempre una envoltura {success, data | error, metadata}.
"""

import time
from typing import Any, Dict, Optional
from uuid import uuid4

from pydantic import ValidationError

from common.clients.document_store import DocumentStoreClient
from common.config import QueryServiceSettings
from common.errors.exceptions import AppError, ExternalServiceError, InvalidActionError
from common.models import DomainAction, ErrorDetail
from common.models.actions import ResponseMetadata
from common.services import BaseService
from common.utils.performance_monitor import PerformanceMonitor

from embedding_service.services import EmbeddingService

from ..config.constants import HEALTH_CHECK_QUERY, SEARCH_STRATEGIES
from ..handlers import RankingHandler, SuggestionHandler
from ..models.search_payloads import (
    QueryIntent,
    QueryMetadata,
    SearchOptions,
    SearchPerformance,
    SearchQuery,
    SearchResponse,
    SearchStrategy,
    SemanticSearchApiResponse,
)
from ..utils.cache_manager import SearchCacheManager
from ..utils.query_processor import QueryProcessor


class VectorSearchService(BaseService):
    """
    Servicio principal de búsqueda semántica.

    Maneja las acciones:
    - query.search: Búsqueda semántica/híbrida sobre el catálogo
    """

    def __init__(
        self,
        app_settings: QueryServiceSettings,
        embedding_service: EmbeddingService,
        document_store: DocumentStoreClient,
        cache_manager: Optional[SearchCacheManager] = None,
        performance_monitor: Optional[PerformanceMonitor] = None,
        query_processor: Optional[QueryProcessor] = None,
        ranking_handler: Optional[RankingHandler] = None,
        suggestion_handler: Optional[SuggestionHandler] = None,
    ):
        super().__init__(app_settings, performance_monitor)

        self.embedding_service = embedding_service
        self.document_store = document_store
        self.cache_manager = cache_manager or SearchCacheManager(
            ttl_seconds=app_settings.cache_ttl_seconds,
            max_entries=app_settings.cache_max_entries,
            enabled=app_settings.cache_enabled,
        )
        self.query_processor = query_processor or QueryProcessor.from_settings(app_settings)
        self.ranking_handler = ranking_handler or RankingHandler(app_settings, document_store)
        self.suggestion_handler = suggestion_handler or SuggestionHandler(app_settings)

    # ------------------------------------------------------------------
    # Acciones
    # ------------------------------------------------------------------

    async def process_action(self, action: DomainAction) -> Optional[Dict[str, Any]]:
        self._logger.info(
            f"Procesando acción: {action.action_type} ({action.action_id})",
            extra={"action_id": str(action.action_id), "action_type": action.action_type}
        )

        try:
            if action.action_type == "query.search":
                search_query = SearchQuery.model_validate(action.data)
                response = await self.search(search_query)
                return response.model_dump(mode="json")

            self._logger.warning(f"Tipo de acción no soportado: {action.action_type}")
            raise InvalidActionError(f"Acción '{action.action_type}' no es soportada por Query Service")

        except ValidationError as e:
            self._logger.error(f"Error de validación en {action.action_type}: {e}")
            raise InvalidActionError(f"Error de validación en el payload: {str(e)}")

        except AppError:
            raise

        except Exception as e:
            self._logger.exception(f"Error inesperado procesando {action.action_type}")
            raise ExternalServiceError(f"Error interno en Query Service: {str(e)}", original_exception=e)

    # ------------------------------------------------------------------
    # Búsqueda
    # ------------------------------------------------------------------

    @staticmethod
    def determine_search_strategy(intent: Optional[QueryIntent], options: SearchOptions) -> SearchStrategy:
        if options.include_text_search is False:
            return SEARCH_STRATEGIES["semantic_only"]
        if intent is not None and intent.category == "specific_need":
            return SEARCH_STRATEGIES["hybrid_semantic_heavy"]
        return SEARCH_STRATEGIES["hybrid_balanced"]

    async def search(self, search_query: SearchQuery) -> SemanticSearchApiResponse:
        request_id = f"search_{int(time.time() * 1000)}_{uuid4().hex[:7]}"
        timer = self.performance_monitor.start_timer()

        try:
            query = search_query.query
            filters = search_query.filters
            options = search_query.options

            if not query or not query.strip():
                return self._error_response(request_id, "INVALID_QUERY", "Search query is required", timer)

            cache_key = self.cache_manager.get_search_cache_key(search_query)
            cached = await self.cache_manager.get(cache_key)
            if cached is not None:
                cached.performance.cache_status = "hit"
                self.performance_monitor.record_metric("search_cache_hit", timer())
                return self._success_response(request_id, cached, timer)

            processed_query = self.query_processor.process_query(query)
            intent = None
            if self.app_settings.enable_intent_detection:
                intent = self.query_processor.detect_intent(query)
            strategy = self.determine_search_strategy(intent, options)

            embedding_result = await self.embedding_service.generate_query_embedding(processed_query)
            if not embedding_result.success:
                message = embedding_result.error.message if embedding_result.error else None
                return self._error_response(
                    request_id, "EMBEDDING_FAILED", message or "Failed to generate query embedding", timer
                )
            query_embedding = embedding_result.data.embedding

            performance = SearchPerformance(cache_status="miss")
            results = []

            if strategy.primary in ("vector", "hybrid"):
                phase_timer = self.performance_monitor.start_timer()
                threshold = options.threshold if options.threshold is not None else self.app_settings.default_threshold
                results, scanned = await self.ranking_handler.vector_search(
                    query_embedding,
                    filters,
                    threshold=threshold,
                    metric=options.distance_measure,
                    include_explanation=options.include_explanation,
                    query=query,
                )
                performance.vector_search_time = phase_timer()
                performance.documents_scanned += scanned

            if strategy.primary in ("text", "hybrid"):
                phase_timer = self.performance_monitor.start_timer()
                text_results, scanned = await self.ranking_handler.text_search(processed_query, filters)
                performance.text_search_time = phase_timer()
                performance.documents_scanned += scanned

                if strategy.primary == "hybrid":
                    results = self.ranking_handler.merge_results(results, text_results, strategy.weights)
                else:
                    results = text_results

            phase_timer = self.performance_monitor.start_timer()
            results = self.ranking_handler.apply_filters(results, filters)
            performance.filter_time = phase_timer()

            phase_timer = self.performance_monitor.start_timer()
            results = self.ranking_handler.rank_results(results, strategy)
            performance.ranking_time = phase_timer()

            limit = min(options.limit or self.app_settings.default_limit, self.app_settings.max_limit)
            page = results[options.offset:options.offset + limit]

            suggestions = self.suggestion_handler.generate_suggestions(query, len(results), filters)

            performance.total_time = timer()
            response = SearchResponse(
                results=page,
                total_count=len(results),
                query_metadata=QueryMetadata(
                    original_query=query,
                    processed_query=processed_query,
                    query_embedding=query_embedding,
                    intent=intent,
                    strategy=strategy,
                ),
                performance=performance,
                suggestions=suggestions,
            )

            await self.cache_manager.set(cache_key, response)

            self.performance_monitor.record_metric("search_total_time", performance.total_time)
            self.performance_monitor.record_metric("search_result_count", response.total_count)
            self._logger.info(
                f"Búsqueda '{query[:50]}' completada: {response.total_count} resultados "
                f"({strategy.name}, {performance.total_time:.1f}ms)",
                extra={"request_id": request_id}
            )

            return self._success_response(request_id, response, timer)

        except Exception as e:
            self.performance_monitor.record_metric("search_error_time", timer())
            self._logger.exception(f"Búsqueda fallida ({request_id})")
            message = e.message if isinstance(e, AppError) else str(e)
            return self._error_response(
                request_id, "SEARCH_FAILED", message or "Unknown search error", timer, details={"error": repr(e)}
            )

    # ------------------------------------------------------------------
    # Envolturas de respuesta
    # ------------------------------------------------------------------

    @staticmethod
    def _success_response(request_id: str, data: SearchResponse, timer) -> SemanticSearchApiResponse:
        return SemanticSearchApiResponse(
            success=True,
            data=data,
            metadata=ResponseMetadata(request_id=request_id, processing_time=timer()),
        )

    @staticmethod
    def _error_response(
        request_id: str,
        code: str,
        message: str,
        timer,
        details: Optional[Dict[str, Any]] = None,
    ) -> SemanticSearchApiResponse:
        return SemanticSearchApiResponse(
            success=False,
            error=ErrorDetail(code=code, message=message, details=details),
            metadata=ResponseMetadata(request_id=request_id, processing_time=timer()),
        )

    # ------------------------------------------------------------------
    # Operación
    # ------------------------------------------------------------------

    async def health_check(self) -> Dict[str, Any]:
        """
        Ejecuta una búsqueda real de prueba y reporta su latencia.
        """
        try:
            result = await self.search(SearchQuery(query=HEALTH_CHECK_QUERY, options=SearchOptions(limit=1)))
        except Exception as e:
            self._logger.warning(f"Health check de búsqueda fallido: {e}")
            return {
                "healthy": False,
                "message": f"Vector search health check failed: {e}",
                "details": {"error": repr(e)},
            }

        if not result.success:
            return {"healthy": False, "message": f"Search test failed: {result.error.message}"}

        return {
            "healthy": True,
            "message": "Vector search service is healthy",
            "details": {
                "search_response_time": result.metadata.processing_time,
                "cache_size": self.cache_manager.size(),
                "embedding_service_healthy": True,
            },
        }

    def get_performance_metrics(self) -> Dict[str, Any]:
        return {name: stats.model_dump() for name, stats in self.performance_monitor.get_all_metrics().items()}

    async def clear_cache(self) -> int:
        return await self.cache_manager.clear()
