"""
Handler de recuperación y ranking de candidatos.

Agrupa las fases de la búsqueda que operan sobre registros del catálogo:
búsqueda vectorial, búsqueda léxica, fusión híbrida, filtros estructurados
y re-ranking por popularidad y recencia.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple

from common.clients.document_store import DocumentStoreClient, FieldFilter, Record
from common.config.base_settings import CommonAppSettings
from common.handlers import BaseHandler

from ..config.constants import (
    PARTIAL_MATCH_SCORE,
    POPULARITY_NORMALIZER,
    RECENCY_WINDOW_DAYS,
    RESULT_EXCLUDED_FIELDS,
    TEXT_SEARCH_FIELDS,
)
from ..models.search_payloads import (
    DistanceMetric,
    SearchFilters,
    SearchResult,
    SearchStrategy,
    StrategyWeights,
)
from ..utils.explanation import ExplanationGenerator, partial_term
from ..utils.similarity import SimilarityCalculator


def _record_payload(record: Record) -> Dict[str, Any]:
    return {k: v for k, v in record.items() if k not in RESULT_EXCLUDED_FIELDS}


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)):
        parsed = datetime.fromtimestamp(value, tz=timezone.utc)
    elif isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _matches_any(wanted: Optional[List[str]], present: Any) -> bool:
    if not wanted:
        return True
    present = present or []
    return any(item in present for item in wanted)


class RankingHandler(BaseHandler):
    """
    Recupera candidatos del almacén y calcula su puntuación final.
    """

    def __init__(
        self,
        app_settings: CommonAppSettings,
        document_store: DocumentStoreClient,
        explanation_generator: Optional[ExplanationGenerator] = None,
    ):
        super().__init__(app_settings)
        self.document_store = document_store
        self.explanation_generator = explanation_generator or ExplanationGenerator()

    # ------------------------------------------------------------------
    # Recuperación
    # ------------------------------------------------------------------

    @staticmethod
    def build_store_filters(filters: SearchFilters, category_only: bool = False) -> List[FieldFilter]:
        """Filtros gruesos aplicados en el almacén para reducir candidatos."""
        store_filters: List[FieldFilter] = []
        if filters.categories:
            store_filters.append(FieldFilter(field="category", op="in", value=filters.categories))
        if not category_only:
            if filters.provider_types:
                store_filters.append(FieldFilter(field="providerType", op="in", value=filters.provider_types))
            if filters.min_rating is not None:
                store_filters.append(FieldFilter(field="rating", op=">=", value=filters.min_rating))
        return store_filters

    async def vector_search(
        self,
        query_embedding: Sequence[float],
        filters: SearchFilters,
        threshold: float,
        metric: DistanceMetric = DistanceMetric.COSINE,
        include_explanation: bool = False,
        query: str = "",
    ) -> Tuple[List[SearchResult], int]:
        """
        Compara el embedding de la consulta con el de cada candidato.

        Los candidatos sin embedding, o con una dimensión distinta a la de la
        consulta, se omiten. Se descartan los que quedan por debajo del umbral.

        Returns:
            (resultados ordenados por score descendente, candidatos examinados)
        """
        candidates = await self.document_store.query_where(self.build_store_filters(filters))
        results: List[SearchResult] = []

        for record in candidates:
            embedding = record.get("embedding")
            if not isinstance(embedding, list) or not embedding:
                continue
            if len(embedding) != len(query_embedding):
                self._logger.debug(
                    f"Registro {record.get('id')} omitido: dimensión {len(embedding)} != {len(query_embedding)}"
                )
                continue

            similarity, distance = SimilarityCalculator.similarity(query_embedding, embedding, metric)
            if similarity < threshold:
                continue

            explanation = None
            if include_explanation:
                explanation = self.explanation_generator.generate_explanation(query, record, similarity, distance)

            results.append(SearchResult(
                service_id=str(record.get("id")),
                score=similarity,
                distance=distance,
                service=_record_payload(record),
                explanation=explanation,
            ))

        results.sort(key=lambda r: r.score, reverse=True)
        return results, len(candidates)

    @staticmethod
    def lexical_content(record: Record) -> str:
        parts: List[str] = []
        for field in TEXT_SEARCH_FIELDS:
            value = record.get(field)
            if isinstance(value, list):
                parts.extend(str(v) for v in value)
            elif value:
                parts.append(str(value))
        return " ".join(parts).lower()

    @staticmethod
    def text_match_score(query_terms: List[str], content: str) -> float:
        """
        Media por término: 1 si aparece completo, 0.5 si aparece su prefijo.
        """
        if not query_terms:
            return 0.0
        score = 0.0
        for term in query_terms:
            if term in content:
                score += 1.0
            elif partial_term(term) in content:
                score += PARTIAL_MATCH_SCORE
        return score / len(query_terms)

    async def text_search(self, processed_query: str, filters: SearchFilters) -> Tuple[List[SearchResult], int]:
        query_terms = processed_query.lower().split()
        candidates = await self.document_store.query_where(
            self.build_store_filters(filters, category_only=True)
        )
        results: List[SearchResult] = []

        for record in candidates:
            score = self.text_match_score(query_terms, self.lexical_content(record))
            if score > 0:
                results.append(SearchResult(
                    service_id=str(record.get("id")),
                    score=score,
                    distance=1 - score,
                    service=_record_payload(record),
                ))

        results.sort(key=lambda r: r.score, reverse=True)
        return results, len(candidates)

    # ------------------------------------------------------------------
    # Fusión, filtros y ranking
    # ------------------------------------------------------------------

    @staticmethod
    def merge_results(
        vector_results: List[SearchResult],
        text_results: List[SearchResult],
        weights: StrategyWeights,
    ) -> List[SearchResult]:
        """Suma ponderada por id; un registro presente en un solo conjunto aporta solo su término."""
        merged: Dict[str, SearchResult] = {}

        for result in vector_results:
            merged[result.service_id] = result.model_copy(update={"score": result.score * weights.vector})

        for result in text_results:
            existing = merged.get(result.service_id)
            if existing:
                existing.score += result.score * weights.text
            else:
                merged[result.service_id] = result.model_copy(update={"score": result.score * weights.text})

        return sorted(merged.values(), key=lambda r: r.score, reverse=True)

    @staticmethod
    def apply_filters(results: List[SearchResult], filters: SearchFilters) -> List[SearchResult]:
        """Filtros estructurados: AND entre filtros, basta un valor dentro de cada lista."""
        # Los candidatos léxicos solo se acotaron por categoría en el almacén.
        store_filters = RankingHandler.build_store_filters(filters)
        filtered: List[SearchResult] = []
        for result in results:
            service = result.service

            if not all(store_filter.matches(service) for store_filter in store_filters):
                continue

            if filters.price_range:
                price = (service.get("pricing") or {}).get("startingPrice") or 0
                if filters.price_range.min is not None and price < filters.price_range.min:
                    continue
                if filters.price_range.max is not None and price > filters.price_range.max:
                    continue

            if not (
                _matches_any(filters.industries, service.get("industries"))
                and _matches_any(filters.technologies, service.get("technologies"))
                and _matches_any(filters.locations, service.get("locations"))
                and _matches_any(filters.features, service.get("features"))
                and _matches_any(filters.compliance, service.get("compliance"))
            ):
                continue

            filtered.append(result)
        return filtered

    @staticmethod
    def rank_results(
        results: List[SearchResult],
        strategy: SearchStrategy,
        now: Optional[datetime] = None,
    ) -> List[SearchResult]:
        """Añade los boosts de popularidad y recencia y ordena por score final."""
        now = now or datetime.now(timezone.utc)
        weights = strategy.weights
        ranked: List[SearchResult] = []

        for result in results:
            service = result.service
            final_score = result.score

            if weights.popularity > 0:
                review_count = service.get("reviewCount") or 0
                final_score += (review_count / POPULARITY_NORMALIZER) * weights.popularity

            if weights.recency > 0:
                updated_at = _parse_timestamp(service.get("updatedAt"))
                days = (now - updated_at).total_seconds() / 86400 if updated_at else RECENCY_WINDOW_DAYS
                final_score += max(0.0, 1 - days / RECENCY_WINDOW_DAYS) * weights.recency

            ranked.append(result.model_copy(update={"score": final_score}))

        ranked.sort(key=lambda r: r.score, reverse=True)
        return ranked
