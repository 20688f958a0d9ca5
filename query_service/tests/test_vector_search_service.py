"""
Pruebas del VectorSearchService: flujo completo de búsqueda, estrategias,
paginación, sugerencias, caché y errores tipados.
"""

import pytest
from pydantic import ValidationError

from common.config import QueryServiceSettings
from common.errors.exceptions import InvalidActionError
from common.models import DomainAction
from query_service.models import QueryIntent, SearchOptions, SearchQuery
from query_service.services import VectorSearchService

from conftest import make_record, vector_with_cosine


def semantic_query(query: str = "document processing", **options) -> SearchQuery:
    return SearchQuery(query=query, options=SearchOptions(include_text_search=False, **options))


def build_service(settings, embedding_service, document_store) -> VectorSearchService:
    return VectorSearchService(
        app_settings=settings,
        embedding_service=embedding_service,
        document_store=document_store,
    )


async def test_threshold_filters_vector_results(search_service, document_store):
    document_store.add(make_record("half", embedding=vector_with_cosine(0.5)))

    strict = await search_service.search(semantic_query(threshold=0.7))
    assert strict.success
    assert strict.data.results == []

    relaxed = await search_service.search(semantic_query(threshold=0.4))
    assert [r.service_id for r in relaxed.data.results] == ["half"]
    assert relaxed.data.results[0].score == pytest.approx(0.5)


async def test_default_threshold_from_settings(search_service, document_store):
    document_store.add(make_record("a", embedding=vector_with_cosine(0.72)))
    document_store.add(make_record("b", embedding=vector_with_cosine(0.68)))

    response = await search_service.search(semantic_query())

    assert [r.service_id for r in response.data.results] == ["a"]


async def test_pagination_keeps_total_count(search_service, document_store):
    for index, cosine in enumerate((0.95, 0.9, 0.85, 0.8, 0.75), start=1):
        document_store.add(make_record(f"r{index}", embedding=vector_with_cosine(cosine)))

    response = await search_service.search(semantic_query(limit=2, offset=1, threshold=0.5))

    assert response.data.total_count == 5
    assert [r.service_id for r in response.data.results] == ["r2", "r3"]


async def test_limit_is_capped_by_max_limit(embedding_service, document_store):
    settings = QueryServiceSettings(environment="test", max_limit=2)
    service = build_service(settings, embedding_service, document_store)
    for index in range(4):
        document_store.add(make_record(str(index), embedding=vector_with_cosine(0.9)))

    response = await service.search(semantic_query(limit=10))

    assert len(response.data.results) == 2
    assert response.data.total_count == 4


async def test_results_do_not_expose_embeddings(search_service, document_store):
    document_store.add(make_record("1", embedding=vector_with_cosine(0.9)))

    response = await search_service.search(semantic_query())

    service = response.data.results[0].service
    assert "embedding" not in service
    assert service["category"] == "Machine Learning"


async def test_explanation_lists_exact_matches(search_service, document_store):
    document_store.add(make_record("1", embedding=vector_with_cosine(0.9)))

    response = await search_service.search(semantic_query("document processing AI", include_explanation=True))

    explanation = response.data.results[0].explanation
    assert "document" in explanation.text_match.exact_matches
    assert "ai" in explanation.text_match.exact_matches
    assert explanation.matching_factors[0].startswith("Exact matches:")


async def test_hybrid_search_includes_lexical_matches(search_service, document_store):
    document_store.add(make_record("lexical", embedding=vector_with_cosine(0.5)))

    response = await search_service.search(SearchQuery(query="document processing"))

    data = response.data
    assert data.query_metadata.strategy.name == "hybrid_balanced"
    assert [r.service_id for r in data.results] == ["lexical"]
    assert data.results[0].score == pytest.approx(0.2)
    assert data.performance.documents_scanned == 2


async def test_query_metadata(search_service, document_store):
    response = await search_service.search(SearchQuery(query="  AI for invoices  "))

    metadata = response.data.query_metadata
    assert metadata.original_query == "  AI for invoices  "
    assert metadata.processed_query.startswith("ai for invoices artificial intelligence")
    assert len(metadata.query_embedding) == 1536
    assert metadata.intent.category == "product_search"
    assert response.metadata.request_id.startswith("search_")


async def test_specific_need_uses_semantic_heavy_strategy(search_service):
    response = await search_service.search(SearchQuery(query="help me with invoice processing"))

    assert response.data.query_metadata.intent.category == "specific_need"
    assert response.data.query_metadata.strategy.name == "hybrid_semantic_heavy"


async def test_semantic_only_skips_text_search(search_service, document_store):
    document_store.add(make_record("1", embedding=vector_with_cosine(0.9)))

    response = await search_service.search(semantic_query())

    assert response.data.query_metadata.strategy.name == "semantic_only"
    assert response.data.performance.text_search_time == 0
    assert response.data.performance.documents_scanned == 1


def test_strategy_selection():
    specific = QueryIntent(category="specific_need", confidence=0.8)
    discovery = QueryIntent(category="service_discovery", confidence=0.8)

    assert VectorSearchService.determine_search_strategy(
        specific, SearchOptions(include_text_search=False)
    ).name == "semantic_only"
    assert VectorSearchService.determine_search_strategy(specific, SearchOptions()).name == "hybrid_semantic_heavy"
    assert VectorSearchService.determine_search_strategy(discovery, SearchOptions()).name == "hybrid_balanced"
    assert VectorSearchService.determine_search_strategy(None, SearchOptions()).name == "hybrid_balanced"


async def test_intent_detection_can_be_disabled(embedding_service, document_store):
    settings = QueryServiceSettings(environment="test", enable_intent_detection=False)
    service = build_service(settings, embedding_service, document_store)

    response = await service.search(SearchQuery(query="help me with invoice processing"))

    assert response.data.query_metadata.intent is None
    assert response.data.query_metadata.strategy.name == "hybrid_balanced"


async def test_structured_filters_are_applied(search_service, document_store):
    document_store.add(make_record("1", embedding=vector_with_cosine(0.9)))

    response = await search_service.search(SearchQuery.model_validate({
        "query": "document processing",
        "filters": {"industries": ["healthcare"]},
    }))

    assert response.data.total_count == 0
    assert [s.type for s in response.data.suggestions] == ["filter", "category"]


async def test_hybrid_search_filters_lexical_matches_by_provider_and_rating(search_service, document_store):
    document_store.add(make_record("enterprise", providerType="enterprise", rating=4.5))
    document_store.add(make_record("startup", providerType="startup", rating=4.5))
    document_store.add(make_record("unrated", providerType="enterprise"))

    response = await search_service.search(SearchQuery.model_validate({
        "query": "document processing",
        "filters": {"providerTypes": ["enterprise"], "minRating": 4},
    }))

    assert [r.service_id for r in response.data.results] == ["enterprise"]
    assert response.data.total_count == 1


async def test_suggestions_for_misspelled_query_without_results(search_service):
    response = await search_service.search(SearchQuery(query="machien learning"))

    suggestions = response.data.suggestions
    assert [s.type for s in suggestions] == ["spelling", "filter", "category"]
    assert suggestions[0].query == "machine learning"
    assert suggestions[0].reason == 'Did you mean "machine"?'


async def test_no_category_suggestion_when_categories_are_filtered(search_service):
    response = await search_service.search(SearchQuery.model_validate({
        "query": "document processing",
        "filters": {"categories": ["Computer Vision"]},
    }))

    assert [s.type for s in response.data.suggestions] == ["filter"]


async def test_blank_query_is_invalid(search_service, provider):
    response = await search_service.search(SearchQuery(query="   "))

    assert not response.success
    assert response.error.code == "INVALID_QUERY"
    assert response.error.message == "Search query is required"
    assert provider.calls == []


async def test_embedding_failure(search_service, provider):
    provider.remaining_failures = 1

    response = await search_service.search(SearchQuery(query="document processing"))

    assert not response.success
    assert response.error.code == "EMBEDDING_FAILED"


async def test_store_failure_is_search_failed(search_service, document_store, performance_monitor):
    document_store.unavailable = True

    response = await search_service.search(SearchQuery(query="document processing"))

    assert not response.success
    assert response.error.code == "SEARCH_FAILED"
    assert "DocumentStoreError" in response.error.details["error"]
    assert performance_monitor.get_metric_stats("search_error_time").count == 1


async def test_repeated_search_is_served_from_cache(search_service, document_store, provider, performance_monitor):
    document_store.add(make_record("1", embedding=vector_with_cosine(0.9)))
    query = SearchQuery(query="document processing")

    first = await search_service.search(query)
    second = await search_service.search(SearchQuery(query="  Document Processing "))

    assert first.data.performance.cache_status == "miss"
    assert second.data.performance.cache_status == "hit"
    assert second.data.total_count == first.data.total_count
    assert len(provider.calls) == 1
    assert performance_monitor.get_metric_stats("search_cache_hit").count == 1


async def test_cache_disabled_in_test_environment(embedding_service, document_store, provider):
    service = build_service(QueryServiceSettings(environment="test"), embedding_service, document_store)

    await service.search(SearchQuery(query="document processing"))
    await service.search(SearchQuery(query="document processing"))

    assert len(provider.calls) == 2


async def test_clear_cache(search_service):
    await search_service.search(SearchQuery(query="document processing"))

    assert await search_service.clear_cache() == 1
    assert await search_service.clear_cache() == 0


async def test_process_action(search_service, document_store):
    document_store.add(make_record("1", embedding=vector_with_cosine(0.9)))

    result = await search_service.process_action(
        DomainAction(action_type="query.search", data={"query": "document processing", "options": {"limit": 1}})
    )

    assert result["success"] is True
    assert result["data"]["results"][0]["service_id"] == "1"


async def test_process_action_rejects_unknown_type(search_service):
    with pytest.raises(InvalidActionError):
        await search_service.process_action(DomainAction(action_type="query.generate", data={}))


async def test_process_action_rejects_invalid_payload(search_service):
    with pytest.raises(InvalidActionError):
        await search_service.process_action(DomainAction(action_type="query.search", data={"q": "ai"}))


@pytest.mark.parametrize("options", [
    {"limit": -1},
    {"limit": 0},
    {"offset": -2},
    {"threshold": 1.5},
])
async def test_process_action_rejects_out_of_range_options(search_service, document_store, options):
    for record_id in ("1", "2", "3", "4", "5"):
        document_store.add(make_record(record_id, embedding=vector_with_cosine(0.9)))

    with pytest.raises(InvalidActionError):
        await search_service.process_action(
            DomainAction(action_type="query.search", data={"query": "document processing", "options": options})
        )


@pytest.mark.parametrize("options", [{"limit": -1}, {"offset": -1}, {"threshold": -0.1}])
def test_search_options_bounds(options):
    with pytest.raises(ValidationError):
        SearchOptions(**options)


async def test_health_check(search_service):
    health = await search_service.health_check()

    assert health["healthy"] is True
    assert health["details"]["embedding_service_healthy"] is True


async def test_health_check_reports_store_failure(search_service, document_store):
    document_store.unavailable = True

    health = await search_service.health_check()

    assert health["healthy"] is False
    assert health["message"].startswith("Search test failed")


async def test_performance_metrics(search_service):
    await search_service.search(SearchQuery(query="document processing"))

    metrics = search_service.get_performance_metrics()

    assert metrics["search_total_time"]["count"] == 1
    assert metrics["search_result_count"]["count"] == 1
