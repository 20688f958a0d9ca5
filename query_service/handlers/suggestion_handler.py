"""
Handler de sugerencias de búsqueda.
"""

from typing import Dict, List, Optional

from common.config.base_settings import CommonAppSettings
from common.handlers import BaseHandler

from ..config.constants import (
    CATEGORY_SUGGESTION_REASON,
    CATEGORY_SUGGESTION_RESULT_COUNT,
    FILTER_SUGGESTION_REASON,
    FILTER_SUGGESTION_RESULT_COUNT,
    MAX_SUGGESTIONS,
    SPELLING_SUGGESTION_RESULT_COUNT,
    SUGGESTION_SPELL_CORRECTIONS,
)
from ..models.search_payloads import SearchFilters, SearchSuggestion


class SuggestionHandler(BaseHandler):
    """
    Propone consultas alternativas: correcciones ortográficas y, cuando no
    hay resultados, relajar filtros o probar una categoría.
    """

    def __init__(
        self,
        app_settings: CommonAppSettings,
        spell_corrections: Optional[Dict[str, str]] = None,
        max_suggestions: int = MAX_SUGGESTIONS,
    ):
        super().__init__(app_settings)
        self.spell_corrections = spell_corrections or SUGGESTION_SPELL_CORRECTIONS
        self.max_suggestions = max_suggestions

    def spelling_suggestions(self, query: str) -> List[SearchSuggestion]:
        query_lower = query.lower()
        suggestions: List[SearchSuggestion] = []
        for typo, correction in self.spell_corrections.items():
            if typo in query_lower:
                suggestions.append(SearchSuggestion(
                    query=query_lower.replace(typo, correction, 1),
                    type="spelling",
                    expected_result_count=SPELLING_SUGGESTION_RESULT_COUNT,
                    reason=f'Did you mean "{correction}"?',
                ))
        return suggestions

    def generate_suggestions(self, query: str, result_count: int, filters: SearchFilters) -> List[SearchSuggestion]:
        """
        Args:
            query: Consulta original del usuario.
            result_count: Resultados totales antes de paginar.
            filters: Filtros de la petición.
        """
        suggestions = self.spelling_suggestions(query)

        if result_count == 0:
            suggestions.append(SearchSuggestion(
                query=query,
                type="filter",
                expected_result_count=FILTER_SUGGESTION_RESULT_COUNT,
                reason=FILTER_SUGGESTION_REASON,
            ))
            if filters.categories is None:
                suggestions.append(SearchSuggestion(
                    query=query,
                    type="category",
                    expected_result_count=CATEGORY_SUGGESTION_RESULT_COUNT,
                    reason=CATEGORY_SUGGESTION_REASON,
                ))

        return suggestions[:self.max_suggestions]
