"""
Normalización de consultas y detección de intención.
"""

import logging
import re
from typing import Dict, List, Optional, Pattern

from ..config.constants import (
    BUDGET_PATTERN,
    DEFAULT_INTENT,
    DEFAULT_INTENT_CONFIDENCE,
    INDUSTRY_ENTITIES,
    INTENT_PATTERNS,
    MATCHED_INTENT_CONFIDENCE,
    SPELL_CORRECTIONS,
    SYNONYMS,
    TECHNOLOGY_ENTITIES,
    USE_CASE_ENTITIES,
)
from ..models.search_payloads import QueryEntities, QueryIntent


def _word_pattern(term: str) -> Pattern[str]:
    return re.compile(rf"\b{re.escape(term)}\b", re.IGNORECASE)


class QueryProcessor:
    """
    Limpia la consulta del usuario, la expande con sinónimos, corrige
    errores ortográficos frecuentes y detecta su intención.
    """

    def __init__(
        self,
        synonyms: Optional[Dict[str, List[str]]] = None,
        spell_corrections: Optional[Dict[str, str]] = None,
        max_expansions: int = 3,
        enable_synonym_expansion: bool = True,
        enable_spell_correction: bool = True,
    ):
        self.max_expansions = max_expansions
        self.enable_synonym_expansion = enable_synonym_expansion
        self.enable_spell_correction = enable_spell_correction
        self._synonyms = [
            (_word_pattern(term), values) for term, values in (synonyms or SYNONYMS).items()
        ]
        self._corrections = [
            (_word_pattern(typo), correction)
            for typo, correction in (spell_corrections or SPELL_CORRECTIONS).items()
        ]
        self._logger = logging.getLogger(f"query_service.{self.__class__.__name__}")

    @classmethod
    def from_settings(cls, settings) -> "QueryProcessor":
        return cls(
            max_expansions=settings.max_synonym_expansions,
            enable_synonym_expansion=settings.enable_synonym_expansion,
            enable_spell_correction=settings.enable_spell_correction,
        )

    def process_query(self, query: str) -> str:
        processed = query.strip().lower()

        if self.enable_synonym_expansion:
            processed = self.expand_synonyms(processed)

        if self.enable_spell_correction:
            processed = self.basic_spell_correction(processed)

        self._logger.debug(f"Consulta procesada: '{query}' -> '{processed}'")
        return processed

    def expand_synonyms(self, query: str) -> str:
        """Añade al final hasta max_expansions sinónimos por término encontrado."""
        expanded = query
        for pattern, synonyms in self._synonyms:
            if pattern.search(query):
                selected = synonyms[:self.max_expansions]
                if selected:
                    expanded += " " + " ".join(selected)
        return expanded

    def basic_spell_correction(self, query: str) -> str:
        corrected = query
        for pattern, correction in self._corrections:
            corrected = pattern.sub(correction, corrected)
        return corrected

    def detect_intent(self, query: str) -> QueryIntent:
        entities = self.extract_entities(query)

        for category, patterns in INTENT_PATTERNS.items():
            if any(pattern.search(query) for pattern in patterns):
                return QueryIntent(category=category, confidence=MATCHED_INTENT_CONFIDENCE, entities=entities)

        return QueryIntent(category=DEFAULT_INTENT, confidence=DEFAULT_INTENT_CONFIDENCE, entities=entities)

    @staticmethod
    def extract_entities(query: str) -> QueryEntities:
        query_lower = query.lower()

        budget = None
        budget_match = BUDGET_PATTERN.search(query)
        if budget_match:
            digits = budget_match.group(1).replace(",", "")
            if digits:
                budget = int(digits)

        return QueryEntities(
            technologies=[t for t in TECHNOLOGY_ENTITIES if t.lower() in query_lower],
            industries=[i for i in INDUSTRY_ENTITIES if i.lower() in query_lower],
            use_cases=[u for u in USE_CASE_ENTITIES if u.lower() in query_lower],
            budget=budget,
        )
