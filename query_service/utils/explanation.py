"""
Explicaciones de por qué un registro coincide con una consulta.
"""

from typing import Any, Dict, List, Optional

from embedding_service.utils.content_extractor import ContentExtractor

from ..config.constants import CONCEPT_MAP, GOOD_SIMILARITY_THRESHOLD, HIGH_SIMILARITY_THRESHOLD
from ..models.search_payloads import SearchExplanation, SemanticMatch, TextMatch


def partial_term(term: str) -> str:
    """Prefijo usado para coincidencias parciales: el término sin sus dos últimos caracteres (mínimo 3)."""
    return term[:max(3, len(term) - 2)]


class ExplanationGenerator:

    def __init__(self, content_extractor: Optional[ContentExtractor] = None):
        self.content_extractor = content_extractor or ContentExtractor()

    def generate_explanation(
        self,
        query: str,
        record: Dict[str, Any],
        score: float,
        distance: float,
    ) -> SearchExplanation:
        query_lower = query.lower()
        query_terms = query_lower.split()
        content = self.content_extractor.extract_searchable_content(record).lower()

        exact_matches = [term for term in query_terms if term in content]
        partial_matches = [
            term for term in query_terms
            if term not in exact_matches and partial_term(term) in content
        ]

        factors: List[str] = []
        if exact_matches:
            factors.append(f"Exact matches: {', '.join(exact_matches)}")

        if score > HIGH_SIMILARITY_THRESHOLD:
            factors.append("High semantic similarity")
        elif score > GOOD_SIMILARITY_THRESHOLD:
            factors.append("Good semantic similarity")

        category = record.get("category")
        if isinstance(category, str) and category and category.lower() in query_lower:
            factors.append("Category match")

        tags = record.get("tags") or []
        if any(isinstance(tag, str) and term in tag.lower() for tag in tags for term in query_terms):
            factors.append("Tag relevance")

        text_match = None
        if exact_matches or partial_matches:
            text_match = TextMatch(exact_matches=exact_matches, partial_matches=partial_matches)

        return SearchExplanation(
            matching_factors=factors,
            semantic_match=SemanticMatch(
                matched_concepts=self.extract_matched_concepts(query_lower, content),
                confidence=score,
            ),
            text_match=text_match,
        )

    @staticmethod
    def extract_matched_concepts(query: str, content: str) -> List[str]:
        query_lower = query.lower()
        return [
            concept for concept, variations in CONCEPT_MAP.items()
            if concept.lower() in query_lower and any(v in content for v in variations)
        ]
