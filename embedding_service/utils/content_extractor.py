"""
Construcción del contenido indexable de un registro del catálogo.

El contenido es la concatenación de los campos configurados, cada uno
repetido según su peso, y normalizado (sin HTML, minúsculas, espacios
colapsados, longitud acotada). Su hash SHA-256 es la única señal usada
para decidir si un embedding debe regenerarse.
"""

import hashlib
import json
import re
from typing import Any, Dict, List, Optional

from ..config.constants import (
    CONTENT_SOURCE_FIELDS,
    FIELD_WEIGHTS,
    INCLUDED_FIELDS,
    PreprocessingConfig,
)
from ..models.payloads import ContentSources

_HTML_TAG_RE = re.compile(r"<[^>]*>")
_PUNCTUATION_RE = re.compile(r"[^\w\s]")
_WHITESPACE_RE = re.compile(r"\s+")


def weight_repetitions(weight: float) -> int:
    """
    Número de repeticiones para un peso: parte entera más una repetición
    extra si la parte fraccionaria es >= 0.5.
    """
    whole = int(weight)
    return whole + (1 if weight - whole >= 0.5 else 0)


class ContentExtractor:
    """Extrae contenido indexable y su hash a partir de un registro."""

    def __init__(
        self,
        included_fields: Optional[List[str]] = None,
        field_weights: Optional[Dict[str, float]] = None,
        remove_html: bool = PreprocessingConfig.REMOVE_HTML,
        remove_punctuation: bool = PreprocessingConfig.REMOVE_PUNCTUATION,
        to_lower_case: bool = PreprocessingConfig.TO_LOWER_CASE,
        min_length: int = PreprocessingConfig.MIN_LENGTH,
        max_length: int = PreprocessingConfig.MAX_LENGTH,
    ):
        self.included_fields = included_fields or INCLUDED_FIELDS
        self.field_weights = field_weights or FIELD_WEIGHTS
        self.remove_html = remove_html
        self.remove_punctuation = remove_punctuation
        self.to_lower_case = to_lower_case
        self.min_length = min_length
        self.max_length = max_length

    @staticmethod
    def _field_to_text(value: Any) -> str:
        if isinstance(value, (list, tuple)):
            return " ".join(str(item) for item in value)
        if isinstance(value, dict):
            return json.dumps(value, sort_keys=True, ensure_ascii=False)
        return str(value)

    def extract_searchable_content(self, record: Dict[str, Any]) -> str:
        parts: List[str] = []
        for field in self.included_fields:
            value = record.get(field)
            if not value:
                continue

            field_text = self._field_to_text(value)
            repetitions = weight_repetitions(self.field_weights.get(field, 1.0))
            parts.extend([field_text] * repetitions)

        return self.preprocess_text(" ".join(parts))

    def preprocess_text(self, text: str) -> str:
        processed = text
        if self.remove_html:
            processed = _HTML_TAG_RE.sub(" ", processed)
        if self.remove_punctuation:
            processed = _PUNCTUATION_RE.sub(" ", processed)
        if self.to_lower_case:
            processed = processed.lower()

        processed = _WHITESPACE_RE.sub(" ", processed).strip()

        if len(processed) < self.min_length:
            return ""

        if len(processed) > self.max_length:
            processed = processed[: self.max_length]
            last_space = processed.rfind(" ")
            if last_space > self.max_length * PreprocessingConfig.WORD_BOUNDARY_RATIO:
                processed = processed[:last_space]

        return processed

    @staticmethod
    def generate_content_hash(text: str) -> str:
        return hashlib.sha256(text.encode("utf-8")).hexdigest()

    def extract_content_sources(self, record: Dict[str, Any]) -> ContentSources:
        """Proyección simple de los campos del registro, sin pesos."""
        projection = {field: record.get(field) for field in CONTENT_SOURCE_FIELDS if record.get(field)}
        return ContentSources(**projection)
