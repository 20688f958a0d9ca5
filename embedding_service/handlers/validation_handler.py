"""
Handler para validación de embeddings, consultas y opciones de búsqueda.

Las validaciones devuelven un resultado tipado en lugar de lanzar
excepciones, para que la capa HTTP pueda mapearlas a respuestas 4xx.
"""

import math
from numbers import Number
from typing import Any, Dict, Optional

from pydantic import BaseModel

from common.handlers import BaseHandler
from ..config.constants import QUERY_MAX_LENGTH, SEARCH_FILTER_ARRAY_FIELDS, SUPPORTED_EMBEDDING_MODELS


class ValidationResult(BaseModel):
    valid: bool
    error: Optional[str] = None
    details: Optional[Dict[str, Any]] = None


class ValidationHandler(BaseHandler):
    """
    Handler de validación compartido por el servicio de embeddings y el de búsqueda.
    """

    def __init__(self, app_settings, query_max_length: int = QUERY_MAX_LENGTH, max_limit: int = 100):
        super().__init__(app_settings)
        self.query_max_length = query_max_length
        self.max_limit = max_limit

    def expected_dimensions(self, model: str) -> int:
        return SUPPORTED_EMBEDDING_MODELS[model].dimensions

    def validate_embedding(self, embedding: Any, expected_dimensions: int) -> bool:
        """
        Un embedding es válido si es una lista de la dimensión esperada y
        todos sus elementos son números finitos.
        """
        if not isinstance(embedding, list):
            return False
        if len(embedding) != expected_dimensions:
            self._logger.warning(
                f"Dimensión de embedding inesperada: {len(embedding)} (esperada: {expected_dimensions})"
            )
            return False
        return all(
            isinstance(value, Number) and not isinstance(value, bool) and math.isfinite(value)
            for value in embedding
        )

    def validate_search_query(self, query: Any) -> ValidationResult:
        if not isinstance(query, str):
            return ValidationResult(valid=False, error="Query must be a non-empty string")
        if not query.strip():
            return ValidationResult(valid=False, error="Query cannot be empty")
        if len(query) > self.query_max_length:
            return ValidationResult(
                valid=False,
                error=f"Query too long (max {self.query_max_length} characters)",
            )
        return ValidationResult(valid=True)

    @staticmethod
    def _is_number(value: Any) -> bool:
        return isinstance(value, Number) and not isinstance(value, bool)

    def validate_search_options(self, options: Optional[Dict[str, Any]]) -> ValidationResult:
        options = options or {}

        limit = options.get("limit")
        if limit is not None and (not self._is_number(limit) or limit < 1 or limit > self.max_limit):
            return ValidationResult(valid=False, error=f"Limit must be a number between 1 and {self.max_limit}")

        threshold = options.get("threshold")
        if threshold is not None and (not self._is_number(threshold) or threshold < 0 or threshold > 1):
            return ValidationResult(valid=False, error="Threshold must be a number between 0 and 1")

        offset = options.get("offset")
        if offset is not None and (not self._is_number(offset) or offset < 0):
            return ValidationResult(valid=False, error="Offset must be a non-negative number")

        return ValidationResult(valid=True)

    def validate_search_filters(self, filters: Any) -> ValidationResult:
        if not isinstance(filters, dict):
            return ValidationResult(valid=False, error="Filters must be an object")

        for field in SEARCH_FILTER_ARRAY_FIELDS:
            if filters.get(field) and not isinstance(filters[field], list):
                return ValidationResult(valid=False, error=f"{field} must be an array")

        price_range = filters.get("priceRange", filters.get("price_range"))
        if price_range:
            if not isinstance(price_range, dict):
                return ValidationResult(valid=False, error="priceRange must be an object")
            for bound in ("min", "max"):
                value = price_range.get(bound)
                if value is not None and (not self._is_number(value) or value < 0):
                    return ValidationResult(valid=False, error=f"priceRange.{bound} must be a non-negative number")
            low, high = price_range.get("min"), price_range.get("max")
            if low is not None and high is not None and low > high:
                return ValidationResult(valid=False, error="priceRange.min cannot be greater than priceRange.max")

        min_rating = filters.get("minRating", filters.get("min_rating"))
        if min_rating is not None and (not self._is_number(min_rating) or min_rating < 0 or min_rating > 5):
            return ValidationResult(valid=False, error="minRating must be a number between 0 and 5")

        return ValidationResult(valid=True)

    def validate_search_request(self, body: Any) -> ValidationResult:
        """
        Valida el cuerpo completo de una petición de búsqueda. En caso de
        error, `details.field` indica la sección inválida.
        """
        if not isinstance(body, dict) or not body:
            return ValidationResult(valid=False, error="Request body is required")

        checks = [("query", self.validate_search_query(body.get("query")))]
        if body.get("options"):
            options = body["options"]
            if not isinstance(options, dict):
                checks.append(("options", ValidationResult(valid=False, error="Options must be an object")))
            else:
                checks.append(("options", self.validate_search_options(options)))
        if body.get("filters"):
            checks.append(("filters", self.validate_search_filters(body["filters"])))

        for field, result in checks:
            if not result.valid:
                return ValidationResult(valid=False, error=result.error, details={"field": field})
        return ValidationResult(valid=True)
