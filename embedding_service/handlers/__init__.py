"""
Handlers del Embedding Service.
"""

from .validation_handler import ValidationHandler, ValidationResult

__all__ = ["ValidationHandler", "ValidationResult"]
