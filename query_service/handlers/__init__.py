"""
Handlers del Query Service.
"""

from .ranking_handler import RankingHandler
from .suggestion_handler import SuggestionHandler

__all__ = [
    "RankingHandler",
    "SuggestionHandler",
]
