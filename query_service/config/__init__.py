"""
Configuración para Query Service.
"""

from common.config import QueryServiceSettings
from .settings import get_settings
from .constants import SEARCH_STRATEGIES, EndpointPaths

__all__ = [
    "QueryServiceSettings",
    "get_settings",
    "SEARCH_STRATEGIES",
    "EndpointPaths",
]
