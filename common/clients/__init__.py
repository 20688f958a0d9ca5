"""Módulo de clientes comunes.

Exporta el gestor de conexiones Redis y el cliente del almacén de documentos.
"""

from .redis_manager import RedisManager
from .document_store import DocumentStoreClient, RedisDocumentStore, FieldFilter, Record

__all__ = [
    "RedisManager",
    "DocumentStoreClient",
    "RedisDocumentStore",
    "FieldFilter",
    "Record",
]
