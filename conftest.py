"""
Fixtures compartidas por las pruebas de los servicios.

Ninguna prueba usa red: el proveedor de embeddings, el almacén de
documentos y Redis se sustituyen por dobles en memoria.
"""

import copy
import fnmatch
import math
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from common.clients.document_store import DocumentStoreClient, FieldFilter, Record
from common.config import EmbeddingServiceSettings, QueryServiceSettings
from common.errors.exceptions import DocumentStoreError, NotFoundError
from common.utils import PerformanceMonitor
from embedding_service.clients import EmbeddingProvider
from embedding_service.services import EmbeddingService
from query_service.services import VectorSearchService

DIMENSIONS = 1536


def unit_vector(dimensions: int = DIMENSIONS) -> List[float]:
    return [1.0] + [0.0] * (dimensions - 1)


def vector_with_cosine(cosine: float, dimensions: int = DIMENSIONS) -> List[float]:
    """Vector unitario cuya similitud coseno con unit_vector() es `cosine`."""
    return [cosine, math.sqrt(1 - cosine ** 2)] + [0.0] * (dimensions - 2)


class FakeEmbeddingProvider(EmbeddingProvider):
    """Proveedor determinista; puede fallar para ciertos textos o las primeras N llamadas."""

    def __init__(
        self,
        model: str = "text-embedding-3-small",
        vector: Optional[List[float]] = None,
        fail_when: Optional[Callable[[str], bool]] = None,
        fail_times: int = 0,
    ):
        self.model = model
        self.vector = vector or unit_vector()
        self.fail_when = fail_when
        self.remaining_failures = fail_times
        self.calls: List[str] = []

    async def embed(self, text: str) -> Tuple[List[float], int]:
        self.calls.append(text)
        if self.remaining_failures > 0:
            self.remaining_failures -= 1
            raise RuntimeError("provider unavailable")
        if self.fail_when and self.fail_when(text):
            raise RuntimeError("provider rejected input")
        return list(self.vector), max(1, len(text) // 4)


class InMemoryDocumentStore(DocumentStoreClient):
    """Almacén en memoria; el orden de inserción es el orden de paginación."""

    def __init__(self, records: Iterable[Record] = ()):
        self.records: Dict[str, Record] = {}
        self.updates: List[Tuple[str, Dict[str, Any]]] = []
        self.unavailable = False
        for record in records:
            self.add(record)

    def add(self, record: Record) -> None:
        self.records[str(record["id"])] = copy.deepcopy(record)

    def _check(self) -> None:
        if self.unavailable:
            raise DocumentStoreError("Document store unavailable")

    async def get(self, record_id: str) -> Optional[Record]:
        self._check()
        record = self.records.get(record_id)
        return copy.deepcopy(record) if record is not None else None

    async def update(self, record_id: str, fields: Dict[str, Any]) -> None:
        self._check()
        if record_id not in self.records:
            raise NotFoundError(f"Registro {record_id} no encontrado")
        self.records[record_id].update(copy.deepcopy(fields))
        self.updates.append((record_id, fields))

    async def scan(self, page_size: int, cursor: Optional[str] = None) -> Tuple[List[Record], Optional[str]]:
        self._check()
        start = int(cursor) if cursor else 0
        ids = list(self.records)[start:start + page_size]
        next_cursor = str(start + len(ids)) if start + len(ids) < len(self.records) else None
        return [copy.deepcopy(self.records[i]) for i in ids], next_cursor

    async def count(self) -> int:
        self._check()
        return len(self.records)

    async def query_where(self, filters: List[FieldFilter]) -> List[Record]:
        self._check()
        return [
            copy.deepcopy(record) for record in self.records.values()
            if all(f.matches(record) for f in filters)
        ]


class FakeRedis:
    """Subconjunto de redis.asyncio.Redis usado por el almacén y la caché."""

    def __init__(self):
        self.data: Dict[str, Any] = {}
        self.zsets: Dict[str, Dict[str, float]] = {}
        self.expirations: Dict[str, int] = {}
        self.unavailable = False
        self.closed = False

    def _check(self) -> None:
        if self.unavailable:
            raise RedisConnectionError("Connection refused")

    async def ping(self) -> bool:
        self._check()
        return True

    async def get(self, key: str):
        self._check()
        return self.data.get(key)

    async def set(self, key: str, value: Any, ex: Optional[int] = None) -> bool:
        self._check()
        self.data[key] = value
        if ex is not None:
            self.expirations[key] = ex
        return True

    async def mget(self, keys: List[str]) -> List[Any]:
        self._check()
        return [self.data.get(key) for key in keys]

    async def delete(self, *keys: str) -> int:
        self._check()
        removed = 0
        for key in keys:
            if self.data.pop(key, None) is not None:
                removed += 1
        return removed

    async def zadd(self, key: str, mapping: Dict[str, float]) -> int:
        self._check()
        self.zsets.setdefault(key, {}).update(mapping)
        return len(mapping)

    async def zrevrange(self, key: str, start: int, end: int) -> List[str]:
        self._check()
        members = sorted(self.zsets.get(key, {}).items(), key=lambda item: item[1], reverse=True)
        return [member for member, _ in members[start:end + 1]]

    async def zcard(self, key: str) -> int:
        self._check()
        return len(self.zsets.get(key, {}))

    async def scan_iter(self, match: str = "*"):
        self._check()
        for key in list(self.data):
            if fnmatch.fnmatch(key, match):
                yield key

    async def aclose(self) -> None:
        self.closed = True


def make_record(record_id: str, **fields: Any) -> Record:
    record = {
        "id": record_id,
        "name": f"Document Processing AI {record_id}",
        "description": "Automated document processing with AI for invoices and contracts",
        "tags": ["ocr", "automation"],
        "category": "Machine Learning",
        "features": ["data extraction"],
        "industries": ["finance"],
        "technologies": ["NLP"],
    }
    record.update(fields)
    return record


@pytest.fixture
def embedding_settings() -> EmbeddingServiceSettings:
    """Configuración de Embedding Service sin pausas ni esperas entre reintentos."""
    return EmbeddingServiceSettings(
        environment="test",
        openai_api_key="test-key",
        batch_delay_seconds=0,
        pipeline_retry_base_delay_seconds=0,
    )


@pytest.fixture
def query_settings() -> QueryServiceSettings:
    return QueryServiceSettings(environment="test", cache_enabled=True)


@pytest.fixture
def performance_monitor() -> PerformanceMonitor:
    return PerformanceMonitor()


@pytest.fixture
def provider() -> FakeEmbeddingProvider:
    return FakeEmbeddingProvider()


@pytest.fixture
def document_store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def embedding_service(embedding_settings, provider, document_store, performance_monitor) -> EmbeddingService:
    return EmbeddingService(
        app_settings=embedding_settings,
        provider=provider,
        document_store=document_store,
        performance_monitor=performance_monitor,
    )


@pytest.fixture
def search_service(query_settings, embedding_service, document_store, performance_monitor) -> VectorSearchService:
    return VectorSearchService(
        app_settings=query_settings,
        embedding_service=embedding_service,
        document_store=document_store,
        performance_monitor=performance_monitor,
    )
