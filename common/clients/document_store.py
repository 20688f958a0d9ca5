"""
Cliente del almacén de documentos del catálogo.

Define el contrato que consumen el pipeline de embeddings y el servicio de
búsqueda, y una implementación sobre Redis: cada registro se guarda como
JSON bajo `{prefix}:{id}` y un sorted set `{prefix}:index` ordena los ids
por fecha de creación.
"""

import json
import logging
from abc import ABC, abstractmethod
from datetime import datetime, date
from typing import Any, Dict, List, Literal, Optional, Tuple

import redis.asyncio as redis_async
from pydantic import BaseModel, Field

from common.errors.exceptions import DocumentStoreError, NotFoundError

Record = Dict[str, Any]


class FieldFilter(BaseModel):
    """Filtro grueso aplicado en el almacén para reducir candidatos."""
    field: str
    op: Literal["in", ">="] = "in"
    value: Any = Field(..., description="Lista de valores para 'in', umbral para '>='.")

    def matches(self, record: Record) -> bool:
        current = record.get(self.field)
        if self.op == "in":
            return current in (self.value or [])
        if current is None:
            return False
        try:
            return current >= self.value
        except TypeError:
            return False


def _json_default(value: Any):
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    raise TypeError(f"Tipo no serializable: {type(value).__name__}")


def _created_score(record: Record) -> float:
    created = record.get("createdAt")
    if isinstance(created, datetime):
        return created.timestamp()
    if isinstance(created, (int, float)):
        return float(created)
    if isinstance(created, str):
        try:
            return datetime.fromisoformat(created).timestamp()
        except ValueError:
            return 0.0
    return 0.0


class DocumentStoreClient(ABC):
    """Contrato mínimo del almacén de registros."""

    @abstractmethod
    async def get(self, record_id: str) -> Optional[Record]:
        """Lectura puntual; None si el registro no existe."""

    @abstractmethod
    async def update(self, record_id: str, fields: Dict[str, Any]) -> None:
        """Actualiza campos de un registro existente."""

    @abstractmethod
    async def scan(self, page_size: int, cursor: Optional[str] = None) -> Tuple[List[Record], Optional[str]]:
        """
        Página de registros ordenada por fecha de creación (más reciente primero).

        Returns:
            (registros, siguiente_cursor). El cursor es None en la última página.
        """

    @abstractmethod
    async def count(self) -> int:
        """Número total de registros."""

    @abstractmethod
    async def query_where(self, filters: List[FieldFilter]) -> List[Record]:
        """Registros que cumplen todos los filtros."""

    async def ping(self) -> bool:
        await self.count()
        return True


class RedisDocumentStore(DocumentStoreClient):
    """Almacén de registros sobre Redis."""

    def __init__(self, redis_conn: redis_async.Redis, prefix: str = "catalog:services", scan_page_size: int = 200):
        self.redis_conn = redis_conn
        self.prefix = prefix
        self.scan_page_size = scan_page_size
        self._logger = logging.getLogger(__name__)

    def _record_key(self, record_id: str) -> str:
        return f"{self.prefix}:{record_id}"

    @property
    def _index_key(self) -> str:
        return f"{self.prefix}:index"

    @staticmethod
    def _decode(record_id: str, raw: Any) -> Optional[Record]:
        if raw is None:
            return None
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        record = json.loads(raw)
        record["id"] = record_id
        return record

    async def save(self, record: Record) -> None:
        """Inserta o reemplaza un registro completo."""
        record_id = str(record["id"])
        try:
            await self.redis_conn.set(self._record_key(record_id), json.dumps(record, default=_json_default))
            await self.redis_conn.zadd(self._index_key, {record_id: _created_score(record)})
        except redis_async.RedisError as e:
            raise DocumentStoreError(f"No se pudo guardar el registro {record_id}: {e}", original_exception=e)

    async def get(self, record_id: str) -> Optional[Record]:
        try:
            raw = await self.redis_conn.get(self._record_key(record_id))
        except redis_async.RedisError as e:
            raise DocumentStoreError(f"No se pudo leer el registro {record_id}: {e}", original_exception=e)
        return self._decode(record_id, raw)

    async def update(self, record_id: str, fields: Dict[str, Any]) -> None:
        record = await self.get(record_id)
        if record is None:
            raise NotFoundError(f"Registro {record_id} no encontrado")
        record.update(fields)
        try:
            await self.redis_conn.set(self._record_key(record_id), json.dumps(record, default=_json_default))
        except redis_async.RedisError as e:
            raise DocumentStoreError(f"No se pudo actualizar el registro {record_id}: {e}", original_exception=e)
        self._logger.debug(f"Registro {record_id} actualizado: {sorted(fields.keys())}")

    async def scan(self, page_size: int, cursor: Optional[str] = None) -> Tuple[List[Record], Optional[str]]:
        start = int(cursor) if cursor else 0
        try:
            ids = await self.redis_conn.zrevrange(self._index_key, start, start + page_size - 1)
            ids = [i.decode("utf-8") if isinstance(i, bytes) else i for i in ids]
            raw_records = await self.redis_conn.mget([self._record_key(i) for i in ids]) if ids else []
        except redis_async.RedisError as e:
            raise DocumentStoreError(f"Error paginando registros: {e}", original_exception=e)

        records = [
            record for record in (self._decode(i, raw) for i, raw in zip(ids, raw_records))
            if record is not None
        ]
        next_cursor = str(start + len(ids)) if len(ids) == page_size else None
        return records, next_cursor

    async def count(self) -> int:
        try:
            return await self.redis_conn.zcard(self._index_key)
        except redis_async.RedisError as e:
            raise DocumentStoreError(f"Error contando registros: {e}", original_exception=e)

    async def query_where(self, filters: List[FieldFilter]) -> List[Record]:
        # Redis no indexa campos arbitrarios: se recorre el índice y se filtra en memoria.
        matched: List[Record] = []
        cursor: Optional[str] = None
        while True:
            records, cursor = await self.scan(self.scan_page_size, cursor)
            matched.extend(r for r in records if all(f.matches(r) for f in filters))
            if cursor is None:
                break
        return matched

    async def ping(self) -> bool:
        try:
            return bool(await self.redis_conn.ping())
        except redis_async.RedisError as e:
            raise DocumentStoreError(f"Redis no disponible: {e}", original_exception=e)
