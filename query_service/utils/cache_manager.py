"""
Gestor de caché para Query Service.

Cachea respuestas completas de búsqueda semántica (ya paginadas) con un TTL.
Dos backends: memoria del proceso (acotada a max_entries, se descarta la
entrada más antigua) y Redis (SET con EX). Los errores de caché se
registran como warning y se tratan como un fallo de caché.
"""

import asyncio
import hashlib
import json
import logging
import time
from typing import Dict, Optional, Tuple

from ..config.constants import CACHE_KEY_PREFIX
from ..models.search_payloads import SearchQuery, SearchResponse


class SearchCacheManager:
    """Caché de respuestas de búsqueda por clave de petición normalizada."""

    def __init__(
        self,
        ttl_seconds: int = 300,
        max_entries: int = 1000,
        backend: str = "memory",
        redis_conn=None,
        enabled: bool = True,
    ):
        if backend == "redis" and redis_conn is None:
            raise ValueError("El backend 'redis' requiere una conexión Redis")

        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self.backend = backend
        self.redis_conn = redis_conn
        self.enabled = enabled and ttl_seconds > 0
        self._entries: Dict[str, Tuple[float, SearchResponse]] = {}
        self._lock = asyncio.Lock()
        self._logger = logging.getLogger(__name__)

    @classmethod
    def from_settings(cls, settings, redis_conn=None) -> "SearchCacheManager":
        return cls(
            ttl_seconds=settings.cache_ttl_seconds,
            max_entries=settings.cache_max_entries,
            backend=settings.cache_backend,
            redis_conn=redis_conn,
            enabled=settings.cache_enabled,
        )

    @staticmethod
    def get_search_cache_key(search_query: SearchQuery) -> str:
        """
        Genera una clave de caché única para una petición de búsqueda.
        """
        key_data = {
            "query": search_query.query.strip().lower(),
            "filters": search_query.filters.model_dump(mode="json", exclude_none=True),
            "options": search_query.options.model_dump(mode="json", exclude_none=True),
        }
        key_string = json.dumps(key_data, sort_keys=True)
        key_hash = hashlib.sha256(key_string.encode()).hexdigest()[:16]
        return f"{CACHE_KEY_PREFIX}:{key_hash}"

    async def get(self, cache_key: str) -> Optional[SearchResponse]:
        if not self.enabled:
            return None

        try:
            if self.backend == "redis":
                cached_data = await self.redis_conn.get(cache_key)
                if cached_data:
                    self._logger.debug(f"Cache hit para búsqueda con clave: {cache_key}")
                    return SearchResponse.model_validate_json(cached_data)
                return None

            async with self._lock:
                entry = self._entries.get(cache_key)
                if entry is None:
                    return None
                expires_at, response = entry
                if time.monotonic() >= expires_at:
                    del self._entries[cache_key]
                    return None
            self._logger.debug(f"Cache hit para búsqueda con clave: {cache_key}")
            return response.model_copy(deep=True)
        except Exception as e:
            self._logger.warning(f"Error al leer caché de búsqueda: {e}")
            return None

    async def set(self, cache_key: str, response: SearchResponse) -> None:
        if not self.enabled:
            return

        try:
            if self.backend == "redis":
                await self.redis_conn.set(cache_key, response.model_dump_json(), ex=self.ttl_seconds)
            else:
                async with self._lock:
                    self._entries.pop(cache_key, None)
                    self._entries[cache_key] = (time.monotonic() + self.ttl_seconds, response.model_copy(deep=True))
                    while len(self._entries) > self.max_entries:
                        oldest_key = next(iter(self._entries))
                        del self._entries[oldest_key]
            self._logger.debug(f"Respuesta de búsqueda cacheada con clave: {cache_key}")
        except Exception as e:
            self._logger.warning(f"Error al escribir en caché de búsqueda: {e}")

    async def sweep_expired(self) -> int:
        """Elimina las entradas caducadas de la caché en memoria."""
        if self.backend == "redis":
            return 0

        now = time.monotonic()
        async with self._lock:
            expired = [key for key, (expires_at, _) in self._entries.items() if now >= expires_at]
            for key in expired:
                del self._entries[key]
        return len(expired)

    async def clear(self) -> int:
        try:
            if self.backend == "redis":
                keys = [key async for key in self.redis_conn.scan_iter(match=f"{CACHE_KEY_PREFIX}:*")]
                if keys:
                    await self.redis_conn.delete(*keys)
                removed = len(keys)
            else:
                async with self._lock:
                    removed = len(self._entries)
                    self._entries.clear()
        except Exception as e:
            self._logger.warning(f"Error al limpiar caché de búsqueda: {e}")
            return 0

        self._logger.info(f"Caché de búsqueda limpiada ({removed} entradas)")
        return removed

    def size(self) -> int:
        return len(self._entries)
