"""
Gestor de la conexión Redis compartida.

Redis respalda el almacén de documentos del catálogo y, opcionalmente, la
caché de búsquedas del Query Service. Cada proceso (API o CLI) abre una
única conexión en su raíz de composición y la cierra al terminar.
"""

import logging
from typing import Optional
from urllib.parse import urlsplit, urlunsplit

import redis.asyncio as redis
from redis.exceptions import RedisError

from common.config.base_settings import CommonAppSettings
from common.errors.exceptions import DocumentStoreError

logger = logging.getLogger(__name__)


def mask_redis_url(url: str) -> str:
    """Oculta la contraseña de una URL de Redis para poder registrarla."""
    parts = urlsplit(url)
    if not parts.password:
        return url
    host = parts.hostname or ""
    if parts.port:
        host = f"{host}:{parts.port}"
    user = parts.username or ""
    return urlunsplit((parts.scheme, f"{user}:***@{host}", parts.path, parts.query, parts.fragment))


class RedisManager:
    """Gestor de conexiones Redis para la aplicación."""

    def __init__(self, settings: CommonAppSettings):
        self._settings = settings
        self._redis_client: Optional[redis.Redis] = None

    @property
    def is_connected(self) -> bool:
        return self._redis_client is not None

    async def get_client(self) -> redis.Redis:
        """
        Obtiene el cliente Redis asíncrono, creándolo en la primera llamada.

        La primera conexión se verifica con un ping.

        Raises:
            DocumentStoreError: Si falla la conexión o el ping a Redis.
        """
        if self._redis_client is None:
            safe_url = mask_redis_url(self._settings.redis_url)
            logger.info(f"Conectando al almacén de documentos en Redis: {safe_url}")
            client = redis.from_url(
                self._settings.redis_url,
                password=self._settings.redis_password,
                decode_responses=self._settings.redis_decode_responses,
                socket_connect_timeout=self._settings.redis_socket_connect_timeout,
                socket_keepalive=self._settings.redis_socket_keepalive,
                max_connections=self._settings.redis_max_connections,
                health_check_interval=self._settings.redis_health_check_interval
            )
            try:
                await client.ping()
            except (RedisError, OSError) as e:
                logger.error(f"No se pudo conectar a Redis en {safe_url}: {e}")
                await client.aclose()
                raise DocumentStoreError(f"Redis unavailable at {safe_url}", original_exception=e)

            self._redis_client = client
            logger.info("Cliente Redis conectado y ping exitoso.")

        return self._redis_client

    async def close(self):
        """Cierra el cliente Redis y su pool de conexiones, si existe."""
        if self._redis_client is None:
            return
        logger.info("Cerrando cliente Redis...")
        await self._redis_client.aclose()
        self._redis_client = None
        logger.info("Cliente Redis cerrado.")
