"""
Cliente para la API de OpenAI Embeddings.

Proporciona la interfaz del proveedor de embeddings consumida por el
servicio: `embed(text) -> (vector, token_count)`.
"""

import logging
import time
from abc import ABC, abstractmethod
from typing import List, Optional, Tuple

from openai import AsyncOpenAI, APIError, APITimeoutError, RateLimitError, APIConnectionError
from common.errors.exceptions import ExternalServiceError


class EmbeddingProvider(ABC):
    """Contrato del proveedor de embeddings."""

    model: str

    @abstractmethod
    async def embed(self, text: str) -> Tuple[List[float], int]:
        """
        Genera el embedding de un texto.

        Returns:
            (vector, token_count). Cualquier fallo se lanza como excepción.
        """


class OpenAIClient(EmbeddingProvider):
    """
    Cliente asíncrono para la API de OpenAI Embeddings usando el SDK oficial.
    """

    def __init__(
        self,
        api_key: str,
        timeout: int,
        max_retries: int,
        model: str = "text-embedding-3-small",
        base_url: Optional[str] = None
    ):
        """
        Inicializa el cliente con la API key y otras configuraciones.

        Args:
            api_key: API key de OpenAI
            timeout: Timeout en segundos para las peticiones (desde EmbeddingServiceSettings)
            max_retries: Número máximo de reintentos automáticos por el SDK (desde EmbeddingServiceSettings)
            model: Modelo de embeddings a usar
            base_url: URL base de la API (opcional)
        """
        if not api_key:
            raise ValueError("API key de OpenAI es requerida")

        self.model = model
        self.timeout = timeout
        self.max_retries = max_retries

        self.client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout,
            max_retries=max_retries
        )
        self.logger = logging.getLogger(__name__)

    async def embed(self, text: str) -> Tuple[List[float], int]:
        """
        Genera el embedding de un único texto.

        Raises:
            ExternalServiceError: Si ocurre un error con la API de OpenAI.
        """
        start_time = time.time()
        try:
            response = await self.client.embeddings.create(
                input=text,
                model=self.model,
                encoding_format="float",
            )
        except APITimeoutError as e:
            self.logger.error(f"Timeout en llamada a OpenAI API: {e}")
            raise ExternalServiceError(f"OpenAI API timeout: {e}", original_exception=e)
        except RateLimitError as e:
            self.logger.error(f"Rate limit excedido en OpenAI API: {e}")
            raise ExternalServiceError(f"OpenAI API rate limit excedido: {e}", original_exception=e)
        except APIConnectionError as e:
            self.logger.error(f"Error de conexión con OpenAI API: {e}")
            raise ExternalServiceError(f"OpenAI API error de conexión: {e}", original_exception=e)
        except APIError as e:
            self.logger.error(f"Error en OpenAI API: {e}")
            raise ExternalServiceError(f"OpenAI API error: {e}", original_exception=e)

        if not response.data:
            raise ExternalServiceError("OpenAI API devolvió una respuesta sin embeddings")

        token_count = response.usage.total_tokens if response.usage else 0
        processing_time_ms = int((time.time() - start_time) * 1000)
        self.logger.debug(
            f"Embedding generado en {processing_time_ms}ms. Modelo: {response.model}. Tokens: {token_count}."
        )
        return list(response.data[0].embedding), token_count
