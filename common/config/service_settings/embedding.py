"""
Definición de la configuración específica para Embedding Service.
"""
from typing import Literal
from pydantic import Field, model_validator
from pydantic_settings import SettingsConfigDict

from ..base_settings import CommonAppSettings


# Valores por entorno que se aplican solo si no se definieron explícitamente.
ENVIRONMENT_OVERRIDES = {
    "development": {"max_concurrent_embeddings": 2},
    "test": {"batch_size": 10},
    "production": {"max_concurrent_embeddings": 10},
}


class EmbeddingServiceSettings(CommonAppSettings):
    """
    Configuración específica para Embedding Service.
    Define el modelo de embeddings, los límites de lotes y concurrencia
    y los valores por defecto del pipeline de generación.
    """

    model_config = SettingsConfigDict(
        env_prefix='EMBEDDING_',
        extra='ignore',
        env_file='.env'
    )

    # --- Información del servicio ---
    service_name: str = Field("embedding_service", description="Nombre del servicio de embeddings.")
    service_version: str = Field("1.0.0", description="Versión del servicio de embeddings.")
    domain_name: str = Field("embedding", description="Nombre de dominio para acciones y logging.")

    # --- Modelo y límites del proveedor ---
    embedding_model: str = Field("text-embedding-3-small", description="Modelo de embeddings de OpenAI.")
    max_tokens: int = Field(8191, description="Máximo de tokens aceptados por el modelo.")
    embedding_version: str = Field("1.0.0", description="Versión del esquema de metadatos de embeddings.")

    # --- Lotes y concurrencia ---
    batch_size: int = Field(100, description="Tamaño de lote para generación de embeddings en bloque.")
    max_concurrent_embeddings: int = Field(5, description="Llamadas concurrentes máximas al proveedor dentro de un lote.")
    batch_processing_size: int = Field(50, description="Tamaño de sub-lote para jobs en segundo plano.")
    batch_delay_seconds: float = Field(1.0, description="Pausa entre lotes para respetar el rate limit.")

    # --- Configuración del Cliente OpenAI ---
    openai_timeout_seconds: int = Field(default=30, description="Timeout en segundos para las llamadas a la API de OpenAI.")
    openai_max_retries: int = Field(default=3, description="Número máximo de reintentos para las llamadas a la API de OpenAI.")

    # --- Costes ---
    daily_budget: float = Field(50.0, description="Presupuesto diario en USD.")
    estimated_tokens_per_record: int = Field(500, description="Tokens estimados por registro para presupuestar jobs.")

    # --- Pipeline ---
    pipeline_batch_size: int = Field(10, description="Registros por lote del pipeline.")
    pipeline_max_concurrent_batches: int = Field(2, description="Registros procesados en paralelo dentro de un lote del pipeline.")
    pipeline_retry_attempts: int = Field(3, description="Intentos por registro antes de darlo por fallido.")
    pipeline_retry_base_delay_seconds: float = Field(1.0, description="Retardo base entre reintentos.")
    pipeline_backoff_strategy: Literal["linear", "exponential"] = Field("linear", description="Estrategia de espera entre reintentos.")
    pipeline_enable_progress_tracking: bool = Field(True, description="Registrar progreso del pipeline en logs.")
    pipeline_dry_run: bool = Field(False, description="Ejecutar el pipeline sin escribir en el almacén.")

    @model_validator(mode="after")
    def apply_environment_overrides(self):
        for field_name, value in ENVIRONMENT_OVERRIDES.get(self.environment, {}).items():
            if field_name not in self.model_fields_set:
                setattr(self, field_name, value)
        return self
