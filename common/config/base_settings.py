import os
from typing import Optional, List
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator


class CommonAppSettings(BaseSettings):
    model_config = SettingsConfigDict(extra='ignore', env_file='.env')

    # Identificación y Entorno del Servicio
    service_name: str = Field(
        os.getenv("SERVICE_NAME", "semantic_search"),
        description="Nombre del servicio, ej: 'embedding_service'. Requerido."
    )
    service_version: str = Field(
        os.getenv("SERVICE_VERSION", "1.0.0"),
        description="Versión del servicio."
    )
    environment: str = Field(
        os.getenv("ENVIRONMENT", "development"),
        description="Entorno de ejecución (development, test, staging, production)."
    )
    log_level: str = Field(
        os.getenv("LOG_LEVEL", "INFO"),
        description="Nivel de logging (DEBUG, INFO, WARNING, ERROR)."
    )

    # Configuración de Redis (común a todos los servicios)
    redis_url: str = Field(
        os.getenv("REDIS_URL", "redis://redis:6379"),
        description="URL de conexión a Redis."
    )
    redis_password: Optional[str] = Field(
        os.getenv("REDIS_PASSWORD"),
        description="Contraseña para Redis (si aplica)."
    )
    redis_decode_responses: bool = Field(
        os.getenv("REDIS_DECODE_RESPONSES", "True").lower() == "true",
        description="Decodificar respuestas de Redis a UTF-8."
    )
    redis_socket_connect_timeout: int = Field(
        int(os.getenv("REDIS_SOCKET_CONNECT_TIMEOUT", "5")),
        description="Timeout en segundos para la conexión del socket de Redis."
    )
    redis_socket_keepalive: bool = Field(
        os.getenv("REDIS_SOCKET_KEEPALIVE", "True").lower() == "true",
        description="Habilitar keepalive para el socket de Redis."
    )
    redis_max_connections: int = Field(
        int(os.getenv("REDIS_MAX_CONNECTIONS", "10")),
        description="Número máximo de conexiones en el pool de Redis."
    )
    redis_health_check_interval: int = Field(
        int(os.getenv("REDIS_HEALTH_CHECK_INTERVAL", "30")),
        description="Intervalo en segundos para el health check de Redis."
    )

    # Almacén de documentos (catálogo de servicios)
    document_store_prefix: str = Field(
        os.getenv("DOCUMENT_STORE_PREFIX", "catalog:services"),
        description="Prefijo de claves Redis para los registros del catálogo."
    )

    # Puertos de servicios (configurables desde .env)
    query_service_port: int = Field(
        int(os.getenv("QUERY_SERVICE_PORT", "8000")),
        description="Puerto para Query Service."
    )
    embedding_service_port: int = Field(
        int(os.getenv("EMBEDDING_SERVICE_PORT", "8006")),
        description="Puerto para Embedding Service."
    )

    # OpenAI (configurables desde .env)
    openai_api_key: Optional[str] = Field(
        os.getenv("OPENAI_API_KEY"),
        description="API key para OpenAI."
    )
    openai_base_url: Optional[str] = Field(
        os.getenv("OPENAI_BASE_URL"),
        description="URL base para API de OpenAI (SI NO SE USA OPEN AI EMBEDDING Y SE USA OTRO EMBEDDINGS)."
    )

    # CORS
    cors_origins: List[str] = Field(
        default=os.getenv("CORS_ORIGINS", "*").split(","),
        description="Orígenes permitidos para CORS."
    )

    @field_validator("cors_origins", mode='before')
    def parse_cors_origins(cls, v):
        if isinstance(v, str) and not v.startswith("["):
            return [origin.strip() for origin in v.split(",")]
        if isinstance(v, list):
            return v
        return ["*"]

    @field_validator("environment", mode='before')
    def normalize_environment(cls, v):
        return (v or "development").strip().lower()
