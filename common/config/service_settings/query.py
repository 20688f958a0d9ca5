"""
Configuración específica para el Query Service.
"""
from typing import Literal
from pydantic import Field, model_validator
from pydantic_settings import SettingsConfigDict
from ..base_settings import CommonAppSettings


ENVIRONMENT_OVERRIDES = {
    "development": {"default_limit": 10, "cache_enabled": False},
    "test": {"cache_enabled": False},
    "production": {"cache_enabled": True, "cache_ttl_seconds": 600},
}


class QueryServiceSettings(CommonAppSettings):
    """
    Configuración específica para Query Service.
    Hereda de CommonAppSettings y añade los parámetros de búsqueda semántica.
    """
    model_config = SettingsConfigDict(extra='ignore', env_file='.env', env_prefix='QUERY_')

    service_name: str = Field("query_service", description="Nombre del servicio query.")
    service_version: str = Field("1.0.0", description="Versión del servicio")
    domain_name: str = Field(default="query", description="Dominio del servicio para acciones y logging")

    # Búsqueda
    default_limit: int = Field(20, description="Resultados por página si la petición no indica límite.")
    max_limit: int = Field(100, description="Límite máximo de resultados, sin importar la petición.")
    default_threshold: float = Field(0.7, description="Umbral de similitud por defecto.")
    query_max_length: int = Field(1000, description="Longitud máxima de una consulta.")

    # Caché de resultados
    cache_enabled: bool = Field(True, description="Habilitar caché de respuestas de búsqueda.")
    cache_ttl_seconds: int = Field(300, description="TTL de la caché de búsqueda.")
    cache_max_entries: int = Field(1000, description="Entradas máximas en la caché en memoria.")
    cache_backend: Literal["memory", "redis"] = Field("memory", description="Backend de la caché de búsqueda.")

    # Procesamiento de consultas
    enable_synonym_expansion: bool = Field(True, description="Expandir sinónimos en la consulta.")
    max_synonym_expansions: int = Field(3, description="Sinónimos máximos añadidos por término.")
    enable_spell_correction: bool = Field(True, description="Aplicar corrección ortográfica básica.")
    enable_intent_detection: bool = Field(True, description="Detectar la intención de la consulta.")

    @model_validator(mode="after")
    def apply_environment_overrides(self):
        for field_name, value in ENVIRONMENT_OVERRIDES.get(self.environment, {}).items():
            if field_name not in self.model_fields_set:
                setattr(self, field_name, value)
        return self
