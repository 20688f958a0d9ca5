from typing import Optional, Dict, Any, Generic, TypeVar
from pydantic import BaseModel, Field, ConfigDict, model_validator
import uuid
from datetime import datetime, timezone


class ErrorDetail(BaseModel):
    """
    Representa los detalles de un error devuelto al llamador.
    El campo `code` es estable y apto para uso programático.
    """
    code: str = Field(..., description="Código de error estable. Ej: 'INVALID_QUERY', 'SEARCH_FAILED'.")
    message: str = Field(..., description="Mensaje descriptivo del error.")
    details: Optional[Dict[str, Any]] = Field(None, description="Detalles adicionales estructurados sobre el error.")


class DomainAction(BaseModel):
    """
    Representa una acción o comando a ejecutar por un servicio.
    Es el mensaje de entrada estándar de `BaseService.process_action`.
    """
    action_id: uuid.UUID = Field(default_factory=uuid.uuid4, description="Identificador único de esta instancia de acción.")
    action_type: str = Field(..., description='Tipo de acción en formato "servicio.verbo". Ej: "embedding.generate_query", "query.search".')
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), description="Timestamp UTC de la creación de la acción.")

    origin_service: Optional[str] = Field(None, description="Servicio o componente que origina la acción (API, CLI, worker).")
    correlation_id: Optional[uuid.UUID] = Field(None, description="ID para correlacionar la acción con su respuesta.")
    trace_id: Optional[uuid.UUID] = Field(default_factory=uuid.uuid4, description="ID de rastreo para seguir la solicitud en logs.")

    data: Dict[str, Any] = Field(..., description="Payload específico de la acción. El servicio receptor lo valida con el modelo Pydantic que corresponda al 'action_type'.")
    metadata: Optional[Dict[str, Any]] = Field(default_factory=dict, description="Metadatos opcionales de la acción.")

    model_config = ConfigDict(populate_by_name=True, extra='allow', validate_assignment=True)


class ResponseMetadata(BaseModel):
    """Metadatos de la envoltura de respuesta de la API."""
    request_id: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    processing_time: float = Field(0.0, description="Tiempo de procesamiento en milisegundos.")
    version: str = "1.0.0"


TData = TypeVar("TData")


class ApiResponse(BaseModel, Generic[TData]):
    """
    Envoltura estándar {success, data | error, metadata}.
    """
    success: bool
    data: Optional[TData] = None
    error: Optional[ErrorDetail] = None
    metadata: ResponseMetadata

    @model_validator(mode='after')
    def check_data_and_error(self) -> 'ApiResponse':
        if self.success and self.error is not None:
            raise ValueError("Una respuesta exitosa no puede contener 'error'.")
        if not self.success and self.error is None:
            raise ValueError("Una respuesta fallida debe contener 'error'.")
        return self
