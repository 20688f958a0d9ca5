import logging
from abc import ABC, abstractmethod
from typing import Optional, Dict, Any

from common.config.base_settings import CommonAppSettings
from common.models.actions import DomainAction
from common.utils.performance_monitor import PerformanceMonitor


class BaseService(ABC):
    """
    Clase base abstracta para la Capa de Servicio.

    Define el contrato que todas las clases de servicio deben seguir.
    Actúa como un orquestador de la lógica de negocio, utilizando
    componentes especializados (Handlers) para realizar tareas específicas.

    Las dependencias compartidas (monitor de rendimiento, clientes) se
    inyectan desde la raíz de composición del proceso; el servicio nunca
    las crea como singletons de módulo.
    """

    def __init__(
        self,
        app_settings: CommonAppSettings,
        performance_monitor: Optional[PerformanceMonitor] = None,
    ):
        """
        Inicializa el servicio base con dependencias comunes.

        Args:
            app_settings: La configuración de la aplicación (contiene service_name, environment, etc.).
            performance_monitor: (Opcional) Monitor de métricas compartido. Si no se
                                 proporciona, el servicio usa uno propio.
        """
        if not app_settings.service_name:
            raise ValueError("CommonAppSettings debe tener 'service_name' configurado.")

        self.app_settings = app_settings
        self.service_name = app_settings.service_name
        self.performance_monitor = performance_monitor or PerformanceMonitor()
        self._logger = logging.getLogger(f"{self.service_name}.{self.__class__.__name__}")
        self._logger.info(f"Servicio {self.__class__.__name__} inicializado para {self.service_name}")

    @abstractmethod
    async def process_action(self, action: DomainAction) -> Optional[Dict[str, Any]]:
        """
        Procesa una DomainAction y retorna un diccionario con los datos de respuesta.

        Este es el punto de entrada genérico para la lógica de negocio; las
        rutas HTTP y el CLI construyen la acción y delegan aquí.

        Args:
            action: La DomainAction recibida.

        Returns:
            Un diccionario con los datos para la respuesta, o None.
        """
        pass
