import logging
from abc import ABC

from common.config.base_settings import CommonAppSettings


class BaseHandler(ABC):
    """
    Clase base abstracta y mínima para Handlers de utilidad de dominio.

    Los Handlers encapsulan lógica de negocio específica (validación,
    ranking, sugerencias) y son utilizados por la Capa de Servicio para
    mantener su código limpio y organizado.

    Esta clase base proporciona un logger configurado y acceso a la configuración
    de la aplicación.
    """
    def __init__(self, app_settings: CommonAppSettings):
        """
        Inicializa el handler base.

        Args:
            app_settings: La configuración de la aplicación.
        """
        if not app_settings.service_name:
            raise ValueError("CommonAppSettings debe tener 'service_name' configurado para el logger del handler.")

        self.app_settings = app_settings
        # El logger se nombra usando el service_name de app_settings y el nombre de la clase del handler.
        self._logger = logging.getLogger(f"{app_settings.service_name}.{self.__class__.__name__}")
        self._logger.debug(f"Handler {self.__class__.__name__} inicializado.")

    # Los métodos de un handler son específicos de su dominio y los llama el Service directamente.
