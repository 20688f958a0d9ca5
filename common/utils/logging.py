"""
Utilidades de logging comunes.
"""

import logging
import sys
from typing import Optional

def init_logging(log_level: str = "INFO", service_name: Optional[str] = None):
    """Inicializa logging estandarizado."""

    # Configurar formato
    log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    if service_name:
        log_format = f"%(asctime)s - {service_name} - %(name)s - %(levelname)s - %(message)s"

    # Configurar handler
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(log_format))

    # Configurar root logger
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))
    root_logger.handlers = [handler]

    # Configurar loggers específicos
    logging.getLogger("uvicorn").setLevel(logging.INFO)
    for noisy in ("redis", "httpx", "httpcore", "openai"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
