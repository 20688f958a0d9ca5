from .logging import init_logging
from .performance_monitor import PerformanceMonitor, MetricStats

__all__ = ["init_logging", "PerformanceMonitor", "MetricStats"]
