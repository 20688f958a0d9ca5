"""
Registro de métricas de rendimiento en memoria.

Cada métrica guarda sus últimos valores en un buffer circular; las
estadísticas (count/average/min/max/p95) se calculan bajo demanda.
"""

import threading
import time
from collections import deque
from typing import Callable, Deque, Dict, Optional

from pydantic import BaseModel


class MetricStats(BaseModel):
    count: int
    average: float
    min: float
    max: float
    p95: float


class PerformanceMonitor:
    """
    Buffer circular por nombre de métrica, seguro ante accesos concurrentes.
    """

    def __init__(self, max_samples: int = 100):
        self.max_samples = max_samples
        self._metrics: Dict[str, Deque[float]] = {}
        self._lock = threading.Lock()

    @staticmethod
    def start_timer() -> Callable[[], float]:
        """Devuelve una función que retorna los milisegundos transcurridos."""
        start = time.perf_counter()

        def elapsed_ms() -> float:
            return (time.perf_counter() - start) * 1000

        return elapsed_ms

    def record_metric(self, name: str, value: float) -> None:
        with self._lock:
            buffer = self._metrics.get(name)
            if buffer is None:
                buffer = deque(maxlen=self.max_samples)
                self._metrics[name] = buffer
            buffer.append(float(value))

    def get_metric_stats(self, name: str) -> Optional[MetricStats]:
        with self._lock:
            values = list(self._metrics.get(name, ()))

        if not values:
            return None

        ordered = sorted(values)
        count = len(ordered)
        p95_index = min(int(count * 0.95), count - 1)
        return MetricStats(
            count=count,
            average=sum(ordered) / count,
            min=ordered[0],
            max=ordered[-1],
            p95=ordered[p95_index],
        )

    def get_all_metrics(self) -> Dict[str, MetricStats]:
        with self._lock:
            names = list(self._metrics.keys())
        result = {}
        for name in names:
            stats = self.get_metric_stats(name)
            if stats is not None:
                result[name] = stats
        return result

    def clear_metrics(self) -> None:
        with self._lock:
            self._metrics.clear()
