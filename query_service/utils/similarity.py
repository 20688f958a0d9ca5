"""
Medidas de similitud entre vectores de embeddings.
"""

import math
from typing import Sequence, Tuple, Union

from common.errors.exceptions import DimensionMismatchError

from ..models.search_payloads import DistanceMetric


def _check_dimensions(a: Sequence[float], b: Sequence[float]) -> None:
    if len(a) != len(b):
        raise DimensionMismatchError(len(a), len(b))


class SimilarityCalculator:
    """Funciones puras de similitud y distancia."""

    @staticmethod
    def dot_product(a: Sequence[float], b: Sequence[float]) -> float:
        _check_dimensions(a, b)
        return sum(x * y for x, y in zip(a, b))

    @staticmethod
    def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
        """
        Similitud coseno en [-1, 1]. Devuelve 0.0 si alguno de los
        vectores tiene norma cero.
        """
        _check_dimensions(a, b)
        dot = 0.0
        norm_a = 0.0
        norm_b = 0.0
        for x, y in zip(a, b):
            dot += x * y
            norm_a += x * x
            norm_b += y * y

        magnitude = math.sqrt(norm_a) * math.sqrt(norm_b)
        if magnitude == 0:
            return 0.0
        return dot / magnitude

    @staticmethod
    def euclidean_distance(a: Sequence[float], b: Sequence[float]) -> float:
        _check_dimensions(a, b)
        return math.sqrt(sum((x - y) ** 2 for x, y in zip(a, b)))

    @staticmethod
    def distance_to_similarity(distance: float, metric: Union[DistanceMetric, str]) -> float:
        """
        Normaliza una distancia a una similitud en [0, 1] según la métrica.
        Una métrica desconocida devuelve la distancia sin cambios.
        """
        metric = metric.value if isinstance(metric, DistanceMetric) else metric
        if metric == DistanceMetric.COSINE.value:
            return max(0.0, 1 - distance)
        if metric == DistanceMetric.EUCLIDEAN.value:
            return max(0.0, 1 / (1 + distance))
        if metric == DistanceMetric.DOT_PRODUCT.value:
            return max(0.0, min(1.0, distance))
        return distance

    @classmethod
    def similarity(cls, a: Sequence[float], b: Sequence[float], metric: DistanceMetric) -> Tuple[float, float]:
        """
        Calcula (similitud, distancia) de dos vectores con la métrica indicada.

        Para COSINE la similitud es el coseno sin normalizar, de modo que el
        umbral se compara con el mismo valor que devuelve cosine_similarity.
        """
        if metric == DistanceMetric.EUCLIDEAN:
            distance = cls.euclidean_distance(a, b)
            return cls.distance_to_similarity(distance, metric), distance
        if metric == DistanceMetric.DOT_PRODUCT:
            dot = cls.dot_product(a, b)
            return cls.distance_to_similarity(dot, metric), 1 - dot
        cosine = cls.cosine_similarity(a, b)
        return cosine, 1 - cosine
