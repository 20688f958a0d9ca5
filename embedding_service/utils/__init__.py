from .content_extractor import ContentExtractor, weight_repetitions

__all__ = ["ContentExtractor", "weight_repetitions"]
