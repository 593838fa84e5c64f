from sensus.services.cache import CacheService
from sensus.services.scoring import compare, interpret, score, validate_answers

__all__ = ["CacheService", "compare", "interpret", "score", "validate_answers"]
