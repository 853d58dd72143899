"""Application configuration loaded from environment variables."""

from __future__ import annotations

from pydantic_settings import BaseSettings

from coconut_reason.domain.enums import SimilarityAlgorithm


class Settings(BaseSettings):
    app_name: str = "coconut-reason"
    debug: bool = False
    log_level: str = "INFO"

    # Thought history
    max_history_size: int = 1000

    # Cycle detection
    cycle_detection_threshold: float = 0.8
    min_thoughts: int = 4
    similarity_algorithm: SimilarityAlgorithm = SimilarityAlgorithm.LEVENSHTEIN
    pattern_min_length: int = 2
    pattern_max_length: int = 5
    pattern_threshold: float = 0.7

    # Similarity cache
    enable_similarity_cache: bool = True
    max_cache_size: int = 1000
    cache_ttl_seconds: float = 0.0

    # Branches and reflection
    max_branches: int = 10
    reflection_interval: int = 3
    low_score_threshold: float = 3.0

    # Persistence
    persistence_enabled: bool = False
    storage_path: str = "./coconut-data"

    model_config = {"env_prefix": "COCONUT_"}


settings = Settings()
