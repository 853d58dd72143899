"""Tests for environment-driven Settings."""

from coconut_reason.config import Settings
from coconut_reason.domain.enums import SimilarityAlgorithm


class TestSettings:
    def test_defaults(self) -> None:
        s = Settings()
        assert s.max_history_size == 1000
        assert s.cycle_detection_threshold == 0.8
        assert s.similarity_algorithm == SimilarityAlgorithm.LEVENSHTEIN
        assert s.reflection_interval == 3
        assert s.persistence_enabled is False

    def test_environment_overrides(self, monkeypatch) -> None:
        monkeypatch.setenv("COCONUT_MAX_BRANCHES", "4")
        monkeypatch.setenv("COCONUT_SIMILARITY_ALGORITHM", "jaccard")
        monkeypatch.setenv("COCONUT_PERSISTENCE_ENABLED", "true")
        s = Settings()
        assert s.max_branches == 4
        assert s.similarity_algorithm == SimilarityAlgorithm.JACCARD
        assert s.persistence_enabled is True
