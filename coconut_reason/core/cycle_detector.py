"""Cycle detection — is the agent repeating itself?

Design principles:
    1. Each strategy is an independent object satisfying CycleStrategy.
       Nothing inherits from anything; the composite simply holds a list.
    2. Detection never raises.  A faulting strategy is logged and counted
       as "no cycle" so a bad comparison can never block a submission.
    3. Similarity scores go through a shared SimilarityCache.

Strategies:
    SimilarityCycleDetector    candidate vs every prior thought; the first
                               score strictly above `threshold` is a cycle.
                               Cold-start guard: needs `min_thoughts` priors.
    PatternCycleDetector       candidate closes a repeated block of length
                               L in [min_length, max_length]: the last L
                               texts match the L before them pairwise at a
                               looser Levenshtein threshold.
    CompositeCycleDetector     logical OR over its strategies, in order,
                               short-circuiting on the first hit.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol, Sequence

from coconut_reason.core.cache import SimilarityCache
from coconut_reason.core.similarity import SIMILARITY_FUNCTIONS
from coconut_reason.domain.enums import SimilarityAlgorithm

logger = logging.getLogger(__name__)

_PREVIEW_CHARS = 50


@dataclass(frozen=True)
class CycleDetectionConfig:
    """Configurable thresholds for cycle detection."""

    algorithm: SimilarityAlgorithm = SimilarityAlgorithm.LEVENSHTEIN
    threshold: float = 0.8
    min_thoughts: int = 4

    # Repeated-block detection uses a looser threshold on purpose
    pattern_min_length: int = 2
    pattern_max_length: int = 5
    pattern_threshold: float = 0.7

    enable_cache: bool = True
    max_cache_size: int = 1000
    cache_ttl_seconds: float = 0.0

    def __post_init__(self) -> None:
        if not 0.0 <= self.threshold <= 1.0:
            raise ValueError("threshold must be within [0, 1]")
        if not 0.0 <= self.pattern_threshold <= 1.0:
            raise ValueError("pattern_threshold must be within [0, 1]")
        if self.pattern_min_length < 1 or self.pattern_max_length < self.pattern_min_length:
            raise ValueError("pattern lengths must satisfy 1 <= min <= max")


class CycleStrategy(Protocol):
    """Protocol every cycle detection strategy satisfies."""

    name: str

    def detect(self, history: Sequence[str], candidate: str) -> bool:
        """Return True if *candidate* repeats something in *history*."""
        ...

    def similarity(self, a: str, b: str) -> float:
        """Symmetric similarity score in [0, 1]."""
        ...


class SimilarityCycleDetector:
    """Flags a candidate that is too similar to any single prior thought."""

    def __init__(
        self,
        algorithm: SimilarityAlgorithm = SimilarityAlgorithm.LEVENSHTEIN,
        threshold: float = 0.8,
        min_thoughts: int = 4,
        cache: SimilarityCache | None = None,
        log: logging.Logger | None = None,
    ) -> None:
        self.algorithm = SimilarityAlgorithm(algorithm)
        self.name = f"similarity:{self.algorithm.value}"
        self._fn = SIMILARITY_FUNCTIONS[self.algorithm]
        self._threshold = threshold
        self._min_thoughts = min_thoughts
        self._cache = cache
        self._log = log or logger

    @property
    def threshold(self) -> float:
        return self._threshold

    def similarity(self, a: str, b: str) -> float:
        if self._cache is None:
            return self._fn(a, b)
        return self._cache.get_or_compute(a, b, self.algorithm.value, self._fn)

    def find_match(self, history: Sequence[str], candidate: str) -> int | None:
        """Index of the first prior thought above threshold, or None."""
        if len(history) < self._min_thoughts:
            return None

        for index, prior in enumerate(history):
            score = self.similarity(candidate, prior)
            if score > self._threshold:
                self._log.info(
                    "Cycle detected by %s: index=%d similarity=%.3f threshold=%.2f",
                    self.name, index, score, self._threshold,
                )
                return index
        return None

    def detect(self, history: Sequence[str], candidate: str) -> bool:
        return self.find_match(history, candidate) is not None


class PatternCycleDetector:
    """Flags a candidate that completes a repeating block of thoughts."""

    name = "pattern"

    def __init__(
        self,
        min_length: int = 2,
        max_length: int = 5,
        threshold: float = 0.7,
        cache: SimilarityCache | None = None,
        log: logging.Logger | None = None,
    ) -> None:
        self._min_length = min_length
        self._max_length = max_length
        self._threshold = threshold
        self._log = log or logger
        # Block comparison is always edit-distance based
        self._pairwise = SimilarityCycleDetector(
            SimilarityAlgorithm.LEVENSHTEIN,
            threshold=threshold,
            min_thoughts=0,
            cache=cache,
            log=self._log,
        )

    def similarity(self, a: str, b: str) -> float:
        return self._pairwise.similarity(a, b)

    def find_pattern_length(self, history: Sequence[str], candidate: str) -> int | None:
        """Shortest repeating block length ending at *candidate*, or None."""
        window = [*history, candidate]

        for length in range(self._min_length, self._max_length + 1):
            if len(window) < 2 * length:
                break

            latest = window[-length:]
            previous = window[-2 * length:-length]
            if all(
                self.similarity(before, after) >= self._threshold
                for before, after in zip(previous, latest)
            ):
                self._log.info(
                    "Cycle detected by repeating pattern: length=%d pattern=%s",
                    length,
                    [text[:_PREVIEW_CHARS] for text in latest],
                )
                return length
        return None

    def detect(self, history: Sequence[str], candidate: str) -> bool:
        return self.find_pattern_length(history, candidate) is not None


class CompositeCycleDetector:
    """Logical OR over an ordered list of strategies."""

    name = "composite"

    def __init__(
        self,
        strategies: list[CycleStrategy] | None = None,
        log: logging.Logger | None = None,
    ) -> None:
        self._strategies: list[CycleStrategy] = list(strategies or [])
        self._log = log or logger

    def add_strategy(self, strategy: CycleStrategy) -> None:
        self._strategies.append(strategy)

    @property
    def strategy_names(self) -> list[str]:
        return [s.name for s in self._strategies]

    def detect(self, history: Sequence[str], candidate: str) -> bool:
        for strategy in self._strategies:
            try:
                if strategy.detect(history, candidate):
                    return True
            except Exception:
                self._log.exception(
                    "Cycle strategy %s failed; treating as no cycle", strategy.name,
                )
        return False

    def similarity(self, a: str, b: str) -> float:
        """Delegate to the first strategy; 0.0 when empty."""
        if not self._strategies:
            return 0.0
        return self._strategies[0].similarity(a, b)


def build_cycle_detector(
    config: CycleDetectionConfig | None = None,
    cache: SimilarityCache | None = None,
    log: logging.Logger | None = None,
) -> CompositeCycleDetector:
    """Configured similarity strategy followed by the pattern strategy."""
    config = config or CycleDetectionConfig()
    if cache is None and config.enable_cache:
        cache = SimilarityCache(
            max_size=config.max_cache_size,
            ttl_seconds=config.cache_ttl_seconds,
        )

    return CompositeCycleDetector(
        [
            SimilarityCycleDetector(
                config.algorithm,
                threshold=config.threshold,
                min_thoughts=config.min_thoughts,
                cache=cache,
                log=log,
            ),
            PatternCycleDetector(
                min_length=config.pattern_min_length,
                max_length=config.pattern_max_length,
                threshold=config.pattern_threshold,
                cache=cache,
                log=log,
            ),
        ],
        log=log,
    )
