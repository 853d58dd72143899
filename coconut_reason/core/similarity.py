"""Pure text similarity measures used by the cycle detectors.

Every function here returns a score in [0, 1] and is symmetric in its
arguments: similarity(a, b) == similarity(b, a).  Nothing is cached at this
level; memoisation is the SimilarityCache's job.

Measures:
    levenshtein  1 - edit_distance / max(len(a), len(b))
    jaccard      |A ∩ B| / |A ∪ B| over lowercased whitespace tokens
    cosine       bigram Dice coefficient over the whitespace-stripped texts;
                 a cheap proxy for term-vector cosine, not a vector model
"""

from __future__ import annotations

from collections import Counter
from typing import Callable

from coconut_reason.domain.enums import SimilarityAlgorithm

SimilarityFn = Callable[[str, str], float]


def levenshtein_distance(a: str, b: str) -> int:
    """Edit distance with a single DP row sized to the shorter string."""
    if len(a) < len(b):
        a, b = b, a
    if not b:
        return len(a)

    row = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        diagonal = row[0]
        row[0] = i
        for j, cb in enumerate(b, start=1):
            above = row[j]
            row[j] = min(
                above + 1,
                row[j - 1] + 1,
                diagonal + (0 if ca == cb else 1),
            )
            diagonal = above
    return row[len(b)]


def levenshtein_similarity(a: str, b: str) -> float:
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    return 1.0 - levenshtein_distance(a, b) / longest


def _tokens(text: str) -> set[str]:
    return set(text.lower().split())


def jaccard_similarity(a: str, b: str) -> float:
    set_a, set_b = _tokens(a), _tokens(b)
    union = set_a | set_b
    if not union:
        return 1.0
    return len(set_a & set_b) / len(union)


def _bigrams(text: str) -> Counter[str]:
    return Counter(text[i:i + 2] for i in range(len(text) - 1))


def dice_similarity(a: str, b: str) -> float:
    """Bigram overlap as in the classic compareTwoStrings."""
    first = "".join(a.split())
    second = "".join(b.split())

    if first == second:
        return 1.0
    if len(first) < 2 or len(second) < 2:
        return 0.0

    overlap = sum((_bigrams(first) & _bigrams(second)).values())
    return (2.0 * overlap) / (len(first) + len(second) - 2)


SIMILARITY_FUNCTIONS: dict[SimilarityAlgorithm, SimilarityFn] = {
    SimilarityAlgorithm.LEVENSHTEIN: levenshtein_similarity,
    SimilarityAlgorithm.JACCARD: jaccard_similarity,
    SimilarityAlgorithm.COSINE: dice_similarity,
}
