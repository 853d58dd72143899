"""ChainAnalyser — keyword heuristics run at reflection checkpoints.

This is deliberately not NLP.  Every judgement is a lookup in one of the
rule tables below, so the heuristics can be tested, tuned or localised
without touching control flow:

    STOP_WORDS          words ignored when extracting topic keywords
    INFO_GAP_PHRASES    phrases signalling the agent lacks information
    INFO_NEEDS          keyword → (missing information, suggestion)
    COMPLEXITY_WEIGHTS  term → weight; the sum classifies the problem
    SUGGESTED_TOTALS    complexity → (floor, ceiling) for total_thoughts
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from coconut_reason.domain.submission import ChainAnalysis
from coconut_reason.domain.thought import ThoughtEntry

STOP_WORDS: frozenset[str] = frozenset({
    "about", "after", "again", "also", "because", "been", "before", "being",
    "could", "does", "doing", "each", "from", "have", "having", "here", "into",
    "just", "like", "more", "most", "must", "need", "only", "other", "over",
    "should", "some", "such", "than", "that", "their", "them", "then", "there",
    "these", "they", "this", "those", "through", "under", "very", "want",
    "were", "what", "when", "where", "which", "while", "will", "with", "would",
    "your",
})

INFO_GAP_PHRASES: tuple[str, ...] = (
    "insufficient information",
    "need more data",
    "not clear",
    "lack of context",
    "missing information",
)

INFO_NEEDS: dict[str, tuple[str, str]] = {
    "requirements": (
        "More detailed requirements",
        "Ask the user for more specific requirements for the problem",
    ),
    "context": (
        "Usage context",
        "Ask the user to explain the context in which the solution will be used",
    ),
    "data": (
        "Example data",
        "Request example data or concrete use cases",
    ),
    "priorities": (
        "Goal prioritization",
        "Ask the user to prioritize the solution objectives",
    ),
    "preferences": (
        "Implementation preferences",
        "Request preferences about technologies or approaches",
    ),
}

COMPLEXITY_WEIGHTS: dict[str, int] = {
    "complex": 1,
    "difficult": 1,
    "multiple steps": 1,
    "various factors": 1,
    "interdependencies": 1,
    "simple": -1,
    "direct": -1,
    "trivial": -1,
    "obvious": -1,
}

SUGGESTED_TOTALS: dict[str, tuple[int, int | None]] = {
    "low": (0, 5),
    "medium": (5, 8),
    "high": (8, None),
}

_PUNCTUATION = re.compile(r"[.,;:!?()\"']")


@dataclass(frozen=True)
class AnalyserConfig:
    """Thresholds for the heuristics."""

    long_chain_length: int = 10
    satisfactory_score: float = 7.0
    keyword_retention: float = 0.3
    min_keyword_length: int = 4
    complexity_margin: int = 2


def extract_keywords(text: str, min_length: int = 4) -> list[str]:
    """Distinct non-stop-words of at least *min_length* characters, in order."""
    words = (_PUNCTUATION.sub("", w) for w in text.lower().split())
    keywords = [w for w in words if len(w) >= min_length and w not in STOP_WORDS]
    return list(dict.fromkeys(keywords))


class ChainAnalyser:
    """Produces a ChainAnalysis for one branch's thoughts."""

    def __init__(self, config: AnalyserConfig | None = None) -> None:
        self._config = config or AnalyserConfig()

    def analyse(self, entries: list[ThoughtEntry], total_thoughts: int) -> ChainAnalysis:
        if not entries:
            return ChainAnalysis(
                is_on_right_track=False,
                needs_more_user_info=True,
                suggested_total_thoughts=max(total_thoughts, 5),
                user_info_needed=["Initial problem definition"],
                suggestions=["Start by clearly defining the problem to be solved"],
            )

        on_track, path_suggestions = self._analyse_path(entries)
        needed, info_suggestions = self._analyse_info_needs(entries[-1].text)
        suggested_total, total_suggestions = self._analyse_total(entries, total_thoughts)

        return ChainAnalysis(
            is_on_right_track=on_track,
            needs_more_user_info=bool(needed),
            suggested_total_thoughts=suggested_total,
            user_info_needed=needed,
            suggestions=path_suggestions + info_suggestions + total_suggestions,
        )

    # ── Path ─────────────────────────────────────────────────────────────

    def _analyse_path(self, entries: list[ThoughtEntry]) -> tuple[bool, list[str]]:
        c = self._config
        scores = [e.score for e in entries if e.score is not None]
        improving = all(later >= earlier for earlier, later in zip(scores, scores[1:]))
        last_score = scores[-1] if scores else 0.0
        too_long = len(entries) > c.long_chain_length and last_score < c.satisfactory_score
        deviating = self._deviates(entries)

        suggestions: list[str] = []
        if not improving:
            suggestions.append("Consider reviewing previous thoughts, the scores are not improving")
        if too_long:
            suggestions.append("The chain is getting too long without reaching a satisfactory conclusion")
        if deviating:
            suggestions.append(
                "There seems to be a deviation from the initial goal, reconsider the original purpose"
            )
        return improving and not too_long and not deviating, suggestions

    def _deviates(self, entries: list[ThoughtEntry]) -> bool:
        if len(entries) < 3:
            return False
        keywords = extract_keywords(entries[0].text, self._config.min_keyword_length)
        if not keywords:
            return False
        last = entries[-1].text.lower()
        kept = sum(1 for k in keywords if k in last)
        return kept < len(keywords) * self._config.keyword_retention

    # ── Information needs ────────────────────────────────────────────────

    @staticmethod
    def _analyse_info_needs(text: str) -> tuple[list[str], list[str]]:
        lowered = text.lower()
        if not any(phrase in lowered for phrase in INFO_GAP_PHRASES):
            return [], []

        needed: list[str] = []
        suggestions: list[str] = []
        for keyword, (info, suggestion) in INFO_NEEDS.items():
            if keyword in lowered:
                needed.append(info)
                suggestions.append(suggestion)

        if not needed:
            needed.append("Additional details about the problem")
            suggestions.append("Request more details about the problem from the user")
        return needed, suggestions

    # ── Total thoughts ───────────────────────────────────────────────────

    def estimate_complexity(self, entries: list[ThoughtEntry]) -> str:
        score = 0
        for entry in entries:
            text = entry.text.lower()
            score += sum(w for term, w in COMPLEXITY_WEIGHTS.items() if term in text)

        margin = self._config.complexity_margin
        if score <= -margin:
            return "low"
        if score >= margin:
            return "high"
        return "medium"

    def _analyse_total(
        self,
        entries: list[ThoughtEntry],
        total_thoughts: int,
    ) -> tuple[int, list[str]]:
        complexity = self.estimate_complexity(entries)
        floor, ceiling = SUGGESTED_TOTALS[complexity]

        suggested = max(floor, total_thoughts)
        if ceiling is not None:
            suggested = min(ceiling, suggested)

        suggestions: list[str] = []
        if suggested > total_thoughts:
            suggestions.append("The problem may require more thoughts than initially anticipated")
        elif suggested < total_thoughts:
            suggestions.append("The current number of thoughts seems excessive for this problem")
        return suggested, suggestions
