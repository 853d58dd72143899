"""ReflectionScheduler — when should the agent pause and reflect?

Design principles:
    1. Pure policy: accepts the facts of one call, returns a decision.
    2. No side effects.  The decision says whether the interaction counter
       should reset; the engine owns the counter and applies it.
    3. Never raises.  Any internal fault degrades to "not due".

A checkpoint is due if ANY trigger fires:

    REGULAR_INTERVAL   interaction_count % reflection_interval == 0
    FINAL_THOUGHT      next_thought_needed is False
    EXPLICIT_REQUEST   the caller asked for analysis
    CYCLE_DETECTED     the cycle detector fired on this thought
    LOW_SCORE          a score was given and it is below low_score_threshold
    NEW_BRANCH         this call forked a branch
    REVISION           this call revised an earlier thought
    MILESTONE          thought_number / total_thoughts is exactly 1/4, 1/2
                       or 3/4 (only for thought_number > 1, total > 3)

Only REGULAR_INTERVAL resets the counter; forced checkpoints are independent
of the periodic cadence.

Milestones are compared as integer ratios (4 * n == k * total), not floats,
so 2/8 and 3/4 hit while 1/3 never does.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from coconut_reason.domain.enums import ReflectionTrigger

logger = logging.getLogger(__name__)

_MILESTONE_QUARTERS = (1, 2, 3)


@dataclass(frozen=True)
class ReflectionConfig:
    """Configurable cadence and thresholds for reflection checkpoints."""

    reflection_interval: int = 3
    low_score_threshold: float = 3.0

    def __post_init__(self) -> None:
        if self.reflection_interval < 1:
            raise ValueError("reflection_interval must be positive")


@dataclass(frozen=True)
class ReflectionInputs:
    """Facts about one submission that the policy looks at."""

    interaction_count: int
    thought_number: int
    total_thoughts: int
    next_thought_needed: bool = True
    score: float | None = None
    has_cycle: bool = False
    is_revision: bool = False
    is_new_branch: bool = False
    explicit_request: bool = False


@dataclass(frozen=True)
class ReflectionDecision:
    due: bool
    triggers: tuple[ReflectionTrigger, ...] = field(default_factory=tuple)
    resets_interval: bool = False

    @classmethod
    def not_due(cls) -> "ReflectionDecision":
        return cls(due=False)


def is_milestone(thought_number: int, total_thoughts: int) -> bool:
    if thought_number <= 1 or total_thoughts <= 3:
        return False
    return any(4 * thought_number == q * total_thoughts for q in _MILESTONE_QUARTERS)


class ReflectionScheduler:
    """Stateless reflection policy."""

    def __init__(
        self,
        config: ReflectionConfig | None = None,
        log: logging.Logger | None = None,
    ) -> None:
        self._config = config or ReflectionConfig()
        self._log = log or logger

    @property
    def reflection_interval(self) -> int:
        return self._config.reflection_interval

    def evaluate(self, inputs: ReflectionInputs) -> ReflectionDecision:
        try:
            return self._evaluate(inputs)
        except Exception:
            self._log.exception("Reflection policy failed; treating as not due")
            return ReflectionDecision.not_due()

    def interactions_until_next(self, interaction_count: int) -> int:
        """Submissions left before the next regular checkpoint."""
        interval = self._config.reflection_interval
        return interval - (interaction_count % interval)

    def _evaluate(self, inputs: ReflectionInputs) -> ReflectionDecision:
        c = self._config
        checks = (
            (ReflectionTrigger.REGULAR_INTERVAL,
             inputs.interaction_count % c.reflection_interval == 0),
            (ReflectionTrigger.FINAL_THOUGHT, not inputs.next_thought_needed),
            (ReflectionTrigger.EXPLICIT_REQUEST, inputs.explicit_request),
            (ReflectionTrigger.CYCLE_DETECTED, inputs.has_cycle),
            (ReflectionTrigger.LOW_SCORE,
             inputs.score is not None and inputs.score < c.low_score_threshold),
            (ReflectionTrigger.NEW_BRANCH, inputs.is_new_branch),
            (ReflectionTrigger.REVISION, inputs.is_revision),
            (ReflectionTrigger.MILESTONE,
             is_milestone(inputs.thought_number, inputs.total_thoughts)),
        )
        triggers = tuple(trigger for trigger, fired in checks if fired)

        self._log.debug(
            "Reflection factors for interaction %d: %s",
            inputs.interaction_count, [t.value for t in triggers],
        )
        return ReflectionDecision(
            due=bool(triggers),
            triggers=triggers,
            resets_interval=ReflectionTrigger.REGULAR_INTERVAL in triggers,
        )
