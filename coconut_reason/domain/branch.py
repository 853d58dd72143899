"""Branch — a named line of reasoning over thought sequence numbers.

A Branch holds references, not content.  The text of every thought lives in
the ThoughtStore; a branch only knows which sequence numbers belong to it and
in what order they were reasoned.

Thread-safety note:
    Branch objects are mutated *only* by the BranchTree, which in turn is
    mutated only while the ThoughtEngine lock is held.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from coconut_reason.domain.enums import BranchStatus


class BranchMetrics:
    """Running per-branch counters.

    `scored` counts only the thoughts that carried a score, so unscored
    appends and merged numbers never dilute the average.
    """

    __slots__ = ("count", "average_score", "has_cycle_flag", "scored")

    def __init__(
        self,
        count: int = 0,
        average_score: float = 0.0,
        has_cycle_flag: bool = False,
    ) -> None:
        self.count = count
        self.average_score = average_score
        self.has_cycle_flag = has_cycle_flag
        self.scored = 0

    def record_score(self, score: float) -> None:
        """Fold *score* into the average using the post-increment scored count."""
        self.scored += 1
        n = self.scored
        self.average_score = (self.average_score * (n - 1) + score) / n

    def recompute(self, scores: list[float]) -> None:
        """Replace the running average with the mean of *scores*."""
        self.scored = len(scores)
        self.average_score = sum(scores) / len(scores) if scores else 0.0

    def to_dict(self) -> dict:
        return {
            "count": self.count,
            "average_score": round(self.average_score, 4),
            "has_cycle_flag": self.has_cycle_flag,
        }


class Branch:
    """A mutable, ordered list of sequence numbers plus its fork point."""

    __slots__ = ("branch_id", "sequence_numbers", "divergence_point", "metrics", "status")

    def __init__(
        self,
        branch_id: str,
        sequence_numbers: list[int] | None = None,
        divergence_point: int | None = None,
    ) -> None:
        self.branch_id = branch_id
        self.sequence_numbers: list[int] = list(sequence_numbers or [])
        self.divergence_point = divergence_point
        self.metrics = BranchMetrics(count=len(self.sequence_numbers))
        self.status = BranchStatus.ACTIVE

    def contains(self, sequence_number: int) -> bool:
        return sequence_number in self.sequence_numbers

    def summary(self) -> dict:
        return {
            "branch_id": self.branch_id,
            "sequence_numbers": list(self.sequence_numbers),
            "divergence_point": self.divergence_point,
            "status": self.status.value,
            "metrics": self.metrics.to_dict(),
        }

    def __repr__(self) -> str:
        return (
            f"Branch(id={self.branch_id!r}, "
            f"thoughts={len(self.sequence_numbers)}, "
            f"status={self.status.value})"
        )


class BranchComparison(BaseModel):
    """Set comparison of two branches over sequence numbers.

    Each list keeps the order of the branch it was drawn from.
    """

    first_id: str
    second_id: str
    common: list[int] = Field(default_factory=list)
    only_in_first: list[int] = Field(default_factory=list)
    only_in_second: list[int] = Field(default_factory=list)

    model_config = {"frozen": True}

    @property
    def has_common_ancestor(self) -> bool:
        return bool(self.common)


class BranchView(BaseModel):
    """Read-only snapshot of a branch for callers outside the engine."""

    branch_id: str
    sequence_numbers: list[int]
    divergence_point: Optional[int] = None
    status: BranchStatus
    count: int
    average_score: float
    has_cycle_flag: bool

    model_config = {"frozen": True}

    @classmethod
    def of(cls, branch: Branch) -> "BranchView":
        return cls(
            branch_id=branch.branch_id,
            sequence_numbers=list(branch.sequence_numbers),
            divergence_point=branch.divergence_point,
            status=branch.status,
            count=branch.metrics.count,
            average_score=round(branch.metrics.average_score, 4),
            has_cycle_flag=branch.metrics.has_cycle_flag,
        )
