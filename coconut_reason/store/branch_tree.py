"""BranchTree — named branches over thought sequence numbers.

Design notes:
    - Branch "main" always exists and can never be removed.
    - Branches hold sequence numbers only; thought content stays in the
      ThoughtStore.  Forking copies a prefix of numbers, never text.
    - Every state check happens before any mutation, so a rejected request
      leaves the tree exactly as it was.
    - The tree is synchronous and unlocked.  The ThoughtEngine serialises
      access and does all persistence.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from coconut_reason.domain.branch import Branch, BranchComparison
from coconut_reason.domain.errors import (
    BranchLimitExceededError,
    DuplicateBranchError,
    NoCommonAncestorError,
    ProtectedBranchError,
    UnknownBranchError,
)

logger = logging.getLogger(__name__)

MAIN_BRANCH = "main"


@dataclass(frozen=True)
class BranchConfig:
    """Capacity limits for the branch tree."""

    max_branches: int = 10

    def __post_init__(self) -> None:
        if self.max_branches < 1:
            raise ValueError("max_branches must allow at least the main branch")


class ForkResult:
    """Outcome of a fork: the new branch plus whether the fork point was found."""

    __slots__ = ("branch", "fork_point_found")

    def __init__(self, branch: Branch, fork_point_found: bool) -> None:
        self.branch = branch
        self.fork_point_found = fork_point_found


class BranchTree:
    """Owns every branch and the caller's active branch pointer."""

    def __init__(
        self,
        config: BranchConfig | None = None,
        log: logging.Logger | None = None,
    ) -> None:
        self._config = config or BranchConfig()
        self._log = log or logger
        self._branches: dict[str, Branch] = {MAIN_BRANCH: Branch(MAIN_BRANCH)}
        self._active_id = MAIN_BRANCH

    # ── Queries ──────────────────────────────────────────────────────────

    @property
    def active_id(self) -> str:
        return self._active_id

    @property
    def active(self) -> Branch:
        return self._branches[self._active_id]

    @property
    def branch_ids(self) -> list[str]:
        return list(self._branches)

    def __contains__(self, branch_id: object) -> bool:
        return branch_id in self._branches

    def __len__(self) -> int:
        return len(self._branches)

    def get(self, branch_id: str | None = None) -> Branch:
        """Branch by id (active when None); raises UnknownBranchError."""
        target = branch_id or self._active_id
        branch = self._branches.get(target)
        if branch is None:
            raise UnknownBranchError(target)
        return branch

    def sequence_numbers(self, branch_id: str | None = None) -> list[int]:
        return list(self.get(branch_id).sequence_numbers)

    def metrics(self, branch_id: str | None = None) -> dict:
        return self.get(branch_id).metrics.to_dict()

    def compare(self, first_id: str, second_id: str) -> BranchComparison:
        """Common and exclusive sequence numbers of two branches.  Pure."""
        first = self.get(first_id).sequence_numbers
        second = self.get(second_id).sequence_numbers
        first_set, second_set = set(first), set(second)
        return BranchComparison(
            first_id=first_id,
            second_id=second_id,
            common=[n for n in first if n in second_set],
            only_in_first=[n for n in first if n not in second_set],
            only_in_second=[n for n in second if n not in first_set],
        )

    def snapshot(self) -> dict[str, list[int]]:
        return {bid: list(b.sequence_numbers) for bid, b in self._branches.items()}

    # ── Mutation ─────────────────────────────────────────────────────────

    def fork(
        self,
        new_id: str,
        from_sequence: int | None = None,
        source_id: str | None = None,
    ) -> ForkResult:
        """Create *new_id* from a prefix of the source branch.

        The prefix runs up to and including the first occurrence of
        *from_sequence*.  Without a fork point the branch starts empty; with
        a fork point that the source does not contain it also starts empty
        and the miss is reported through `fork_point_found`.
        """
        if new_id in self._branches:
            raise DuplicateBranchError(new_id)
        if len(self._branches) >= self._config.max_branches:
            raise BranchLimitExceededError(self._config.max_branches)
        source = self.get(source_id)

        prefix: list[int] = []
        found = True
        if from_sequence is not None:
            try:
                cut = source.sequence_numbers.index(from_sequence)
            except ValueError:
                found = False
                self._log.warning(
                    "Fork point %d not found in branch '%s'; '%s' starts empty",
                    from_sequence, source.branch_id, new_id,
                )
            else:
                prefix = source.sequence_numbers[:cut + 1]

        branch = Branch(new_id, prefix, divergence_point=from_sequence)
        self._branches[new_id] = branch
        self._log.info(
            "Forked branch '%s' from '%s' at %s (%d thoughts)",
            new_id, source.branch_id, from_sequence, len(prefix),
        )
        return ForkResult(branch, found)

    def switch_to(self, branch_id: str) -> Branch:
        branch = self.get(branch_id)
        self._active_id = branch_id
        self._log.info("Switched to branch '%s' (%d thoughts)", branch_id, len(branch.sequence_numbers))
        return branch

    def append(
        self,
        sequence_number: int,
        branch_id: str | None = None,
        score: float | None = None,
    ) -> bool:
        """Append a sequence number; False (and cycle flag set) if already present."""
        branch = self.get(branch_id)

        if branch.contains(sequence_number):
            branch.metrics.has_cycle_flag = True
            self._log.warning(
                "Thought %d already in branch '%s'; append skipped",
                sequence_number, branch.branch_id,
            )
            return False

        branch.sequence_numbers.append(sequence_number)
        branch.metrics.count = len(branch.sequence_numbers)
        if score is not None:
            branch.metrics.record_score(score)
        self._log.debug("Appended thought %d to branch '%s'", sequence_number, branch.branch_id)
        return True

    def merge(
        self,
        source_id: str,
        target_id: str,
        scores: dict[int, float] | None = None,
    ) -> BranchComparison:
        """Union *source* into *target*, sorted numerically.

        Requires at least one shared sequence number.  The source branch is
        left in place; removing it is a separate request.  With *scores*
        (sequence number → score) the target's average is recomputed over
        the merged numbers; without it the average is left as it was.
        """
        comparison = self.compare(source_id, target_id)
        if not comparison.has_common_ancestor:
            raise NoCommonAncestorError(source_id, target_id)

        target = self._branches[target_id]
        merged = sorted(set(target.sequence_numbers) | set(comparison.only_in_first))
        target.sequence_numbers = merged
        target.metrics.count = len(merged)
        if scores is not None:
            target.metrics.recompute([scores[n] for n in merged if n in scores])

        if self._active_id == source_id:
            self._active_id = target_id

        self._log.info(
            "Merged branch '%s' into '%s' (+%d thoughts, %d total)",
            source_id, target_id, len(comparison.only_in_first), len(merged),
        )
        return comparison

    def remove(self, branch_id: str) -> None:
        if branch_id == MAIN_BRANCH:
            raise ProtectedBranchError(branch_id)
        if branch_id not in self._branches:
            raise UnknownBranchError(branch_id)

        del self._branches[branch_id]
        if self._active_id == branch_id:
            self._active_id = MAIN_BRANCH
        self._log.info("Removed branch '%s'", branch_id)

    def clear_branch(self, branch_id: str) -> None:
        """Drop every sequence number from a branch and reset its metrics."""
        old = self.get(branch_id)
        self._branches[branch_id] = Branch(branch_id, divergence_point=old.divergence_point)
        self._log.info("Cleared branch '%s'", branch_id)

    def reset(self) -> None:
        self._branches = {MAIN_BRANCH: Branch(MAIN_BRANCH)}
        self._active_id = MAIN_BRANCH

    def load(self, mapping: dict[str, list[int]]) -> None:
        """Rebuild from persisted sequence lists; "main" is always present."""
        branches: dict[str, Branch] = {}
        for branch_id, numbers in mapping.items():
            # Persisted lists may carry duplicates from older writers
            branches[branch_id] = Branch(branch_id, list(dict.fromkeys(numbers)))
        branches.setdefault(MAIN_BRANCH, Branch(MAIN_BRANCH))
        self._branches = branches
        if self._active_id not in branches:
            self._active_id = MAIN_BRANCH
        self._log.info("Loaded %d branch(es); active '%s'", len(branches), self._active_id)
