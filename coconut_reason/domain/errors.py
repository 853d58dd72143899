"""Exception taxonomy for the thought engine.

Three families, each handled at a different seam:

    ThoughtValidationError  rejected before any mutation
    StateError              rejected by the branch tree, nothing mutated
    StorageError            raised by providers, caught by the engine and
                            reported as a warning
"""

from __future__ import annotations


class ThoughtValidationError(ValueError):
    """A submission or request is malformed."""


class StateError(Exception):
    """A request conflicts with the current branch/thought state."""


class UnknownBranchError(StateError):
    def __init__(self, branch_id: str) -> None:
        self.branch_id = branch_id
        super().__init__(f"Branch '{branch_id}' does not exist")


class DuplicateBranchError(StateError):
    def __init__(self, branch_id: str) -> None:
        self.branch_id = branch_id
        super().__init__(f"Branch '{branch_id}' already exists")


class BranchLimitExceededError(StateError):
    def __init__(self, max_branches: int) -> None:
        self.max_branches = max_branches
        super().__init__(f"Branch limit reached ({max_branches})")


class NoCommonAncestorError(StateError):
    def __init__(self, source_id: str, target_id: str) -> None:
        self.source_id = source_id
        self.target_id = target_id
        super().__init__(
            f"Branches '{source_id}' and '{target_id}' share no thoughts to merge on"
        )


class ProtectedBranchError(StateError):
    def __init__(self, branch_id: str) -> None:
        self.branch_id = branch_id
        super().__init__(f"Branch '{branch_id}' cannot be removed")


class StorageError(Exception):
    """A storage provider failed to read or write."""

    def __init__(self, operation: str, reason: str) -> None:
        self.operation = operation
        self.reason = reason
        super().__init__(f"Storage '{operation}' failed: {reason}")
