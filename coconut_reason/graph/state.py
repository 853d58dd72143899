"""SubmissionState — the state object the submission graph nodes read and write.

Every node receives the full state and returns a partial update.  Nodes
reach the branch tree, thought store and detectors only through the
PipelineDeps they were built with, never through globals.
"""

from __future__ import annotations

from typing import Any, Optional, TypedDict

from coconut_reason.core.reflection import ReflectionDecision
from coconut_reason.domain.submission import (
    ChainAnalysis,
    PendingInputRequest,
    ThoughtSubmission,
)
from coconut_reason.domain.thought import ThoughtEntry


class SubmissionState(TypedDict, total=False):
    """LangGraph state for processing one submitted thought.

    Fields:
        submission: The validated caller request.
        interaction_count: Engine counter including this submission.
        branch_id: Branch the thought lands on after resolution.
        is_new_branch: True if this call forked *branch_id*.
        user_input: Answer to a previously pending input request.
        entry: The ThoughtEntry that was stored.
        replaced_existing: True if the store swapped an entry in place.
        cycle_detected: Text-similarity or repeated-pattern cycle signal.
        reflection: ReflectionDecision for this call.
        analysis: ChainAnalysis, present only when reflection is due.
        pending_input: Input request opened by this call, if any.
        saved_file: Serialised SavedFileInfo of the thought write.
        warnings: Non-fatal problems (storage failures, missing fork point).
    """

    submission: ThoughtSubmission
    interaction_count: int
    branch_id: str
    is_new_branch: bool
    user_input: Any
    entry: ThoughtEntry
    replaced_existing: bool
    cycle_detected: bool
    reflection: ReflectionDecision
    analysis: Optional[ChainAnalysis]
    pending_input: Optional[PendingInputRequest]
    saved_file: Optional[dict[str, Any]]
    warnings: list[str]
