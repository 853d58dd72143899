"""Boundary models for one call of the thought tool.

ThoughtSubmission is validated once, at the edge, so the engine never has to
re-check field constraints.  SubmissionResult is what the caller gets back;
rendering it is just `model_dump()`.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from coconut_reason.domain.enums import InputType, ReflectionTrigger, ResponseAction
from coconut_reason.foundation.clock import utc_now

MIN_TOTAL_THOUGHTS = 3


class ThoughtSubmission(BaseModel):
    """One thought submitted by the reasoning agent."""

    thought: str = Field(..., min_length=1, description="Text of the current reasoning step")
    thought_number: int = Field(..., gt=0, description="Sequence number of this thought")
    total_thoughts: int = Field(
        ...,
        ge=MIN_TOTAL_THOUGHTS,
        description="Estimated number of thoughts needed for the problem",
    )
    next_thought_needed: bool = Field(True, description="False when the chain is complete")
    is_revision: bool = False
    revises_thought: Optional[int] = Field(default=None, gt=0)
    branch_from_thought: Optional[int] = Field(default=None, gt=0)
    branch_id: Optional[str] = Field(default=None, min_length=1, max_length=128)
    needs_more_thoughts: bool = False
    score: Optional[float] = Field(default=None, ge=0.0, le=10.0)
    problem_status: Optional[str] = None
    options: list[str] = Field(default_factory=list, max_length=20)
    number_array: list[float] = Field(default_factory=list, max_length=100)
    request_analysis: bool = Field(False, description="Force a reflection checkpoint")

    model_config = {"frozen": True}

    @field_validator("thought")
    @classmethod
    def thought_must_have_content(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("thought cannot be blank")
        return v

    @model_validator(mode="after")
    def check_revision_and_fork(self) -> "ThoughtSubmission":
        if self.is_revision and self.revises_thought is None:
            raise ValueError("a revision must name the thought it revises (revises_thought)")
        if self.branch_from_thought is not None and not self.branch_id:
            raise ValueError("branch_from_thought requires a branch_id")
        return self

    @property
    def stored_sequence(self) -> int:
        """Sequence number the entry is stored under."""
        if self.is_revision and self.revises_thought is not None:
            return self.revises_thought
        return self.thought_number


class PendingInputRequest(BaseModel):
    """A reflection checkpoint waiting for structured input from the caller."""

    request_id: str
    input_type: InputType
    message: str
    options: list[str] = Field(default_factory=list)
    branch_id: str
    requested_at: datetime = Field(default_factory=utc_now)

    model_config = {"frozen": True}


class ChainAnalysis(BaseModel):
    """Heuristic read of the current branch, produced at reflection time."""

    is_on_right_track: bool
    needs_more_user_info: bool
    suggested_total_thoughts: int
    user_info_needed: list[str] = Field(default_factory=list)
    suggestions: list[str] = Field(default_factory=list)

    model_config = {"frozen": True}


class SubmissionResult(BaseModel):
    """Aggregated cycle / branch / reflection state returned per call."""

    thought_number: int
    total_thoughts: int
    next_thought_needed: bool
    cycle_detected: bool = False
    branches: list[str] = Field(default_factory=list)
    active_branch: str
    reflection_due: bool = False
    reflection_triggers: list[ReflectionTrigger] = Field(default_factory=list)
    action: ResponseAction = ResponseAction.CONTINUE
    message: Optional[str] = None
    pending_input_request: Optional[PendingInputRequest] = None
    analysis: Optional[ChainAnalysis] = None
    warnings: list[str] = Field(default_factory=list)
    saved_file: Optional[dict[str, Any]] = None

    model_config = {"frozen": True}
