"""ThoughtEntry — one atomic reasoning step as stored by the ThoughtStore.

An entry is immutable.  Revising a thought does not edit the entry; the
store swaps in a new entry at the same (branch, sequence) position.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from coconut_reason.foundation.clock import utc_now


class ThoughtMetadata(BaseModel):
    """Bookkeeping attached to an entry.  Unknown keys are kept verbatim."""

    is_revision: bool = False
    revises_sequence: Optional[int] = Field(default=None, gt=0)
    forked_from_sequence: Optional[int] = Field(default=None, gt=0)
    submitted_as: Optional[int] = Field(
        default=None,
        gt=0,
        description="thought_number the caller used when this entry revised another",
    )
    user_input: Any = Field(
        default=None,
        description="Answer to the pending input request resolved by this submission",
    )

    model_config = {"frozen": True, "extra": "allow"}


class ThoughtEntry(BaseModel):
    """A stored thought.  `(sequence_number, branch_id)` identifies it."""

    text: str = Field(..., min_length=1)
    sequence_number: int = Field(..., gt=0)
    branch_id: str = Field(..., min_length=1, max_length=128)
    score: Optional[float] = Field(default=None, ge=0.0, le=10.0)
    timestamp: datetime = Field(default_factory=utc_now)
    metadata: ThoughtMetadata = Field(default_factory=ThoughtMetadata)

    model_config = {"frozen": True}

    @field_validator("timestamp")
    @classmethod
    def timestamp_must_be_aware(cls, v: datetime) -> datetime:
        if v.tzinfo is None:
            v = v.replace(tzinfo=timezone.utc)
        return v

    @property
    def key(self) -> tuple[int, str]:
        return (self.sequence_number, self.branch_id)
