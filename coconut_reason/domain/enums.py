"""Controlled enumerations for the coconut-reason domain.

Every categorical field in the domain MUST reference an enum defined here.
Free-form strings are not acceptable for classification fields.
"""

from __future__ import annotations

from enum import Enum


class SimilarityAlgorithm(str, Enum):
    """Text similarity measures a cycle detector may be configured with."""

    LEVENSHTEIN = "levenshtein"
    JACCARD = "jaccard"
    COSINE = "cosine"


class BranchStatus(str, Enum):
    """Per-branch reasoning state across calls."""

    ACTIVE = "active"
    CYCLE_FLAGGED = "cycle_flagged"
    AWAITING_INPUT = "awaiting_input"


class InputType(str, Enum):
    """Kinds of structured input a reflection checkpoint may ask for."""

    TEXT = "text"
    NUMBER_ARRAY = "number_array"
    OPTIONS = "options"
    BOOLEAN = "boolean"


class ResponseAction(str, Enum):
    """What the caller is asked to do after a submission."""

    CONTINUE = "continue"
    CYCLE_DETECTED = "cycle_detected"
    REFLECTION = "reflection"
    REQUEST_INPUT = "request_input"


class ReflectionTrigger(str, Enum):
    """Reasons a reflection checkpoint fired."""

    REGULAR_INTERVAL = "regular_interval"
    FINAL_THOUGHT = "final_thought"
    EXPLICIT_REQUEST = "explicit_request"
    CYCLE_DETECTED = "cycle_detected"
    LOW_SCORE = "low_score"
    NEW_BRANCH = "new_branch"
    REVISION = "revision"
    MILESTONE = "milestone"
