"""Pending input requests — the AwaitingUserInput half of the branch state machine.

At most one request is pending at a time.  It is opened when a reflection
checkpoint decides the agent needs structured input, and it is resolved by
the very next submission: the answer is read from whichever field matches
the requested input type, and the request is cleared either way.
"""

from __future__ import annotations

import logging
from typing import Any

from coconut_reason.domain.enums import InputType
from coconut_reason.domain.submission import PendingInputRequest, ThoughtSubmission
from coconut_reason.foundation.identifiers import new_request_id

logger = logging.getLogger(__name__)

_ROTATION: tuple[InputType, ...] = (
    InputType.TEXT,
    InputType.NUMBER_ARRAY,
    InputType.OPTIONS,
    InputType.BOOLEAN,
)

_PROMPTS: dict[InputType, str] = {
    InputType.TEXT: "Please provide additional information:",
    InputType.NUMBER_ARRAY: "Please provide relevant numbers for the problem.",
    InputType.OPTIONS: "Select one of the options to proceed:",
    InputType.BOOLEAN: "Answer with true or false:",
}

DEFAULT_OPTIONS: tuple[str, ...] = (
    "Continue on current path",
    "Explore new branch",
    "Review previous thoughts",
)


class InputManager:
    """Holds the single pending input request and rotates input types."""

    def __init__(self, log: logging.Logger | None = None) -> None:
        self._log = log or logger
        self._pending: PendingInputRequest | None = None
        self._last_type: InputType | None = None

    @property
    def pending(self) -> PendingInputRequest | None:
        return self._pending

    @property
    def is_input_required(self) -> bool:
        return self._pending is not None

    def next_input_type(self) -> InputType:
        if self._last_type is None:
            return _ROTATION[0]
        index = _ROTATION.index(self._last_type)
        return _ROTATION[(index + 1) % len(_ROTATION)]

    def request(
        self,
        branch_id: str,
        input_type: InputType | None = None,
    ) -> PendingInputRequest:
        kind = input_type or self.next_input_type()
        options = list(DEFAULT_OPTIONS) if kind == InputType.OPTIONS else []
        self._pending = PendingInputRequest(
            request_id=new_request_id(),
            input_type=kind,
            message=_PROMPTS[kind],
            options=options,
            branch_id=branch_id,
        )
        self._last_type = kind
        self._log.info("Input requested on branch '%s': type=%s", branch_id, kind.value)
        return self._pending

    def resolve(self, submission: ThoughtSubmission) -> Any:
        """Answer the pending request from *submission* and clear it.

        Returns None when nothing was pending or the submission carried no
        value for the requested type.
        """
        pending = self._pending
        if pending is None:
            return None
        self._pending = None

        answer: Any
        if pending.input_type == InputType.NUMBER_ARRAY:
            answer = list(submission.number_array) or None
        elif pending.input_type == InputType.OPTIONS:
            answer = submission.options[0] if submission.options else None
        elif pending.input_type == InputType.BOOLEAN:
            answer = submission.next_thought_needed
        else:
            answer = submission.thought

        self._log.info(
            "Input request %s resolved (type=%s, answered=%s)",
            pending.request_id, pending.input_type.value, answer is not None,
        )
        return answer

    def clear(self) -> None:
        self._pending = None
        self._last_type = None
