"""Tests for the InputManager."""

from coconut_reason.domain.enums import InputType
from coconut_reason.domain.submission import ThoughtSubmission
from coconut_reason.services.input_manager import DEFAULT_OPTIONS, InputManager

from tests.test_submission import _valid_submission


def _submission(**kw) -> ThoughtSubmission:
    return ThoughtSubmission.model_validate(_valid_submission(**kw))


class TestRequest:
    def test_starts_without_pending_request(self) -> None:
        manager = InputManager()
        assert manager.pending is None
        assert manager.is_input_required is False

    def test_first_request_asks_for_text(self) -> None:
        request = InputManager().request("main")
        assert request.input_type == InputType.TEXT
        assert request.branch_id == "main"
        assert request.options == []

    def test_types_rotate(self) -> None:
        manager = InputManager()
        kinds = [manager.request("main").input_type for _ in range(5)]
        assert kinds == [
            InputType.TEXT,
            InputType.NUMBER_ARRAY,
            InputType.OPTIONS,
            InputType.BOOLEAN,
            InputType.TEXT,
        ]

    def test_options_request_carries_defaults(self) -> None:
        request = InputManager().request("main", InputType.OPTIONS)
        assert request.options == list(DEFAULT_OPTIONS)

    def test_rotation_continues_after_explicit_type(self) -> None:
        manager = InputManager()
        manager.request("main", InputType.OPTIONS)
        assert manager.next_input_type() == InputType.BOOLEAN

    def test_clear_resets_rotation(self) -> None:
        manager = InputManager()
        manager.request("main")
        manager.clear()
        assert manager.pending is None
        assert manager.next_input_type() == InputType.TEXT


class TestResolve:
    def test_nothing_pending(self) -> None:
        assert InputManager().resolve(_submission()) is None

    def test_text_answer_is_thought(self) -> None:
        manager = InputManager()
        manager.request("main", InputType.TEXT)
        answer = manager.resolve(_submission(thought="The depot opens at six"))
        assert answer == "The depot opens at six"
        assert manager.pending is None

    def test_number_array_answer(self) -> None:
        manager = InputManager()
        manager.request("main", InputType.NUMBER_ARRAY)
        assert manager.resolve(_submission(number_array=[3, 1.5])) == [3, 1.5]

    def test_missing_number_array_answers_none(self) -> None:
        manager = InputManager()
        manager.request("main", InputType.NUMBER_ARRAY)
        assert manager.resolve(_submission()) is None
        assert manager.is_input_required is False

    def test_options_answer_is_first_choice(self) -> None:
        manager = InputManager()
        manager.request("main", InputType.OPTIONS)
        assert manager.resolve(_submission(options=["Explore new branch"])) == "Explore new branch"

    def test_boolean_answer_is_next_thought_needed(self) -> None:
        manager = InputManager()
        manager.request("main", InputType.BOOLEAN)
        assert manager.resolve(_submission(next_thought_needed=False)) is False
