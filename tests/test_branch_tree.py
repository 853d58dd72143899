"""Tests for the BranchTree."""

import pytest

from coconut_reason.domain.errors import (
    BranchLimitExceededError,
    DuplicateBranchError,
    NoCommonAncestorError,
    ProtectedBranchError,
    UnknownBranchError,
)
from coconut_reason.store.branch_tree import MAIN_BRANCH, BranchConfig, BranchTree


def _tree_with(*numbers: int, config: BranchConfig | None = None) -> BranchTree:
    tree = BranchTree(config)
    for n in numbers:
        tree.append(n)
    return tree


class TestBranchTreeBasics:
    def test_starts_with_empty_main(self) -> None:
        tree = BranchTree()
        assert tree.branch_ids == [MAIN_BRANCH]
        assert tree.active_id == MAIN_BRANCH
        assert tree.sequence_numbers() == []

    def test_append_keeps_order_and_count(self) -> None:
        tree = _tree_with(1, 2, 3)
        assert tree.sequence_numbers() == [1, 2, 3]
        assert tree.metrics()["count"] == 3

    def test_duplicate_append_flags_cycle(self) -> None:
        tree = _tree_with(1, 2)
        assert tree.append(2) is False
        assert tree.sequence_numbers() == [1, 2]
        assert tree.metrics()["has_cycle_flag"] is True

    def test_average_score(self) -> None:
        tree = BranchTree()
        tree.append(1, score=4.0)
        tree.append(2, score=8.0)
        tree.append(3)
        assert tree.metrics()["average_score"] == pytest.approx(6.0)

    def test_unscored_append_does_not_dilute_average(self) -> None:
        tree = BranchTree()
        tree.append(1, score=4.0)
        tree.append(2)
        tree.append(3, score=8.0)
        assert tree.metrics()["average_score"] == pytest.approx(6.0)

    def test_get_unknown_raises(self) -> None:
        with pytest.raises(UnknownBranchError):
            BranchTree().get("nope")


class TestFork:
    def test_fork_copies_prefix(self) -> None:
        tree = _tree_with(1, 2, 3, 4)
        result = tree.fork("alt", from_sequence=2)
        assert result.fork_point_found is True
        assert tree.sequence_numbers("alt") == [1, 2]
        assert tree.get("alt").divergence_point == 2
        assert tree.sequence_numbers(MAIN_BRANCH) == [1, 2, 3, 4]

    def test_fork_does_not_switch(self) -> None:
        tree = _tree_with(1)
        tree.fork("alt", from_sequence=1)
        assert tree.active_id == MAIN_BRANCH

    def test_fork_without_point_is_empty(self) -> None:
        tree = _tree_with(1, 2)
        result = tree.fork("alt")
        assert result.fork_point_found is True
        assert tree.sequence_numbers("alt") == []

    def test_fork_from_missing_point_is_empty(self) -> None:
        tree = _tree_with(1, 2)
        result = tree.fork("alt", from_sequence=9)
        assert result.fork_point_found is False
        assert tree.sequence_numbers("alt") == []

    def test_fork_from_other_source(self) -> None:
        tree = _tree_with(1, 2)
        tree.fork("alt", from_sequence=2)
        tree.append(5, "alt")
        tree.fork("alt2", from_sequence=5, source_id="alt")
        assert tree.sequence_numbers("alt2") == [1, 2, 5]

    def test_duplicate_id_rejected(self) -> None:
        tree = _tree_with(1)
        tree.fork("alt", from_sequence=1)
        with pytest.raises(DuplicateBranchError):
            tree.fork("alt", from_sequence=1)

    def test_limit_rejected_without_mutation(self) -> None:
        tree = _tree_with(1, config=BranchConfig(max_branches=2))
        tree.fork("alt", from_sequence=1)
        with pytest.raises(BranchLimitExceededError):
            tree.fork("third", from_sequence=1)
        assert tree.branch_ids == [MAIN_BRANCH, "alt"]

    def test_unknown_source_rejected_without_mutation(self) -> None:
        tree = _tree_with(1)
        with pytest.raises(UnknownBranchError):
            tree.fork("alt", source_id="ghost")
        assert "alt" not in tree


class TestSwitchAndRemove:
    def test_switch(self) -> None:
        tree = _tree_with(1)
        tree.fork("alt", from_sequence=1)
        tree.switch_to("alt")
        assert tree.active_id == "alt"
        assert tree.active.branch_id == "alt"

    def test_switch_unknown_keeps_active(self) -> None:
        tree = BranchTree()
        with pytest.raises(UnknownBranchError):
            tree.switch_to("ghost")
        assert tree.active_id == MAIN_BRANCH

    def test_main_cannot_be_removed(self) -> None:
        tree = _tree_with(1)
        tree.fork("alt", from_sequence=1)
        tree.switch_to("alt")
        with pytest.raises(ProtectedBranchError):
            tree.remove(MAIN_BRANCH)
        assert tree.active_id == "alt"
        assert MAIN_BRANCH in tree

    def test_removing_active_falls_back_to_main(self) -> None:
        tree = _tree_with(1)
        tree.fork("alt", from_sequence=1)
        tree.switch_to("alt")
        tree.remove("alt")
        assert tree.active_id == MAIN_BRANCH
        assert "alt" not in tree

    def test_remove_unknown(self) -> None:
        with pytest.raises(UnknownBranchError):
            BranchTree().remove("ghost")


class TestCompareAndMerge:
    def test_compare_is_pure(self) -> None:
        tree = _tree_with(1, 2, 3, 4)
        tree.fork("alt", from_sequence=2)
        tree.append(5, "alt")
        comparison = tree.compare("alt", MAIN_BRANCH)
        assert comparison.common == [1, 2]
        assert comparison.only_in_first == [5]
        assert comparison.only_in_second == [3, 4]
        assert tree.sequence_numbers(MAIN_BRANCH) == [1, 2, 3, 4]

    def test_merge_unions_sorted(self) -> None:
        tree = _tree_with(1, 2, 3, 4)
        tree.fork("alt", from_sequence=2)
        tree.append(5, "alt")
        tree.merge("alt", MAIN_BRANCH)
        assert tree.sequence_numbers(MAIN_BRANCH) == [1, 2, 3, 4, 5]
        assert tree.metrics(MAIN_BRANCH)["count"] == 5
        assert "alt" in tree

    def test_merge_twice_adds_no_duplicates(self) -> None:
        tree = _tree_with(1, 2, 3, 4)
        tree.fork("alt", from_sequence=2)
        tree.append(5, "alt")
        tree.merge("alt", MAIN_BRANCH)
        tree.merge("alt", MAIN_BRANCH)
        assert tree.sequence_numbers(MAIN_BRANCH) == [1, 2, 3, 4, 5]
        assert tree.metrics(MAIN_BRANCH)["count"] == 5

    def test_merge_recomputes_average_from_scores(self) -> None:
        tree = BranchTree()
        tree.append(1, score=2.0)
        tree.append(2, score=4.0)
        tree.fork("alt", from_sequence=2)
        tree.append(3, "alt", score=9.0)
        tree.merge("alt", MAIN_BRANCH, scores={1: 2.0, 2: 4.0, 3: 9.0})
        assert tree.metrics(MAIN_BRANCH)["average_score"] == pytest.approx(5.0)

        # Later scores fold in over the three scored thoughts
        tree.append(4, score=1.0)
        assert tree.metrics(MAIN_BRANCH)["average_score"] == pytest.approx(4.0)

    def test_merge_without_scores_keeps_average(self) -> None:
        tree = BranchTree()
        tree.append(1, score=6.0)
        tree.fork("alt", from_sequence=1)
        tree.append(2, "alt")
        tree.merge("alt", MAIN_BRANCH)
        assert tree.metrics(MAIN_BRANCH)["average_score"] == pytest.approx(6.0)

    def test_merge_without_common_ancestor_rejected(self) -> None:
        tree = _tree_with(1, 2)
        tree.fork("alt")
        tree.append(7, "alt")
        with pytest.raises(NoCommonAncestorError):
            tree.merge("alt", MAIN_BRANCH)
        assert tree.sequence_numbers(MAIN_BRANCH) == [1, 2]

    def test_merge_moves_active_off_source(self) -> None:
        tree = _tree_with(1, 2)
        tree.fork("alt", from_sequence=1)
        tree.switch_to("alt")
        tree.append(3)
        tree.merge("alt", MAIN_BRANCH)
        assert tree.active_id == MAIN_BRANCH


class TestBulkState:
    def test_clear_branch_keeps_divergence_point(self) -> None:
        tree = _tree_with(1, 2, 3)
        tree.fork("alt", from_sequence=2)
        tree.clear_branch("alt")
        assert tree.sequence_numbers("alt") == []
        assert tree.get("alt").divergence_point == 2

    def test_reset(self) -> None:
        tree = _tree_with(1, 2)
        tree.fork("alt", from_sequence=1)
        tree.switch_to("alt")
        tree.reset()
        assert tree.branch_ids == [MAIN_BRANCH]
        assert tree.active_id == MAIN_BRANCH

    def test_load_dedupes_and_adds_main(self) -> None:
        tree = BranchTree()
        tree.load({"alt": [1, 2, 2, 3]})
        assert tree.sequence_numbers("alt") == [1, 2, 3]
        assert tree.sequence_numbers(MAIN_BRANCH) == []

    def test_snapshot(self) -> None:
        tree = _tree_with(1, 2)
        tree.fork("alt", from_sequence=1)
        assert tree.snapshot() == {MAIN_BRANCH: [1, 2], "alt": [1]}
