"""ThoughtEngine — the stateful service behind every caller-facing operation.

Design notes:
    - One asyncio.Lock serialises every public call.  Submissions, branch
      operations and bulk import/export never interleave.
    - The engine owns the BranchTree, ThoughtStore, InputManager and the
      interaction counter.  Detectors, scheduler and analyser are stateless
      apart from the similarity cache.
    - Per-thought control flow is the compiled submission graph; the engine
      seeds its state, applies the counter update and shapes the result.
    - StorageError is caught here and in the graph nodes.  The in-memory
      mutation is never rolled back because persistence failed.
"""

from __future__ import annotations

import asyncio
import logging

from coconut_reason.core.analyser import AnalyserConfig, ChainAnalyser
from coconut_reason.core.cache import SimilarityCache
from coconut_reason.core.cycle_detector import CycleDetectionConfig, build_cycle_detector
from coconut_reason.core.reflection import (
    ReflectionConfig,
    ReflectionDecision,
    ReflectionScheduler,
)
from coconut_reason.domain.branch import BranchComparison, BranchView
from coconut_reason.domain.enums import ResponseAction
from coconut_reason.domain.errors import StorageError, ThoughtValidationError
from coconut_reason.domain.submission import (
    PendingInputRequest,
    SubmissionResult,
    ThoughtSubmission,
)
from coconut_reason.domain.thought import ThoughtEntry
from coconut_reason.graph.builder import build_submission_graph
from coconut_reason.graph.nodes import PipelineDeps
from coconut_reason.services.input_manager import InputManager
from coconut_reason.storage.base import StorageProvider, StorageSnapshot
from coconut_reason.storage.memory import MemoryStorageProvider
from coconut_reason.store.branch_tree import BranchConfig, BranchTree
from coconut_reason.store.thought_store import RetentionConfig, ThoughtStore

logger = logging.getLogger(__name__)

_CYCLE_MESSAGE = (
    "Possible reasoning cycle detected. Revise an earlier thought or branch "
    "from a point before the repetition."
)


class ThoughtEngine:
    """Async-safe owner of the thought chain and its branches.

    Args:
        storage: Persistence backend; in-memory when omitted.
        cycle_config: Similarity and pattern thresholds, cache sizing.
        branch_config: Branch capacity.
        retention: Global history bound.
        reflection_config: Checkpoint cadence and low-score threshold.
        analyser_config: Heuristic thresholds for ChainAnalysis.
        log: Logger shared with every component; module logger by default.
    """

    def __init__(
        self,
        storage: StorageProvider | None = None,
        cycle_config: CycleDetectionConfig | None = None,
        branch_config: BranchConfig | None = None,
        retention: RetentionConfig | None = None,
        reflection_config: ReflectionConfig | None = None,
        analyser_config: AnalyserConfig | None = None,
        log: logging.Logger | None = None,
    ) -> None:
        self._log = log or logger
        cycle_config = cycle_config or CycleDetectionConfig()

        self._storage = storage or MemoryStorageProvider()
        self._cache = (
            SimilarityCache(
                max_size=cycle_config.max_cache_size,
                ttl_seconds=cycle_config.cache_ttl_seconds,
            )
            if cycle_config.enable_cache
            else None
        )
        self._tree = BranchTree(branch_config, log=self._log)
        self._store = ThoughtStore(log=self._log)
        self._inputs = InputManager(log=self._log)
        self._retention = retention or RetentionConfig()
        self._scheduler = ReflectionScheduler(reflection_config, log=self._log)

        self._graph = build_submission_graph(PipelineDeps(
            tree=self._tree,
            store=self._store,
            detector=build_cycle_detector(cycle_config, cache=self._cache, log=self._log),
            scheduler=self._scheduler,
            analyser=ChainAnalyser(analyser_config),
            inputs=self._inputs,
            storage=self._storage,
            retention=self._retention,
            log=self._log,
        ))
        self._lock = asyncio.Lock()
        self._interactions = 0

    # ── Lifecycle ────────────────────────────────────────────────────────

    async def initialize(self) -> list[str]:
        """Prepare storage and load persisted state.

        Returns warnings; a storage failure leaves the engine empty but usable.
        """
        async with self._lock:
            try:
                await self._storage.initialize()
                history = await self._storage.load_history()
                branches = await self._storage.load_branches()
            except StorageError as exc:
                self._log.error("Starting with empty state: %s", exc)
                return [str(exc)]

            self._store.load(history)
            self._store.enforce_retention(self._retention.max_history_size)
            self._tree.load(branches)
            self._log.info(
                "Engine initialised from %s storage: %d thought(s), %d branch(es)",
                self._storage.name, len(self._store), len(self._tree),
            )
            return []

    # ── Submission ───────────────────────────────────────────────────────

    async def submit_thought(self, submission: ThoughtSubmission) -> SubmissionResult:
        """Record one thought and report cycle, branch and reflection state.

        Raises:
            StateError: The named branch cannot be used.  Nothing is mutated.
        """
        async with self._lock:
            count = self._interactions + 1
            state = await self._graph.ainvoke({
                "submission": submission,
                "interaction_count": count,
                "warnings": [],
            })

            decision: ReflectionDecision = state.get("reflection") or ReflectionDecision.not_due()
            self._interactions = 0 if decision.resets_interval else count

            result = self._build_result(submission, state, decision)
            self._log.info(
                "Thought %d/%d on '%s': action=%s cycle=%s reflection=%s",
                result.thought_number, result.total_thoughts, result.active_branch,
                result.action.value, result.cycle_detected, result.reflection_due,
            )
            return result

    def _build_result(
        self,
        submission: ThoughtSubmission,
        state: dict,
        decision: ReflectionDecision,
    ) -> SubmissionResult:
        cycle = state.get("cycle_detected", False)
        pending: PendingInputRequest | None = state.get("pending_input")

        if pending is not None:
            action, message = ResponseAction.REQUEST_INPUT, pending.message
        elif cycle:
            action, message = ResponseAction.CYCLE_DETECTED, _CYCLE_MESSAGE
        elif decision.due:
            action = ResponseAction.REFLECTION
            message = "Reflection checkpoint: " + ", ".join(t.value for t in decision.triggers)
        else:
            action = ResponseAction.CONTINUE
            remaining = self._scheduler.interactions_until_next(self._interactions)
            message = f"{remaining} interaction(s) until the next reflection checkpoint"

        total = max(submission.total_thoughts, submission.thought_number)
        if submission.needs_more_thoughts and submission.thought_number >= total:
            total = submission.thought_number + 1

        return SubmissionResult(
            thought_number=submission.thought_number,
            total_thoughts=total,
            next_thought_needed=submission.next_thought_needed,
            cycle_detected=cycle,
            branches=self._tree.branch_ids,
            active_branch=self._tree.active_id,
            reflection_due=decision.due,
            reflection_triggers=list(decision.triggers),
            action=action,
            message=message,
            pending_input_request=pending,
            analysis=state.get("analysis"),
            warnings=list(state.get("warnings", [])),
            saved_file=state.get("saved_file"),
        )

    # ── Branch operations ────────────────────────────────────────────────

    async def create_branch(
        self,
        branch_id: str,
        from_sequence: int | None = None,
        source_id: str | None = None,
    ) -> BranchView:
        """Fork *branch_id* from *source_id* (active by default) and switch to it."""
        if not branch_id or not branch_id.strip():
            raise ThoughtValidationError("branch_id cannot be blank")
        async with self._lock:
            result = self._tree.fork(branch_id, from_sequence=from_sequence, source_id=source_id)
            self._tree.switch_to(branch_id)
            await self._save_branch(branch_id)
            return BranchView.of(result.branch)

    async def switch_branch(self, branch_id: str) -> BranchView:
        async with self._lock:
            return BranchView.of(self._tree.switch_to(branch_id))

    async def merge_branches(self, source_id: str, target_id: str) -> BranchComparison:
        """Union *source_id* into *target_id*; the comparison is taken before merging."""
        async with self._lock:
            comparison = self._tree.merge(
                source_id, target_id, scores=self._scores_for(source_id, target_id),
            )
            await self._save_branch(target_id)
            return comparison

    async def compare_branches(self, first_id: str, second_id: str) -> BranchComparison:
        async with self._lock:
            return self._tree.compare(first_id, second_id)

    async def remove_branch(self, branch_id: str) -> None:
        """Drop a branch.  Its thoughts stay in the history."""
        async with self._lock:
            self._tree.remove(branch_id)
            try:
                await self._storage.delete_branch(branch_id)
            except StorageError as exc:
                self._log.error("Could not delete persisted branch '%s': %s", branch_id, exc)

    async def clear_branch(self, branch_id: str) -> int:
        """Empty a branch and drop its thoughts; returns how many were dropped."""
        async with self._lock:
            self._tree.clear_branch(branch_id)
            removed = self._store.clear_branch(branch_id)
            try:
                await self._storage.clear_branch(branch_id)
            except StorageError as exc:
                self._log.error("Could not drop stored thoughts of '%s': %s", branch_id, exc)
            await self._save_branch(branch_id)
            return removed

    async def branches(self) -> list[BranchView]:
        async with self._lock:
            return [BranchView.of(self._tree.get(bid)) for bid in self._tree.branch_ids]

    async def branch_metrics(self, branch_id: str | None = None) -> dict:
        async with self._lock:
            return self._tree.metrics(branch_id)

    async def history(self, branch_id: str | None = None) -> list[ThoughtEntry]:
        """Thoughts recorded on a branch (active when None), oldest first."""
        async with self._lock:
            return self._store.history_for(self._tree.get(branch_id).branch_id)

    # ── Bulk state ───────────────────────────────────────────────────────

    async def clear_all(self) -> list[str]:
        """Reset to a single empty "main" branch and wipe storage."""
        async with self._lock:
            self._tree.reset()
            self._store.clear()
            self._inputs.clear()
            self._interactions = 0
            if self._cache is not None:
                self._cache.clear()
            try:
                await self._storage.clear()
            except StorageError as exc:
                self._log.error("Could not clear storage: %s", exc)
                return [str(exc)]
            self._log.info("Engine state cleared")
            return []

    async def export_data(self) -> StorageSnapshot:
        async with self._lock:
            return StorageSnapshot(thoughts=self._store.all(), branches=self._tree.snapshot())

    async def import_data(self, snapshot: StorageSnapshot) -> list[str]:
        """Replace in-memory state with *snapshot* and write it through."""
        async with self._lock:
            self._store.load(snapshot.thoughts)
            self._store.enforce_retention(self._retention.max_history_size)
            self._tree.load(snapshot.branches)
            self._inputs.clear()
            try:
                await self._storage.import_data(snapshot)
            except StorageError as exc:
                self._log.error("Imported state not persisted: %s", exc)
                return [str(exc)]
            return []

    # ── Introspection ────────────────────────────────────────────────────

    @property
    def active_branch(self) -> str:
        return self._tree.active_id

    @property
    def thought_count(self) -> int:
        return len(self._store)

    @property
    def interaction_count(self) -> int:
        return self._interactions

    @property
    def pending_input(self) -> PendingInputRequest | None:
        return self._inputs.pending

    @property
    def storage_name(self) -> str:
        return self._storage.name

    def cache_stats(self) -> dict:
        return self._cache.stats() if self._cache is not None else {"enabled": False}

    # ── Internals ────────────────────────────────────────────────────────

    def _scores_for(self, *branch_ids: str) -> dict[int, float]:
        """Scored sequence numbers across *branch_ids*; later branches win."""
        scores: dict[int, float] = {}
        for branch_id in branch_ids:
            for entry in self._store.history_for(branch_id):
                if entry.score is not None:
                    scores[entry.sequence_number] = entry.score
        return scores

    async def _save_branch(self, branch_id: str) -> None:
        try:
            await self._storage.save_branch(branch_id, self._tree.sequence_numbers(branch_id))
        except StorageError as exc:
            self._log.error("Could not persist branch '%s': %s", branch_id, exc)
