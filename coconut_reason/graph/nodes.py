"""LangGraph nodes — the per-thought control flow of the ThoughtEngine.

Each node:
    - Receives the full SubmissionState
    - Returns a partial dict update
    - Touches components only through the PipelineDeps it was built with

Order matters.  resolve_branch performs every check that can reject the
call before anything is mutated, so a StateError raised there leaves the
tree, the store and the pending input request untouched.

Storage failures are never fatal: they are logged and appended to the
state's warnings, and the in-memory mutation stands.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from coconut_reason.core.analyser import ChainAnalyser
from coconut_reason.core.cycle_detector import CompositeCycleDetector
from coconut_reason.core.reflection import ReflectionInputs, ReflectionScheduler
from coconut_reason.domain.enums import BranchStatus
from coconut_reason.domain.errors import StorageError, UnknownBranchError
from coconut_reason.domain.thought import ThoughtEntry, ThoughtMetadata
from coconut_reason.graph.state import SubmissionState
from coconut_reason.services.input_manager import InputManager
from coconut_reason.storage.base import StorageProvider
from coconut_reason.store.branch_tree import BranchTree
from coconut_reason.store.thought_store import RetentionConfig, ThoughtStore

logger = logging.getLogger(__name__)

# Fraction of total_thoughts past which a due checkpoint asks for input
NEAR_END_RATIO = 0.8


@dataclass(frozen=True)
class PipelineDeps:
    """Everything the nodes are allowed to touch."""

    tree: BranchTree
    store: ThoughtStore
    detector: CompositeCycleDetector
    scheduler: ReflectionScheduler
    analyser: ChainAnalyser
    inputs: InputManager
    storage: StorageProvider
    retention: RetentionConfig = field(default_factory=RetentionConfig)
    log: logging.Logger = logger


# ── Persistence helpers ─────────────────────────────────────────────────────

async def _persist_branch(deps: PipelineDeps, branch_id: str, warnings: list[str]) -> None:
    try:
        await deps.storage.save_branch(branch_id, deps.tree.sequence_numbers(branch_id))
    except StorageError as exc:
        deps.log.error("Could not persist branch '%s': %s", branch_id, exc)
        warnings.append(str(exc))


# ── 1. resolve_branch ───────────────────────────────────────────────────────

def make_resolve_branch(deps: PipelineDeps):
    """Create the resolve_branch node.

    Rules:
        branch_id + branch_from_thought, branch unknown  → fork from active
        branch_id + branch_from_thought, branch known    → switch
        branch_id only, branch known                     → switch
        branch_id only, branch unknown                   → UnknownBranchError
        no branch_id                                     → stay on active

    Afterwards the pending input request, if any, is answered by this
    submission and cleared.
    """

    async def resolve_branch(state: SubmissionState) -> dict:
        sub = state["submission"]
        tree = deps.tree
        warnings = list(state.get("warnings", []))
        is_new_branch = False

        target = sub.branch_id
        if target and target not in tree:
            if sub.branch_from_thought is None:
                raise UnknownBranchError(target)
            result = tree.fork(target, from_sequence=sub.branch_from_thought)
            is_new_branch = True
            if not result.fork_point_found:
                warnings.append(
                    f"Thought {sub.branch_from_thought} not found in branch "
                    f"'{tree.active_id}'; branch '{target}' starts empty"
                )
            tree.switch_to(target)
            await _persist_branch(deps, target, warnings)
        elif target and target != tree.active_id:
            tree.switch_to(target)

        branch = tree.active
        pending = deps.inputs.pending
        user_input = deps.inputs.resolve(sub)
        if pending is not None and pending.branch_id in tree:
            waiting = tree.get(pending.branch_id)
            if waiting.status == BranchStatus.AWAITING_INPUT:
                waiting.status = BranchStatus.ACTIVE

        return {
            "branch_id": branch.branch_id,
            "is_new_branch": is_new_branch,
            "user_input": user_input,
            "warnings": warnings,
        }

    return resolve_branch


# ── 2. record_thought ───────────────────────────────────────────────────────

def make_record_thought(deps: PipelineDeps):
    """Create the record_thought node: store, index, trim, persist."""

    async def record_thought(state: SubmissionState) -> dict:
        sub = state["submission"]
        branch_id = state["branch_id"]
        warnings = list(state.get("warnings", []))

        metadata = ThoughtMetadata(
            is_revision=sub.is_revision,
            revises_sequence=sub.revises_thought if sub.is_revision else None,
            forked_from_sequence=sub.branch_from_thought if state.get("is_new_branch") else None,
            submitted_as=sub.thought_number if sub.is_revision else None,
            user_input=state.get("user_input"),
        )
        entry = ThoughtEntry(
            text=sub.thought,
            sequence_number=sub.stored_sequence,
            branch_id=branch_id,
            score=sub.score,
            metadata=metadata,
        )

        replaced = deps.store.upsert(entry)
        inherited = (
            sub.is_revision
            and not replaced
            and deps.tree.get(branch_id).contains(entry.sequence_number)
        )
        if inherited:
            warnings.append(
                f"Thought {sub.revises_thought} is inherited by branch '{branch_id}'; "
                "revision recorded on this branch only"
            )
        elif sub.is_revision and not replaced:
            warnings.append(
                f"Thought {sub.revises_thought} not found in branch '{branch_id}'; "
                "revision recorded as a new thought"
            )
        if not sub.is_revision or not (replaced or inherited):
            # A plain resubmission of a known number flags the branch
            deps.tree.append(entry.sequence_number, branch_id, score=sub.score)

        evicted = deps.store.enforce_retention(deps.retention.max_history_size)
        if evicted:
            deps.log.info("Retention evicted %d thought(s)", len(evicted))

        saved_file = None
        try:
            saved = await deps.storage.save_thought(entry)
            saved_file = saved.model_dump(mode="json") if saved is not None else None
        except StorageError as exc:
            deps.log.error("Could not persist thought %d: %s", entry.sequence_number, exc)
            warnings.append(str(exc))
        await _persist_branch(deps, branch_id, warnings)

        return {
            "entry": entry,
            "replaced_existing": replaced,
            "saved_file": saved_file,
            "warnings": warnings,
        }

    return record_thought


# ── 3. detect_cycle ─────────────────────────────────────────────────────────

def make_detect_cycle(deps: PipelineDeps):
    """Create the detect_cycle node.

    The candidate is compared against its branch's history without the
    entry that was just stored, so a thought never matches itself.
    """

    def detect_cycle(state: SubmissionState) -> dict:
        entry = state["entry"]
        history = deps.store.texts_for(entry.branch_id, exclude_sequence=entry.sequence_number)
        cycle = deps.detector.detect(history, entry.text)

        branch = deps.tree.get(entry.branch_id)
        branch.status = BranchStatus.CYCLE_FLAGGED if cycle else BranchStatus.ACTIVE
        if cycle:
            deps.log.warning(
                "Cycle detected on branch '%s' at thought %d",
                entry.branch_id, entry.sequence_number,
            )
        return {"cycle_detected": cycle}

    return detect_cycle


# ── 4. schedule_reflection ──────────────────────────────────────────────────

def make_schedule_reflection(deps: PipelineDeps):
    """Create the schedule_reflection node; analysis runs only when due."""

    def schedule_reflection(state: SubmissionState) -> dict:
        sub = state["submission"]
        decision = deps.scheduler.evaluate(ReflectionInputs(
            interaction_count=state.get("interaction_count", 0),
            thought_number=sub.thought_number,
            total_thoughts=sub.total_thoughts,
            next_thought_needed=sub.next_thought_needed,
            score=sub.score,
            has_cycle=state.get("cycle_detected", False),
            is_revision=sub.is_revision,
            is_new_branch=state.get("is_new_branch", False),
            explicit_request=sub.request_analysis,
        ))

        analysis = None
        if decision.due:
            try:
                analysis = deps.analyser.analyse(
                    deps.store.history_for(state["branch_id"]),
                    sub.total_thoughts,
                )
            except Exception:
                deps.log.exception("Chain analysis failed; reflecting without it")
            deps.log.info(
                "Reflection due on branch '%s': %s",
                state["branch_id"], [t.value for t in decision.triggers],
            )

        return {"reflection": decision, "analysis": analysis}

    return schedule_reflection


def needs_input(state: SubmissionState) -> str:
    """Conditional edge: open an input request or finish.

    Returns:
        "request" — reflection is due, the chain continues, and the agent
                    is near the end or the analysis reports missing information
        "done"    — otherwise
    """
    sub = state["submission"]
    decision = state.get("reflection")
    if decision is None or not decision.due or not sub.next_thought_needed:
        return "done"

    analysis = state.get("analysis")
    near_end = sub.thought_number >= NEAR_END_RATIO * sub.total_thoughts
    if near_end or (analysis is not None and analysis.needs_more_user_info):
        return "request"
    return "done"


# ── 5. request_input ────────────────────────────────────────────────────────

def make_request_input(deps: PipelineDeps):
    """Create the request_input node: the branch now awaits caller input."""

    def request_input(state: SubmissionState) -> dict:
        branch_id = state["branch_id"]
        pending = deps.inputs.request(branch_id)
        deps.tree.get(branch_id).status = BranchStatus.AWAITING_INPUT
        return {"pending_input": pending}

    return request_input
