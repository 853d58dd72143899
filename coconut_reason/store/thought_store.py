"""ThoughtStore — the canonical, insertion-ordered list of thoughts.

Design notes:
    - (sequence_number, branch_id) identifies an entry.  Upserting an
      existing key replaces the entry in place, keeping its position; this
      is how revisions work.
    - Insertion order is the source of truth for "as reasoned".  Per-branch
      history is a filter over it, never re-sorted by sequence number.
    - Retention is a global sliding window over insertion order.  Old
      thoughts of an idle branch can be evicted before those of the active
      branch; this keeps memory bounded and is intentional.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from coconut_reason.domain.thought import ThoughtEntry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetentionConfig:
    """How many thoughts are kept in memory across all branches."""

    max_history_size: int = 1000

    def __post_init__(self) -> None:
        if self.max_history_size < 1:
            raise ValueError("max_history_size must be positive")


class ThoughtStore:
    """Synchronous in-memory thought list.  Callers hold the engine lock."""

    def __init__(self, log: logging.Logger | None = None) -> None:
        self._log = log or logger
        self._entries: list[ThoughtEntry] = []

    # ── Mutation ─────────────────────────────────────────────────────────

    def upsert(self, entry: ThoughtEntry) -> bool:
        """Store *entry*; True if it replaced an existing one."""
        index = self._index_of(entry.sequence_number, entry.branch_id)
        if index is None:
            self._entries.append(entry)
            self._log.debug(
                "Stored thought %d on branch '%s'", entry.sequence_number, entry.branch_id,
            )
            return False

        self._entries[index] = entry
        self._log.info(
            "Revised thought %d on branch '%s' in place", entry.sequence_number, entry.branch_id,
        )
        return True

    def enforce_retention(self, max_history_size: int) -> list[ThoughtEntry]:
        """Drop the oldest entries beyond *max_history_size*; return them."""
        overflow = len(self._entries) - max_history_size
        if overflow <= 0:
            return []
        evicted = self._entries[:overflow]
        self._entries = self._entries[overflow:]
        self._log.info(
            "Retention evicted %d thought(s); %d kept (max %d)",
            overflow, len(self._entries), max_history_size,
        )
        return evicted

    def clear_branch(self, branch_id: str) -> int:
        before = len(self._entries)
        self._entries = [e for e in self._entries if e.branch_id != branch_id]
        removed = before - len(self._entries)
        self._log.info("Removed %d thought(s) of branch '%s'", removed, branch_id)
        return removed

    def clear(self) -> None:
        self._entries.clear()

    def load(self, entries: list[ThoughtEntry]) -> None:
        """Replace contents, keeping the last entry seen for each key."""
        self._entries = []
        for entry in entries:
            self.upsert(entry)

    # ── Queries ──────────────────────────────────────────────────────────

    def get(self, sequence_number: int, branch_id: str) -> ThoughtEntry | None:
        index = self._index_of(sequence_number, branch_id)
        return None if index is None else self._entries[index]

    def history_for(self, branch_id: str) -> list[ThoughtEntry]:
        return [e for e in self._entries if e.branch_id == branch_id]

    def texts_for(self, branch_id: str, exclude_sequence: int | None = None) -> list[str]:
        return [
            e.text
            for e in self._entries
            if e.branch_id == branch_id and e.sequence_number != exclude_sequence
        ]

    def all(self) -> list[ThoughtEntry]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    # ── Internals ────────────────────────────────────────────────────────

    def _index_of(self, sequence_number: int, branch_id: str) -> int | None:
        for i, entry in enumerate(self._entries):
            if entry.sequence_number == sequence_number and entry.branch_id == branch_id:
                return i
        return None
