"""In-memory storage provider — persistence disabled.

Everything lives in process memory and disappears on restart.  Saves return
None because nothing is written anywhere a caller could open.
"""

from __future__ import annotations

import logging

from coconut_reason.domain.thought import ThoughtEntry
from coconut_reason.storage.base import SavedFileInfo, StorageProvider, StorageSnapshot

logger = logging.getLogger(__name__)


class MemoryStorageProvider(StorageProvider):
    def __init__(self) -> None:
        self._thoughts: list[ThoughtEntry] = []
        self._branches: dict[str, list[int]] = {"main": []}

    @property
    def name(self) -> str:
        return "memory"

    async def initialize(self) -> None:
        logger.debug("Memory storage ready")

    async def save_thought(self, entry: ThoughtEntry) -> SavedFileInfo | None:
        for i, existing in enumerate(self._thoughts):
            if existing.key == entry.key:
                self._thoughts[i] = entry
                break
        else:
            self._thoughts.append(entry)
        return None

    async def load_history(self) -> list[ThoughtEntry]:
        return list(self._thoughts)

    async def clear_branch(self, branch_id: str) -> int:
        kept = [e for e in self._thoughts if e.branch_id != branch_id]
        removed = len(self._thoughts) - len(kept)
        self._thoughts = kept
        return removed

    async def save_branch(self, branch_id: str, sequence_numbers: list[int]) -> SavedFileInfo | None:
        self._branches[branch_id] = list(sequence_numbers)
        return None

    async def delete_branch(self, branch_id: str) -> None:
        self._branches.pop(branch_id, None)

    async def load_branches(self) -> dict[str, list[int]]:
        return {bid: list(seqs) for bid, seqs in self._branches.items()}

    async def clear(self) -> None:
        self._thoughts = []
        self._branches = {"main": []}
        logger.debug("Memory storage cleared")

    async def export_data(self) -> StorageSnapshot:
        return StorageSnapshot(
            thoughts=list(self._thoughts),
            branches=await self.load_branches(),
        )

    async def import_data(self, snapshot: StorageSnapshot) -> None:
        self._thoughts = list(snapshot.thoughts)
        self._branches = {bid: list(seqs) for bid, seqs in snapshot.branches.items()}
