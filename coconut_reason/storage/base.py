"""Abstract base for storage providers.

A storage provider persists thoughts and branch sequence lists so an engine
can be rebuilt after a restart.

Architectural rules:
    1. The engine never assumes a save succeeded.  A provider may return
       None (nothing written, e.g. pure memory) or raise StorageError.
    2. Providers only persist; they never decide branch or cycle state.
    3. Providers must not mutate the entries they are given.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from coconut_reason.domain.thought import ThoughtEntry
from coconut_reason.foundation.clock import utc_now


class SavedKind(str, Enum):
    THOUGHT = "thought"
    BRANCH = "branch"


class SavedFileInfo(BaseModel):
    """Where a provider wrote something."""

    file_path: str
    kind: SavedKind
    timestamp: datetime = Field(default_factory=utc_now)

    model_config = {"frozen": True}


class StorageSnapshot(BaseModel):
    """Bulk export/import payload."""

    thoughts: list[ThoughtEntry] = Field(default_factory=list)
    branches: dict[str, list[int]] = Field(default_factory=lambda: {"main": []})


class StorageProvider(ABC):
    """Base class for thought/branch persistence backends."""

    @abstractmethod
    async def initialize(self) -> None:
        """Prepare the backend (create directories, open handles)."""
        ...

    @abstractmethod
    async def save_thought(self, entry: ThoughtEntry) -> SavedFileInfo | None:
        """Insert or replace the entry keyed by (sequence_number, branch_id)."""
        ...

    @abstractmethod
    async def load_history(self) -> list[ThoughtEntry]:
        ...

    @abstractmethod
    async def clear_branch(self, branch_id: str) -> int:
        """Drop every stored thought of *branch_id*; returns how many went."""
        ...

    @abstractmethod
    async def save_branch(self, branch_id: str, sequence_numbers: list[int]) -> SavedFileInfo | None:
        ...

    @abstractmethod
    async def delete_branch(self, branch_id: str) -> None:
        ...

    @abstractmethod
    async def load_branches(self) -> dict[str, list[int]]:
        ...

    @abstractmethod
    async def clear(self) -> None:
        ...

    @abstractmethod
    async def export_data(self) -> StorageSnapshot:
        ...

    @abstractmethod
    async def import_data(self, snapshot: StorageSnapshot) -> None:
        """Replace everything stored with *snapshot*."""
        ...

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable backend name for logs and health output."""
        ...
