"""JSON file storage provider.

Layout under `base_path`:
    thought-history.json   list of ThoughtEntry
    branches.json          {branch_id: [sequence_number, ...]}

Every save is read-modify-write of a whole file.  That is fine for the
single-in-flight engine; blocking file I/O runs in a worker thread so the
event loop stays responsive.  Any OS or decode failure surfaces as
StorageError.
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path

from pydantic import TypeAdapter
from pydantic import ValidationError as SchemaError

from coconut_reason.domain.errors import StorageError
from coconut_reason.domain.thought import ThoughtEntry
from coconut_reason.storage.base import (
    SavedFileInfo,
    SavedKind,
    StorageProvider,
    StorageSnapshot,
)

logger = logging.getLogger(__name__)

HISTORY_FILE = "thought-history.json"
BRANCHES_FILE = "branches.json"

_history_adapter = TypeAdapter(list[ThoughtEntry])
_branches_adapter = TypeAdapter(dict[str, list[int]])


class FileStorageProvider(StorageProvider):
    """Persists to two JSON files under *base_path*."""

    def __init__(self, base_path: str | Path = "./coconut-data") -> None:
        self._base = Path(base_path).resolve()
        self._history_path = self._base / HISTORY_FILE
        self._branches_path = self._base / BRANCHES_FILE

    @property
    def name(self) -> str:
        return "file"

    @property
    def base_path(self) -> Path:
        return self._base

    # ── Lifecycle ────────────────────────────────────────────────────────

    async def initialize(self) -> None:
        try:
            await asyncio.to_thread(self._base.mkdir, parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageError("initialize", str(exc)) from exc
        logger.info("File storage ready at %s", self._base)

    async def clear(self) -> None:
        try:
            for path in (self._history_path, self._branches_path):
                await asyncio.to_thread(path.unlink, missing_ok=True)
        except OSError as exc:
            raise StorageError("clear", str(exc)) from exc
        logger.info("File storage cleared at %s", self._base)

    # ── Thoughts ─────────────────────────────────────────────────────────

    async def save_thought(self, entry: ThoughtEntry) -> SavedFileInfo | None:
        history = await self.load_history()
        for i, existing in enumerate(history):
            if existing.key == entry.key:
                history[i] = entry
                break
        else:
            history.append(entry)

        await self._write(self._history_path, _history_adapter.dump_json(history, indent=2), "save_thought")
        logger.debug("Saved thought %d/%s to %s", entry.sequence_number, entry.branch_id, self._history_path)
        return SavedFileInfo(file_path=str(self._history_path), kind=SavedKind.THOUGHT)

    async def load_history(self) -> list[ThoughtEntry]:
        raw = await self._read(self._history_path, "load_history")
        if raw is None:
            return []
        try:
            return _history_adapter.validate_json(raw)
        except SchemaError as exc:
            raise StorageError("load_history", f"corrupt {HISTORY_FILE}: {exc.error_count()} error(s)") from exc

    async def clear_branch(self, branch_id: str) -> int:
        history = await self.load_history()
        kept = [e for e in history if e.branch_id != branch_id]
        removed = len(history) - len(kept)
        if removed:
            await self._write(self._history_path, _history_adapter.dump_json(kept, indent=2), "clear_branch")
            logger.info("Removed %d stored thought(s) of branch '%s'", removed, branch_id)
        return removed

    # ── Branches ─────────────────────────────────────────────────────────

    async def save_branch(self, branch_id: str, sequence_numbers: list[int]) -> SavedFileInfo | None:
        branches = await self.load_branches()
        branches[branch_id] = list(sequence_numbers)
        await self._write_branches(branches, "save_branch")
        return SavedFileInfo(file_path=str(self._branches_path), kind=SavedKind.BRANCH)

    async def delete_branch(self, branch_id: str) -> None:
        branches = await self.load_branches()
        if branches.pop(branch_id, None) is not None:
            await self._write_branches(branches, "delete_branch")

    async def load_branches(self) -> dict[str, list[int]]:
        raw = await self._read(self._branches_path, "load_branches")
        if raw is None:
            return {"main": []}
        try:
            return _branches_adapter.validate_json(raw)
        except SchemaError as exc:
            raise StorageError("load_branches", f"corrupt {BRANCHES_FILE}: {exc.error_count()} error(s)") from exc

    # ── Bulk transfer ────────────────────────────────────────────────────

    async def export_data(self) -> StorageSnapshot:
        return StorageSnapshot(
            thoughts=await self.load_history(),
            branches=await self.load_branches(),
        )

    async def import_data(self, snapshot: StorageSnapshot) -> None:
        await self._write(
            self._history_path,
            _history_adapter.dump_json(snapshot.thoughts, indent=2),
            "import_data",
        )
        await self._write_branches(dict(snapshot.branches), "import_data")
        logger.info(
            "Imported %d thought(s) and %d branch(es)",
            len(snapshot.thoughts), len(snapshot.branches),
        )

    # ── Internals ────────────────────────────────────────────────────────

    async def _write_branches(self, branches: dict[str, list[int]], operation: str) -> None:
        payload = json.dumps(branches, indent=2).encode("utf-8")
        await self._write(self._branches_path, payload, operation)

    async def _read(self, path: Path, operation: str) -> bytes | None:
        try:
            return await asyncio.to_thread(path.read_bytes)
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise StorageError(operation, str(exc)) from exc

    async def _write(self, path: Path, payload: bytes, operation: str) -> None:
        try:
            await asyncio.to_thread(path.parent.mkdir, parents=True, exist_ok=True)
            await asyncio.to_thread(path.write_bytes, payload)
        except OSError as exc:
            raise StorageError(operation, str(exc)) from exc
