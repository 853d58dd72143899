"""REST endpoints for branch management.

Paths:
    GET    /api/branches
    POST   /api/branches
    POST   /api/branches/{branch_id}/switch
    POST   /api/branches/merge
    GET    /api/branches/compare?first=..&second=..
    DELETE /api/branches/{branch_id}
    GET    /api/branches/{branch_id}/thoughts

StateError subclasses map onto HTTP status codes: unknown branch → 404,
duplicate branch → 409, everything else (limit, no common ancestor,
protected branch) → 400.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from coconut_reason.core.thought_engine import ThoughtEngine
from coconut_reason.domain.errors import (
    DuplicateBranchError,
    StateError,
    ThoughtValidationError,
    UnknownBranchError,
)

logger = logging.getLogger(__name__)


class CreateBranchRequest(BaseModel):
    branch_id: str = Field(..., min_length=1, max_length=128)
    from_thought: Optional[int] = Field(default=None, gt=0)
    source_id: Optional[str] = None


class MergeRequest(BaseModel):
    source_id: str = Field(..., min_length=1)
    target_id: str = Field(..., min_length=1)


def _http_error(exc: Exception) -> HTTPException:
    if isinstance(exc, UnknownBranchError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, DuplicateBranchError):
        return HTTPException(status_code=409, detail=str(exc))
    return HTTPException(status_code=400, detail=str(exc))


def create_branches_router(engine: ThoughtEngine) -> APIRouter:
    """Factory that wires the branch endpoints to a ThoughtEngine."""

    router = APIRouter(prefix="/api", tags=["branches"])

    @router.get("/branches")
    async def list_branches() -> dict[str, Any]:
        branches = await engine.branches()
        return {
            "branches": [b.model_dump(mode="json") for b in branches],
            "active_branch": engine.active_branch,
            "count": len(branches),
        }

    @router.post("/branches", status_code=201)
    async def create_branch(request: CreateBranchRequest) -> dict[str, Any]:
        try:
            view = await engine.create_branch(
                request.branch_id,
                from_sequence=request.from_thought,
                source_id=request.source_id,
            )
        except (StateError, ThoughtValidationError) as exc:
            raise _http_error(exc) from exc
        return view.model_dump(mode="json")

    # Registered before the {branch_id} routes so "merge"/"compare" are not ids
    @router.post("/branches/merge")
    async def merge_branches(request: MergeRequest) -> dict[str, Any]:
        try:
            comparison = await engine.merge_branches(request.source_id, request.target_id)
        except StateError as exc:
            raise _http_error(exc) from exc
        return {
            "merged": True,
            "comparison": comparison.model_dump(),
            "active_branch": engine.active_branch,
        }

    @router.get("/branches/compare")
    async def compare_branches(first: str, second: str) -> dict[str, Any]:
        try:
            comparison = await engine.compare_branches(first, second)
        except StateError as exc:
            raise _http_error(exc) from exc
        return comparison.model_dump()

    @router.post("/branches/{branch_id}/switch")
    async def switch_branch(branch_id: str) -> dict[str, Any]:
        try:
            view = await engine.switch_branch(branch_id)
        except StateError as exc:
            raise _http_error(exc) from exc
        return view.model_dump(mode="json")

    @router.delete("/branches/{branch_id}")
    async def remove_branch(branch_id: str) -> dict[str, Any]:
        try:
            await engine.remove_branch(branch_id)
        except StateError as exc:
            raise _http_error(exc) from exc
        return {"removed": branch_id, "active_branch": engine.active_branch}

    @router.get("/branches/{branch_id}/thoughts")
    async def branch_thoughts(branch_id: str) -> dict[str, Any]:
        try:
            entries = await engine.history(branch_id)
        except StateError as exc:
            raise _http_error(exc) from exc
        return {
            "branch_id": branch_id,
            "thoughts": [e.model_dump(mode="json") for e in entries],
            "count": len(entries),
        }

    return router
