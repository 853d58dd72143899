"""WebSocket endpoint for thought submission.

Path: /ws/thought

Accepts JSON matching the ThoughtSubmission schema, validates it at the
boundary, runs it through the ThoughtEngine and replies with the full
SubmissionResult.  A bad message gets an error reply; the socket stays open.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from coconut_reason.core.thought_engine import ThoughtEngine
from coconut_reason.domain.errors import StateError
from coconut_reason.domain.submission import ThoughtSubmission

logger = logging.getLogger(__name__)


def create_thought_router(engine: ThoughtEngine) -> APIRouter:
    """Factory that wires the thought endpoint to a concrete ThoughtEngine."""

    router = APIRouter()

    @router.websocket("/ws/thought")
    async def submit_thought(websocket: WebSocket) -> None:
        await websocket.accept()
        logger.info("Thought client connected")

        try:
            while True:
                raw = await websocket.receive_json()

                # ── Validate at the boundary ─────────────────────────────
                try:
                    submission = ThoughtSubmission.model_validate(raw)
                except ValidationError as exc:
                    await websocket.send_json({
                        "status": "error",
                        "detail": "Thought validation failed",
                        "errors": exc.errors(include_url=False, include_context=False),
                    })
                    continue

                # ── Run the pipeline ─────────────────────────────────────
                try:
                    result = await engine.submit_thought(submission)
                except StateError as exc:
                    logger.info("Thought rejected: %s", exc)
                    await websocket.send_json({"status": "error", "detail": str(exc)})
                    continue

                await websocket.send_json({
                    "status": "accepted",
                    "result": result.model_dump(mode="json"),
                })

        except WebSocketDisconnect:
            logger.info("Thought client disconnected")

    return router
