"""ID generation for pending input requests."""

from __future__ import annotations

from uuid import uuid4


def new_request_id() -> str:
    """Generate a short random identifier for an input request."""
    return uuid4().hex[:12]
