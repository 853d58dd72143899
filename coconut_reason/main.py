"""coconut-reason — branchable thought chains with cycle detection and reflection.

This is the application entry point.  It builds the component configs from
Settings, picks a storage provider, wires the ThoughtEngine and mounts the
WebSocket and REST routers.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from coconut_reason.api.branches import create_branches_router
from coconut_reason.api.ws_thought import create_thought_router
from coconut_reason.config import settings
from coconut_reason.core.cycle_detector import CycleDetectionConfig
from coconut_reason.core.reflection import ReflectionConfig
from coconut_reason.core.thought_engine import ThoughtEngine
from coconut_reason.storage.base import StorageProvider
from coconut_reason.storage.file import FileStorageProvider
from coconut_reason.storage.memory import MemoryStorageProvider
from coconut_reason.store.branch_tree import BranchConfig
from coconut_reason.store.thought_store import RetentionConfig

# ── Logging ──────────────────────────────────────────────────────────────────

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)

# ── Storage ──────────────────────────────────────────────────────────────────

storage: StorageProvider = (
    FileStorageProvider(settings.storage_path)
    if settings.persistence_enabled
    else MemoryStorageProvider()
)

# ── Thought Engine ───────────────────────────────────────────────────────────

engine = ThoughtEngine(
    storage=storage,
    cycle_config=CycleDetectionConfig(
        algorithm=settings.similarity_algorithm,
        threshold=settings.cycle_detection_threshold,
        min_thoughts=settings.min_thoughts,
        pattern_min_length=settings.pattern_min_length,
        pattern_max_length=settings.pattern_max_length,
        pattern_threshold=settings.pattern_threshold,
        enable_cache=settings.enable_similarity_cache,
        max_cache_size=settings.max_cache_size,
        cache_ttl_seconds=settings.cache_ttl_seconds,
    ),
    branch_config=BranchConfig(max_branches=settings.max_branches),
    retention=RetentionConfig(max_history_size=settings.max_history_size),
    reflection_config=ReflectionConfig(
        reflection_interval=settings.reflection_interval,
        low_score_threshold=settings.low_score_threshold,
    ),
)


@asynccontextmanager
async def lifespan(_: FastAPI):
    for warning in await engine.initialize():
        logger.warning("Startup: %s", warning)
    yield


# ── App ──────────────────────────────────────────────────────────────────────

app = FastAPI(
    title=settings.app_name,
    description="Branchable thought chains with cycle detection and reflection checkpoints",
    version="0.1.0",
    debug=settings.debug,
    lifespan=lifespan,
)

# ── Routes ───────────────────────────────────────────────────────────────────

app.include_router(create_thought_router(engine))
app.include_router(create_branches_router(engine))


# ── Health ───────────────────────────────────────────────────────────────────

@app.get("/health")
async def health() -> dict:
    branches = await engine.branches()
    return {
        "status": "ok",
        "storage": engine.storage_name,
        "active_branch": engine.active_branch,
        "branches": len(branches),
        "thoughts": engine.thought_count,
        "interaction_count": engine.interaction_count,
        "awaiting_input": engine.pending_input is not None,
        "similarity_cache": engine.cache_stats(),
    }
