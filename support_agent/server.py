"""FastAPI server for the Thoughtful AI support agent.

Run with:
    uv run uvicorn support_agent.server:app --reload --host 0.0.0.0 --port 8000
"""

from __future__ import annotations

import logging
import uuid
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from support_agent.agent import create_support_agent
from support_agent.api.routes import router
from support_agent.config import CORS_ORIGINS, SERVER_HOST, SERVER_PORT
from support_agent.knowledge.matcher import Matcher
from support_agent.knowledge.store import EmbeddingStore
from support_agent.services.embeddings import ProviderError, get_embedding_provider

# ── Logging ──────────────────────────────────────────────────────────
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
)
logger = logging.getLogger(__name__)


# ── Lifespan: initialise / tear-down shared resources ────────────────
@asynccontextmanager
async def lifespan(application: FastAPI):
    """Start-up: build the knowledge base, embed it, compile the agent.

    Embeddings are computed eagerly so the first chat request doesn't pay
    for them.  If the provider is unreachable at start-up the server still
    comes up; the store stays uninitialized and the first lookup retries.
    """
    store = EmbeddingStore(get_embedding_provider())
    try:
        await store.initialize()
    except ProviderError:
        logger.exception(
            "Knowledge base embeddings failed at start-up; will retry on first query",
        )

    application.state.store = store
    logger.info("Compiling support agent…")
    application.state.agent = create_support_agent(Matcher(store))
    logger.info("Agent ready.")
    yield


# ── FastAPI application ──────────────────────────────────────────────
app = FastAPI(
    title="Thoughtful AI Support Agent",
    description=(
        "Customer support chat for Thoughtful AI's healthcare automation "
        "agents, backed by a semantic knowledge-base lookup."
    ),
    version="1.0.0",
    lifespan=lifespan,
)

# ── CORS (needed for the browser client) ────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── Request-ID middleware ────────────────────────────────────────────
@app.middleware("http")
async def add_request_id(request: Request, call_next) -> Response:
    """Attach a unique request ID to every request for log correlation.

    The ID is echoed in the ``X-Request-ID`` response header and prefixed
    to every log line written while handling the request.
    """
    request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
    request.state.request_id = request_id
    logger.info(
        "[%s] %s %s", request_id, request.method, request.url.path,
    )
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


# ── Register routes ──────────────────────────────────────────────────
app.include_router(router, prefix="/api")


@app.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "service": "Thoughtful AI Support Agent",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/api/health",
        "config": "/api/config",
    }


# ── CLI entry point ──────────────────────────────────────────────────

if __name__ == "__main__":
    logger.info("Starting support agent API server on %s:%d", SERVER_HOST, SERVER_PORT)
    uvicorn.run(
        "support_agent.server:app",
        host=SERVER_HOST,
        port=SERVER_PORT,
        reload=True,
    )
