"""FastAPI route definitions for the support agent API."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Request
from langchain_core.messages import AIMessage, AnyMessage, HumanMessage
from langgraph.errors import GraphRecursionError

from support_agent.agent import MAX_AGENT_STEPS, get_reply_text
from support_agent.api.schemas import (
    ChatMessage,
    ChatRequest,
    ChatResponse,
    ConfigResponse,
    HealthResponse,
    KnowledgeMatch,
)
from support_agent.config import (
    EMBEDDING_BASE_URL,
    EMBEDDING_MODEL,
    MODEL_NAME,
    RETRIEVAL_MODE,
)
from support_agent.knowledge.store import StoreState
from support_agent.services.embeddings import ProviderError, ProviderTimeoutError

logger = logging.getLogger(__name__)

router = APIRouter()

def _get_agent(request: Request):
    """Retrieve the compiled LangGraph agent from app state.

    The agent is built once during the FastAPI lifespan (see ``server.py``).
    """
    agent = getattr(request.app.state, "agent", None)
    if agent is None:
        raise HTTPException(
            status_code=503,
            detail="The agent is still starting up. Please try again in a moment.",
        )
    return agent


def _to_langchain_messages(messages: list[ChatMessage]) -> list[AnyMessage]:
    converted: list[AnyMessage] = []
    for msg in messages:
        if msg.role == "user":
            converted.append(HumanMessage(content=msg.content))
        else:
            converted.append(AIMessage(content=msg.content))
    return converted


def _embedding_provider_label(base_url: str) -> str:
    return "LM Studio" if "localhost" in base_url or "127.0.0.1" in base_url else "OpenAI"


# ── Endpoints ────────────────────────────────────────────────────────


@router.get("/health", response_model=HealthResponse)
async def health_check(http_request: Request):
    """Health check endpoint, including the knowledge-base store state."""
    store = getattr(http_request.app.state, "store", None)
    state = store.state if store is not None else StoreState.UNINITIALIZED
    return HealthResponse(knowledge_base=state.value)


@router.get("/config", response_model=ConfigResponse)
async def get_config():
    """Model and provider info for the UI."""
    return ConfigResponse(
        provider="Anthropic",
        model=MODEL_NAME,
        embedding_provider=_embedding_provider_label(EMBEDDING_BASE_URL),
        embedding_model=EMBEDDING_MODEL,
        embedding_base_url=EMBEDDING_BASE_URL,
        retrieval_mode=RETRIEVAL_MODE,
    )


@router.post("/chat", response_model=ChatResponse)
async def chat(request: ChatRequest, http_request: Request):
    """Answer the latest user message given the full conversation.

    A knowledge-base provider failure is reported as 502 (504 on timeout)
    and never downgraded to an answer without knowledge-base context.
    """
    agent = _get_agent(http_request)
    request_id = getattr(http_request.state, "request_id", "?")

    try:
        result = await agent.ainvoke(
            {"messages": _to_langchain_messages(request.messages)},
            config={"recursion_limit": MAX_AGENT_STEPS},
        )
    except ProviderTimeoutError as e:
        logger.error("[%s] Knowledge base lookup timed out: %s", request_id, e)
        raise HTTPException(
            status_code=504,
            detail="Knowledge base retrieval timed out. Please try again.",
        ) from e
    except ProviderError as e:
        logger.exception("[%s] Knowledge base lookup failed", request_id)
        raise HTTPException(
            status_code=502,
            detail="Knowledge base retrieval failed. Please try again.",
        ) from e
    except GraphRecursionError as e:
        logger.error(
            "[%s] Agent hit its step limit (%d) without a final answer", request_id, MAX_AGENT_STEPS,
        )
        raise HTTPException(
            status_code=500,
            detail="The assistant could not finish its answer. Please try rephrasing.",
        ) from e
    except Exception as e:
        # Full traceback stays in the server log; the client gets a generic message
        logger.exception("[%s] Error processing chat request", request_id)
        raise HTTPException(
            status_code=500,
            detail="An internal error occurred. Please try again.",
        ) from e

    messages = result.get("messages", [])
    if not messages:
        logger.error("[%s] Agent returned no messages", request_id)
        raise HTTPException(status_code=500, detail="Agent produced no response.")

    raw_match = result.get("knowledge_match")
    return ChatResponse(
        reply=get_reply_text(messages[-1]),
        knowledge_match=KnowledgeMatch(**raw_match) if raw_match else None,
    )
