"""LangGraph-based support agent for Thoughtful AI.

Architecture:
  The knowledge base can reach the model in one of two ways, selected by
  ``RETRIEVAL_MODE``:

    **tool** mode
        chatbot → (has tool calls?) → tools → chatbot (loop)
                → (no tool calls?)  → END

        The LLM is bound to the ``search_knowledge_base`` tool and decides
        itself when to run a semantic lookup.  After ``MAX_TOOL_ROUNDS``
        lookups for one user message it must answer in text.

    **retrieval** mode
        retrieve → chatbot → END

        The matcher runs once on the latest user message before the LLM is
        called; the match (or its absence) shapes the system prompt.

  Both paths let :class:`ProviderError` escape ``ainvoke``: a failed
  lookup fails the request instead of silently answering without the
  knowledge base.

  The graph keeps no checkpointer.  Clients send the full conversation on
  every request, so each invocation starts from the messages it is given.
"""

from __future__ import annotations

import logging
import time
from typing import Annotated, Any

from langchain_anthropic import ChatAnthropic
from langchain_core.messages import AIMessage, AnyMessage, HumanMessage, SystemMessage
from langchain_core.tools import BaseTool
from langgraph.graph import END, StateGraph
from langgraph.graph.message import add_messages
from langgraph.prebuilt import ToolNode
from typing_extensions import TypedDict

from support_agent.config import (
    ANTHROPIC_API_KEY,
    MODEL_NAME,
    RETRIEVAL_MODE,
    RETRIEVAL_MODES,
    SIMILARITY_THRESHOLD,
)
from support_agent.knowledge.matcher import Matcher, MatchResult
from support_agent.prompts import (
    get_latest_user_message,
    get_retrieval_system_prompt,
    get_tool_system_prompt,
)
from support_agent.services.metrics import metrics
from support_agent.tools.knowledge_base import make_knowledge_base_tool

logger = logging.getLogger(__name__)

# LangGraph supersteps per request; chatbot and tools each count as one
MAX_AGENT_STEPS = 10

# Tool-calling turns allowed per user message before the model must answer
MAX_TOOL_ROUNDS = 4


# ── State schema ─────────────────────────────────────────────────────


class AgentState(TypedDict):
    """The state that flows through the graph.

    ``knowledge_match`` is written by the retrieve node (retrieval mode
    only) as ``MatchResult.as_dict()`` or ``None`` and read by the chatbot
    node to pick the system prompt.
    """

    messages: Annotated[list[AnyMessage], add_messages]
    knowledge_match: dict[str, Any] | None


# ── LLM builder ──────────────────────────────────────────────────────


def _build_llm(tools: list[BaseTool] | None = None, *, tool_choice: dict | None = None):
    """Build the chat LLM, with tool bindings when *tools* are given."""
    llm = ChatAnthropic(
        model=MODEL_NAME,
        api_key=ANTHROPIC_API_KEY,
        temperature=0.1,
        max_tokens=1024,
    )
    if tools:
        return llm.bind_tools(tools, tool_choice=tool_choice)
    return llm


# ── Node: retrieve (retrieval mode) ──────────────────────────────────


def _make_retrieve_node(matcher: Matcher, threshold: float):
    """Create the node that runs one knowledge-base lookup per request."""

    async def retrieve_node(state: AgentState) -> dict:
        query = get_latest_user_message(state["messages"])
        if not query.strip():
            logger.debug("retrieve: no user message to match, skipping lookup")
            return {"knowledge_match": None}

        match = await matcher.find_best_match(query, threshold)
        return {"knowledge_match": match.as_dict() if match else None}

    return retrieve_node


# ── Node: chatbot ────────────────────────────────────────────────────


def _system_prompt_for(state: AgentState, mode: str) -> str:
    if mode == "tool":
        return get_tool_system_prompt()
    raw = state.get("knowledge_match")
    match = MatchResult(**raw) if raw else None
    return get_retrieval_system_prompt(match)


def _tool_rounds(messages: list[AnyMessage]) -> int:
    """Count tool-calling AI turns since the latest user message."""
    rounds = 0
    for message in reversed(messages):
        if isinstance(message, HumanMessage):
            break
        if isinstance(message, AIMessage) and message.tool_calls:
            rounds += 1
    return rounds


def _make_chatbot_node(mode: str, tools: list[BaseTool] | None = None):
    """Create the chatbot node.

    The LLM clients are built once and captured in the closure so that the
    chatbot → tools → chatbot loop reuses them.  After ``MAX_TOOL_ROUNDS``
    tool turns the node switches to a client with ``tool_choice`` set to
    ``none``, so the model has to reply in text and the loop ends within
    ``MAX_AGENT_STEPS``.
    """
    llm = _build_llm(tools)
    # Tools stay bound: the history holds tool_use blocks the API must resolve
    final_llm = _build_llm(tools, tool_choice={"type": "none"}) if tools else llm

    async def chatbot_node(state: AgentState) -> dict:
        logger.debug("chatbot node invoked — model: %s, mode: %s", MODEL_NAME, mode)
        system = SystemMessage(content=_system_prompt_for(state, mode))
        active = llm
        if tools and _tool_rounds(state["messages"]) >= MAX_TOOL_ROUNDS:
            logger.warning(
                "Tool budget of %d rounds used up; asking for a final answer", MAX_TOOL_ROUNDS,
            )
            active = final_llm
        t0 = time.perf_counter()
        try:
            response = await active.ainvoke([system] + state["messages"])
        except Exception as exc:
            elapsed = (time.perf_counter() - t0) * 1000
            metrics.record_call(
                "anthropic", "llm_invoke", latency_ms=elapsed, error_type=type(exc).__name__,
            )
            raise
        elapsed = (time.perf_counter() - t0) * 1000
        metrics.record_call("anthropic", "llm_invoke", latency_ms=elapsed)
        logger.debug("chatbot responded in %.0fms", elapsed)
        return {"messages": [response]}

    return chatbot_node


# ── Conditional edges ────────────────────────────────────────────────


def should_use_tools(state: AgentState) -> str:
    """Check if the last message has tool calls; if so, route to tools node."""
    last_message = state["messages"][-1]
    if hasattr(last_message, "tool_calls") and last_message.tool_calls:
        return "tools"
    return END


def get_reply_text(message) -> str:
    """Flatten an AI message's content (str or list of content blocks) to text."""
    content = message.content if hasattr(message, "content") else message
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        return "".join(
            block if isinstance(block, str) else block.get("text", "")
            for block in content
            if isinstance(block, str) or block.get("type") == "text"
        )
    return str(content)


# ── Graph assembly ───────────────────────────────────────────────────


def create_support_agent(
    matcher: Matcher,
    *,
    mode: str = RETRIEVAL_MODE,
    threshold: float = SIMILARITY_THRESHOLD,
):
    """Build and compile the support agent graph.

    Returns a compiled graph that can be invoked with:
        await graph.ainvoke({"messages": [HumanMessage(content="...")]})
    """
    if mode not in RETRIEVAL_MODES:
        raise ValueError(f"Unknown retrieval mode: {mode!r}")

    graph = StateGraph(AgentState)

    if mode == "tool":
        tools = [make_knowledge_base_tool(matcher, threshold)]
        graph.add_node("chatbot", _make_chatbot_node(mode, tools))
        # Tool errors (ProviderError) must reach the caller, not the LLM
        graph.add_node("tools", ToolNode(tools, handle_tool_errors=False))
        graph.set_entry_point("chatbot")
        graph.add_conditional_edges(
            "chatbot", should_use_tools, {"tools": "tools", END: END},
        )
        graph.add_edge("tools", "chatbot")
    else:
        graph.add_node("retrieve", _make_retrieve_node(matcher, threshold))
        graph.add_node("chatbot", _make_chatbot_node(mode))
        graph.set_entry_point("retrieve")
        graph.add_edge("retrieve", "chatbot")
        graph.add_edge("chatbot", END)

    compiled = graph.compile()
    logger.debug(
        "Support agent compiled — model: %s, mode: %s, threshold: %.2f",
        MODEL_NAME, mode, threshold,
    )
    return compiled
