"""Knowledge-base search tool for tool-calling mode.

The LLM decides when to call ``search_knowledge_base`` and what query to
send.  The tool runs the semantic matcher and returns a small JSON payload
telling the model whether a predefined answer applies.

Provider failures are NOT turned into a "not found" payload: they propagate
so the chat request fails visibly instead of the model answering without
the knowledge base.
"""

from __future__ import annotations

import logging
from typing import Any

from langchain_core.tools import StructuredTool
from pydantic import BaseModel, Field

from support_agent.knowledge.matcher import DEFAULT_THRESHOLD, InvalidInputError, Matcher

logger = logging.getLogger(__name__)

TOOL_NAME = "search_knowledge_base"

TOOL_DESCRIPTION = (
    "Search the Thoughtful AI knowledge base for information about products, "
    "services, agents (EVA, CAM, PHIL), and benefits. Use this tool to find "
    "accurate information before answering user questions."
)

NO_MATCH_MESSAGE = (
    "No specific information found in the knowledge base. "
    "Please provide general helpful information."
)


class KnowledgeBaseQuery(BaseModel):
    query: str = Field(..., description="The user's question or search query to look up")


def make_knowledge_base_tool(
    matcher: Matcher,
    threshold: float = DEFAULT_THRESHOLD,
) -> StructuredTool:
    """Build the ``search_knowledge_base`` tool bound to *matcher*."""

    async def search_knowledge_base(query: str) -> dict[str, Any]:
        logger.info('[Tool Call] Searching knowledge base for: "%s"', query)
        try:
            match = await matcher.find_best_match(query, threshold)
        except InvalidInputError:
            logger.debug("Empty knowledge base query from the model")
            match = None

        if match is None:
            return {"found": False, "message": NO_MATCH_MESSAGE}
        return {
            "found": True,
            "matched_question": match.question,
            "answer": match.answer,
            "similarity": match.similarity,
        }

    return StructuredTool.from_function(
        coroutine=search_knowledge_base,
        name=TOOL_NAME,
        description=TOOL_DESCRIPTION,
        args_schema=KnowledgeBaseQuery,
    )
