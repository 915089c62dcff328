"""System prompts for the Thoughtful AI support agent."""

from __future__ import annotations

from langchain_core.messages import AnyMessage, HumanMessage

from support_agent.knowledge.corpus import get_all_questions
from support_agent.knowledge.matcher import MatchResult

_PERSONA = (
    "You are a helpful customer support agent for Thoughtful AI, a healthcare "
    "automation company that provides AI-powered automation agents for "
    "healthcare processes."
)

TOOL_SYSTEM_PROMPT = f"""{_PERSONA}

You have access to a knowledge base search tool that can help you answer questions about Thoughtful AI's products and services. When a user asks a question:

1. ALWAYS use the "search_knowledge_base" tool first to search for relevant information
2. If the tool returns a match, use that information to formulate your response
3. Present the information in a natural, conversational way
4. You can expand on or rephrase the answer, but include all key information from the knowledge base

The knowledge base covers these predefined questions:
{{questions}}

Remember to use the tool for every question to ensure you're providing accurate, up-to-date information about Thoughtful AI's products."""

RETRIEVAL_MATCH_PROMPT = f"""{_PERSONA}

The user's latest message matches this entry from the Thoughtful AI knowledge base:

Question: {{question}}
Answer: {{answer}}

Base your reply on this answer. Present it in a natural, conversational way. You can expand on or rephrase it, but include all key information from the knowledge base answer."""

RETRIEVAL_NO_MATCH_PROMPT = f"""{_PERSONA}

No predefined knowledge base answer matches the user's latest message. Answer helpfully as a knowledgeable AI assistant.
Do NOT invent details about Thoughtful AI's products, pricing, or agents; if the user asks about something specific you don't know, say so and suggest contacting the Thoughtful AI team."""


def get_tool_system_prompt() -> str:
    """System prompt for tool-calling mode (lists the predefined questions)."""
    questions = "\n".join(f"- {q}" for q in get_all_questions())
    return TOOL_SYSTEM_PROMPT.format(questions=questions)


def get_retrieval_system_prompt(match: MatchResult | None) -> str:
    """System prompt for pre-retrieval mode, phrased by match / no-match."""
    if match is None:
        return RETRIEVAL_NO_MATCH_PROMPT
    return RETRIEVAL_MATCH_PROMPT.format(question=match.question, answer=match.answer)


def get_latest_user_message(messages: list[AnyMessage]) -> str:
    """Return the text of the most recent human message, or ``""``."""
    for msg in reversed(messages):
        if isinstance(msg, HumanMessage):
            content = msg.content
            if isinstance(content, str):
                return content
            # Multi-part content: keep the text blocks only
            return " ".join(
                part.get("text", "") for part in content
                if isinstance(part, dict) and part.get("type") == "text"
            )
    return ""
