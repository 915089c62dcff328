"""Pydantic schemas for the FastAPI endpoints."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, field_validator


class ChatMessage(BaseModel):
    """One turn of the conversation as sent by the browser client."""

    role: Literal["user", "assistant"]
    content: str = Field(..., min_length=1, max_length=4000)


class ChatRequest(BaseModel):
    """Full conversation history; the last message is the one to answer."""

    messages: list[ChatMessage] = Field(..., min_length=1, max_length=50)

    @field_validator("messages")
    @classmethod
    def _last_message_from_user(cls, messages: list[ChatMessage]) -> list[ChatMessage]:
        if messages[-1].role != "user":
            raise ValueError("the last message must come from the user")
        return messages


class KnowledgeMatch(BaseModel):
    """The knowledge-base entry used for the reply (retrieval mode)."""

    question: str
    answer: str
    similarity: float


class ChatResponse(BaseModel):
    """Response from the agent."""

    reply: str = Field(..., description="The agent's response message")
    knowledge_match: KnowledgeMatch | None = Field(
        default=None,
        description="Knowledge-base entry injected into the prompt, if any",
    )


class ConfigResponse(BaseModel):
    """Model/provider info shown by the UI header."""

    provider: str
    model: str
    embedding_provider: str
    embedding_model: str
    embedding_base_url: str
    retrieval_mode: str


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    service: str = "thoughtful-support-agent"
    knowledge_base: str = Field(
        default="ready",
        description="Embedding store state: uninitialized, initializing or ready",
    )
