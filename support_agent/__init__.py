"""Thoughtful AI Support Agent — customer support chat for healthcare automation.

Architecture Overview
=====================

Incoming conversations go through a **LangGraph** state machine that calls
Claude with a system prompt about Thoughtful AI.  Answers can be grounded in
a small fixed knowledge base (five Q&A pairs about the EVA, CAM and PHIL
agents) through a semantic lookup:

1. **EmbeddingStore** — owns the corpus and embeds every question exactly
   once per process (``UNINITIALIZED → INITIALIZING → READY``).
2. **Matcher** — embeds the user query with the same provider, scores it
   against each question by cosine similarity and returns the single best
   entry strictly above the configured threshold, or nothing.

Two ways of feeding the knowledge base to the model (``RETRIEVAL_MODE``):

- **tool** — the LLM calls ``search_knowledge_base`` when it wants.
- **retrieval** — the matcher runs once on the latest user message before
  the LLM call and the result picks the system prompt.

Key Design Decisions
--------------------
- **Injected provider**: the store receives an ``EmbeddingProvider``; the
  production one wraps ``langchain_openai.OpenAIEmbeddings`` (any
  OpenAI-compatible endpoint) with a per-call timeout.
- **Failures are loud**: a provider error is never treated as "no match";
  the API answers 502/504 instead of replying without the knowledge base.
- **Stateless requests**: the client sends the whole conversation, so the
  graph runs without a checkpointer.

Package Structure
-----------------
- ``support_agent/knowledge/`` — corpus, embedding store, matcher
- ``support_agent/services/`` — embedding provider, CloudWatch metrics
- ``support_agent/tools/`` — LangChain knowledge-base tool
- ``support_agent/agent.py`` — LangGraph StateGraph definition
- ``support_agent/prompts.py`` — system prompts (tool / match / no-match)
- ``support_agent/config.py`` — configuration from env vars / SSM
- ``support_agent/server.py`` — FastAPI application
- ``support_agent/main.py`` — CLI chat interface
- ``support_agent/api/`` — FastAPI routes and Pydantic schemas
"""
