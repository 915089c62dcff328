"""Knowledge-base retrieval: fixed corpus, embedding store and matcher."""

from support_agent.knowledge.corpus import (
    CorpusEntry,
    build_default_corpus,
    get_all_questions,
)
from support_agent.knowledge.matcher import (
    DEFAULT_THRESHOLD,
    InvalidInputError,
    Matcher,
    MatchResult,
    cosine_similarity,
)
from support_agent.knowledge.store import EmbeddingStore, StoreState

__all__ = [
    "DEFAULT_THRESHOLD",
    "CorpusEntry",
    "EmbeddingStore",
    "InvalidInputError",
    "MatchResult",
    "Matcher",
    "StoreState",
    "build_default_corpus",
    "cosine_similarity",
    "get_all_questions",
]
