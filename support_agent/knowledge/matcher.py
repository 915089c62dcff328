"""Semantic matching of a user query against the knowledge-base corpus.

Selection rule: the running best starts at ``threshold`` and a candidate
replaces it only when its similarity is *strictly* greater.  Corpus entries
are visited in declaration order, so a score equal to the threshold never
matches and the earliest entry wins a tie.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np

from support_agent.knowledge.store import EmbeddingStore
from support_agent.services.metrics import metrics

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 0.7


class InvalidInputError(ValueError):
    """Raised when a lookup is attempted with an empty query."""


@dataclass(frozen=True)
class MatchResult:
    question: str
    answer: str
    similarity: float

    def as_dict(self) -> dict[str, str | float]:
        return {
            "question": self.question,
            "answer": self.answer,
            "similarity": self.similarity,
        }


def cosine_similarity(a, b) -> float:
    """Cosine of the angle between *a* and *b*, accumulated in float64.

    Returns ``0.0`` when either vector has zero norm.  Vectors of different
    lengths come from different embedding models and raise ``ValueError``.
    """
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    if va.shape != vb.shape:
        raise ValueError(
            f"Embedding dimension mismatch: {va.shape[0]} vs {vb.shape[0]}"
        )

    norm_a = float(np.linalg.norm(va))
    norm_b = float(np.linalg.norm(vb))
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0
    return float(np.dot(va, vb) / (norm_a * norm_b))


class Matcher:
    """Finds the single best corpus entry for a query.

    Holds no state of its own; everything lives in the store, so one
    matcher can serve concurrent requests once the store is ready.
    """

    def __init__(self, store: EmbeddingStore) -> None:
        self._store = store

    @property
    def store(self) -> EmbeddingStore:
        return self._store

    async def find_best_match(
        self,
        query: str,
        threshold: float = DEFAULT_THRESHOLD,
    ) -> MatchResult | None:
        """Return the best entry whose similarity exceeds *threshold*, else ``None``.

        A *query* that is empty, ``None`` or made only of whitespace is
        rejected before any provider call.  Rejecting whitespace-only text is
        stricter than a plain emptiness check; such a query has no content to
        embed.

        Raises:
            InvalidInputError: *query* is empty, missing or whitespace-only.
            ProviderError: embedding the corpus or the query failed.
            ValueError: query and corpus embeddings differ in dimension.

        Any failure after the input check is counted as an ``error``
        retrieval outcome before it propagates.
        """
        if not query or not query.strip():
            raise InvalidInputError("Query text must not be empty")

        try:
            await self._store.initialize()
            query_embedding = await self._store.provider.embed(query)
            best = self._best_entry(query_embedding, threshold)
        except Exception:
            metrics.record_retrieval("error")
            raise

        if best is None:
            logger.info("[Knowledge Base] No strong match found (threshold=%.2f)", threshold)
            metrics.record_retrieval("no_match")
        else:
            logger.info(
                "[Knowledge Base] Found match with %.1f%% similarity: %r",
                best.similarity * 100, best.question,
            )
            metrics.record_retrieval("match", similarity=best.similarity)
        return best

    def _best_entry(self, query_embedding: list[float], threshold: float) -> MatchResult | None:
        best: MatchResult | None = None
        highest = threshold
        for entry in self._store.entries:
            if entry.embedding is None:
                continue
            similarity = cosine_similarity(query_embedding, entry.embedding)
            if similarity > highest:
                highest = similarity
                best = MatchResult(
                    question=entry.question,
                    answer=entry.answer,
                    similarity=similarity,
                )
        return best
