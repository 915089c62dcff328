"""Embedding store for the knowledge-base corpus.

The store owns the corpus and computes one embedding per question, once per
process.  Its lifecycle is explicit::

    UNINITIALIZED ──initialize()──▶ INITIALIZING ──all embedded──▶ READY
          ▲                              │
          └──────── provider error ──────┘   (embedded entries are kept)

``initialize()`` is guarded by an ``asyncio.Lock`` so concurrent callers
never embed the same entry twice; once ``READY`` it returns immediately
without touching the lock or the provider.  Readers (the matcher) must
await ``initialize()`` before looking at any embedding.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from collections.abc import Iterable

from support_agent.knowledge.corpus import CorpusEntry, build_default_corpus
from support_agent.services.embeddings import EmbeddingProvider

logger = logging.getLogger(__name__)


class StoreState(enum.Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"


class EmbeddingStore:
    """Fixed corpus plus its lazily computed, never recomputed embeddings."""

    def __init__(
        self,
        provider: EmbeddingProvider,
        entries: Iterable[CorpusEntry] | None = None,
    ) -> None:
        self._provider = provider
        self._entries: tuple[CorpusEntry, ...] = (
            tuple(entries) if entries is not None else build_default_corpus()
        )
        self._state = StoreState.UNINITIALIZED
        self._lock = asyncio.Lock()

    # ── Introspection ────────────────────────────────────────────────

    @property
    def provider(self) -> EmbeddingProvider:
        return self._provider

    @property
    def entries(self) -> tuple[CorpusEntry, ...]:
        return self._entries

    @property
    def state(self) -> StoreState:
        return self._state

    @property
    def is_ready(self) -> bool:
        return self._state is StoreState.READY

    @property
    def pending_count(self) -> int:
        """Number of entries still waiting for an embedding."""
        return sum(1 for e in self._entries if not e.has_embedding)

    # ── Initialization ───────────────────────────────────────────────

    async def initialize(self) -> None:
        """Embed every corpus entry that has no embedding yet.

        Idempotent: once the store is ``READY`` no provider calls are made.
        If the provider fails, entries embedded so far keep their vectors,
        the store drops back to ``UNINITIALIZED`` and the
        :class:`~support_agent.services.embeddings.ProviderError` propagates;
        the next call only embeds what is still missing.
        """
        if self._state is StoreState.READY:
            return

        async with self._lock:
            # Another caller may have finished while we waited
            if self._state is StoreState.READY:
                return

            self._state = StoreState.INITIALIZING
            logger.info(
                "Initializing knowledge base embeddings (%d pending, model=%s)…",
                self.pending_count, getattr(self._provider, "model", "?"),
            )
            try:
                for entry in self._entries:
                    if entry.has_embedding:
                        continue
                    vector = await self._provider.embed(entry.question)
                    entry.attach_embedding(vector)
            finally:
                if self.pending_count:
                    self._state = StoreState.UNINITIALIZED
                    logger.warning(
                        "Knowledge base initialization incomplete: %d of %d entries pending",
                        self.pending_count, len(self._entries),
                    )

            self._state = StoreState.READY
            logger.info("Knowledge base embeddings initialized (%d entries)", len(self._entries))
