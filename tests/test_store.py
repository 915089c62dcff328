"""Tests for the knowledge-base corpus and embedding store."""

from __future__ import annotations

import asyncio

import pytest

from support_agent.knowledge.corpus import (
    CorpusEntry,
    build_default_corpus,
    get_all_questions,
)
from support_agent.knowledge.store import EmbeddingStore, StoreState
from support_agent.services.embeddings import ProviderError


def _entries(n: int = 3) -> list[CorpusEntry]:
    return [CorpusEntry(question=f"Question {i}?", answer=f"Answer {i}.") for i in range(n)]


# ── Corpus ───────────────────────────────────────────────────────────


class TestCorpus:
    def test_default_corpus_has_five_entries(self):
        corpus = build_default_corpus()
        assert len(corpus) == 5
        assert all(e.embedding is None for e in corpus)

    def test_default_corpus_order(self):
        questions = [e.question for e in build_default_corpus()]
        assert "EVA" in questions[0]
        assert "CAM" in questions[1]
        assert "PHIL" in questions[2]

    def test_build_default_corpus_returns_fresh_copies(self):
        first = build_default_corpus()
        first[0].attach_embedding([1.0, 0.0])
        second = build_default_corpus()
        assert second[0].embedding is None

    def test_get_all_questions_matches_corpus(self):
        assert get_all_questions() == [e.question for e in build_default_corpus()]


class TestCorpusEntry:
    def test_attach_embedding_stores_tuple_of_floats(self):
        entry = CorpusEntry(question="Q?", answer="A.")
        entry.attach_embedding([1, 2, 3])
        assert entry.embedding == (1.0, 2.0, 3.0)
        assert entry.has_embedding

    def test_attach_embedding_only_once(self):
        entry = CorpusEntry(question="Q?", answer="A.")
        entry.attach_embedding([1.0])
        with pytest.raises(RuntimeError, match="already attached"):
            entry.attach_embedding([2.0])
        assert entry.embedding == (1.0,)

    def test_question_and_answer_are_immutable(self):
        entry = CorpusEntry(question="Q?", answer="A.")
        with pytest.raises(AttributeError):
            entry.question = "Other?"
        with pytest.raises(AttributeError):
            entry.answer = "Other."


# ── Store lifecycle ──────────────────────────────────────────────────


class TestEmbeddingStoreInitialize:
    def test_starts_uninitialized(self, make_provider):
        store = EmbeddingStore(make_provider(), _entries())
        assert store.state is StoreState.UNINITIALIZED
        assert not store.is_ready
        assert store.pending_count == 3

    def test_uses_default_corpus_when_no_entries_given(self, make_provider):
        store = EmbeddingStore(make_provider())
        assert len(store.entries) == 5

    def test_initialize_embeds_every_question_in_order(self, make_provider):
        provider = make_provider()
        entries = _entries()
        store = EmbeddingStore(provider, entries)

        asyncio.run(store.initialize())

        assert store.state is StoreState.READY
        assert store.pending_count == 0
        assert provider.calls == [e.question for e in entries]

    def test_initialize_twice_calls_provider_once_per_entry(self, make_provider):
        provider = make_provider()
        store = EmbeddingStore(provider, _entries())

        async def _run():
            await store.initialize()
            await store.initialize()

        asyncio.run(_run())
        assert len(provider.calls) == 3

    def test_concurrent_initialize_does_not_duplicate_work(self, make_provider):
        provider = make_provider()
        store = EmbeddingStore(provider, _entries(5))

        async def _run():
            await asyncio.gather(*(store.initialize() for _ in range(4)))

        asyncio.run(_run())
        assert len(provider.calls) == 5
        assert sorted(provider.calls) == sorted(set(provider.calls))
        assert store.is_ready

    def test_skips_entries_that_already_have_embeddings(self, make_provider):
        provider = make_provider()
        entries = _entries()
        entries[1].attach_embedding([0.5, 0.5, 0.0])
        store = EmbeddingStore(provider, entries)

        asyncio.run(store.initialize())

        assert provider.calls == ["Question 0?", "Question 2?"]
        assert entries[1].embedding == (0.5, 0.5, 0.0)

    def test_state_is_initializing_while_embedding(self, make_provider):
        provider = make_provider()
        store = EmbeddingStore(provider, _entries())
        observed: list[StoreState] = []

        original_embed = provider.embed

        async def _spy(text):
            observed.append(store.state)
            return await original_embed(text)

        provider.embed = _spy
        asyncio.run(store.initialize())

        assert observed == [StoreState.INITIALIZING] * 3
        assert store.state is StoreState.READY


class TestEmbeddingStoreFailure:
    def test_failure_keeps_partial_progress_and_resets_state(self, make_provider):
        provider = make_provider(fail_on={"Question 1?"})
        entries = _entries()
        store = EmbeddingStore(provider, entries)

        with pytest.raises(ProviderError):
            asyncio.run(store.initialize())

        assert store.state is StoreState.UNINITIALIZED
        assert entries[0].has_embedding
        assert not entries[1].has_embedding
        assert not entries[2].has_embedding
        assert store.pending_count == 2

    def test_retry_only_embeds_missing_entries(self, make_provider):
        provider = make_provider(fail_on={"Question 1?"})
        store = EmbeddingStore(provider, _entries())

        with pytest.raises(ProviderError):
            asyncio.run(store.initialize())

        provider.fail_on.clear()
        provider.calls.clear()
        asyncio.run(store.initialize())

        assert provider.calls == ["Question 1?", "Question 2?"]
        assert store.is_ready

    def test_non_provider_errors_also_reset_state(self, make_provider):
        provider = make_provider()

        async def _broken(text):
            raise RuntimeError("unexpected")

        provider.embed = _broken
        store = EmbeddingStore(provider, _entries())

        with pytest.raises(RuntimeError):
            asyncio.run(store.initialize())
        assert store.state is StoreState.UNINITIALIZED
