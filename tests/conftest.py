"""Shared test fixtures for the support agent test suite."""

from __future__ import annotations

import asyncio
import os

import pytest


def pytest_configure(config):
    """Set test environment variables BEFORE collection starts.

    This runs before any imports, so config.py won't fail on module load.
    """
    os.environ.setdefault("ANTHROPIC_API_KEY", "test-anthropic-key-123")
    os.environ.setdefault("EMBEDDING_API_KEY", "test-embedding-key-456")
    os.environ.setdefault("RETRIEVAL_MODE", "tool")
    os.environ.setdefault("SIMILARITY_THRESHOLD", "0.7")


class FakeEmbeddingProvider:
    """Deterministic stand-in for the embedding provider.

    ``vectors`` maps exact texts to vectors; anything else gets ``default``.
    Texts listed in ``fail_on`` raise ``ProviderError``.  Every call is
    recorded in ``calls``.
    """

    model = "fake-embedding-model"

    def __init__(
        self,
        vectors: dict[str, list[float]] | None = None,
        default: list[float] | None = None,
        fail_on: set[str] | None = None,
    ) -> None:
        self.vectors = dict(vectors or {})
        self.default = default if default is not None else [0.0, 0.0, 1.0]
        self.fail_on = set(fail_on or ())
        self.calls: list[str] = []

    async def embed(self, text: str) -> list[float]:
        from support_agent.services.embeddings import ProviderError

        self.calls.append(text)
        # Yield so concurrent callers actually interleave
        await asyncio.sleep(0)
        if text in self.fail_on:
            raise ProviderError(f"embedding failed for {text!r}")
        return list(self.vectors.get(text, self.default))


@pytest.fixture
def make_provider():
    """Factory fixture for FakeEmbeddingProvider instances."""

    def _make(**kwargs) -> FakeEmbeddingProvider:
        return FakeEmbeddingProvider(**kwargs)

    return _make
