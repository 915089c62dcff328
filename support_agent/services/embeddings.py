"""Embedding provider used by the knowledge-base store and matcher.

The rest of the package only depends on the small :class:`EmbeddingProvider`
protocol (``model`` + ``async embed(text)``), so tests can hand in a
deterministic fake.  In production the provider wraps a LangChain
``Embeddings`` implementation pointed at any OpenAI-compatible endpoint
(OpenAI, LM Studio, ...).

Every failure coming out of the underlying client (network, auth, rate
limit, malformed payload) is re-raised as :class:`ProviderError`, and every
call is bounded by a timeout so a stuck provider surfaces as
:class:`ProviderTimeoutError` instead of hanging the chat request.
"""

from __future__ import annotations

import asyncio
import logging
import math
import time
from typing import Protocol

from langchain_core.embeddings import Embeddings

from support_agent.services.metrics import metrics

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0


class ProviderError(Exception):
    """Raised when the embedding provider fails to return a usable vector."""


class ProviderTimeoutError(ProviderError, TimeoutError):
    """Raised when the embedding provider does not answer within the timeout."""


class EmbeddingProvider(Protocol):
    """Anything that turns text into a fixed-length vector."""

    model: str

    async def embed(self, text: str) -> list[float]: ...


def _validate_vector(raw) -> list[float]:
    """Coerce a provider payload into ``list[float]`` or raise ProviderError."""
    try:
        vector = [float(x) for x in raw]
    except (TypeError, ValueError) as exc:
        raise ProviderError("Embedding provider returned a malformed vector") from exc

    if not vector:
        raise ProviderError("Embedding provider returned an empty vector")
    if not all(math.isfinite(x) for x in vector):
        raise ProviderError("Embedding provider returned non-finite values")
    return vector


class LangChainEmbeddingProvider:
    """Adapts a LangChain ``Embeddings`` object to :class:`EmbeddingProvider`."""

    def __init__(
        self,
        embeddings: Embeddings,
        model: str,
        *,
        timeout: float | None = DEFAULT_TIMEOUT_SECONDS,
        service: str = "openai",
    ) -> None:
        self._embeddings = embeddings
        self.model = model
        self._timeout = timeout
        self._service = service

    @property
    def timeout(self) -> float | None:
        return self._timeout

    async def embed(self, text: str) -> list[float]:
        t0 = time.perf_counter()
        try:
            raw = await asyncio.wait_for(
                self._embeddings.aembed_query(text), timeout=self._timeout,
            )
        except TimeoutError as exc:
            elapsed = (time.perf_counter() - t0) * 1000
            metrics.record_call(
                self._service, "embed", latency_ms=elapsed, error_type="ProviderTimeoutError",
            )
            logger.warning(
                "Embedding call to %s timed out after %.0fms", self.model, elapsed,
            )
            raise ProviderTimeoutError(
                f"Embedding provider ({self.model}) timed out after {self._timeout}s"
            ) from exc
        except Exception as exc:
            elapsed = (time.perf_counter() - t0) * 1000
            metrics.record_call(
                self._service, "embed", latency_ms=elapsed, error_type=type(exc).__name__,
            )
            logger.warning(
                "Embedding call to %s failed: %s", self.model, type(exc).__name__,
            )
            raise ProviderError(
                f"Embedding provider ({self.model}) failed: {type(exc).__name__}"
            ) from exc

        elapsed = (time.perf_counter() - t0) * 1000
        metrics.record_call(self._service, "embed", latency_ms=elapsed)
        return _validate_vector(raw)


def get_embedding_provider() -> LangChainEmbeddingProvider:
    """Build the production provider from configuration.

    A fresh provider is returned on every call; the server lifespan builds
    one and hands it to the store.
    """
    from langchain_openai import OpenAIEmbeddings  # noqa: PLC0415

    from support_agent.config import (  # noqa: PLC0415
        EMBEDDING_API_KEY,
        EMBEDDING_BASE_URL,
        EMBEDDING_MODEL,
        EMBEDDING_TIMEOUT_SECONDS,
    )

    embeddings = OpenAIEmbeddings(
        model=EMBEDDING_MODEL,
        api_key=EMBEDDING_API_KEY,
        base_url=EMBEDDING_BASE_URL,
        # Local OpenAI-compatible servers don't speak tiktoken token ids
        check_embedding_ctx_length=False,
        # Failures surface to the caller, who decides whether to retry
        max_retries=0,
    )
    logger.debug("Embedding provider: %s at %s", EMBEDDING_MODEL, EMBEDDING_BASE_URL)
    return LangChainEmbeddingProvider(
        embeddings, EMBEDDING_MODEL, timeout=EMBEDDING_TIMEOUT_SECONDS,
    )
