"""CloudWatch custom metrics for the support agent.

Two families of data points are collected:

* **Provider calls** — one count per call to an external model provider
  (OpenAI-compatible embeddings, Anthropic chat), with latency on success
  and an error count keyed by exception class on failure.
* **Retrieval outcomes** — one count per knowledge-base lookup, labelled
  ``match``, ``no_match`` or ``error``, plus the winning similarity score.

Data points are buffered in memory and pushed by a daemon thread every
``FLUSH_INTERVAL_SECONDS``.  Unless ``METRICS_ENABLED=true`` nothing leaves
the process; the buffer is still filled so tests can inspect it.

Usage
-----
>>> from support_agent.services.metrics import metrics
>>> metrics.record_call("openai", "embed", latency_ms=84.2)
>>> metrics.record_call("openai", "embed", latency_ms=10000, error_type="ProviderTimeoutError")
>>> metrics.record_retrieval("match", similarity=0.86)
"""

from __future__ import annotations

import atexit
import logging
import os
import threading
import time
from collections import deque
from datetime import UTC, datetime
from typing import Any

logger = logging.getLogger(__name__)

NAMESPACE = "ThoughtfulSupport"
FLUSH_INTERVAL_SECONDS = 60
MAX_BATCH_SIZE = 1_000  # CloudWatch API limit per PutMetricData call
MAX_BUFFER_SIZE = 10_000  # oldest points are dropped beyond this

RETRIEVAL_OUTCOMES = ("match", "no_match", "error")


def _dims(**pairs: str) -> list[dict[str, str]]:
    return [{"Name": name, "Value": value} for name, value in pairs.items()]


class MetricsClient:
    """Batched CloudWatch metrics publisher."""

    def __init__(self) -> None:
        self._enabled = os.getenv("METRICS_ENABLED", "false").lower() == "true"
        self._buffer: deque[dict[str, Any]] = deque(maxlen=MAX_BUFFER_SIZE)
        self._lock = threading.Lock()
        self._cw_client = None

        if self._enabled:
            self._start_flush_thread()

    @property
    def enabled(self) -> bool:
        return self._enabled

    def _get_cw_client(self):
        if self._cw_client is None:
            import boto3

            self._cw_client = boto3.client("cloudwatch")
        return self._cw_client

    # ── Public API ────────────────────────────────────────────────────

    def record_call(
        self,
        service: str,
        operation: str,
        latency_ms: float,
        error_type: str | None = None,
    ) -> None:
        """Record one external provider call.

        ``error_type`` marks the call as failed; pass the exception class
        name so dashboards can split timeouts from auth or rate-limit errors.
        """
        now = datetime.now(UTC)
        status = "failure" if error_type else "success"

        self._append("Provider/RequestCount", _dims(Service=service, Status=status), now, 1, "Count")
        if latency_ms > 0:
            self._append(
                "Provider/Latency",
                _dims(Service=service, Operation=operation),
                now,
                latency_ms,
                "Milliseconds",
            )
        if error_type:
            self._append(
                "Provider/ErrorCount",
                _dims(Service=service, ErrorType=error_type),
                now,
                1,
                "Count",
            )
        logger.debug(
            "Metric: %s %s %s latency=%.1fms", service, operation, status, latency_ms,
        )

    def record_retrieval(self, outcome: str, similarity: float | None = None) -> None:
        """Record the outcome of one knowledge-base lookup."""
        if outcome not in RETRIEVAL_OUTCOMES:
            raise ValueError(f"Unknown retrieval outcome: {outcome!r}")

        now = datetime.now(UTC)
        self._append("Retrieval/Count", _dims(Outcome=outcome), now, 1, "Count")
        if similarity is not None:
            self._append("Retrieval/Similarity", _dims(Outcome=outcome), now, similarity, "None")
        logger.debug("Metric: retrieval %s similarity=%s", outcome, similarity)

    def flush(self) -> int:
        """Send buffered metrics to CloudWatch.  Returns count sent."""
        with self._lock:
            if not self._buffer:
                return 0
            batch = list(self._buffer)
            self._buffer.clear()

        if not self._enabled:
            logger.debug("Metrics flush skipped (not enabled): %d items", len(batch))
            return 0

        sent = 0
        try:
            cw = self._get_cw_client()
            for i in range(0, len(batch), MAX_BATCH_SIZE):
                chunk = batch[i : i + MAX_BATCH_SIZE]
                cw.put_metric_data(Namespace=NAMESPACE, MetricData=chunk)
                sent += len(chunk)
            logger.info("Flushed %d metrics to CloudWatch", sent)
        except Exception:
            logger.exception("Failed to flush metrics to CloudWatch")
        return sent

    # ── Internal ──────────────────────────────────────────────────────

    def _append(
        self,
        name: str,
        dimensions: list[dict[str, str]],
        timestamp: datetime,
        value: float,
        unit: str,
    ) -> None:
        data_point = {
            "MetricName": name,
            "Dimensions": dimensions,
            "Timestamp": timestamp,
            "Value": value,
            "Unit": unit,
        }
        with self._lock:
            self._buffer.append(data_point)

    def _start_flush_thread(self) -> None:
        def _loop():
            while True:
                time.sleep(FLUSH_INTERVAL_SECONDS)
                try:
                    self.flush()
                except Exception:
                    logger.exception("Metrics flush thread error")

        t = threading.Thread(target=_loop, daemon=True, name="metrics-flush")
        t.start()
        atexit.register(self.flush)
        logger.info(
            "Metrics flush thread started (interval=%ds)", FLUSH_INTERVAL_SECONDS,
        )


# ── Module-level singleton ──────────────────────────────────────────
metrics = MetricsClient()
