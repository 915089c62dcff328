"""Tests for the CloudWatch metrics client."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from support_agent.services.metrics import MAX_BUFFER_SIZE, MetricsClient


def _make_client(*, enabled: bool = False) -> MetricsClient:
    with patch.dict("os.environ", {"METRICS_ENABLED": str(enabled).lower()}):
        # Keep the flush thread out of unit tests
        with patch.object(MetricsClient, "_start_flush_thread"):
            return MetricsClient()


def _dim_map(metric: dict) -> dict[str, str]:
    return {d["Name"]: d["Value"] for d in metric["Dimensions"]}


class TestRecordCall:
    def test_success_appends_count_and_latency(self):
        client = _make_client()
        client.record_call("openai", "embed", latency_ms=84.2)
        names = [m["MetricName"] for m in client._buffer]
        assert names == ["Provider/RequestCount", "Provider/Latency"]

    def test_success_dimensions(self):
        client = _make_client()
        client.record_call("openai", "embed", latency_ms=10.0)
        count_metric = client._buffer[0]
        assert _dim_map(count_metric) == {"Service": "openai", "Status": "success"}

    def test_failure_appends_error_count(self):
        client = _make_client()
        client.record_call(
            "openai", "embed", latency_ms=10000.0, error_type="ProviderTimeoutError",
        )
        names = {m["MetricName"] for m in client._buffer}
        assert names == {"Provider/RequestCount", "Provider/Latency", "Provider/ErrorCount"}
        error_metric = next(m for m in client._buffer if m["MetricName"] == "Provider/ErrorCount")
        assert _dim_map(error_metric)["ErrorType"] == "ProviderTimeoutError"

    def test_failure_without_latency_skips_latency(self):
        client = _make_client()
        client.record_call("anthropic", "llm_invoke", latency_ms=0, error_type="APIError")
        names = {m["MetricName"] for m in client._buffer}
        assert "Provider/Latency" not in names
        status = _dim_map(client._buffer[0])["Status"]
        assert status == "failure"


class TestRecordRetrieval:
    def test_match_records_similarity(self):
        client = _make_client()
        client.record_retrieval("match", similarity=0.86)
        assert [m["MetricName"] for m in client._buffer] == [
            "Retrieval/Count",
            "Retrieval/Similarity",
        ]
        assert client._buffer[1]["Value"] == 0.86

    def test_no_match_records_count_only(self):
        client = _make_client()
        client.record_retrieval("no_match")
        assert len(client._buffer) == 1
        assert _dim_map(client._buffer[0]) == {"Outcome": "no_match"}

    def test_unknown_outcome_rejected(self):
        client = _make_client()
        with pytest.raises(ValueError):
            client.record_retrieval("maybe")


class TestMetricsFlush:
    def test_flush_when_disabled_does_not_call_boto3(self):
        client = _make_client(enabled=False)
        client.record_call("openai", "embed", latency_ms=100.0)
        assert client.flush() == 0
        assert len(client._buffer) == 0

    def test_flush_when_enabled_calls_put_metric_data(self):
        client = _make_client(enabled=True)
        mock_cw = MagicMock()
        client._cw_client = mock_cw

        client.record_call("openai", "embed", latency_ms=100.0)
        sent = client.flush()

        assert sent == 2
        call_kwargs = mock_cw.put_metric_data.call_args[1]
        assert call_kwargs["Namespace"] == "ThoughtfulSupport"
        assert len(call_kwargs["MetricData"]) == 2

    def test_flush_empty_buffer_returns_zero(self):
        client = _make_client(enabled=True)
        assert client.flush() == 0

    def test_flush_error_is_logged_not_raised(self):
        client = _make_client(enabled=True)
        mock_cw = MagicMock()
        mock_cw.put_metric_data.side_effect = RuntimeError("throttled")
        client._cw_client = mock_cw

        client.record_retrieval("no_match")
        assert client.flush() == 0

    def test_buffer_is_bounded(self):
        client = _make_client()
        for _ in range(MAX_BUFFER_SIZE + 10):
            client.record_retrieval("no_match")
        assert len(client._buffer) == MAX_BUFFER_SIZE
