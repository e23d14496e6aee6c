from __future__ import annotations

import logging

from app.observability.metrics import MetricsReporter


class _FakeStatsd:
    def __init__(self) -> None:
        self.calls: list[tuple] = []

    def incr(self, name, value, rate=1.0):
        self.calls.append(("incr", name, value, rate))

    def gauge(self, name, value):
        self.calls.append(("gauge", name, value))

    def timing(self, name, value, rate=1.0):
        self.calls.append(("timing", name, value, rate))


def test_statsd_paths_fold_tags_in_key_order():
    client = _FakeStatsd()
    reporter = MetricsReporter("statsd", namespace="revops", disabled=False, statsd_client=client)

    reporter.gauge("queues.size", 3, tags={"queue": "hygiene", "pipeline": "sales"})
    reporter.increment("commitments.completed", 2, tags={"repository": "sqlite"})
    reporter.timing("queues.latency_ms", 12.5, tags={"queue": "at_risk"})

    assert client.calls == [
        ("gauge", "revops.queues.size.sales.hygiene", 3),
        ("incr", "revops.commitments.completed.sqlite", 2, 1.0),
        ("timing", "revops.queues.latency_ms.at_risk", 12.5, 1.0),
    ]


def test_statsd_path_sanitises_tag_values():
    assert (
        MetricsReporter.statsd_path("revops.queues.errors", {"code": "422 COMMITMENT/PAST"})
        == "revops.queues.errors.422_COMMITMENT_PAST"
    )


def test_disabled_reporter_emits_nothing(caplog):
    client = _FakeStatsd()
    reporter = MetricsReporter("statsd", disabled=True, statsd_client=client)
    caplog.set_level(logging.DEBUG, logger="app.metrics")

    reporter.increment("queues.errors")

    assert client.calls == []
    assert not caplog.records


def test_stdout_backend_logs_payload_with_environment_tag(caplog):
    reporter = MetricsReporter("stdout", namespace="revops", disabled=False, sample_rate=1.0)
    caplog.set_level(logging.DEBUG, logger="app.metrics")

    reporter.gauge("revops.queues.size", 4, tags={"queue": "stalled"})

    (record,) = caplog.records
    assert record.getMessage() == "revops.metric"
    assert record.metrics["metric"] == "revops.queues.size"
    assert record.metrics["type"] == "gauge"
    assert record.metrics["tags"]["queue"] == "stalled"
    assert "environment" in record.metrics["tags"]


def test_gauges_ignore_sampling():
    client = _FakeStatsd()
    reporter = MetricsReporter("statsd", disabled=False, sample_rate=0.0, statsd_client=client)

    reporter.increment("queues.errors")
    reporter.gauge("queues.size", 1)

    assert [call[0] for call in client.calls] == ["gauge"]
