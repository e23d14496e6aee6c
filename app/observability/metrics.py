"""Queue and commitment metrics, written to the log stream or pushed to StatsD."""

from __future__ import annotations

import logging
import re
import secrets
from typing import Any

from app.config import settings

try:  # pragma: no cover - optional dependency
    from statsd import StatsClient
except Exception:  # pragma: no cover - optional dependency guard
    StatsClient = None  # type: ignore[assignment]

logger = logging.getLogger("app.metrics")

_UNSAFE_SEGMENT = re.compile(r"[^a-zA-Z0-9_-]+")


class MetricsReporter:
    """Emit counters, gauges and timings for the queue builder and commitment store.

    Every sample is logged at DEBUG under ``revops.metric``. With the StatsD
    backend the sample is also pushed over UDP; plain StatsD has no tag
    support, so tag values are folded into the metric path
    (``revops.queues.size.sales.hygiene`` for pipeline=sales, queue=hygiene).
    """

    def __init__(
        self,
        backend: str | None = None,
        *,
        namespace: str | None = None,
        disabled: bool | None = None,
        sample_rate: float | None = None,
        statsd_client: Any | None = None,
    ) -> None:
        self._backend = (backend or settings.metrics_backend or "stdout").lower()
        self._namespace = namespace or settings.metrics_namespace or "revops"
        self._disabled = settings.metrics_disable if disabled is None else disabled
        rate = settings.metrics_sample_rate if sample_rate is None else sample_rate
        self._sample_rate = max(0.0, min(rate, 1.0))
        self._default_tags = {"environment": settings.environment}
        self._statsd = statsd_client
        if self._statsd is None and self._backend == "statsd" and not self._disabled:
            self._statsd = self._connect_statsd()

    def increment(
        self, metric: str, value: float = 1.0, *, tags: dict[str, Any] | None = None
    ) -> None:
        self._emit("counter", metric, value, tags=tags)

    def gauge(self, metric: str, value: float, *, tags: dict[str, Any] | None = None) -> None:
        self._emit("gauge", metric, value, tags=tags)

    def timing(self, metric: str, value_ms: float, *, tags: dict[str, Any] | None = None) -> None:
        self._emit("timing", metric, value_ms, tags=tags)

    def _emit(
        self, metric_type: str, metric: str, value: float, *, tags: dict[str, Any] | None
    ) -> None:
        if self._disabled or value is None:
            return
        # Gauges report current queue sizes and are never sampled.
        sample_rate = 1.0 if metric_type == "gauge" else self._sample_rate
        if sample_rate < 1.0 and secrets.randbelow(1_000_000) / 1_000_000 >= sample_rate:
            return

        name = self.qualified_name(metric)
        payload: dict[str, Any] = {
            "metric": name,
            "type": metric_type,
            "value": round(float(value), 4),
            "tags": {**self._default_tags, **(tags or {})},
        }
        if sample_rate < 1.0:
            payload["sample_rate"] = round(sample_rate, 4)
        logger.debug("revops.metric", extra={"metrics": payload})

        if self._statsd is None:
            return
        path = self.statsd_path(name, tags)
        try:
            if metric_type == "counter":
                self._statsd.incr(path, value, rate=sample_rate)
            elif metric_type == "gauge":
                self._statsd.gauge(path, value)
            else:
                self._statsd.timing(path, value, rate=sample_rate)
        except Exception as exc:  # pragma: no cover - network failures are logged only
            logger.warning(
                "metrics.backend_error",
                extra={"metric": name, "backend": self._backend, "error": type(exc).__name__},
            )

    def qualified_name(self, metric: str) -> str:
        trimmed = (metric or "").strip(". ")
        if not trimmed:
            return self._namespace
        if trimmed.startswith(f"{self._namespace}."):
            return trimmed
        return f"{self._namespace}.{trimmed}"

    @staticmethod
    def statsd_path(name: str, tags: dict[str, Any] | None) -> str:
        segments = [
            _UNSAFE_SEGMENT.sub("_", str(value))
            for _, value in sorted((tags or {}).items())
            if value is not None and value != ""
        ]
        return ".".join([name, *segments])

    def _connect_statsd(self) -> Any | None:
        if StatsClient is None:
            logger.warning("statsd backend requested but statsd package is not installed.")
            return None
        return StatsClient(
            host=settings.metrics_statsd_host,
            port=settings.metrics_statsd_port,
            prefix="",
        )


metrics = MetricsReporter()
