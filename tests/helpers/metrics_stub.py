from __future__ import annotations

from typing import Any


class StubMetrics:
    """Records samples in emission order instead of sending them anywhere."""

    def __init__(self) -> None:
        self.samples: list[dict[str, Any]] = []

    def increment(
        self, metric: str, value: float = 1.0, *, tags: dict[str, Any] | None = None
    ) -> None:
        self._record("counter", metric, value, tags)

    def gauge(self, metric: str, value: float, *, tags: dict[str, Any] | None = None) -> None:
        self._record("gauge", metric, value, tags)

    def timing(self, metric: str, value: float, *, tags: dict[str, Any] | None = None) -> None:
        self._record("timing", metric, value, tags)

    @property
    def increment_calls(self) -> list[dict[str, Any]]:
        return self._of_type("counter")

    @property
    def gauge_calls(self) -> list[dict[str, Any]]:
        return self._of_type("gauge")

    @property
    def timing_calls(self) -> list[dict[str, Any]]:
        return self._of_type("timing")

    def counted(self, metric: str) -> float:
        return sum(call["value"] for call in self.increment_calls if call["metric"] == metric)

    def _record(self, kind: str, metric: str, value: float, tags: dict[str, Any] | None) -> None:
        self.samples.append({"kind": kind, "metric": metric, "value": value, "tags": tags or {}})

    def _of_type(self, kind: str) -> list[dict[str, Any]]:
        return [
            {key: sample[key] for key in ("metric", "value", "tags")}
            for sample in self.samples
            if sample["kind"] == kind
        ]
