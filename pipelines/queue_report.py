"""Offline queue report: classify an exported CRM snapshot and write the queues as JSON."""

from __future__ import annotations

import argparse
import hashlib
import json
import logging
import sys
import time
from datetime import datetime
from pathlib import Path
from typing import Any, Sequence

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from app.models.deal import CompanySnapshot, DealSnapshot
from app.models.hygiene import HygieneCommitment, HygienePipeline
from app.models.queues import DealTasks, Week1DealActivity
from app.services.commitments.repositories import InMemoryCommitmentRepository
from app.services.compliance.business_calendar import parse_timestamp, resolve_now
from app.services.compliance.errors import ComplianceError
from app.services.compliance.staleness import STALLED_PRESETS
from app.services.queues.builder import QueueBuilder

logger = logging.getLogger("pipelines.queue_report")

OUTPUT_SCHEMA_VERSION = 1
DEFAULT_OUTPUT = Path("reports/queue_report.json")


class QueueReportError(RuntimeError):
    """Domain error for the offline queue report."""

    def __init__(self, message: str, code: str = "QUEUE_REPORT_ERROR") -> None:
        super().__init__(message)
        self.code = code


class SnapshotExport(BaseModel):
    """Shape of the ``--input`` file; a bare JSON list is read as ``deals``."""

    deals: list[DealSnapshot] = Field(default_factory=list)
    companies: list[CompanySnapshot] = Field(default_factory=list)
    week1: list[Week1DealActivity] = Field(default_factory=list)
    tasks: list[DealTasks] = Field(default_factory=list)


_COMMITMENTS = TypeAdapter(list[HygieneCommitment])


def parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Build RevOps queues from an exported CRM snapshot.")
    parser.add_argument("--input", type=Path, required=True, help="Snapshot export (JSON).")
    parser.add_argument(
        "--output",
        type=Path,
        default=DEFAULT_OUTPUT,
        help="Destination for the queue report (default: reports/queue_report.json).",
    )
    parser.add_argument(
        "--commitments",
        type=Path,
        default=None,
        help="Optional JSON list of hygiene commitments to seed the in-memory store.",
    )
    parser.add_argument(
        "--now",
        type=str,
        default=None,
        help="Override the current time (ISO8601) for testing or backfills.",
    )
    parser.add_argument(
        "--pipeline",
        choices=[HygienePipeline.SALES.value, HygienePipeline.UPSELL.value],
        default=HygienePipeline.SALES.value,
        help="Required-field set for the hygiene queue (default: sales).",
    )
    parser.add_argument(
        "--stalled-preset",
        choices=sorted(STALLED_PRESETS),
        default="default",
        help="Staleness thresholds preset (default: default).",
    )
    return parser.parse_args(argv)


def run(argv: Sequence[str] | None = None) -> Path:
    args = parse_args(sys.argv[1:] if argv is None else argv)
    current = _resolve_now(args.now)
    export = _load_export(args.input)
    repository = InMemoryCommitmentRepository(_load_commitments(args.commitments))
    builder = QueueBuilder(repository)
    pipeline = HygienePipeline(args.pipeline)

    start = time.perf_counter()
    logger.info(
        "queue_report.start",
        extra={
            "input": str(args.input),
            "deal_count": len(export.deals),
            "pipeline": pipeline.value,
            "now": current.isoformat(),
        },
    )
    payload: dict[str, Any] = {
        "schema_version": OUTPUT_SCHEMA_VERSION,
        "generated_at": current.isoformat(),
        "pipeline": pipeline.value,
        "summary": builder.summary(export.deals, pipeline, now=current),
        "hygiene": builder.hygiene_queue(export.deals, pipeline, now=current),
        "at_risk": builder.risk_queue(export.deals, now=current),
        "stalled": builder.stalled_queue(
            export.deals, STALLED_PRESETS[args.stalled_preset], now=current
        ),
        "next_step": builder.next_step_queue(export.deals, now=current),
    }
    if export.companies:
        payload["cs_hygiene"] = builder.company_hygiene_queue(export.companies)
    if export.week1:
        payload["week1"] = builder.week1_queue(export.week1, now=current)
    if export.tasks:
        payload["overdue_tasks"] = builder.overdue_tasks_queue(export.tasks, now=current)

    sha = _persist_output(_jsonable(payload), args.output)
    logger.info(
        "queue_report.success",
        extra={
            "output": str(args.output),
            "sha256": sha,
            "duration_ms": round((time.perf_counter() - start) * 1000, 2),
        },
    )
    return args.output


def _resolve_now(value: str | None) -> datetime:
    try:
        return resolve_now(parse_timestamp(value))
    except ComplianceError as exc:
        raise QueueReportError(f"Invalid --now value {value!r}.", code=exc.code) from exc


def _read_json(path: Path) -> Any:
    if not path.exists():
        raise QueueReportError(f"Input file not found: {path}", code="E_INPUT_NOT_FOUND")
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise QueueReportError(f"Input file is not valid JSON: {path}", code="E_INVALID_JSON") from exc


def _load_export(path: Path) -> SnapshotExport:
    raw = _read_json(path)
    if isinstance(raw, list):
        raw = {"deals": raw}
    try:
        return SnapshotExport.model_validate(raw)
    except ValidationError as exc:
        raise QueueReportError(
            f"Snapshot export failed validation: {exc.error_count()} error(s).",
            code="E_INVALID_INPUT",
        ) from exc


def _load_commitments(path: Path | None) -> list[HygieneCommitment]:
    if path is None:
        return []
    try:
        return _COMMITMENTS.validate_python(_read_json(path))
    except ValidationError as exc:
        raise QueueReportError(
            f"Commitments file failed validation: {exc.error_count()} error(s).",
            code="E_INVALID_INPUT",
        ) from exc


def _jsonable(payload: dict[str, Any]) -> dict[str, Any]:
    return {
        key: value.model_dump(mode="json") if isinstance(value, BaseModel) else value
        for key, value in payload.items()
    }


def _persist_output(payload: dict[str, object], output_path: Path) -> str:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with output_path.open("w", encoding="utf-8") as outfile:
        json.dump(payload, outfile, indent=2, sort_keys=True)
        outfile.write("\n")
    return hashlib.sha256(output_path.read_bytes()).hexdigest()


def main() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    try:
        run()
    except QueueReportError as exc:
        logger.error(
            "queue_report.failed",
            extra={"code": exc.code, "error": str(exc)},
        )
        raise SystemExit(1) from exc


if __name__ == "__main__":
    main()
