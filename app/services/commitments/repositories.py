"""Persistence backends for hygiene commitments."""
# ruff: noqa: UP017

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from datetime import date, datetime, timezone
from threading import Lock
from typing import Any, Protocol

from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.engine.url import URL, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, SQLModel, create_engine, select

from app.config import settings
from app.models.commitment_record import CommitmentRecord
from app.models.hygiene import CommitmentStatus, HygieneCommitment
from app.observability.metrics import metrics
from app.services.commitments.errors import CommitmentError
from app.services.compliance.business_calendar import is_past, resolve_now

logger = logging.getLogger(__name__)


class CommitmentRepository(Protocol):
    """Persistence contract for hygiene commitments."""

    def get_pending(self, deal_id: str) -> HygieneCommitment | None:
        ...

    def get_pending_many(self, deal_ids: Iterable[str]) -> dict[str, HygieneCommitment]:
        ...

    def set_commitment(
        self,
        deal_id: str,
        commitment_date: date,
        *,
        owner_id: str | None = None,
        now: datetime | None = None,
    ) -> HygieneCommitment:
        ...

    def complete(self, deal_id: str, *, now: datetime | None = None) -> int:
        ...

    def list_for_deal(self, deal_id: str) -> list[HygieneCommitment]:
        ...

    def ping(self) -> bool:
        ...


def _validate_commitment_date(commitment_date: date, now: datetime | None) -> None:
    if is_past(commitment_date, now=now):
        raise CommitmentError(
            "Commitment date must be today or in the future.",
            code="422_COMMITMENT_IN_PAST",
        )


class InMemoryCommitmentRepository(CommitmentRepository):
    """Thread-safe repository used for API/local development."""

    def __init__(self, commitments: Iterable[HygieneCommitment] = ()) -> None:
        self._commitments: dict[str, list[HygieneCommitment]] = {}
        self._lock = Lock()
        for commitment in commitments:
            self._commitments.setdefault(commitment.deal_id, []).append(commitment)

    def get_pending(self, deal_id: str) -> HygieneCommitment | None:
        with self._lock:
            return self._latest_pending(deal_id)

    def get_pending_many(self, deal_ids: Iterable[str]) -> dict[str, HygieneCommitment]:
        with self._lock:
            found = {deal_id: self._latest_pending(deal_id) for deal_id in deal_ids}
        return {deal_id: commitment for deal_id, commitment in found.items() if commitment}

    def set_commitment(
        self,
        deal_id: str,
        commitment_date: date,
        *,
        owner_id: str | None = None,
        now: datetime | None = None,
    ) -> HygieneCommitment:
        _validate_commitment_date(commitment_date, now)
        current = resolve_now(now).astimezone(timezone.utc)
        with self._lock:
            existing = self._latest_pending(deal_id)
            history = self._commitments.setdefault(deal_id, [])
            if existing is not None:
                updated = existing.model_copy(
                    update={"commitment_date": commitment_date, "created_at": current}
                )
                history[history.index(existing)] = updated
                persisted = updated
            else:
                persisted = HygieneCommitment(
                    deal_id=deal_id,
                    owner_id=owner_id,
                    commitment_date=commitment_date,
                    created_at=current,
                )
                history.append(persisted)
        metrics.increment("commitments.persisted", tags={"repository": "memory"})
        logger.info(
            "commitments.persistence.persisted",
            extra={
                "deal_id": deal_id,
                "commitment_date": commitment_date.isoformat(),
                "backend": "memory",
            },
        )
        return persisted

    def complete(self, deal_id: str, *, now: datetime | None = None) -> int:
        current = resolve_now(now).astimezone(timezone.utc)
        completed = 0
        with self._lock:
            history = self._commitments.get(deal_id, [])
            for index, commitment in enumerate(history):
                if commitment.status is CommitmentStatus.PENDING:
                    history[index] = commitment.model_copy(
                        update={"status": CommitmentStatus.COMPLETED, "resolved_at": current}
                    )
                    completed += 1
        if completed:
            metrics.increment("commitments.completed", completed, tags={"repository": "memory"})
            logger.info(
                "commitments.persistence.completed",
                extra={"deal_id": deal_id, "count": completed, "backend": "memory"},
            )
        return completed

    def list_for_deal(self, deal_id: str) -> list[HygieneCommitment]:
        with self._lock:
            history = list(self._commitments.get(deal_id, []))
        return sorted(history, key=lambda entry: entry.created_at, reverse=True)

    def ping(self) -> bool:
        return True

    def _latest_pending(self, deal_id: str) -> HygieneCommitment | None:
        pending = [
            commitment
            for commitment in self._commitments.get(deal_id, [])
            if commitment.status is CommitmentStatus.PENDING
        ]
        if not pending:
            return None
        return max(pending, key=lambda entry: entry.created_at)


class SQLCommitmentRepository(CommitmentRepository):
    """SQLModel-backed repository that persists commitments to Postgres (or SQLite)."""

    def __init__(
        self,
        database_url: str,
        *,
        pool_min_size: int | None = None,
        pool_max_size: int | None = None,
        auto_create_schema: bool = False,
    ) -> None:
        if not database_url:
            raise ValueError("DATABASE_URL is required for SQLCommitmentRepository.")

        parsed_url = make_url(database_url)
        sync_url, connect_args, drivername = coerce_sync_database_url(parsed_url)
        pool_min = max(pool_min_size or settings.db_pool_min_size, 1)
        pool_max = max(pool_max_size or settings.db_pool_max_size, pool_min)
        is_sqlite = drivername.startswith("sqlite")
        engine_kwargs: dict[str, Any] = {
            "echo": False,
            "connect_args": connect_args,
            "pool_pre_ping": not is_sqlite,
        }
        if not is_sqlite:
            engine_kwargs["pool_size"] = pool_min
            engine_kwargs["max_overflow"] = max(pool_max - pool_min, 0)

        self._engine: Engine = create_engine(sync_url, **engine_kwargs)
        if auto_create_schema:
            SQLModel.metadata.create_all(self._engine)
        self._metrics_tags = {"repository": "sqlite" if is_sqlite else "postgres"}

    def dispose(self) -> None:
        """Close the underlying SQLAlchemy engine."""
        self._engine.dispose()

    def get_pending(self, deal_id: str) -> HygieneCommitment | None:
        return self.get_pending_many([deal_id]).get(deal_id)

    def get_pending_many(self, deal_ids: Iterable[str]) -> dict[str, HygieneCommitment]:
        ids = list(dict.fromkeys(deal_ids))
        if not ids:
            return {}
        try:
            with self._session() as session:
                statement = (
                    select(CommitmentRecord)
                    .where(
                        CommitmentRecord.deal_id.in_(ids),
                        CommitmentRecord.status == CommitmentStatus.PENDING.value,
                    )
                    .order_by(CommitmentRecord.created_at.desc())
                )
                records = session.exec(statement).all()
        except SQLAlchemyError as exc:
            logger.exception(
                "commitments.persistence.error",
                extra={"deal_count": len(ids), "backend": self._metrics_tags["repository"]},
            )
            raise CommitmentError("Failed to load pending commitments.") from exc
        latest: dict[str, HygieneCommitment] = {}
        for record in records:
            # Rows arrive newest first; keep the first seen per deal.
            latest.setdefault(record.deal_id, record.to_commitment())
        return latest

    def set_commitment(
        self,
        deal_id: str,
        commitment_date: date,
        *,
        owner_id: str | None = None,
        now: datetime | None = None,
    ) -> HygieneCommitment:
        _validate_commitment_date(commitment_date, now)
        current = resolve_now(now).astimezone(timezone.utc)
        try:
            with self._session() as session:
                statement = (
                    select(CommitmentRecord)
                    .where(
                        CommitmentRecord.deal_id == deal_id,
                        CommitmentRecord.status == CommitmentStatus.PENDING.value,
                    )
                    .order_by(CommitmentRecord.created_at.desc())
                )
                existing = session.exec(statement).first()
                if existing:
                    existing.commitment_date = commitment_date
                    existing.created_at = current
                    persisted = existing
                else:
                    persisted = CommitmentRecord(
                        deal_id=deal_id,
                        owner_id=owner_id,
                        commitment_date=commitment_date,
                        created_at=current,
                    )
                    session.add(persisted)
                session.commit()
                session.refresh(persisted)
                result = persisted.to_commitment()
        except SQLAlchemyError as exc:
            logger.exception(
                "commitments.persistence.error",
                extra={"deal_id": deal_id, "backend": self._metrics_tags["repository"]},
            )
            raise CommitmentError("Failed to persist commitment.") from exc
        metrics.increment("commitments.persisted", tags=self._metrics_tags)
        logger.info(
            "commitments.persistence.persisted",
            extra={
                "deal_id": deal_id,
                "commitment_date": commitment_date.isoformat(),
                "backend": self._metrics_tags["repository"],
            },
        )
        return result

    def complete(self, deal_id: str, *, now: datetime | None = None) -> int:
        current = resolve_now(now).astimezone(timezone.utc)
        try:
            with self._session() as session:
                statement = select(CommitmentRecord).where(
                    CommitmentRecord.deal_id == deal_id,
                    CommitmentRecord.status == CommitmentStatus.PENDING.value,
                )
                records = session.exec(statement).all()
                for record in records:
                    record.status = CommitmentStatus.COMPLETED.value
                    record.resolved_at = current
                    session.add(record)
                session.commit()
        except SQLAlchemyError as exc:
            logger.exception(
                "commitments.persistence.error",
                extra={"deal_id": deal_id, "backend": self._metrics_tags["repository"]},
            )
            raise CommitmentError("Failed to complete commitment.") from exc
        if records:
            metrics.increment("commitments.completed", len(records), tags=self._metrics_tags)
            logger.info(
                "commitments.persistence.completed",
                extra={
                    "deal_id": deal_id,
                    "count": len(records),
                    "backend": self._metrics_tags["repository"],
                },
            )
        return len(records)

    def list_for_deal(self, deal_id: str) -> list[HygieneCommitment]:
        try:
            with self._session() as session:
                statement = (
                    select(CommitmentRecord)
                    .where(CommitmentRecord.deal_id == deal_id)
                    .order_by(CommitmentRecord.created_at.desc())
                )
                return [record.to_commitment() for record in session.exec(statement).all()]
        except SQLAlchemyError as exc:
            logger.exception(
                "commitments.persistence.error",
                extra={"deal_id": deal_id, "backend": self._metrics_tags["repository"]},
            )
            raise CommitmentError("Failed to list commitments.") from exc

    def ping(self) -> bool:
        try:
            with self._engine.connect() as connection:
                connection.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError:
            logger.exception(
                "commitments.persistence.unavailable",
                extra={"backend": self._metrics_tags["repository"]},
            )
            return False

    @contextmanager
    def _session(self) -> Iterator[Session]:
        with Session(self._engine) as session:
            yield session


def coerce_sync_database_url(url: URL) -> tuple[str, dict[str, Any], str]:
    """Convert async connection strings into sync SQLAlchemy URLs."""
    drivername = url.drivername
    connect_args: dict[str, Any] = {}
    if drivername.endswith("+asyncpg"):
        drivername = drivername.replace("+asyncpg", "+psycopg2")
    elif drivername.endswith("+psycopg"):
        drivername = drivername.replace("+psycopg", "+psycopg2")
    elif drivername.endswith("+aiosqlite"):
        drivername = drivername.replace("+aiosqlite", "")
    sync_url = url.set(drivername=drivername)
    query = dict(sync_url.query) if sync_url.query else {}
    removed_ssl = query.pop("ssl", None) is not None
    sync_url = sync_url.set(query=query)

    if drivername.startswith("postgresql") and "sslmode" not in query and removed_ssl:
        connect_args["sslmode"] = "require"
    if drivername.startswith("sqlite"):
        connect_args.setdefault("check_same_thread", False)
    return sync_url.render_as_string(hide_password=False), connect_args, drivername


def build_commitment_repository(database_url: str | None = None) -> CommitmentRepository:
    """Instantiate a CommitmentRepository using DATABASE_URL when available."""
    resolved_url = database_url or settings.database_url
    if not resolved_url:
        logger.info("commitments.repository.initialized", extra={"backend": "memory"})
        return InMemoryCommitmentRepository()
    try:
        repository = SQLCommitmentRepository(
            resolved_url,
            pool_min_size=settings.db_pool_min_size,
            pool_max_size=settings.db_pool_max_size,
            auto_create_schema=settings.db_auto_create_schema,
        )
        logger.info("commitments.repository.initialized", extra={"backend": "database"})
        return repository
    except Exception:
        logger.exception("commitments.repository.init_failed", extra={"backend": "database"})
        raise


_REPOSITORY_INSTANCE: CommitmentRepository | None = None


def get_commitment_repository() -> CommitmentRepository:
    """Singleton accessor used by API routes."""
    global _REPOSITORY_INSTANCE  # noqa: PLW0603
    if _REPOSITORY_INSTANCE is None:
        _REPOSITORY_INSTANCE = build_commitment_repository()
    return _REPOSITORY_INSTANCE
