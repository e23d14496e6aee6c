from __future__ import annotations

from datetime import date
from pathlib import Path

import sqlalchemy as sa
from alembic import command
from alembic.config import Config

from app.services.commitments.repositories import SQLCommitmentRepository
from tests.helpers.deals import NOW

MIGRATIONS = Path(__file__).resolve().parents[2] / "migrations"


def _alembic_config(url: str) -> Config:
    config = Config()
    config.set_main_option("script_location", str(MIGRATIONS))
    config.set_main_option("sqlalchemy.url", url)
    return config


def test_upgrade_creates_commitment_table(tmp_path: Path, monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)
    url = f"sqlite:///{tmp_path}/migrated.db"

    command.upgrade(_alembic_config(url), "head")

    engine = sa.create_engine(url)
    try:
        inspector = sa.inspect(engine)
        assert "hygiene_commitments" in inspector.get_table_names()
        indexes = {index["name"] for index in inspector.get_indexes("hygiene_commitments")}
        assert "ix_hygiene_commitments_deal_status" in indexes
    finally:
        engine.dispose()

    repository = SQLCommitmentRepository(url)
    try:
        repository.set_commitment("deal-1", date(2025, 1, 20), now=NOW)
        assert repository.get_pending("deal-1") is not None
    finally:
        repository.dispose()


def test_downgrade_drops_commitment_table(tmp_path: Path, monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)
    url = f"sqlite:///{tmp_path}/migrated.db"
    config = _alembic_config(url)

    command.upgrade(config, "head")
    command.downgrade(config, "base")

    engine = sa.create_engine(url)
    try:
        assert "hygiene_commitments" not in sa.inspect(engine).get_table_names()
    finally:
        engine.dispose()
