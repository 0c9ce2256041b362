# backend/tests/test_migrations.py
from __future__ import annotations

from pathlib import Path

import pytest
from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect

from invite_gate.models import InvitationToken

ALEMBIC_DIR = Path(__file__).resolve().parents[1] / "alembic"


@pytest.fixture()
def migrated_url(tmp_path, monkeypatch):
    url = f"sqlite:///{tmp_path / 'migrated.db'}"
    monkeypatch.setenv("DATABASE_URL", url)

    # No ini file: env.py skips fileConfig, so pytest's log capture stays intact.
    cfg = Config()
    cfg.set_main_option("script_location", str(ALEMBIC_DIR))
    command.upgrade(cfg, "head")
    return url, cfg


def test_migration_matches_the_model(migrated_url):
    url, _ = migrated_url
    eng = create_engine(url, future=True)
    try:
        insp = inspect(eng)
        table = InvitationToken.__table__

        columns = {c["name"]: c for c in insp.get_columns(table.name)}
        assert set(columns) == {c.name for c in table.columns}
        for col in table.columns:
            assert columns[col.name]["nullable"] == col.nullable, col.name

        uniques = [tuple(u["column_names"]) for u in insp.get_unique_constraints(table.name)]
        assert ("token",) in uniques

        indexes = {i["name"]: tuple(i["column_names"]) for i in insp.get_indexes(table.name)}
        for idx in table.indexes:
            assert indexes[idx.name] == tuple(c.name for c in idx.columns)
    finally:
        eng.dispose()


def test_migration_downgrades_cleanly(migrated_url):
    url, cfg = migrated_url
    command.downgrade(cfg, "base")

    eng = create_engine(url, future=True)
    try:
        assert InvitationToken.__tablename__ not in inspect(eng).get_table_names()
    finally:
        eng.dispose()
