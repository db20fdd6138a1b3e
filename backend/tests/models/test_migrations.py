from __future__ import annotations

from uuid import uuid4

from alembic import command
from sqlalchemy import inspect
from sqlalchemy.engine.url import make_url

from tabi.core.db import dispose_engine, get_engine
from tabi.core.settings import settings
from backend.tests.utils.db import (
    TEST_DATABASE_URL,
    build_alembic_config,
    clone_url_with_database,
    drop_database,
    ensure_database,
)

CORE_TABLES = {"trips", "days", "activities", "budget_items"}


def test_alembic_upgrade_and_downgrade(tmp_path) -> None:
    """Alembic scripts should run cleanly against a fresh database."""

    cfg = build_alembic_config()
    original_url = settings.database_url

    admin_url = None
    temp_db_name = None
    if TEST_DATABASE_URL:
        base_url = make_url(TEST_DATABASE_URL)
        admin_url = clone_url_with_database(base_url, "postgres")
        temp_db_name = f"{(base_url.database or 'tabi')}_migration_{uuid4().hex[:8]}"
        drop_database(admin_url, temp_db_name)
        ensure_database(admin_url, temp_db_name)
        temp_url = clone_url_with_database(base_url, temp_db_name)
        settings.database_url = temp_url.render_as_string(hide_password=False)
    else:
        settings.database_url = f"sqlite:///{tmp_path / 'migrations.sqlite3'}"
    dispose_engine()

    try:
        command.upgrade(cfg, "head")
        inspector = inspect(get_engine())
        assert CORE_TABLES <= set(inspector.get_table_names())
        unique_names = {
            item["name"] for item in inspector.get_unique_constraints("activities")
        }
        assert "uq_activities_day_order" in unique_names

        command.downgrade(cfg, "base")
        dispose_engine()
        inspector = inspect(get_engine())
        assert CORE_TABLES.isdisjoint(inspector.get_table_names())
    finally:
        settings.database_url = original_url
        dispose_engine()
        if admin_url is not None and temp_db_name is not None:
            drop_database(admin_url, temp_db_name)
