from __future__ import annotations

# ruff: noqa: E402
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[2]
BACKEND_DIR = PROJECT_ROOT / "backend"
for path in (PROJECT_ROOT, BACKEND_DIR):
    if str(path) not in sys.path:
        sys.path.insert(0, str(path))

import pytest
from alembic import command
from fastapi.testclient import TestClient
from sqlalchemy import delete
from sqlalchemy.engine.url import make_url

from tabi.core.app import create_app
from tabi.core.cache import cache_backend
from tabi.core.db import dispose_engine, session_scope
from tabi.core.settings import settings
from tabi.models import Base
from tabi.utils.metrics import reset_metrics_registry

from backend.tests.utils.db import (
    TEST_DATABASE_URL,
    build_alembic_config,
    clone_url_with_database,
    drop_database,
    ensure_database,
)


@pytest.fixture(scope="session", autouse=True)
def configure_test_database(tmp_path_factory: pytest.TempPathFactory) -> str:
    """Point settings.database_url at a dedicated database for the session."""

    original_url = settings.database_url
    settings.log_to_file = False
    settings.cache_provider = "memory"

    admin_url = None
    test_db_name = None
    if TEST_DATABASE_URL:
        base_url = make_url(TEST_DATABASE_URL)
        test_db_name = f"{base_url.database or 'tabi'}_test"
        admin_url = clone_url_with_database(base_url, "postgres")
        drop_database(admin_url, test_db_name)
        ensure_database(admin_url, test_db_name)
        test_url = clone_url_with_database(base_url, test_db_name)
        settings.database_url = test_url.render_as_string(hide_password=False)
    else:
        db_path = tmp_path_factory.mktemp("db") / "tabi_test.sqlite3"
        settings.database_url = f"sqlite:///{db_path}"

    dispose_engine()
    yield settings.database_url
    dispose_engine()
    if admin_url is not None and test_db_name is not None:
        drop_database(admin_url, test_db_name)
    settings.database_url = original_url
    dispose_engine()


@pytest.fixture(scope="session", autouse=True)
def apply_migrations(configure_test_database: str) -> None:
    """Run Alembic migrations once for the test database."""

    alembic_cfg = build_alembic_config()
    dispose_engine()
    command.upgrade(alembic_cfg, "head")
    yield
    dispose_engine()
    command.downgrade(alembic_cfg, "base")


@pytest.fixture(autouse=True)
def clean_state(apply_migrations: None) -> None:
    """Every test starts from empty tables, a cold cache and fresh metrics."""

    cache_backend.clear()
    reset_metrics_registry()
    yield
    with session_scope() as session:
        for table in reversed(Base.metadata.sorted_tables):
            session.execute(delete(table))
    cache_backend.clear()


@pytest.fixture()
def app(apply_migrations: None):
    return create_app()


@pytest.fixture()
def client(app) -> TestClient:
    with TestClient(app) as test_client:
        yield test_client
