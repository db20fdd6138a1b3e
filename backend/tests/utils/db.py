from __future__ import annotations

import os
from pathlib import Path

from alembic.config import Config
from sqlalchemy.engine import URL
from psycopg import connect, sql

PROJECT_ROOT = Path(__file__).resolve().parents[3]

# Point at a PostgreSQL server to exercise row locks and the native enum;
# without it the suite runs against a throwaway SQLite file.
TEST_DATABASE_URL = os.environ.get("TEST_DATABASE_URL")


def build_alembic_config() -> Config:
    alembic_cfg = Config(str(PROJECT_ROOT / "alembic.ini"))
    alembic_cfg.set_main_option(
        "script_location", str(PROJECT_ROOT / "backend" / "migrations")
    )
    alembic_cfg.attributes["configure_logger"] = False
    return alembic_cfg


def to_psycopg_url(url: URL) -> URL:
    driver = url.drivername.split("+", 1)[0]
    return url.set(drivername=driver)


def render_psycopg_dsn(url: URL) -> str:
    return to_psycopg_url(url).render_as_string(hide_password=False)


def ensure_database(admin_url: URL, database: str) -> None:
    dsn = render_psycopg_dsn(admin_url)
    with connect(dsn, autocommit=True) as conn:
        with conn.cursor() as cur:
            cur.execute(
                "SELECT 1 FROM pg_database WHERE datname = %s",
                (database,),
            )
            if cur.fetchone():
                return
            cur.execute(
                sql.SQL("CREATE DATABASE {} ENCODING 'UTF8' TEMPLATE template0").format(
                    sql.Identifier(database)
                )
            )


def drop_database(admin_url: URL, database: str) -> None:
    dsn = render_psycopg_dsn(admin_url)
    with connect(dsn, autocommit=True) as conn:
        with conn.cursor() as cur:
            cur.execute(
                sql.SQL("DROP DATABASE IF EXISTS {} WITH (FORCE)").format(
                    sql.Identifier(database)
                )
            )


def clone_url_with_database(url: URL, database: str) -> URL:
    return url.set(database=database)


__all__ = [
    "TEST_DATABASE_URL",
    "build_alembic_config",
    "clone_url_with_database",
    "drop_database",
    "ensure_database",
    "render_psycopg_dsn",
    "to_psycopg_url",
]
