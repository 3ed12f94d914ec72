# backend/shelfindex/db/migrate.py
"""
Apply the SQL files in db/migrations in filename order.

Each file carries its own BEGIN/COMMIT and IF NOT EXISTS guards, so running
the whole set again is harmless. `{{EMBEDDING_DIM}}` is replaced with the
configured vector dimension before execution.
"""
from __future__ import annotations
import sys
import logging
from pathlib import Path
from typing import List

import psycopg
from shelfindex.db.config import settings

logger = logging.getLogger("shelf.db.migrate")

MIGRATIONS_DIR = Path(__file__).resolve().parent / "migrations"
DIM_PLACEHOLDER = "{{EMBEDDING_DIM}}"


def discover_migrations(directory: Path = MIGRATIONS_DIR) -> List[Path]:
    return sorted((p for p in directory.iterdir() if p.is_file() and p.suffix == ".sql"), key=lambda p: p.name)


def render_migration(path: Path, embedding_dim: int) -> str:
    if embedding_dim <= 0:
        raise ValueError(f"Invalid embedding_dim: {embedding_dim}")
    return path.read_text(encoding="utf-8").replace(DIM_PLACEHOLDER, str(int(embedding_dim)))


def run_migrations(dsn: str | None = None, embedding_dim: int | None = None) -> List[str]:
    files = discover_migrations()
    if not files:
        logger.info("No migrations found.")
        return []

    dim = embedding_dim or settings.embedding_dim
    applied: List[str] = []
    logger.info("🔗 Migrating %s", settings.masked_database_url())
    with psycopg.connect(dsn or settings.database_url, autocommit=True) as conn:
        for path in files:
            logger.info("Applying migration: %s", path.name)
            conn.execute(render_migration(path, dim))
            applied.append(path.name)
            logger.info("✅ Applied: %s", path.name)

    logger.info("Migrations complete (%d files).", len(applied))
    return applied


def main() -> int:
    logging.basicConfig(
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        level=logging.INFO,
    )
    try:
        run_migrations()
    except psycopg.Error as e:
        diag = getattr(e, "diag", None)
        logger.error(
            "❌ Migration failed: sqlstate=%s detail=%s hint=%s",
            getattr(e, "sqlstate", None),
            getattr(diag, "message_detail", None) or str(e),
            getattr(diag, "message_hint", None),
            exc_info=True,
        )
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
