"""Unit tests for migration discovery and rendering."""

from __future__ import annotations

from pathlib import Path

import pytest

from shelfindex.db.migrate import DIM_PLACEHOLDER, MIGRATIONS_DIR, discover_migrations, render_migration


def test_migrations_are_discovered_in_order() -> None:
    names = [p.name for p in discover_migrations()]
    assert names == sorted(names)
    assert names[0] == "001_init.sql"
    assert {"002_document_status.sql", "003_content_hash.sql"} <= set(names)


def test_vector_dimension_is_substituted() -> None:
    sql = render_migration(MIGRATIONS_DIR / "001_init.sql", 768)
    assert "VECTOR(768)" in sql
    assert DIM_PLACEHOLDER not in sql


def test_invalid_dimension_rejected() -> None:
    with pytest.raises(ValueError):
        render_migration(MIGRATIONS_DIR / "001_init.sql", 0)


def test_non_sql_files_are_ignored(tmp_path: Path) -> None:
    (tmp_path / "002_b.sql").write_text("SELECT 2;")
    (tmp_path / "001_a.sql").write_text("SELECT 1;")
    (tmp_path / "README.md").write_text("notes")

    assert [p.name for p in discover_migrations(tmp_path)] == ["001_a.sql", "002_b.sql"]
