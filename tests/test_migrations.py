# mypy: ignore-errors
"""The migration chain builds the same tables as the ORM metadata."""

from sqlalchemy import inspect

from syspoints_stage.db.session import Base, build_engine
from syspoints_stage.scripts.migrate import run_upgrade_head


def test_upgrade_head_creates_every_table(tmp_path) -> None:
    url = f"sqlite:///{tmp_path / 'migrated.db'}"
    run_upgrade_head(url)

    engine = build_engine(url)
    try:
        tables = set(inspect(engine).get_table_names())
    finally:
        engine.dispose()
    assert set(Base.metadata.tables) <= tables
    assert "alembic_version" in tables
