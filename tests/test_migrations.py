from pathlib import Path

import sqlalchemy as sa
from alembic import command
from alembic.config import Config

import treasury

PACKAGE_DIR = Path(treasury.__file__).resolve().parent


def _alembic_config(db_url: str) -> Config:
    config = Config(str(PACKAGE_DIR / "alembic.ini"))
    config.set_main_option("script_location", str(PACKAGE_DIR / "migrations"))
    config.set_main_option("sqlalchemy.url", db_url)
    config.attributes["configure_logger"] = False
    return config


def test_upgrade_head_creates_every_table(tmp_path):
    db_url = f"sqlite:///{tmp_path / 'migrations.db'}"

    command.upgrade(_alembic_config(db_url), "head")

    engine = sa.create_engine(db_url)
    try:
        inspector = sa.inspect(engine)
        tables = set(inspector.get_table_names())
        assert {
            "organizations",
            "users",
            "memberships",
            "members",
            "dues",
            "payments",
            "transactions",
            "dues_configs",
        } <= tables
        unique_names = {constraint["name"] for constraint in inspector.get_unique_constraints("dues")}
        assert "uq_dues_member_month_year" in unique_names
    finally:
        engine.dispose()


def test_downgrade_base_drops_tables(tmp_path):
    db_url = f"sqlite:///{tmp_path / 'migrations.db'}"
    config = _alembic_config(db_url)

    command.upgrade(config, "head")
    command.downgrade(config, "base")

    engine = sa.create_engine(db_url)
    try:
        assert "dues" not in sa.inspect(engine).get_table_names()
    finally:
        engine.dispose()
