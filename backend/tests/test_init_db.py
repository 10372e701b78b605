"""Tests for init_db() migration logic."""

from unittest.mock import patch

import pytest


@pytest.mark.asyncio
async def test_init_db_runs_upgrade_to_head():
    """init_db should upgrade to the head revision."""
    with (
        patch("alembic.command.upgrade") as mock_upgrade,
        patch("pathlib.Path.exists", return_value=True),
    ):
        from heattrail.database import init_db

        await init_db()

        mock_upgrade.assert_called_once()
        assert mock_upgrade.call_args[0][1] == "head"


@pytest.mark.asyncio
async def test_init_db_points_alembic_at_migrations_dir():
    """The script location should resolve next to alembic.ini."""
    with (
        patch("alembic.command.upgrade") as mock_upgrade,
        patch("pathlib.Path.exists", return_value=True),
    ):
        from heattrail.database import init_db

        await init_db()

        cfg = mock_upgrade.call_args[0][0]
        assert cfg.get_main_option("script_location").endswith("migrations")


@pytest.mark.asyncio
async def test_init_db_migration_failure_raises():
    """Migration failure should log and re-raise the exception."""
    with (
        patch("alembic.command.upgrade", side_effect=RuntimeError("migration failed")),
        patch("pathlib.Path.exists", return_value=True),
    ):
        from heattrail.database import init_db

        with pytest.raises(RuntimeError, match="migration failed"):
            await init_db()


@pytest.mark.asyncio
async def test_init_db_missing_alembic_ini():
    """Missing alembic.ini should raise FileNotFoundError."""
    with patch("pathlib.Path.exists", return_value=False):
        from heattrail.database import init_db

        with pytest.raises(FileNotFoundError, match="alembic.ini"):
            await init_db()
