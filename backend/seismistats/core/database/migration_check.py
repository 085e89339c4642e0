"""Migration status checker.

Called during application startup so a missing ``alembic upgrade head``
surfaces as one clear error instead of failing on the first earthquake
query.
"""

import logging
from dataclasses import dataclass
from pathlib import Path

from alembic import script
from alembic.config import Config
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine

logger = logging.getLogger(__name__)

ALEMBIC_INI_PATH = Path(__file__).parent.parent.parent.parent / "alembic.ini"

UPGRADE_HINT = (
    "To fix this, run:\n"
    "  cd backend && alembic upgrade head\n"
)


@dataclass
class MigrationStatus:
    alembic_table_exists: bool = False
    current_revision: str | None = None
    head_revision: str | None = None

    @property
    def is_up_to_date(self) -> bool:
        return (
            self.alembic_table_exists
            and self.head_revision is not None
            and self.current_revision == self.head_revision
        )


def get_head_revision(alembic_ini_path: Path = ALEMBIC_INI_PATH) -> str | None:
    """Return the newest revision in the migrations directory."""
    if not alembic_ini_path.exists():
        logger.error(f"alembic.ini not found at {alembic_ini_path}")
        return None

    alembic_cfg = Config(str(alembic_ini_path))
    script_dir = script.ScriptDirectory.from_config(alembic_cfg)
    return script_dir.get_current_head()


async def check_migration_status(engine: AsyncEngine) -> MigrationStatus:
    """Compare the database revision with the migrations head.

    Args:
        engine: SQLAlchemy async engine

    Returns:
        MigrationStatus describing the current and head revisions
    """
    status = MigrationStatus()

    async with engine.begin() as conn:
        table_exists = await conn.scalar(text("""
            SELECT EXISTS (
                SELECT FROM information_schema.tables
                WHERE table_name = 'alembic_version'
            )
        """))
        status.alembic_table_exists = bool(table_exists)

        if not table_exists:
            logger.warning(
                "alembic_version table does not exist - migrations have never been run"
            )
            return status

        status.current_revision = await conn.scalar(
            text("SELECT version_num FROM alembic_version")
        )

    status.head_revision = get_head_revision()

    if status.is_up_to_date:
        logger.info(
            f"Database migrations are up to date (revision: {status.current_revision})"
        )
    else:
        logger.warning(
            f"Database migrations are out of date. "
            f"Current: {status.current_revision}, Head: {status.head_revision}"
        )

    return status


async def require_migrations(
    engine: AsyncEngine, fail_on_outdated: bool = True
) -> None:
    """Check migration status and optionally fail if not up to date.

    Args:
        engine: SQLAlchemy async engine
        fail_on_outdated: If True, raises RuntimeError when migrations are outdated.
                         If False, only logs the problem.

    Raises:
        RuntimeError: If migrations are not up to date and fail_on_outdated=True
    """
    status = await check_migration_status(engine)

    if status.is_up_to_date:
        return

    if not status.alembic_table_exists:
        error_msg = (
            "Database not initialized: the alembic_version table does not exist.\n"
            + UPGRADE_HINT
        )
    else:
        error_msg = (
            "Database migrations out of date.\n"
            f"Current revision: {status.current_revision}\n"
            f"Head revision: {status.head_revision}\n"
            + UPGRADE_HINT
        )

    logger.error(error_msg)
    if fail_on_outdated:
        raise RuntimeError(error_msg)
