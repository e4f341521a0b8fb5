#!/usr/bin/env python3
"""Database bootstrap: run Alembic migrations before the API or worker starts.

- Always run `alembic upgrade head` on startup.
- A failed upgrade on a database that already holds clients is fatal.
- Only an EMPTY database may fall back to create_all + `alembic stamp head`.
"""

import logging
import os
import sys
import time
from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger("run_migrations")

DB_READY_RETRIES = 30


def _get_alembic_config():
    from alembic.config import Config

    here = os.path.dirname(os.path.abspath(__file__))
    cfg = Config(os.path.join(here, "alembic.ini"))
    cfg.set_main_option("script_location", os.path.join(here, "alembic"))
    return cfg


def wait_for_database(retries: int = DB_READY_RETRIES, delay_s: float = 1.0) -> bool:
    from core.database import check_db_connection

    for attempt in range(1, retries + 1):
        if check_db_connection():
            logger.info("Database is ready")
            return True
        logger.info(f"Database is unavailable, sleeping (attempt {attempt}/{retries})")
        time.sleep(delay_s)
    return False


def client_count() -> int:
    """Rows in the client table, 0 when the table does not exist yet."""
    from sqlalchemy import inspect, text
    from core.database import engine

    with engine.connect() as conn:
        if not inspect(conn).has_table("client"):
            return 0
        return conn.execute(text("SELECT COUNT(*) FROM client")).scalar() or 0


def create_schema_directly():
    """Create the schema from the ORM models and stamp it as head.

    Refuses to touch a database that already holds clients.
    """
    from alembic import command
    from core.database import Base, engine
    import models  # noqa: F401

    existing = client_count()
    if existing:
        raise RuntimeError(
            f"Refusing direct schema creation on non-empty DB (clients={existing}). "
            f"Run Alembic migrations instead."
        )

    logger.warning("Creating schema directly from models")
    Base.metadata.create_all(engine, checkfirst=True)
    command.stamp(_get_alembic_config(), "head")


def main() -> int:
    from core.logging import setup_logging
    from alembic import command

    setup_logging()

    if not wait_for_database():
        logger.error("Database is not ready after maximum retries")
        return 1

    try:
        command.upgrade(_get_alembic_config(), "head")
        logger.info("Migrations completed successfully")
        return 0
    except Exception:
        logger.exception("Alembic upgrade failed")

    try:
        create_schema_directly()
    except Exception:
        logger.exception("Schema bootstrap failed")
        return 1

    logger.info("Schema bootstrap completed via create_all fallback")
    return 0


if __name__ == '__main__':
    sys.exit(main())
