#!/usr/bin/env python3
"""
Initialize the document store database tables.

Creates the `documents`, `pages` and `annotations` tables. It can be run
standalone or as part of the deployment process.

Usage:
    python scripts/init_database.py [init|drop|status]

    # With environment file
    ENV_FILE=.env.production python scripts/init_database.py

Environment Variables:
    DATABASE_URL - Full async connection string (e.g. postgresql+asyncpg://...)
    DATABASE_HOST, DATABASE_PORT, DATABASE_NAME, DATABASE_USER, DATABASE_PASSWORD
"""

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path

# Configure logging for CLI output
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

# Load environment variables
from dotenv import load_dotenv

env_file = os.environ.get("ENV_FILE", ".env")
env_path = project_root / env_file
if env_path.exists():
    load_dotenv(env_path)
    logger.info(f"Loaded environment from: {env_path}")
else:
    logger.warning(f"No environment file found at: {env_path}")
    logger.info("Using system environment variables")


async def list_tables(db):
    """Return the table names present in the database."""
    from sqlalchemy import inspect

    async with db.engine.connect() as conn:
        return await conn.run_sync(lambda sync_conn: inspect(sync_conn).get_table_names())


async def init_tables():
    """Create all database tables."""
    from docstore.core.db_client import DatabaseManager

    db = DatabaseManager()
    logger.info("=== Database Initialization ===")

    logger.info("Testing database connection...")
    if not await db.test_connection():
        logger.error("Could not connect to database")
        logger.error("Please check DATABASE_URL or the DATABASE_* settings")
        sys.exit(1)

    logger.info("Creating tables...")
    try:
        await db.create_tables()
    except Exception as e:
        logger.error(f"Failed to create tables: {e}")
        sys.exit(1)

    for table_name in await list_tables(db):
        logger.info(f"  - {table_name}")

    await db.close()
    logger.info("=== Initialization Complete ===")


async def drop_tables():
    """Drop all tables (use with caution!)."""
    from docstore.core.db_client import DatabaseManager

    logger.warning("=== WARNING: Dropping All Tables ===")

    confirm = input("Are you sure you want to drop all tables? (type 'yes' to confirm): ")
    if confirm.lower() != "yes":
        logger.info("Aborted.")
        return

    db = DatabaseManager()
    await db.drop_tables()
    logger.info("All tables dropped.")
    await db.close()


async def show_status():
    """Show database status and table row counts."""
    from sqlalchemy import func, select

    from docstore.core.db_client import DatabaseManager
    from docstore.models.db import AnnotationModel, DocumentModel, PageModel

    db = DatabaseManager()
    logger.info("=== Database Status ===")

    if not await db.test_connection():
        logger.error("Could not connect to database")
        sys.exit(1)

    existing = set(await list_tables(db))
    async with db.session() as session:
        for model in (DocumentModel, PageModel, AnnotationModel):
            name = model.__tablename__
            if name not in existing:
                logger.info(f"  - {name}: missing (run 'init')")
                continue
            count = await session.scalar(select(func.count()).select_from(model))
            logger.info(f"  - {name}: {count} rows")

    await db.close()


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Initialize the database for the Document Store API"
    )
    parser.add_argument(
        "command",
        nargs="?",
        default="init",
        choices=["init", "drop", "status"],
        help="Command to run (default: init)"
    )

    args = parser.parse_args()

    if args.command == "init":
        asyncio.run(init_tables())
    elif args.command == "drop":
        asyncio.run(drop_tables())
    elif args.command == "status":
        asyncio.run(show_status())


if __name__ == "__main__":
    main()
