"""
Database setup tool.

    python -m taskmate.utils.init_db init|check|reset
"""
import argparse
from sqlalchemy import inspect
from taskmate.database import engine, Base
import taskmate.model  # noqa: F401  registers every table on Base.metadata
from taskmate.utils.logger import get_logger

logger = get_logger("init_db")


def init_database():
    """Create every missing table."""
    logger.info("Initialising database...")
    Base.metadata.create_all(bind=engine)

    tables = Base.metadata.tables.keys()
    logger.info(f"{len(tables)} tables ready:")
    for table_name in tables:
        logger.info(f"  - {table_name}")


def check_database() -> bool:
    """Connect and list the tables that exist, with their column counts."""
    try:
        inspector = inspect(engine)
        tables = inspector.get_table_names()
    except Exception as e:
        logger.error(f"Database check failed: {e}", exc_info=True)
        return False

    if not tables:
        logger.warning("Database has no tables, run init first")
        return False

    missing = set(Base.metadata.tables.keys()) - set(tables)
    logger.info(f"Database reachable, {len(tables)} tables:")
    for table_name in tables:
        columns = inspector.get_columns(table_name)
        logger.info(f"  - {table_name} ({len(columns)} columns)")
    if missing:
        logger.warning(f"Missing tables: {', '.join(sorted(missing))}")
        return False
    return True


def reset_database(confirm: bool = False):
    """Drop and recreate all tables. Every row is lost."""
    if not confirm:
        response = input("This deletes all data. Continue? (yes/no): ")
        if response.lower() != 'yes':
            logger.info("Reset cancelled")
            return
    Base.metadata.drop_all(bind=engine)
    logger.info("Dropped all tables")
    init_database()


def main(argv=None):
    parser = argparse.ArgumentParser(description="TaskMate database tool")
    parser.add_argument(
        "action",
        choices=["init", "check", "reset"],
        help="init=create tables, check=inspect tables, reset=drop and recreate",
    )
    parser.add_argument("--yes", action="store_true", help="skip the reset confirmation")
    args = parser.parse_args(argv)

    if args.action == "init":
        init_database()
    elif args.action == "check":
        return 0 if check_database() else 1
    elif args.action == "reset":
        reset_database(confirm=args.yes)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
