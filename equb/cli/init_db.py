"""CLI entry point for creating the group store schema.

Usage:
    python -m equb.cli.init_db [--database-url URL]

Exit Codes:
    0 - Success: all tables exist
    1 - Failure: schema could not be created

Logging:
    INFO level logs to both stdout and the configured log file
"""

import argparse
import sys

from sqlalchemy.exc import SQLAlchemyError

from equb.config import settings
from equb.services.logging import setup_logging


def main(argv: list[str] | None = None) -> int:
    """Create every table of the engine in the configured database.

    Returns:
        Exit code: 0 for success, 1 for failure
    """
    parser = argparse.ArgumentParser(description="Create the Equb engine database schema")
    parser.add_argument(
        "--database-url",
        default=settings.database_url,
        help="SQLAlchemy database URL (default: DATABASE_URL or settings)",
    )
    args = parser.parse_args(argv)

    logger = setup_logging()
    logger.info("Creating schema in %s", args.database_url)

    from equb.services.db import create_db_engine, init_db

    engine = create_db_engine(args.database_url, echo=settings.database_echo)
    try:
        init_db(engine)
    except SQLAlchemyError as e:
        logger.error("Schema creation failed: %s", e, exc_info=True)
        return 1
    finally:
        engine.dispose()

    logger.info("Schema ready")
    return 0


if __name__ == "__main__":
    sys.exit(main())
