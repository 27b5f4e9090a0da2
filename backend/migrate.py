#!/usr/bin/env python3
"""
Database migration script for deployments.

Runs Alembic migrations during the build/deploy process.
"""

import logging
import os
import subprocess
import sys

logger = logging.getLogger("migrate")


def run_migrations():
    """Run all pending database migrations"""
    logger.info("Running database migrations against %s", os.getenv("DATABASE_URL", "SQLite (development)"))

    try:
        result = subprocess.run(
            ["alembic", "upgrade", "head"],
            check=True,
            capture_output=True,
            text=True,
        )
    except subprocess.CalledProcessError as e:
        logger.error("Migration failed:\n%s\n%s", e.stdout, e.stderr)
        return 1
    except OSError as e:
        logger.error("Migration failed: %s", e)
        return 1

    logger.info("%s", result.stdout)
    logger.info("Migrations completed successfully")
    return 0


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(message)s")
    sys.exit(run_migrations())
