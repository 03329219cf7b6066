#!/usr/bin/env python3
"""Script to initialize the shared repositories table."""

import logging
import sys
import os

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from repo_manager.infrastructure.database import DatabaseRepository

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

logger = logging.getLogger(__name__)


def main():
    """Initialize database schema and register any repository URLs given as arguments."""
    db_repo = DatabaseRepository()
    try:
        db_repo.connect()
        db_repo.initialize_schema()
        for url in sys.argv[1:]:
            repo = db_repo.add_repository(url)
            logger.info(f"Registered {repo.url} as {repo.id}")
        logger.info(f"Database schema setup completed. Repositories: {db_repo.get_repository_count()}")
        return 0
    except Exception as e:
        logger.error(f"Failed to setup database schema: {e}")
        return 1
    finally:
        db_repo.close()


if __name__ == "__main__":
    sys.exit(main())
