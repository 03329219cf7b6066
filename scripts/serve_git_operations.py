#!/usr/bin/env python3
"""Script to serve the git operations endpoint."""

import logging
import sys
import os

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from repo_manager.presentation.http_api import create_app

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

logger = logging.getLogger(__name__)


def main():
    """Run the git operations HTTP server."""
    try:
        if not (os.getenv("GITHUB_ACCESS_TOKEN") or os.getenv("GITHUB_TOKEN")):
            logger.warning("GITHUB_ACCESS_TOKEN not found. Every operation will fail until it is set.")

        host = os.getenv("HOST", "127.0.0.1")
        port = int(os.getenv("PORT", "8000"))
        app = create_app()
        logger.info(f"Git Operations server started on {host}:{port}")
        app.run(host=host, port=port)
        return 0
    except Exception as e:
        logger.error(f"Server failed: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
