#!/usr/bin/env python3
"""Script to dump the shared repositories table to CSV and JSON."""

import logging
import sys
import os
import csv
import json
from dataclasses import asdict
from datetime import datetime

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from repo_manager.infrastructure.database import DatabaseRepository

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

logger = logging.getLogger(__name__)


def to_rows(repositories):
    """Plain dicts with datetimes rendered as ISO strings."""
    rows = []
    for repo in repositories:
        row = asdict(repo)
        for key, value in row.items():
            if isinstance(value, datetime):
                row[key] = value.isoformat()
        rows.append(row)
    return rows


def dump_to_csv(rows, output_file: str):
    with open(output_file, 'w', newline='', encoding='utf-8') as f:
        writer = csv.DictWriter(f, fieldnames=rows[0].keys())
        writer.writeheader()
        writer.writerows(rows)
    logger.info(f"Dumped {len(rows)} repositories to {output_file}")


def dump_to_json(rows, output_file: str):
    with open(output_file, 'w', encoding='utf-8') as f:
        json.dump(rows, f, indent=2, ensure_ascii=False)
    logger.info(f"Dumped {len(rows)} repositories to {output_file}")


def main():
    """Dump database to CSV and JSON."""
    db_repo = DatabaseRepository()
    try:
        rows = to_rows(db_repo.list_repositories())
        if not rows:
            logger.warning("No data to dump")
            return 0

        output_dir = os.getenv("OUTPUT_DIR", "artifacts")
        os.makedirs(output_dir, exist_ok=True)

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        csv_file = os.path.join(output_dir, f"repositories_{timestamp}.csv")
        json_file = os.path.join(output_dir, f"repositories_{timestamp}.json")

        dump_to_csv(rows, csv_file)
        dump_to_json(rows, json_file)

        logger.info(f"Database dump completed. Files: {csv_file}, {json_file}")
        return 0
    except Exception as e:
        logger.error(f"Database dump failed: {e}", exc_info=True)
        return 1
    finally:
        db_repo.close()


if __name__ == "__main__":
    sys.exit(main())
