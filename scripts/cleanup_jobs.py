#!/usr/bin/env python3
"""Delete finished jobs older than the retention window.

Usage:
    python scripts/cleanup_jobs.py [--days N]

Options:
    --days: Age in days past which COMPLETED and FAILED jobs are removed
            (default: JOB_RETENTION_DAYS)
"""

import argparse
import logging
import sys
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from docexpress.core.config import settings
from docexpress.db.session import SessionLocal
from docexpress.services.job_service import JobService

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)


def main():
    """Run one cleanup pass."""
    parser = argparse.ArgumentParser(description="Delete old finished jobs")
    parser.add_argument(
        "--days",
        type=int,
        default=settings.job_retention_days,
        help=f"Retention window in days (default: {settings.job_retention_days})"
    )
    args = parser.parse_args()

    if args.days < 1:
        parser.error("--days must be at least 1")

    db = SessionLocal()
    try:
        deleted = JobService.cleanup_old_jobs(db, args.days)
        logger.info(f"Removed {deleted} job(s) older than {args.days} day(s)")
    except Exception as e:
        logger.error(f"Cleanup failed: {e}")
        sys.exit(1)
    finally:
        db.close()


if __name__ == "__main__":
    main()
