#!/usr/bin/env python3
"""
Cron script: Apply date-based project status changes (complete expired, activate scheduled).

Usage:
    python scripts/update_project_statuses.py

Add to crontab to run automatically:
    # Daily at midnight
    0 0 * * * cd /path/to/sannu-sannu && python scripts/update_project_statuses.py
"""

import sys
import logging

from sannu.cli.main import build_parser
from sannu.logging_config import configure_logging

configure_logging(extra_handlers=[logging.FileHandler('update_project_statuses.log')])

logger = logging.getLogger(__name__)


def main():
    logger.info("=" * 80)
    logger.info("Starting scheduled projects:update-statuses")
    logger.info("=" * 80)

    try:
        args = build_parser().parse_args(["projects:update-statuses"])
        exit_code = args.handler(args)
    except Exception:
        logger.exception("Fatal error during projects:update-statuses")
        sys.exit(1)

    if exit_code != 0:
        logger.warning(f"projects:update-statuses finished with exit code {exit_code}")
        sys.exit(1)

    logger.info("projects:update-statuses complete")
    logger.info("=" * 80)


if __name__ == "__main__":
    main()
