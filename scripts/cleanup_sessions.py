#!/usr/bin/env python3
"""
Cron script: Delete expired sessions.

Usage:
    python scripts/cleanup_sessions.py

Add to crontab to run automatically:
    # Every hour
    0 * * * * cd /path/to/sannu-sannu && python scripts/cleanup_sessions.py
"""

import sys
import logging

from sannu.cli.main import build_parser
from sannu.logging_config import configure_logging

configure_logging(extra_handlers=[logging.FileHandler('cleanup_sessions.log')])

logger = logging.getLogger(__name__)


def main():
    logger.info("=" * 80)
    logger.info("Starting scheduled sessions:cleanup")
    logger.info("=" * 80)

    try:
        args = build_parser().parse_args(["sessions:cleanup"])
        exit_code = args.handler(args)
    except Exception:
        logger.exception("Fatal error during sessions:cleanup")
        sys.exit(1)

    if exit_code != 0:
        logger.warning(f"sessions:cleanup finished with exit code {exit_code}")
        sys.exit(1)

    logger.info("sessions:cleanup complete")
    logger.info("=" * 80)


if __name__ == "__main__":
    main()
