#!/usr/bin/env python3
"""
Cron script: Delete product images that no product references.

Usage:
    python scripts/cleanup_images.py

Add to crontab to run automatically:
    # Weekly on Sunday at 2am
    0 2 * * 0 cd /path/to/sannu-sannu && python scripts/cleanup_images.py
"""

import sys
import logging

from sannu.cli.main import build_parser
from sannu.logging_config import configure_logging

configure_logging(extra_handlers=[logging.FileHandler('cleanup_images.log')])

logger = logging.getLogger(__name__)


def main():
    logger.info("=" * 80)
    logger.info("Starting scheduled images:cleanup")
    logger.info("=" * 80)

    try:
        args = build_parser().parse_args(["images:cleanup", "--force"])
        exit_code = args.handler(args)
    except Exception:
        logger.exception("Fatal error during images:cleanup")
        sys.exit(1)

    if exit_code != 0:
        logger.warning(f"images:cleanup finished with exit code {exit_code}")
        sys.exit(1)

    logger.info("images:cleanup complete")
    logger.info("=" * 80)


if __name__ == "__main__":
    main()
