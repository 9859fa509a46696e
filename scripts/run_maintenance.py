#!/usr/bin/env python3
"""
Run one maintenance pass: expire overdue contract proposals and purge
profiles whose restore window has passed.

Usage (from the repo root, after `pip install -e .`):
  python scripts/run_maintenance.py

Suitable for cron when the API runs with CONTRACT_EXPIRY_SWEEP_SECONDS=0.
"""
import logging
import sys

from dotenv import load_dotenv


def main() -> int:
    load_dotenv()

    from stagelink.core.observability import setup_logging
    from stagelink.services.maintenance import run_maintenance

    setup_logging()
    logger = logging.getLogger("stagelink.scripts.maintenance")
    summary = run_maintenance()
    logger.info("Maintenance summary: %s", summary)
    print(
        f"contracts_expired={summary['contracts_expired']} "
        f"profiles_purged={summary['profiles_purged']}"
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
